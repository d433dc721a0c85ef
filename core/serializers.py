"""
Request and response serializers for the negotiation API.

Input serializers only check request shape (types, choices, bounds the
database itself would reject). Domain rules such as message length or
review window are enforced by the operations in ``core.conversations``,
``core.proposals`` and ``core.reviews`` so they report their own error
codes.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Conversation, Job, Message, Proposal, Review, SeekerProfile

User = get_user_model()


# ============================================================================
# Request Serializers
# ============================================================================

class ConversationOpenSerializer(serializers.Serializer):
    """
    Fields:
    - tasker_id: Required, id of the provider being contacted
    - initial_message: Optional first text message
    """

    tasker_id = serializers.IntegerField(required=True)
    initial_message = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False
    )


class MessageCreateSerializer(serializers.Serializer):
    """
    Fields:
    - content: Required message text (emptiness and length checked by the ledger)
    - attachments: Optional list of opaque storage references
    """

    content = serializers.CharField(required=True, allow_blank=True, trim_whitespace=False)
    attachments = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list
    )


class ProposalTermsSerializer(serializers.Serializer):
    """
    Terms of a proposal or counter proposal.

    Fields:
    - rate: Required, positive integer in minor currency units
    - rate_type: Required, 'hourly' or 'flat'
    - start_time: Required, ISO 8601 datetime
    - notes: Optional free text
    """

    rate = serializers.IntegerField(min_value=1)
    rate_type = serializers.ChoiceField(choices=Proposal.RATE_TYPE_CHOICES)
    start_time = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ReviewSubmitSerializer(serializers.Serializer):
    """
    Fields:
    - job_id: Required, id of the completed job
    - rating: Required number; range and integrality are checked by the aggregator
    - text: Required review text
    """

    job_id = serializers.IntegerField()
    rating = serializers.FloatField()
    text = serializers.CharField(allow_blank=True, trim_whitespace=False)


# ============================================================================
# Response Serializers
# ============================================================================

class ParticipantSerializer(serializers.ModelSerializer):
    """Public participant details. Email is never exposed to the counterpart."""

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name']
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):

    class Meta:
        model = Message
        fields = [
            'id',
            'conversation',
            'sender',
            'kind',
            'content',
            'proposal',
            'system_event',
            'attachments',
            'created_at',
        ]
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation with last-message metadata.

    ``unread_count`` and ``role`` are computed for the requesting user.
    """

    seeker = ParticipantSerializer(read_only=True)
    tasker = ParticipantSerializer(read_only=True)
    unread_count = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            'id',
            'seeker',
            'tasker',
            'role',
            'last_message',
            'last_message_at',
            'last_message_preview',
            'last_message_sender',
            'unread_count',
            'seeker_unread_count',
            'tasker_unread_count',
            'seeker_last_read_at',
            'tasker_last_read_at',
            'job',
            'created_at',
        ]
        read_only_fields = fields

    def _viewer_id(self):
        request = self.context.get('request')
        return getattr(getattr(request, 'user', None), 'id', None)

    def get_role(self, obj):
        viewer_id = self._viewer_id()
        if viewer_id == obj.seeker_id:
            return 'seeker'
        if viewer_id == obj.tasker_id:
            return 'tasker'
        return None

    def get_unread_count(self, obj):
        viewer_id = self._viewer_id()
        if viewer_id == obj.seeker_id:
            return obj.seeker_unread_count
        if viewer_id == obj.tasker_id:
            return obj.tasker_unread_count
        return 0


class ProposalSerializer(serializers.ModelSerializer):

    class Meta:
        model = Proposal
        fields = [
            'id',
            'conversation',
            'sender',
            'receiver',
            'rate',
            'rate_type',
            'start_time',
            'notes',
            'status',
            'previous_proposal',
            'counter_proposal',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class JobSerializer(serializers.ModelSerializer):

    class Meta:
        model = Job
        fields = [
            'id',
            'seeker',
            'tasker',
            'proposal',
            'category',
            'category_name',
            'description',
            'rate',
            'rate_type',
            'start_time',
            'completed_at',
            'status',
            'seeker_review',
            'tasker_review',
            'created_at',
        ]
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = ParticipantSerializer(read_only=True)
    reviewee = ParticipantSerializer(read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'job', 'reviewer', 'reviewee', 'rating', 'text', 'created_at']
        read_only_fields = fields


class ReputationProfileSerializer(serializers.ModelSerializer):
    """Rating aggregate of one role. Shared by seeker and tasker profiles."""

    class Meta:
        model = SeekerProfile
        fields = ['rating', 'rating_count']
        read_only_fields = fields
