"""
HTTP surface of the negotiation core.

Views only translate requests into operation calls. Authorization,
state and input rules live in the operations, which raise
``core.exceptions.MarketplaceError`` subclasses; those propagate to
``marketplace_exception_handler`` and are logged here with the client IP.
"""

import logging

from rest_framework import serializers, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import conversations, proposals, reviews
from .context import CallerContext
from .exceptions import MarketplaceError
from .serializers import (
    ConversationOpenSerializer,
    ConversationSerializer,
    JobSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    ProposalSerializer,
    ProposalTermsSerializer,
    ReputationProfileSerializer,
    ReviewSerializer,
    ReviewSubmitSerializer,
)

logger = logging.getLogger(__name__)


class ListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, default=50)
    role = serializers.ChoiceField(
        choices=['seeker', 'tasker'],
        required=False,
        allow_null=True,
        default=None
    )


class MarketplaceAPIView(APIView):
    """
    Base view for negotiation endpoints.

    Requires JWT authentication unless a subclass overrides
    ``permission_classes``.
    """

    permission_classes = [IsAuthenticated]

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip

    def get_caller_context(self, request):
        return CallerContext.from_request(request)

    def handle_exception(self, exc):
        if isinstance(exc, MarketplaceError):
            user_id = getattr(getattr(self.request, 'user', None), 'id', None)
            logger.warning(
                f"{self.__class__.__name__} rejected request with {exc.error_code}. "
                f"User ID: {user_id}, "
                f"IP: {self.get_client_ip(self.request)}"
            )
        return super().handle_exception(exc)


# ============================================================================
# Conversations & Messages
# ============================================================================

class ConversationListCreateView(MarketplaceAPIView):
    """
    GET /api/conversations/?role=seeker|tasker&limit=50
        List the caller's conversations, most recent activity first.

    POST /api/conversations/
    Request body: {
        "tasker_id": 2,
        "initial_message": "Hi, are you available next week?"
    }

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 404: user_not_found
    - 409: self_conversation, duplicate_conversation
    - 400: too_long
    """

    def get(self, request, *args, **kwargs):
        query = ListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        items = conversations.list_conversations(
            self.get_caller_context(request),
            role=query.validated_data['role'],
            limit=query.validated_data['limit'],
        )
        serializer = ConversationSerializer(items, many=True, context={'request': request})
        return Response(serializer.data)

    def post(self, request, *args, **kwargs):
        serializer = ConversationOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        conversation = conversations.open_conversation(
            self.get_caller_context(request),
            serializer.validated_data['tasker_id'],
            serializer.validated_data.get('initial_message'),
        )

        logger.info(
            f"Conversation {conversation.id} opened via API. "
            f"User ID: {request.user.id}, IP: {self.get_client_ip(request)}"
        )
        return Response(
            ConversationSerializer(conversation, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class ConversationDetailView(MarketplaceAPIView):
    """GET /api/conversations/<id>/"""

    def get(self, request, pk, *args, **kwargs):
        conversation = conversations.get_conversation(self.get_caller_context(request), pk)
        return Response(ConversationSerializer(conversation, context={'request': request}).data)


class ConversationReadView(MarketplaceAPIView):
    """
    POST /api/conversations/<id>/read/

    Zeroes the caller's unread counter and stamps the read receipt.
    """

    def post(self, request, pk, *args, **kwargs):
        conversation = conversations.mark_read(self.get_caller_context(request), pk)
        return Response(ConversationSerializer(conversation, context={'request': request}).data)


class MessageCreateView(MarketplaceAPIView):
    """
    POST /api/conversations/<id>/messages/
    Request body: {
        "content": "Sounds good!",
        "attachments": ["uploads/photo-1.jpg"]
    }

    Error responses:
    - 403: not_participant
    - 404: conversation_not_found
    - 400: empty_message, too_long, too_many_attachments
    """

    def post(self, request, pk, *args, **kwargs):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = conversations.send_message(
            self.get_caller_context(request),
            pk,
            serializer.validated_data['content'],
            serializer.validated_data['attachments'],
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Proposals
# ============================================================================

class ProposalCreateView(MarketplaceAPIView):
    """
    POST /api/conversations/<id>/proposals/
    Request body: {
        "rate": 5000,
        "rate_type": "hourly",
        "start_time": "2026-02-15T10:00:00Z",
        "notes": "Two hours of furniture assembly"
    }

    The receiver is always the other conversation participant.
    """

    def post(self, request, pk, *args, **kwargs):
        serializer = ProposalTermsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        proposal = proposals.send_proposal(
            self.get_caller_context(request),
            pk,
            **serializer.validated_data
        )

        logger.info(
            f"Proposal {proposal.id} sent via API. "
            f"User ID: {request.user.id}, IP: {self.get_client_ip(request)}"
        )
        return Response(ProposalSerializer(proposal).data, status=status.HTTP_201_CREATED)


class ProposalAcceptView(MarketplaceAPIView):
    """
    POST /api/proposals/<id>/accept/

    Success response (201):
    {
        "proposal": {...status "accepted"...},
        "job": {...}
    }

    Error responses:
    - 403: forbidden (caller is not the receiver)
    - 404: proposal_not_found
    - 409: invalid_state
    """

    def post(self, request, pk, *args, **kwargs):
        job = proposals.accept_proposal(self.get_caller_context(request), pk)

        logger.info(
            f"Proposal {pk} accepted via API. Job ID: {job.id}, "
            f"User ID: {request.user.id}, IP: {self.get_client_ip(request)}"
        )
        return Response(
            {
                'proposal': ProposalSerializer(job.proposal).data,
                'job': JobSerializer(job).data,
            },
            status=status.HTTP_201_CREATED
        )


class ProposalDeclineView(MarketplaceAPIView):
    """POST /api/proposals/<id>/decline/"""

    def post(self, request, pk, *args, **kwargs):
        proposal = proposals.decline_proposal(self.get_caller_context(request), pk)
        return Response(ProposalSerializer(proposal).data)


class ProposalCounterView(MarketplaceAPIView):
    """
    POST /api/proposals/<id>/counter/
    Request body: same terms as a new proposal.

    Returns the new pending counter proposal (201).
    """

    def post(self, request, pk, *args, **kwargs):
        serializer = ProposalTermsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        counter = proposals.counter_proposal(
            self.get_caller_context(request),
            pk,
            **serializer.validated_data
        )
        return Response(ProposalSerializer(counter).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Reviews & Reputation
# ============================================================================

class ReviewCreateView(MarketplaceAPIView):
    """
    POST /api/reviews/
    Request body: {
        "job_id": 7,
        "rating": 5,
        "text": "Great work, on time and careful."
    }

    The reviewee is always the other participant on the job.

    Error responses:
    - 400: rating_out_of_range, rating_not_integer, text_too_short,
           text_too_long, review_window_expired
    - 403: not_participant
    - 404: job_not_found
    - 409: job_not_completed, already_reviewed
    """

    def post(self, request, *args, **kwargs):
        serializer = ReviewSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = reviews.submit_review(
            self.get_caller_context(request),
            serializer.validated_data['job_id'],
            serializer.validated_data['rating'],
            serializer.validated_data['text'],
        )

        logger.info(
            f"Review {review.id} created via API. "
            f"User ID: {request.user.id}, IP: {self.get_client_ip(request)}"
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class JobReviewsView(MarketplaceAPIView):
    """
    GET /api/jobs/<id>/reviews/

    Reviews are blind: ``reviews`` is empty and ``revealed`` false until
    both participants have submitted theirs.
    """

    def get(self, request, pk, *args, **kwargs):
        job_reviews = reviews.get_job_reviews(self.get_caller_context(request), pk)
        if job_reviews is None:
            return Response({'revealed': False, 'reviews': []})
        return Response({
            'revealed': True,
            'reviews': ReviewSerializer(job_reviews, many=True).data,
        })


class JobCanReviewView(MarketplaceAPIView):
    """GET /api/jobs/<id>/can-review/"""

    def get(self, request, pk, *args, **kwargs):
        allowed = reviews.can_review(self.get_caller_context(request), pk)
        return Response({'job': pk, 'can_review': allowed})


class UserReviewsView(MarketplaceAPIView):
    """
    GET /api/users/<id>/reviews/?limit=50

    Public endpoint. Lists revealed reviews received by the user.
    """

    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        query = ListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        items = reviews.list_user_reviews(pk, limit=query.validated_data['limit'])
        return Response(ReviewSerializer(items, many=True).data)


class UserReputationView(MarketplaceAPIView):
    """
    GET /api/users/<id>/reputation/

    Success response (200):
    {
        "user": 3,
        "seeker": {"rating": 4.5, "rating_count": 2},
        "tasker": {"rating": 4.0, "rating_count": 3}
    }
    """

    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        reputation = reviews.get_reputation(pk)
        return Response({
            'user': reputation['user'].id,
            'seeker': ReputationProfileSerializer(reputation['seeker']).data,
            'tasker': ReputationProfileSerializer(reputation['tasker']).data,
        })
