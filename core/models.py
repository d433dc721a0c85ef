"""
Data models for the Tasker Marketplace negotiation core.
"""

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    A user can act as a seeker in one conversation and as a tasker
    (service provider) in another; the role is a property of the
    conversation, not of the account.

    Additional fields:
    - email: Required, unique email address
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def save(self, *args, **kwargs):
        """Normalize email to lowercase before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


# ============================================================================
# Reputation Profiles
# ============================================================================

class ReputationProfile(models.Model):
    """
    Abstract running rating aggregate.

    Fields:
    - user: The profile owner
    - rating: Count-weighted mean of every rating folded in (0-5)
    - rating_count: Number of ratings folded in
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='%(class)s',
        help_text=_('Owner of this profile')
    )

    rating = models.FloatField(
        _('rating'),
        default=0.0,
        validators=[
            MinValueValidator(0.0, message=_('Rating cannot be negative.')),
            MaxValueValidator(5.0, message=_('Rating cannot exceed 5.'))
        ],
        help_text=_('Running average rating from 0 to 5')
    )

    rating_count = models.PositiveIntegerField(
        _('rating count'),
        default=0,
        help_text=_('Number of reviews folded into the rating')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the profile was last updated')
    )

    class Meta:
        abstract = True

    def fold_rating(self, submitted_rating):
        """
        Fold one submitted rating into the running average.

        The caller must hold a row lock on this profile.

        Args:
            submitted_rating: Integer rating from 1 to 5
        """
        old_rating = self.rating
        old_count = self.rating_count
        new_rating = (old_rating * old_count + submitted_rating) / (old_count + 1)
        self.rating = max(0.0, min(5.0, new_rating))
        self.rating_count = old_count + 1


class SeekerProfile(ReputationProfile):
    """Reputation earned as a service seeker."""

    class Meta:
        verbose_name = _('seeker profile')
        verbose_name_plural = _('seeker profiles')

    def __str__(self):
        return f"Seeker profile of {self.user.email} ({self.rating:.2f}★)"


class TaskerProfile(ReputationProfile):
    """Reputation earned as a tasker (service provider)."""

    class Meta:
        verbose_name = _('tasker profile')
        verbose_name_plural = _('tasker profiles')

    def __str__(self):
        return f"Tasker profile of {self.user.email} ({self.rating:.2f}★)"


class Category(models.Model):
    """Service category a job is filed under."""

    name = models.CharField(
        _('name'),
        max_length=100,
        unique=True,
        help_text=_('Display name of the category')
    )

    class Meta:
        verbose_name = _('category')
        verbose_name_plural = _('categories')
        ordering = ['name']

    def __str__(self):
        return self.name


# ============================================================================
# Conversations & Messages
# ============================================================================

class Conversation(models.Model):
    """
    Negotiation thread between one seeker and one tasker.

    Fields:
    - seeker: User who opened the conversation
    - tasker: Service provider being contacted
    - pair_key: Unordered participant pair, unique across conversations
    - last_message / last_message_at / last_message_preview / last_message_sender:
      Metadata of the most recently appended message
    - seeker_unread_count / tasker_unread_count: Per-side unread counters
    - seeker_last_read_at / tasker_last_read_at: Per-side read receipts
    - job: Job materialized from an accepted proposal, if any
    """

    seeker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversations_as_seeker',
        help_text=_('Seeker participating in the conversation')
    )

    tasker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversations_as_tasker',
        help_text=_('Tasker participating in the conversation')
    )

    pair_key = models.CharField(
        _('participant pair key'),
        max_length=64,
        unique=True,
        editable=False,
        help_text=_('Order-independent key of the two participants')
    )

    last_message = models.ForeignKey(
        'Message',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Most recent message in the conversation')
    )

    last_message_at = models.DateTimeField(
        _('last message at'),
        default=timezone.now,
        help_text=_('Timestamp of the most recent conversation activity')
    )

    last_message_preview = models.CharField(
        _('last message preview'),
        max_length=255,
        blank=True,
        default='',
        help_text=_('Truncated content of the most recent message')
    )

    last_message_sender = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Sender of the most recent message')
    )

    seeker_unread_count = models.PositiveIntegerField(
        _('seeker unread count'),
        default=0
    )

    tasker_unread_count = models.PositiveIntegerField(
        _('tasker unread count'),
        default=0
    )

    seeker_last_read_at = models.DateTimeField(
        _('seeker last read at'),
        null=True,
        blank=True
    )

    tasker_last_read_at = models.DateTimeField(
        _('tasker last read at'),
        null=True,
        blank=True
    )

    job = models.ForeignKey(
        'Job',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Job bound to this conversation')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('conversation')
        verbose_name_plural = _('conversations')
        ordering = ['-last_message_at']
        indexes = [
            models.Index(fields=['seeker', 'last_message_at'], name='conv_seeker_activity_idx'),
            models.Index(fields=['tasker', 'last_message_at'], name='conv_tasker_activity_idx'),
        ]

    def __str__(self):
        return f"Conversation {self.pk}: {self.seeker_id} ↔ {self.tasker_id}"

    @staticmethod
    def build_pair_key(user_a_id, user_b_id):
        """Return the order-independent key for two user ids."""
        low, high = sorted([int(user_a_id), int(user_b_id)])
        return f'{low}:{high}'

    def is_participant(self, user_id):
        return user_id in (self.seeker_id, self.tasker_id)

    def counterpart_of(self, user_id):
        """Return the id of the participant who is not ``user_id``."""
        return self.tasker_id if user_id == self.seeker_id else self.seeker_id

    def clean(self):
        super().clean()
        if self.seeker_id and self.tasker_id and self.seeker_id == self.tasker_id:
            raise ValidationError({
                'tasker': _('A conversation needs two different participants.')
            })

    def save(self, *args, **kwargs):
        if self.seeker_id and self.tasker_id:
            self.pair_key = self.build_pair_key(self.seeker_id, self.tasker_id)
        super().save(*args, **kwargs)


class Message(models.Model):
    """
    Append-only conversation entry.

    Fields:
    - conversation: Owning conversation
    - sender: Author (system messages are attributed to the seeker)
    - kind: text, proposal or system
    - content: Message text
    - proposal: Referenced proposal when kind is proposal
    - system_event: Event kind narrated when kind is system
    - attachments: Opaque storage references
    - created_at: Append timestamp
    """

    KIND_TEXT = 'text'
    KIND_PROPOSAL = 'proposal'
    KIND_SYSTEM = 'system'

    KIND_CHOICES = [
        (KIND_TEXT, 'Text'),
        (KIND_PROPOSAL, 'Proposal'),
        (KIND_SYSTEM, 'System'),
    ]

    EVENT_PROPOSAL_ACCEPTED = 'proposal_accepted'
    EVENT_PROPOSAL_DECLINED = 'proposal_declined'
    EVENT_PROPOSAL_COUNTERED = 'proposal_countered'
    EVENT_REVIEW_SUBMITTED = 'review_submitted'

    SYSTEM_EVENT_CHOICES = [
        (EVENT_PROPOSAL_ACCEPTED, 'Proposal accepted'),
        (EVENT_PROPOSAL_DECLINED, 'Proposal declined'),
        (EVENT_PROPOSAL_COUNTERED, 'Proposal countered'),
        (EVENT_REVIEW_SUBMITTED, 'Review submitted'),
    ]

    SYSTEM_EVENT_TEXT = {
        EVENT_PROPOSAL_ACCEPTED: 'Proposal accepted. A job has been created.',
        EVENT_PROPOSAL_DECLINED: 'Proposal declined.',
        EVENT_PROPOSAL_COUNTERED: 'A counter proposal was sent.',
        EVENT_REVIEW_SUBMITTED: 'A review was submitted for this job.',
    }

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages',
        help_text=_('Conversation this message belongs to')
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='messages_sent',
        help_text=_('User the message is attributed to')
    )

    kind = models.CharField(
        _('kind'),
        max_length=10,
        choices=KIND_CHOICES,
        default=KIND_TEXT
    )

    content = models.TextField(
        _('content'),
        help_text=_('Message text')
    )

    proposal = models.ForeignKey(
        'Proposal',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='messages',
        help_text=_('Proposal referenced by a proposal message')
    )

    system_event = models.CharField(
        _('system event'),
        max_length=32,
        choices=SYSTEM_EVENT_CHOICES,
        blank=True,
        default=''
    )

    attachments = models.JSONField(
        _('attachments'),
        default=list,
        blank=True,
        help_text=_('Opaque storage references')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now
    )

    class Meta:
        verbose_name = _('message')
        verbose_name_plural = _('messages')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['conversation', 'created_at'], name='message_conv_created_idx'),
            models.Index(fields=['sender'], name='message_sender_idx'),
        ]

    def __str__(self):
        return f"{self.kind} message {self.pk} in conversation {self.conversation_id}"


# ============================================================================
# Proposals
# ============================================================================

class Proposal(models.Model):
    """
    A single negotiation offer inside a conversation.

    Fields:
    - conversation: Conversation the offer was made in
    - sender / receiver: Offering participant and its counterpart
    - rate: Amount in minor currency units
    - rate_type: hourly or flat
    - start_time: Proposed start
    - notes: Optional free text
    - status: pending, accepted, declined, countered, expired
    - previous_proposal: The proposal this one counters
    - counter_proposal: The proposal that countered this one
    """

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_COUNTERED = 'countered'
    STATUS_EXPIRED = 'expired'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_COUNTERED, 'Countered'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    RATE_HOURLY = 'hourly'
    RATE_FLAT = 'flat'

    RATE_TYPE_CHOICES = [
        (RATE_HOURLY, 'Hourly'),
        (RATE_FLAT, 'Flat'),
    ]

    VALID_TRANSITIONS = {
        STATUS_PENDING: [STATUS_ACCEPTED, STATUS_DECLINED, STATUS_COUNTERED, STATUS_EXPIRED],
        STATUS_ACCEPTED: [],
        STATUS_DECLINED: [],
        STATUS_COUNTERED: [],
        STATUS_EXPIRED: [],
    }

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='proposals'
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='proposals_sent'
    )

    receiver = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='proposals_received'
    )

    rate = models.PositiveIntegerField(
        _('rate'),
        help_text=_('Rate in minor currency units (cents)')
    )

    rate_type = models.CharField(
        _('rate type'),
        max_length=10,
        choices=RATE_TYPE_CHOICES
    )

    start_time = models.DateTimeField(
        _('start time'),
        help_text=_('Proposed start of the job')
    )

    notes = models.TextField(
        _('notes'),
        blank=True,
        default=''
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )

    previous_proposal = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Proposal this one counters')
    )

    counter_proposal = models.OneToOneField(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text=_('Proposal that countered this one')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        default=timezone.now
    )

    class Meta:
        verbose_name = _('proposal')
        verbose_name_plural = _('proposals')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['conversation'], name='proposal_conversation_idx'),
            models.Index(fields=['sender'], name='proposal_sender_idx'),
            models.Index(fields=['receiver'], name='proposal_receiver_idx'),
            models.Index(fields=['status'], name='proposal_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(sender=models.F('receiver')),
                name='proposal_sender_not_receiver'
            ),
        ]

    def __str__(self):
        return f"Proposal {self.pk} ({self.status}): {self.rate} {self.rate_type}"

    def can_transition_to(self, new_status):
        """
        Check if the proposal may move to ``new_status``.

        Returns:
            bool: True if the transition is allowed
        """
        return new_status in self.VALID_TRANSITIONS.get(self.status, [])


# ============================================================================
# Jobs & Reviews
# ============================================================================

class Job(models.Model):
    """
    Billable engagement materialized from an accepted proposal.

    Rate, rate type, start time and description are copied from the
    proposal at acceptance time and never change afterwards.
    """

    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_DISPUTED = 'disputed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_DISPUTED, 'Disputed'),
    ]

    seeker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='jobs_as_seeker'
    )

    tasker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='jobs_as_tasker'
    )

    proposal = models.OneToOneField(
        Proposal,
        on_delete=models.PROTECT,
        related_name='job',
        help_text=_('Accepted proposal this job was created from')
    )

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='jobs'
    )

    category_name = models.CharField(
        _('category name'),
        max_length=100,
        blank=True,
        default=''
    )

    description = models.TextField(_('description'))

    rate = models.PositiveIntegerField(
        _('rate'),
        help_text=_('Rate in minor currency units (cents)')
    )

    rate_type = models.CharField(
        _('rate type'),
        max_length=10,
        choices=Proposal.RATE_TYPE_CHOICES
    )

    start_time = models.DateTimeField(_('start time'))

    completed_at = models.DateTimeField(
        _('completed at'),
        null=True,
        blank=True
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )

    seeker_review = models.OneToOneField(
        'Review',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    tasker_review = models.OneToOneField(
        'Review',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('job')
        verbose_name_plural = _('jobs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['seeker'], name='job_seeker_idx'),
            models.Index(fields=['tasker'], name='job_tasker_idx'),
            models.Index(fields=['status'], name='job_status_idx'),
        ]

    def __str__(self):
        return f"Job {self.pk} ({self.status})"

    def is_participant(self, user_id):
        return user_id in (self.seeker_id, self.tasker_id)

    @property
    def reviews_revealed(self):
        """Both sides have reviewed, so reviews may be shown."""
        return self.seeker_review_id is not None and self.tasker_review_id is not None


class Review(models.Model):
    """
    Review left by one job participant about the other.

    Fields:
    - job: Completed job being reviewed
    - reviewer: Participant writing the review
    - reviewee: The other participant on the job
    - rating: Integer rating from 1 to 5
    - text: Written feedback
    - created_at: Timestamp when the review was created
    """

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='reviews',
        help_text=_('Job being reviewed')
    )

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_given',
        help_text=_('User writing the review')
    )

    reviewee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_received',
        help_text=_('User receiving the review')
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    text = models.TextField(
        _('text'),
        help_text=_('Written feedback about the experience')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now
    )

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewee'], name='review_reviewee_idx'),
            models.Index(fields=['reviewer'], name='review_reviewer_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'reviewer'],
                name='unique_review_per_job_reviewer'
            ),
        ]

    def __str__(self):
        return f"Review by {self.reviewer_id} for {self.reviewee_id} - {self.rating}★"
