"""
Error taxonomy for the negotiation core.

Every failure an operation can report is a concrete exception class grouped
into four families:

- AuthorizationError: the caller may not perform the operation
- NotFoundError: a referenced record does not exist
- StateError: the records are in a state that forbids the operation
- InvalidInputError: caller-supplied values break an input rule

All classes derive from DRF's APIException so views can let them propagate;
``marketplace_exception_handler`` renders them as
``{"detail": ..., "error_code": ...}``.
"""

from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class MarketplaceError(APIException):
    """Base class for all negotiation core errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('The operation could not be completed.')
    default_code = 'error'

    def __init__(self, detail=None, code=None):
        self.error_code = code or self.default_code
        super().__init__(detail=detail, code=self.error_code)


# =============================================================================
# AUTHORIZATION
# =============================================================================

class AuthorizationError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = _('You do not have permission to perform this action.')
    default_code = 'authorization_error'


class Unauthorized(AuthorizationError):
    """Raised when the caller identity could not be resolved."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = _('Authentication credentials were not provided.')
    default_code = 'unauthorized'


class Forbidden(AuthorizationError):
    """Raised when the caller is not the party allowed to act."""

    default_detail = _('Only the proposal receiver can respond to this proposal.')
    default_code = 'forbidden'


class NotParticipant(AuthorizationError):
    """Raised when the caller is not a participant of the conversation or job."""

    default_detail = _('You are not a participant in this conversation.')
    default_code = 'not_participant'


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = _('Not found.')
    default_code = 'not_found'


class ConversationNotFound(NotFoundError):
    default_detail = _('Conversation not found.')
    default_code = 'conversation_not_found'


class ProposalNotFound(NotFoundError):
    default_detail = _('Proposal not found.')
    default_code = 'proposal_not_found'


class JobNotFound(NotFoundError):
    default_detail = _('Job not found.')
    default_code = 'job_not_found'


class UserNotFound(NotFoundError):
    default_detail = _('User not found.')
    default_code = 'user_not_found'


# =============================================================================
# STATE
# =============================================================================

class StateError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = _('This operation cannot be performed in the current state.')
    default_code = 'state_error'


class InvalidState(StateError):
    """Raised when a proposal is no longer pending."""

    default_detail = _('Proposal is not in pending status.')
    default_code = 'invalid_state'

    def __init__(self, current_state=None, **kwargs):
        self.current_state = current_state
        detail = kwargs.pop('detail', None)
        if detail is None and current_state:
            detail = f"Proposal is '{current_state}', expected 'pending'."
        super().__init__(detail=detail, **kwargs)


class AlreadyReviewed(StateError):
    default_detail = _('You have already reviewed this job.')
    default_code = 'already_reviewed'


class JobNotCompleted(StateError):
    default_detail = _('Can only review completed jobs.')
    default_code = 'job_not_completed'


class DuplicateConversation(StateError):
    default_detail = _('A conversation between these users already exists.')
    default_code = 'duplicate_conversation'


class SelfConversation(StateError):
    default_detail = _('Cannot start a conversation with yourself.')
    default_code = 'self_conversation'


# =============================================================================
# INPUT VALIDATION
# =============================================================================

class InvalidInputError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _('Invalid input.')
    default_code = 'invalid_input'


class EmptyMessage(InvalidInputError):
    default_detail = _('Message cannot be empty.')
    default_code = 'empty_message'


class TooLong(InvalidInputError):
    default_detail = _('Message is too long.')
    default_code = 'too_long'


class TooManyAttachments(InvalidInputError):
    default_detail = _('Too many attachments.')
    default_code = 'too_many_attachments'


class RatingOutOfRange(InvalidInputError):
    default_detail = _('Rating must be between 1 and 5.')
    default_code = 'rating_out_of_range'


class RatingNotInteger(InvalidInputError):
    default_detail = _('Rating must be a whole number.')
    default_code = 'rating_not_integer'


class TextTooShort(InvalidInputError):
    default_detail = _('Review text is too short.')
    default_code = 'text_too_short'


class TextTooLong(InvalidInputError):
    default_detail = _('Review text is too long.')
    default_code = 'text_too_long'


class ReviewWindowExpired(InvalidInputError):
    default_detail = _('Review window has expired.')
    default_code = 'review_window_expired'


def marketplace_exception_handler(exc, context):
    """
    DRF exception handler adding ``error_code`` to marketplace errors.

    Other exceptions are rendered by DRF's default handler.
    """
    response = exception_handler(exc, context)

    if response is not None and isinstance(exc, MarketplaceError):
        response.data = {
            'detail': str(exc.detail),
            'error_code': exc.error_code,
        }

    return response
