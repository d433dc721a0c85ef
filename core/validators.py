"""
Input rules for messages and reviews.

Each validator raises the matching domain error from ``core.exceptions``
so callers can tell failures apart.
"""

from datetime import timedelta

from django.conf import settings

from .exceptions import (
    EmptyMessage,
    TooLong,
    TooManyAttachments,
    RatingOutOfRange,
    RatingNotInteger,
    TextTooShort,
    TextTooLong,
    ReviewWindowExpired,
)


def _setting(name, default):
    return getattr(settings, name, default)


def validate_message_content(content):
    """
    Validate message text.

    Rules:
    - Content must not be empty after trimming whitespace
    - Content must not exceed MARKETPLACE_MESSAGE_MAX_LENGTH characters

    Args:
        content: Message text

    Returns:
        str: The trimmed content

    Raises:
        EmptyMessage: If content trims to empty
        TooLong: If content exceeds the length bound
    """
    content = content or ''
    trimmed = content.strip()
    if not trimmed:
        raise EmptyMessage()

    max_length = _setting('MARKETPLACE_MESSAGE_MAX_LENGTH', 5000)
    if len(content) > max_length:
        raise TooLong(f'Message cannot exceed {max_length} characters.')

    return trimmed


def validate_attachments(attachments):
    """
    Validate the attachment reference list of a participant message.

    Raises:
        TooManyAttachments: If more than MARKETPLACE_MAX_ATTACHMENTS are given
    """
    attachments = list(attachments or [])
    max_attachments = _setting('MARKETPLACE_MAX_ATTACHMENTS', 3)
    if len(attachments) > max_attachments:
        raise TooManyAttachments(
            f'A message can carry at most {max_attachments} attachments.'
        )
    return attachments


def validate_review_rating(rating):
    """
    Validate a review rating.

    The range is checked before integrality, so 5.5 reports out of range
    and 3.5 reports not an integer.

    Returns:
        int: The rating as an integer

    Raises:
        RatingOutOfRange: If rating < 1 or rating > 5
        RatingNotInteger: If rating has a fractional component
    """
    if rating < 1 or rating > 5:
        raise RatingOutOfRange()

    if int(rating) != rating:
        raise RatingNotInteger()

    return int(rating)


def validate_review_text(text):
    """
    Validate review text length.

    Raises:
        TextTooShort: If the trimmed text is under MARKETPLACE_REVIEW_MIN_LENGTH
        TextTooLong: If the text exceeds MARKETPLACE_REVIEW_MAX_LENGTH
    """
    text = text or ''
    min_length = _setting('MARKETPLACE_REVIEW_MIN_LENGTH', 10)
    max_length = _setting('MARKETPLACE_REVIEW_MAX_LENGTH', 5000)

    if len(text.strip()) < min_length:
        raise TextTooShort(f'Review text must be at least {min_length} characters.')

    if len(text) > max_length:
        raise TextTooLong(f'Review text must be {max_length} characters or less.')

    return text.strip()


def review_window_open(completed_at, now):
    """Return False once more than MARKETPLACE_REVIEW_WINDOW_DAYS have passed."""
    if completed_at is None:
        return True
    window = timedelta(days=_setting('MARKETPLACE_REVIEW_WINDOW_DAYS', 30))
    return now - completed_at <= window


def validate_review_window(completed_at, now):
    """
    Raises:
        ReviewWindowExpired: If the job was completed too long ago
    """
    if not review_window_open(completed_at, now):
        raise ReviewWindowExpired(
            f"Review window has expired "
            f"({_setting('MARKETPLACE_REVIEW_WINDOW_DAYS', 30)} days)."
        )
