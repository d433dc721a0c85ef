"""
Review / Reputation Aggregator.

A review is accepted once per (job, reviewer) pair and folded into the
reviewee's profile with the incremental weighted-average rule:

    new_rating = clamp((old_rating * old_count + rating) / (old_count + 1), 0, 5)
    new_count  = old_count + 1

The profile row is locked with select_for_update() for the read-modify-write,
so concurrent reviews of the same reviewee serialize instead of losing
updates.
"""

import logging

from django.db import IntegrityError, transaction

from . import events
from .exceptions import (
    AlreadyReviewed,
    JobNotCompleted,
    JobNotFound,
    NotParticipant,
    UserNotFound,
)
from .models import Job, Review, SeekerProfile, TaskerProfile, User
from .validators import (
    review_window_open,
    validate_review_rating,
    validate_review_text,
    validate_review_window,
)

logger = logging.getLogger(__name__)


def update_profile_rating(profile_model, user_id, rating):
    """
    Fold ``rating`` into the user's profile under a row lock.

    Must be called inside transaction.atomic().

    Args:
        profile_model: SeekerProfile or TaskerProfile
        user_id: Reviewee id
        rating: Integer rating from 1 to 5

    Returns:
        The updated profile
    """
    try:
        profile_model.objects.get_or_create(user_id=user_id)
        profile = profile_model.objects.select_for_update().get(user_id=user_id)

        old_rating, old_count = profile.rating, profile.rating_count
        profile.fold_rating(rating)
        profile.save(update_fields=['rating', 'rating_count', 'updated_at'])

        logger.info(
            f"Updated {profile_model.__name__} of user {user_id}: "
            f"rating {old_rating:.4f} -> {profile.rating:.4f}, "
            f"count {old_count} -> {profile.rating_count}"
        )
        return profile

    except Exception as e:
        logger.error(
            f"Error updating {profile_model.__name__} rating for user {user_id}: {e}",
            exc_info=True
        )
        # Re-raise so the review insert rolls back with the profile update
        raise


def submit_review(ctx, job_id, rating, text):
    """
    Submit the caller's review of a completed job.

    Checks run in a fixed order and each failure is a distinct error:
    Unauthorized, RatingOutOfRange, RatingNotInteger, TextTooShort,
    TextTooLong, JobNotFound, JobNotCompleted, NotParticipant,
    AlreadyReviewed, ReviewWindowExpired.

    The reviewee is always the other participant on the job.

    Returns:
        Review: The stored review
    """
    user = ctx.require_user()
    rating = validate_review_rating(rating)
    text = validate_review_text(text)

    with transaction.atomic():
        try:
            job = Job.objects.select_for_update().get(pk=job_id)
        except Job.DoesNotExist:
            raise JobNotFound(f'Job with ID {job_id} does not exist.')

        if job.status != Job.STATUS_COMPLETED:
            raise JobNotCompleted(
                f'Can only review completed jobs. This job is {job.status}.'
            )

        is_seeker = user.id == job.seeker_id
        is_tasker = user.id == job.tasker_id
        if not is_seeker and not is_tasker:
            raise NotParticipant('Only job participants can leave reviews.')

        if Review.objects.filter(job=job, reviewer=user).exists():
            raise AlreadyReviewed()

        validate_review_window(job.completed_at, ctx.now)

        reviewee_id = job.tasker_id if is_seeker else job.seeker_id

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    job=job,
                    reviewer=user,
                    reviewee_id=reviewee_id,
                    rating=rating,
                    text=text,
                    created_at=ctx.now,
                )
        except IntegrityError:
            raise AlreadyReviewed()

        if is_seeker:
            job.seeker_review = review
            job.save(update_fields=['seeker_review', 'updated_at'])
            update_profile_rating(TaskerProfile, reviewee_id, rating)
        else:
            job.tasker_review = review
            job.save(update_fields=['tasker_review', 'updated_at'])
            update_profile_rating(SeekerProfile, reviewee_id, rating)

        events.review_submitted.send(sender=Review, review=review, job=job, now=ctx.now)

    logger.info(
        f"Review {review.id} submitted for job {job.id}. "
        f"Reviewer: {user.id}, Reviewee: {reviewee_id}, Rating: {rating}"
    )
    return review


def get_job_reviews(ctx, job_id):
    """
    Return both reviews of a job, or None while either side is missing.

    Raises:
        Unauthorized, JobNotFound, NotParticipant
    """
    user = ctx.require_user()

    try:
        job = Job.objects.get(pk=job_id)
    except Job.DoesNotExist:
        raise JobNotFound(f'Job with ID {job_id} does not exist.')

    if not job.is_participant(user.id):
        raise NotParticipant('Only job participants can view its reviews.')

    if not job.reviews_revealed:
        return None

    return list(job.reviews.select_related('reviewer', 'reviewee').order_by('created_at', 'id'))


def can_review(ctx, job_id):
    """Return True if the caller could submit a review for the job now."""
    if not ctx.is_resolved:
        return False

    job = Job.objects.filter(pk=job_id).first()
    if job is None or job.status != Job.STATUS_COMPLETED:
        return False

    if not job.is_participant(ctx.user.id):
        return False

    if Review.objects.filter(job=job, reviewer=ctx.user).exists():
        return False

    return review_window_open(job.completed_at, ctx.now)


def list_user_reviews(user_id, limit=50):
    """
    Reviews received by a user, newest first. ``limit`` is clamped to 1..100.

    Only reviews of jobs where both sides have reviewed are listed.

    Raises:
        UserNotFound: If the user does not exist
    """
    if not User.objects.filter(pk=user_id).exists():
        raise UserNotFound(f'User with ID {user_id} does not exist.')

    limit = max(1, min(int(limit), 100))
    return list(
        Review.objects.filter(
            reviewee_id=user_id,
            job__seeker_review__isnull=False,
            job__tasker_review__isnull=False,
        )
        .select_related('reviewer', 'reviewee')
        .order_by('-created_at', '-id')[:limit]
    )


def get_reputation(user_id):
    """
    Return the user's seeker and tasker profiles.

    Profiles that were never written are returned unsaved with zero values.

    Raises:
        UserNotFound: If the user does not exist
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise UserNotFound(f'User with ID {user_id} does not exist.')

    seeker = SeekerProfile.objects.filter(user=user).first() or SeekerProfile(user=user)
    tasker = TaskerProfile.objects.filter(user=user).first() or TaskerProfile(user=user)
    return {'user': user, 'seeker': seeker, 'tasker': tasker}
