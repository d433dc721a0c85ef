"""
Job Materializer.

Turns an accepted proposal into exactly one Job. Only called from
``core.proposals.accept_proposal`` inside its transaction, after the
proposal status was flipped under a row lock.
"""

import logging

from django.conf import settings
from django.utils.module_loading import import_string

from .models import Category, Conversation, Job

logger = logging.getLogger(__name__)

DEFAULT_JOB_DESCRIPTION = 'Job from proposal'


def default_category_resolver(conversation, proposal):
    """Return the first category by name, or None if none exist."""
    return Category.objects.order_by('name').first()


def get_category_resolver():
    """Load the resolver named by MARKETPLACE_CATEGORY_RESOLVER."""
    path = getattr(
        settings,
        'MARKETPLACE_CATEGORY_RESOLVER',
        'core.jobs.default_category_resolver',
    )
    return import_string(path)


def create_job(proposal, now):
    """
    Materialize the Job for an accepted proposal.

    Participants come from the bound conversation, so the seeker stays the
    seeker whichever side sent the accepted proposal. Rate, rate type,
    start time and description are copied verbatim.

    Args:
        proposal: Proposal already set to accepted
        now: Operation timestamp

    Returns:
        Job: The created job
    """
    conversation = proposal.conversation
    category = get_category_resolver()(conversation, proposal)

    job = Job.objects.create(
        seeker_id=conversation.seeker_id,
        tasker_id=conversation.tasker_id,
        proposal=proposal,
        category=category,
        category_name=category.name if category else '',
        description=proposal.notes or DEFAULT_JOB_DESCRIPTION,
        rate=proposal.rate,
        rate_type=proposal.rate_type,
        start_time=proposal.start_time,
        status=Job.STATUS_PENDING,
        created_at=now,
    )

    Conversation.objects.filter(pk=conversation.pk).update(job=job, updated_at=now)

    logger.info(
        f"Job {job.id} created from proposal {proposal.id}. "
        f"Seeker: {job.seeker_id}, Tasker: {job.tasker_id}, "
        f"Rate: {job.rate} {job.rate_type}"
    )
    return job
