"""
Signal receivers that narrate negotiation events into the conversation.

Each receiver appends one system message to the conversation the event
belongs to. Receivers run inside the transaction of the operation that
sent the event; if narration fails the error is logged and re-raised so
the state transition rolls back with it.
"""

import logging

from django.dispatch import receiver

from . import events
from .conversations import append_system_message
from .models import Message, Proposal, Review

logger = logging.getLogger(__name__)


def _narrate(conversation, event_kind, now, subject):
    try:
        message = append_system_message(conversation, event_kind, now)
        logger.info(
            f"Narrated {event_kind} for {subject} in conversation {conversation.id} "
            f"(message {message.id})"
        )
        return message
    except Exception as e:
        logger.error(
            f"Error narrating {event_kind} for {subject}: {e}",
            exc_info=True
        )
        # Re-raise to roll back the transition that sent the event
        raise


@receiver(events.proposal_accepted, sender=Proposal)
def narrate_proposal_accepted(sender, proposal, job, now, **kwargs):
    _narrate(
        proposal.conversation,
        Message.EVENT_PROPOSAL_ACCEPTED,
        now,
        f"proposal {proposal.id} (job {job.id})",
    )


@receiver(events.proposal_declined, sender=Proposal)
def narrate_proposal_declined(sender, proposal, now, **kwargs):
    _narrate(
        proposal.conversation,
        Message.EVENT_PROPOSAL_DECLINED,
        now,
        f"proposal {proposal.id}",
    )


@receiver(events.proposal_countered, sender=Proposal)
def narrate_proposal_countered(sender, proposal, counter_proposal, now, **kwargs):
    _narrate(
        proposal.conversation,
        Message.EVENT_PROPOSAL_COUNTERED,
        now,
        f"proposal {proposal.id} (countered by {counter_proposal.id})",
    )


@receiver(events.review_submitted, sender=Review)
def narrate_review_submitted(sender, review, job, now, **kwargs):
    """The review is announced in the conversation the job was negotiated in."""
    _narrate(
        job.proposal.conversation,
        Message.EVENT_REVIEW_SUBMITTED,
        now,
        f"review {review.id} (job {job.id})",
    )
