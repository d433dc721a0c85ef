"""
Proposal State Machine.

    pending -> accepted | declined | countered | expired

accepted, declined and expired are terminal. countered is terminal for
that proposal but spawns a new pending proposal with sender and receiver
reversed. Every transition locks the proposal row with select_for_update()
and checks the status inside the same transaction, so two concurrent
accepts cannot both see ``pending``. Expiry is set by an external
scheduler and is not driven from here.
"""

import logging

from django.db import transaction

from . import events
from .conversations import append_proposal_message, lock_conversation
from .exceptions import Forbidden, InvalidState, NotParticipant, ProposalNotFound
from .jobs import create_job
from .models import Proposal

logger = logging.getLogger(__name__)

PROPOSAL_SENT_TEXT = 'Proposal sent'
COUNTER_PROPOSAL_SENT_TEXT = 'Counter proposal sent'


def _lock_proposal(proposal_id):
    try:
        return Proposal.objects.select_for_update().get(pk=proposal_id)
    except Proposal.DoesNotExist:
        raise ProposalNotFound(f'Proposal with ID {proposal_id} does not exist.')


def _lock_for_response(proposal_id, user, new_status):
    """
    Lock a proposal the caller wants to respond to and check the guard.

    Raises:
        ProposalNotFound: If the proposal does not exist
        Forbidden: If the caller is not the proposal receiver
        InvalidState: If the proposal is no longer pending
    """
    proposal = _lock_proposal(proposal_id)

    if proposal.receiver_id != user.id:
        raise Forbidden()

    if not proposal.can_transition_to(new_status):
        raise InvalidState(current_state=proposal.status)

    return proposal


def send_proposal(ctx, conversation_id, rate, rate_type, start_time, notes=None):
    """
    Create a pending proposal from the caller to the conversation counterpart.

    The receiver is always derived from the conversation, never taken from
    input, so sender and receiver can never be equal.

    Returns:
        Proposal: The new pending proposal

    Raises:
        Unauthorized, ConversationNotFound, NotParticipant
    """
    user = ctx.require_user()

    with transaction.atomic():
        conversation = lock_conversation(conversation_id)

        if not conversation.is_participant(user.id):
            raise NotParticipant()

        proposal = Proposal.objects.create(
            conversation=conversation,
            sender=user,
            receiver_id=conversation.counterpart_of(user.id),
            rate=rate,
            rate_type=rate_type,
            start_time=start_time,
            notes=notes or '',
            status=Proposal.STATUS_PENDING,
            created_at=ctx.now,
            updated_at=ctx.now,
        )

        append_proposal_message(conversation, proposal, PROPOSAL_SENT_TEXT, ctx.now)

    logger.info(
        f"Proposal {proposal.id} sent in conversation {conversation.id}. "
        f"Sender: {proposal.sender_id}, Receiver: {proposal.receiver_id}, "
        f"Rate: {proposal.rate} {proposal.rate_type}"
    )
    return proposal


def accept_proposal(ctx, proposal_id):
    """
    Accept a pending proposal and materialize its Job.

    The status flip, Job creation and narration commit together or not
    at all.

    Returns:
        Job: The job created from the proposal

    Raises:
        Unauthorized, ProposalNotFound, Forbidden, InvalidState
    """
    user = ctx.require_user()

    with transaction.atomic():
        proposal = _lock_for_response(proposal_id, user, Proposal.STATUS_ACCEPTED)

        proposal.status = Proposal.STATUS_ACCEPTED
        proposal.updated_at = ctx.now
        proposal.save(update_fields=['status', 'updated_at'])

        job = create_job(proposal, ctx.now)

        events.proposal_accepted.send(
            sender=Proposal,
            proposal=proposal,
            job=job,
            now=ctx.now,
        )

    logger.info(f"Proposal {proposal.id} accepted by user {user.id}. Job {job.id} created.")
    return job


def decline_proposal(ctx, proposal_id):
    """
    Decline a pending proposal. No job is created.

    Returns:
        Proposal: The declined proposal

    Raises:
        Unauthorized, ProposalNotFound, Forbidden, InvalidState
    """
    user = ctx.require_user()

    with transaction.atomic():
        proposal = _lock_for_response(proposal_id, user, Proposal.STATUS_DECLINED)

        proposal.status = Proposal.STATUS_DECLINED
        proposal.updated_at = ctx.now
        proposal.save(update_fields=['status', 'updated_at'])

        events.proposal_declined.send(sender=Proposal, proposal=proposal, now=ctx.now)

    logger.info(f"Proposal {proposal.id} declined by user {user.id}.")
    return proposal


def counter_proposal(ctx, proposal_id, rate, rate_type, start_time, notes=None):
    """
    Counter a pending proposal with new terms.

    Marks the original ``countered`` and creates a pending proposal from
    the caller back to the original sender. Both chain links are written
    in the same transaction.

    Returns:
        Proposal: The new counter proposal

    Raises:
        Unauthorized, ProposalNotFound, Forbidden, InvalidState
    """
    user = ctx.require_user()

    with transaction.atomic():
        original = _lock_for_response(proposal_id, user, Proposal.STATUS_COUNTERED)

        counter = Proposal.objects.create(
            conversation_id=original.conversation_id,
            sender=user,
            receiver_id=original.sender_id,
            rate=rate,
            rate_type=rate_type,
            start_time=start_time,
            notes=notes or '',
            status=Proposal.STATUS_PENDING,
            previous_proposal=original,
            created_at=ctx.now,
            updated_at=ctx.now,
        )

        original.status = Proposal.STATUS_COUNTERED
        original.counter_proposal = counter
        original.updated_at = ctx.now
        original.save(update_fields=['status', 'counter_proposal', 'updated_at'])

        conversation = lock_conversation(original.conversation_id)
        append_proposal_message(conversation, counter, COUNTER_PROPOSAL_SENT_TEXT, ctx.now)

        events.proposal_countered.send(
            sender=Proposal,
            proposal=original,
            counter_proposal=counter,
            now=ctx.now,
        )

    logger.info(
        f"Proposal {original.id} countered by user {user.id}. "
        f"Counter proposal {counter.id}: {counter.rate} {counter.rate_type}"
    )
    return counter
