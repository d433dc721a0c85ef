"""
Conversation Store and Message Ledger.

Every append goes through ``_append_message`` so the conversation's
last-message fields and unread counters always follow the ledger.
Counter increments use F() expressions against a row locked with
select_for_update(), so concurrent sends from both sides never lose an
increment and messages keep commit order within one conversation.
"""

import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q

from .exceptions import (
    ConversationNotFound,
    DuplicateConversation,
    NotParticipant,
    SelfConversation,
    UserNotFound,
)
from .models import Conversation, Message, User
from .validators import validate_attachments, validate_message_content

logger = logging.getLogger(__name__)


def build_preview(content):
    """Truncate message content to MARKETPLACE_PREVIEW_LENGTH characters."""
    limit = getattr(settings, 'MARKETPLACE_PREVIEW_LENGTH', 100)
    if len(content) <= limit:
        return content
    return content[:limit - 3] + '...'


def lock_conversation(conversation_id):
    """
    Fetch a conversation with a row lock.

    Must be called inside transaction.atomic().

    Raises:
        ConversationNotFound: If the conversation does not exist
    """
    try:
        return Conversation.objects.select_for_update().get(pk=conversation_id)
    except Conversation.DoesNotExist:
        raise ConversationNotFound(f'Conversation with ID {conversation_id} does not exist.')


def record_message_delivery(conversation, message):
    """
    Update conversation metadata after a message was appended.

    Every kind refreshes the last-message fields. Only text and proposal
    messages increment the receiving side's unread counter; system
    narration is activity, not counterpart content to acknowledge.
    """
    updates = {
        'last_message': message,
        'last_message_at': message.created_at,
        'last_message_preview': build_preview(message.content),
        'last_message_sender_id': message.sender_id,
        'updated_at': message.created_at,
    }

    if message.kind != Message.KIND_SYSTEM:
        if message.sender_id == conversation.seeker_id:
            updates['tasker_unread_count'] = F('tasker_unread_count') + 1
        else:
            updates['seeker_unread_count'] = F('seeker_unread_count') + 1

    Conversation.objects.filter(pk=conversation.pk).update(**updates)


def stamp_after_last_message(conversation_id, now):
    """
    Lock the conversation row and return the timestamp for the next append.

    The clock reading is taken before the lock is acquired, so a writer that
    waited on the lock can hold an earlier reading than the message that
    committed ahead of it. Clamping to ``last_message_at`` keeps the ledger
    order by (created_at, id) equal to commit order.
    """
    last_message_at = (
        Conversation.objects.select_for_update()
        .filter(pk=conversation_id)
        .values_list('last_message_at', flat=True)
        .get()
    )
    if last_message_at is not None and last_message_at > now:
        return last_message_at
    return now


def _append_message(conversation, sender_id, kind, content, now,
                    proposal=None, attachments=None, system_event=''):
    now = stamp_after_last_message(conversation.pk, now)
    message = Message.objects.create(
        conversation=conversation,
        sender_id=sender_id,
        kind=kind,
        content=content,
        proposal=proposal,
        attachments=attachments or [],
        system_event=system_event,
        created_at=now,
    )
    record_message_delivery(conversation, message)
    return message


def append_proposal_message(conversation, proposal, content, now):
    """Append a proposal-kind message referencing ``proposal``."""
    return _append_message(
        conversation,
        proposal.sender_id,
        Message.KIND_PROPOSAL,
        content,
        now,
        proposal=proposal,
    )


def append_system_message(conversation, event_kind, now):
    """
    Append canned narration for a state transition.

    Internal only; never reachable from caller input. System messages are
    attributed to the seeker.

    Raises:
        ValueError: If ``event_kind`` is not a known system event
    """
    try:
        text = Message.SYSTEM_EVENT_TEXT[event_kind]
    except KeyError:
        raise ValueError(f'Unknown system event kind: {event_kind}')

    return _append_message(
        conversation,
        conversation.seeker_id,
        Message.KIND_SYSTEM,
        text,
        now,
        system_event=event_kind,
    )


def open_conversation(ctx, tasker_id, initial_message=None):
    """
    Open a conversation between the caller (seeker) and a tasker.

    Args:
        ctx: CallerContext
        tasker_id: Id of the provider being contacted
        initial_message: Optional first text message from the seeker

    Returns:
        Conversation: The new conversation

    Raises:
        Unauthorized, SelfConversation, UserNotFound, DuplicateConversation,
        TooLong
    """
    seeker = ctx.require_user()

    if seeker.id == int(tasker_id):
        raise SelfConversation()

    if not User.objects.filter(pk=tasker_id).exists():
        raise UserNotFound(f'User with ID {tasker_id} does not exist.')

    content = None
    if initial_message and initial_message.strip():
        content = validate_message_content(initial_message)

    pair_key = Conversation.build_pair_key(seeker.id, tasker_id)

    with transaction.atomic():
        if Conversation.objects.filter(pair_key=pair_key).exists():
            raise DuplicateConversation()

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    seeker=seeker,
                    tasker_id=tasker_id,
                    last_message_at=ctx.now,
                    created_at=ctx.now,
                )
        except IntegrityError:
            # Concurrent open for the same pair won the unique pair_key
            raise DuplicateConversation()

        if content is not None:
            _append_message(conversation, seeker.id, Message.KIND_TEXT, content, ctx.now)

    logger.info(
        f"Conversation {conversation.id} opened. "
        f"Seeker: {seeker.id}, Tasker: {tasker_id}, "
        f"Initial message: {content is not None}"
    )

    conversation.refresh_from_db()
    return conversation


def mark_read(ctx, conversation_id):
    """
    Zero the caller's unread counter and stamp its read receipt.

    The counterpart's counter is left untouched.

    Raises:
        Unauthorized, ConversationNotFound, NotParticipant
    """
    user = ctx.require_user()

    with transaction.atomic():
        conversation = lock_conversation(conversation_id)

        if user.id == conversation.seeker_id:
            updates = {'seeker_unread_count': 0, 'seeker_last_read_at': ctx.now}
        elif user.id == conversation.tasker_id:
            updates = {'tasker_unread_count': 0, 'tasker_last_read_at': ctx.now}
        else:
            raise NotParticipant()

        Conversation.objects.filter(pk=conversation.pk).update(updated_at=ctx.now, **updates)

    conversation.refresh_from_db()
    return conversation


def send_message(ctx, conversation_id, content, attachments=None):
    """
    Append a text message from the caller.

    Returns:
        Message: The appended message

    Raises:
        Unauthorized, ConversationNotFound, NotParticipant, EmptyMessage,
        TooLong, TooManyAttachments
    """
    user = ctx.require_user()

    with transaction.atomic():
        conversation = lock_conversation(conversation_id)

        if not conversation.is_participant(user.id):
            raise NotParticipant()

        content = validate_message_content(content)
        attachments = validate_attachments(attachments)

        message = _append_message(
            conversation,
            user.id,
            Message.KIND_TEXT,
            content,
            ctx.now,
            attachments=attachments,
        )

    logger.info(
        f"Message {message.id} sent in conversation {conversation.id} "
        f"by user {user.id} ({len(attachments)} attachments)"
    )
    return message


def get_conversation(ctx, conversation_id):
    """
    Raises:
        Unauthorized, ConversationNotFound, NotParticipant
    """
    user = ctx.require_user()

    try:
        conversation = Conversation.objects.select_related('seeker', 'tasker').get(pk=conversation_id)
    except Conversation.DoesNotExist:
        raise ConversationNotFound(f'Conversation with ID {conversation_id} does not exist.')

    if not conversation.is_participant(user.id):
        raise NotParticipant()

    return conversation


def list_conversations(ctx, role=None, limit=50):
    """
    List the caller's conversations, most recent activity first.

    Args:
        ctx: CallerContext
        role: 'seeker', 'tasker' or None for both
        limit: Maximum number of rows, clamped to 1..100
    """
    user = ctx.require_user()
    limit = max(1, min(int(limit), 100))

    if role == 'seeker':
        condition = Q(seeker=user)
    elif role == 'tasker':
        condition = Q(tasker=user)
    else:
        condition = Q(seeker=user) | Q(tasker=user)

    return list(
        Conversation.objects.filter(condition)
        .select_related('seeker', 'tasker')
        .order_by('-last_message_at', '-id')[:limit]
    )
