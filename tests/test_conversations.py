"""
Tests for the Conversation Store.

Covers:
- Opening conversations (with and without an initial message)
- One conversation per unordered participant pair
- Self-conversation and unknown provider rejection
- Read receipts (MarkRead) and per-side unread counters
- Listing and fetching conversations as a participant
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from core import conversations
from core.context import CallerContext
from core.exceptions import (
    ConversationNotFound,
    DuplicateConversation,
    NotParticipant,
    SelfConversation,
    TooLong,
    Unauthorized,
    UserNotFound,
)
from core.models import Conversation, Message

User = get_user_model()


class OpenConversationTests(TestCase):
    """Test suite for OpenConversation."""

    def setUp(self):
        """Set up test fixtures."""
        self.seeker = User.objects.create_user(
            username='seeker',
            email='seeker@test.com',
            password='testpass123'
        )
        self.tasker = User.objects.create_user(
            username='tasker',
            email='tasker@test.com',
            password='testpass123'
        )
        self.ctx = CallerContext(user=self.seeker)

    def test_open_without_initial_message(self):
        """A new conversation starts with both counters at zero and no messages."""
        conversation = conversations.open_conversation(self.ctx, self.tasker.id)

        self.assertEqual(conversation.seeker_id, self.seeker.id)
        self.assertEqual(conversation.tasker_id, self.tasker.id)
        self.assertEqual(conversation.seeker_unread_count, 0)
        self.assertEqual(conversation.tasker_unread_count, 0)
        self.assertIsNone(conversation.last_message_id)
        self.assertEqual(conversation.last_message_preview, '')
        self.assertEqual(conversation.messages.count(), 0)

    def test_open_with_initial_message(self):
        """The initial message is appended from the seeker and counted for the tasker."""
        conversation = conversations.open_conversation(
            self.ctx, self.tasker.id, 'Hi, can you help me move a sofa?'
        )

        self.assertEqual(conversation.tasker_unread_count, 1)
        self.assertEqual(conversation.seeker_unread_count, 0)
        self.assertEqual(conversation.last_message_sender_id, self.seeker.id)
        self.assertEqual(conversation.last_message_preview, 'Hi, can you help me move a sofa?')

        messages = list(conversation.messages.all())
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].kind, Message.KIND_TEXT)
        self.assertEqual(messages[0].sender_id, self.seeker.id)
        self.assertEqual(conversation.last_message_id, messages[0].id)

    def test_blank_initial_message_is_ignored(self):
        """Whitespace-only initial text opens the conversation without a message."""
        conversation = conversations.open_conversation(self.ctx, self.tasker.id, '   ')

        self.assertEqual(conversation.messages.count(), 0)
        self.assertEqual(conversation.tasker_unread_count, 0)

    def test_initial_message_too_long_creates_nothing(self):
        """An oversized initial message fails before the conversation is stored."""
        with self.assertRaises(TooLong):
            conversations.open_conversation(self.ctx, self.tasker.id, 'x' * 5001)

        self.assertEqual(Conversation.objects.count(), 0)

    def test_duplicate_conversation_rejected(self):
        """Opening the same pair twice fails and leaves a single row."""
        conversations.open_conversation(self.ctx, self.tasker.id)

        with self.assertRaises(DuplicateConversation):
            conversations.open_conversation(self.ctx, self.tasker.id)

        self.assertEqual(Conversation.objects.count(), 1)

    def test_duplicate_detection_ignores_direction(self):
        """The pair is unordered: the tasker cannot open a second thread back."""
        conversations.open_conversation(self.ctx, self.tasker.id)

        with self.assertRaises(DuplicateConversation):
            conversations.open_conversation(CallerContext(user=self.tasker), self.seeker.id)

        self.assertEqual(Conversation.objects.count(), 1)

    def test_pair_key_unique_at_database_level(self):
        """The unique pair key rejects a second row written around the operation."""
        conversations.open_conversation(self.ctx, self.tasker.id)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Conversation.objects.create(seeker=self.tasker, tasker=self.seeker)

    def test_self_conversation_rejected(self):
        with self.assertRaises(SelfConversation):
            conversations.open_conversation(self.ctx, self.seeker.id)

        self.assertEqual(Conversation.objects.count(), 0)

    def test_unknown_tasker_rejected(self):
        with self.assertRaises(UserNotFound):
            conversations.open_conversation(self.ctx, 999999)

    def test_unresolved_caller_rejected(self):
        with self.assertRaises(Unauthorized):
            conversations.open_conversation(CallerContext(), self.tasker.id)

    def test_pair_key_is_order_independent(self):
        self.assertEqual(
            Conversation.build_pair_key(3, 11),
            Conversation.build_pair_key(11, 3)
        )


class MarkReadTests(TestCase):
    """Test suite for MarkRead."""

    def setUp(self):
        self.seeker = User.objects.create_user(
            username='seeker',
            email='seeker@test.com',
            password='testpass123'
        )
        self.tasker = User.objects.create_user(
            username='tasker',
            email='tasker@test.com',
            password='testpass123'
        )
        self.outsider = User.objects.create_user(
            username='outsider',
            email='outsider@test.com',
            password='testpass123'
        )
        self.seeker_ctx = CallerContext(user=self.seeker)
        self.tasker_ctx = CallerContext(user=self.tasker)

        self.conversation = conversations.open_conversation(
            self.seeker_ctx, self.tasker.id, 'Hello there'
        )
        conversations.send_message(self.tasker_ctx, self.conversation.id, 'Hi! How can I help?')

    def test_mark_read_zeroes_only_callers_side(self):
        read_at = timezone.now() + timedelta(minutes=5)

        conversation = conversations.mark_read(
            CallerContext(user=self.tasker, now=read_at),
            self.conversation.id
        )

        self.assertEqual(conversation.tasker_unread_count, 0)
        self.assertEqual(conversation.tasker_last_read_at, read_at)
        self.assertEqual(conversation.seeker_unread_count, 1)
        self.assertIsNone(conversation.seeker_last_read_at)

    def test_mark_read_by_seeker(self):
        conversation = conversations.mark_read(self.seeker_ctx, self.conversation.id)

        self.assertEqual(conversation.seeker_unread_count, 0)
        self.assertIsNotNone(conversation.seeker_last_read_at)
        self.assertEqual(conversation.tasker_unread_count, 1)

    def test_mark_read_is_repeatable(self):
        conversations.mark_read(self.tasker_ctx, self.conversation.id)
        conversation = conversations.mark_read(self.tasker_ctx, self.conversation.id)

        self.assertEqual(conversation.tasker_unread_count, 0)

    def test_mark_read_by_outsider_rejected(self):
        with self.assertRaises(NotParticipant):
            conversations.mark_read(CallerContext(user=self.outsider), self.conversation.id)

        self.conversation.refresh_from_db()
        self.assertEqual(self.conversation.tasker_unread_count, 1)
        self.assertEqual(self.conversation.seeker_unread_count, 1)

    def test_mark_read_missing_conversation(self):
        with self.assertRaises(ConversationNotFound):
            conversations.mark_read(self.tasker_ctx, 999999)

    def test_mark_read_unresolved_caller(self):
        with self.assertRaises(Unauthorized):
            conversations.mark_read(CallerContext(), self.conversation.id)


class ConversationQueryTests(TestCase):
    """Test suite for ListConversations and GetConversation."""

    def setUp(self):
        self.alice = User.objects.create_user(
            username='alice',
            email='alice@test.com',
            password='testpass123'
        )
        self.bob = User.objects.create_user(
            username='bob',
            email='bob@test.com',
            password='testpass123'
        )
        self.carol = User.objects.create_user(
            username='carol',
            email='carol@test.com',
            password='testpass123'
        )
        base = timezone.now()

        # alice seeks bob, carol seeks alice
        self.first = conversations.open_conversation(
            CallerContext(user=self.alice, now=base), self.bob.id, 'First'
        )
        self.second = conversations.open_conversation(
            CallerContext(user=self.carol, now=base + timedelta(minutes=1)), self.alice.id, 'Second'
        )

    def test_list_orders_by_latest_activity(self):
        items = conversations.list_conversations(CallerContext(user=self.alice))

        self.assertEqual([c.id for c in items], [self.second.id, self.first.id])

    def test_new_message_moves_conversation_to_top(self):
        conversations.send_message(
            CallerContext(user=self.bob, now=timezone.now() + timedelta(minutes=10)),
            self.first.id,
            'Bumping this thread'
        )

        items = conversations.list_conversations(CallerContext(user=self.alice))

        self.assertEqual(items[0].id, self.first.id)

    def test_list_filters_by_role(self):
        ctx = CallerContext(user=self.alice)

        as_seeker = conversations.list_conversations(ctx, role='seeker')
        as_tasker = conversations.list_conversations(ctx, role='tasker')

        self.assertEqual([c.id for c in as_seeker], [self.first.id])
        self.assertEqual([c.id for c in as_tasker], [self.second.id])

    def test_list_limit_is_clamped(self):
        ctx = CallerContext(user=self.alice)

        self.assertEqual(len(conversations.list_conversations(ctx, limit=0)), 1)
        self.assertEqual(len(conversations.list_conversations(ctx, limit=500)), 2)

    def test_list_excludes_other_users_conversations(self):
        items = conversations.list_conversations(CallerContext(user=self.bob))

        self.assertEqual([c.id for c in items], [self.first.id])

    def test_get_conversation_as_participant(self):
        conversation = conversations.get_conversation(CallerContext(user=self.bob), self.first.id)

        self.assertEqual(conversation.id, self.first.id)

    def test_get_conversation_as_outsider(self):
        with self.assertRaises(NotParticipant):
            conversations.get_conversation(CallerContext(user=self.carol), self.first.id)

    def test_get_missing_conversation(self):
        with self.assertRaises(ConversationNotFound):
            conversations.get_conversation(CallerContext(user=self.alice), 999999)
