"""
Tests for the signal receivers that narrate negotiation events.

Each domain event must produce exactly one system message in the
conversation it belongs to. Narration runs inside the sending transaction,
so a failing receiver rolls the state transition back.
"""

from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from core import conversations, events, proposals, reviews
from core.context import CallerContext
from core.models import Conversation, Job, Message, Proposal, Review

User = get_user_model()


class NarrationTests(TestCase):
    """Test suite for system message narration."""

    def setUp(self):
        """Set up a conversation with one pending proposal from the tasker."""
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
        self.seeker_ctx = CallerContext(user=self.seeker)
        self.tasker_ctx = CallerContext(user=self.tasker)
        self.conversation = conversations.open_conversation(self.seeker_ctx, self.tasker.id)
        self.proposal = proposals.send_proposal(
            self.tasker_ctx,
            self.conversation.id,
            rate=5000,
            rate_type=Proposal.RATE_HOURLY,
            start_time=timezone.now() + timedelta(days=2),
        )

    def system_messages(self):
        return list(self.conversation.messages.filter(kind=Message.KIND_SYSTEM))

    def assertNarrated(self, event_kind):
        narration = self.system_messages()
        self.assertEqual(len(narration), 1)
        self.assertEqual(narration[0].system_event, event_kind)
        self.assertEqual(narration[0].content, Message.SYSTEM_EVENT_TEXT[event_kind])
        return narration[0]

    def test_accept_narration(self):
        proposals.accept_proposal(self.seeker_ctx, self.proposal.id)

        self.assertNarrated(Message.EVENT_PROPOSAL_ACCEPTED)

    def test_decline_narration(self):
        proposals.decline_proposal(self.seeker_ctx, self.proposal.id)

        self.assertNarrated(Message.EVENT_PROPOSAL_DECLINED)

    def test_counter_narration(self):
        proposals.counter_proposal(
            self.seeker_ctx,
            self.proposal.id,
            rate=4000,
            rate_type=Proposal.RATE_HOURLY,
            start_time=timezone.now() + timedelta(days=2),
        )

        self.assertNarrated(Message.EVENT_PROPOSAL_COUNTERED)

    def test_review_narration(self):
        job = proposals.accept_proposal(self.seeker_ctx, self.proposal.id)
        Job.objects.filter(pk=job.pk).update(status=Job.STATUS_COMPLETED, completed_at=timezone.now())

        reviews.submit_review(
            CallerContext(user=self.tasker), job.id, 5, 'Pleasant to work with.'
        )

        events_narrated = [m.system_event for m in self.system_messages()]
        self.assertEqual(
            events_narrated,
            [Message.EVENT_PROPOSAL_ACCEPTED, Message.EVENT_REVIEW_SUBMITTED]
        )

    def test_system_message_does_not_touch_unread_counters(self):
        """Narration updates recency but is not counted as unread."""
        conversations.mark_read(self.seeker_ctx, self.conversation.id)
        before = Conversation.objects.get(pk=self.conversation.pk)

        decline_time = timezone.now() + timedelta(minutes=10)
        proposals.decline_proposal(
            CallerContext(user=self.seeker, now=decline_time), self.proposal.id
        )

        self.conversation.refresh_from_db()
        narration = self.assertNarrated(Message.EVENT_PROPOSAL_DECLINED)
        self.assertEqual(self.conversation.seeker_unread_count, before.seeker_unread_count)
        self.assertEqual(self.conversation.tasker_unread_count, before.tasker_unread_count)
        self.assertEqual(self.conversation.last_message_id, narration.id)
        self.assertEqual(self.conversation.last_message_at, decline_time)
        self.assertEqual(
            self.conversation.last_message_preview,
            Message.SYSTEM_EVENT_TEXT[Message.EVENT_PROPOSAL_DECLINED]
        )

    def test_system_message_attributed_to_seeker(self):
        """Narration is attributed to the seeker even when the tasker acts."""
        counter = proposals.counter_proposal(
            self.seeker_ctx,
            self.proposal.id,
            rate=4000,
            rate_type=Proposal.RATE_HOURLY,
            start_time=timezone.now() + timedelta(days=2),
        )
        proposals.decline_proposal(self.tasker_ctx, counter.id)

        senders = {m.sender_id for m in self.system_messages()}
        self.assertEqual(senders, {self.seeker.id})

    def test_unknown_event_kind_rejected(self):
        with self.assertRaises(ValueError):
            conversations.append_system_message(self.conversation, 'job_cancelled', timezone.now())

        self.assertEqual(self.system_messages(), [])


class NarrationFailureTests(TestCase):
    """A failing receiver aborts the transition that sent the event."""

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
        self.seeker_ctx = CallerContext(user=self.seeker)
        self.conversation = conversations.open_conversation(self.seeker_ctx, self.tasker.id)
        self.proposal = proposals.send_proposal(
            CallerContext(user=self.tasker),
            self.conversation.id,
            rate=5000,
            rate_type=Proposal.RATE_HOURLY,
            start_time=timezone.now() + timedelta(days=2),
        )

    def test_narration_failure_is_logged_and_rolls_back(self):
        with mock.patch(
            'core.signals.append_system_message',
            side_effect=RuntimeError('ledger unavailable')
        ):
            with self.assertLogs('core.signals', level='ERROR') as logs:
                with self.assertRaises(RuntimeError):
                    proposals.accept_proposal(self.seeker_ctx, self.proposal.id)

        self.assertIn('proposal_accepted', logs.output[0])
        self.proposal.refresh_from_db()
        self.assertEqual(self.proposal.status, Proposal.STATUS_PENDING)
        self.assertEqual(Job.objects.count(), 0)

    def test_extra_receiver_failure_rolls_back_decline(self):
        def failing_receiver(sender, **kwargs):
            raise RuntimeError('downstream listener failed')

        events.proposal_declined.connect(failing_receiver, sender=Proposal)
        self.addCleanup(events.proposal_declined.disconnect, failing_receiver, sender=Proposal)

        with self.assertRaises(RuntimeError):
            proposals.decline_proposal(self.seeker_ctx, self.proposal.id)

        self.proposal.refresh_from_db()
        self.assertEqual(self.proposal.status, Proposal.STATUS_PENDING)
        self.assertFalse(
            self.conversation.messages.filter(kind=Message.KIND_SYSTEM).exists()
        )

    def test_review_rolled_back_when_narration_fails(self):
        job = proposals.accept_proposal(self.seeker_ctx, self.proposal.id)
        Job.objects.filter(pk=job.pk).update(status=Job.STATUS_COMPLETED, completed_at=timezone.now())

        with mock.patch(
            'core.signals.append_system_message',
            side_effect=RuntimeError('ledger unavailable')
        ):
            with self.assertLogs('core.signals', level='ERROR'):
                with self.assertRaises(RuntimeError):
                    reviews.submit_review(self.seeker_ctx, job.id, 5, 'Very helpful tasker.')

        self.assertEqual(Review.objects.count(), 0)
        job.refresh_from_db()
        self.assertIsNone(job.seeker_review_id)
