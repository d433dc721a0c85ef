"""
Tests for the incremental reputation aggregate.

Test Coverage:
- Running weighted average after several reviews
- fold_rating arithmetic and clamping
- Profile chosen by the reviewee's role on the job
- Profiles created on first review
- Review insert and profile update commit together
- Concurrent reviews of one reviewee on databases with row locking
"""

import threading
from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from django.utils import timezone

from core import conversations, proposals, reviews
from core.context import CallerContext
from core.models import Job, Proposal, Review, SeekerProfile, TaskerProfile

User = get_user_model()

REVIEW_TEXT = 'Solid job, would hire again for sure.'


class FoldRatingTests(TestCase):
    """Unit tests for ReputationProfile.fold_rating."""

    def test_first_rating(self):
        profile = TaskerProfile(rating=0.0, rating_count=0)

        profile.fold_rating(4)

        self.assertEqual(profile.rating, 4.0)
        self.assertEqual(profile.rating_count, 1)

    def test_weighted_average(self):
        profile = TaskerProfile(rating=4.5, rating_count=2)

        profile.fold_rating(3)

        self.assertAlmostEqual(profile.rating, 4.0)
        self.assertEqual(profile.rating_count, 3)

    def test_result_is_clamped(self):
        profile = SeekerProfile(rating=7.0, rating_count=1)

        profile.fold_rating(5)

        self.assertEqual(profile.rating, 5.0)

    def test_lower_clamp(self):
        profile = SeekerProfile(rating=-3.0, rating_count=1)

        profile.fold_rating(1)

        self.assertEqual(profile.rating, 0.0)
        self.assertEqual(profile.rating_count, 2)


class RatingAggregationTests(TestCase):
    """Profile aggregates maintained by SubmitReview."""

    def setUp(self):
        """Set up one seeker/tasker pair with three completed jobs."""
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

        self.jobs = []
        for i in range(3):
            proposal = proposals.send_proposal(
                self.tasker_ctx,
                self.conversation.id,
                rate=4000 + i * 500,
                rate_type=Proposal.RATE_HOURLY,
                start_time=timezone.now() + timedelta(days=i + 1),
                notes=f'Job number {i}',
            )
            job = proposals.accept_proposal(self.seeker_ctx, proposal.id)
            Job.objects.filter(pk=job.pk).update(
                status=Job.STATUS_COMPLETED,
                completed_at=timezone.now()
            )
            self.jobs.append(job)

    def test_running_average_over_three_reviews(self):
        for job, rating in zip(self.jobs, [4, 5, 3]):
            reviews.submit_review(self.seeker_ctx, job.id, rating, REVIEW_TEXT)

        profile = TaskerProfile.objects.get(user=self.tasker)
        self.assertAlmostEqual(profile.rating, 4.0)
        self.assertEqual(profile.rating_count, 3)

    def test_running_average_matches_stored_reviews(self):
        for job, rating in zip(self.jobs, [5, 2, 4]):
            reviews.submit_review(self.seeker_ctx, job.id, rating, REVIEW_TEXT)

        stored = list(
            Review.objects.filter(reviewee=self.tasker).values_list('rating', flat=True)
        )
        profile = TaskerProfile.objects.get(user=self.tasker)
        self.assertAlmostEqual(profile.rating, sum(stored) / len(stored))
        self.assertEqual(profile.rating_count, len(stored))

    def test_roles_are_aggregated_separately(self):
        reviews.submit_review(self.seeker_ctx, self.jobs[0].id, 5, REVIEW_TEXT)
        reviews.submit_review(self.tasker_ctx, self.jobs[0].id, 2, REVIEW_TEXT)

        tasker_profile = TaskerProfile.objects.get(user=self.tasker)
        seeker_profile = SeekerProfile.objects.get(user=self.seeker)
        self.assertEqual(tasker_profile.rating, 5.0)
        self.assertEqual(seeker_profile.rating, 2.0)
        self.assertFalse(SeekerProfile.objects.filter(user=self.tasker).exists())
        self.assertFalse(TaskerProfile.objects.filter(user=self.seeker).exists())

    def test_existing_profile_is_folded(self):
        TaskerProfile.objects.create(user=self.tasker, rating=4.5, rating_count=2)

        reviews.submit_review(self.seeker_ctx, self.jobs[0].id, 3, REVIEW_TEXT)

        profile = TaskerProfile.objects.get(user=self.tasker)
        self.assertAlmostEqual(profile.rating, 4.0)
        self.assertEqual(profile.rating_count, 3)

    def test_profile_failure_rolls_back_review(self):
        with mock.patch.object(TaskerProfile, 'fold_rating', side_effect=RuntimeError('boom')):
            with self.assertLogs('core.reviews', level='ERROR'):
                with self.assertRaises(RuntimeError):
                    reviews.submit_review(self.seeker_ctx, self.jobs[0].id, 5, REVIEW_TEXT)

        self.assertEqual(Review.objects.count(), 0)
        job = Job.objects.get(pk=self.jobs[0].pk)
        self.assertIsNone(job.seeker_review_id)

        # The review can be submitted again once the failure is gone
        review = reviews.submit_review(self.seeker_ctx, self.jobs[0].id, 5, REVIEW_TEXT)
        self.assertIsNotNone(review.id)
        self.assertEqual(TaskerProfile.objects.get(user=self.tasker).rating_count, 1)

    def test_update_profile_rating_logs(self):
        with self.assertLogs('core.reviews', level='INFO') as logs:
            reviews.submit_review(self.seeker_ctx, self.jobs[0].id, 5, REVIEW_TEXT)

        self.assertTrue(any('TaskerProfile' in line for line in logs.output))


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentReviewTests(TransactionTestCase):
    """Two seekers reviewing the same tasker at the same time."""

    def setUp(self):
        self.tasker = User.objects.create_user(
            username='tasker',
            email='tasker@test.com',
            password='testpass123'
        )
        self.reviews_to_submit = []
        for name, rating in [('alice', 5), ('bob', 2)]:
            seeker = User.objects.create_user(
                username=name,
                email=f'{name}@test.com',
                password='testpass123'
            )
            seeker_ctx = CallerContext(user=seeker)
            conversation = conversations.open_conversation(seeker_ctx, self.tasker.id)
            proposal = proposals.send_proposal(
                CallerContext(user=self.tasker),
                conversation.id,
                rate=4500,
                rate_type=Proposal.RATE_FLAT,
                start_time=timezone.now() + timedelta(days=1),
            )
            job = proposals.accept_proposal(seeker_ctx, proposal.id)
            Job.objects.filter(pk=job.pk).update(
                status=Job.STATUS_COMPLETED,
                completed_at=timezone.now()
            )
            self.reviews_to_submit.append((seeker, job.id, rating))
        TaskerProfile.objects.get_or_create(user=self.tasker)

    def test_no_rating_is_lost(self):
        errors = []
        barrier = threading.Barrier(len(self.reviews_to_submit))

        def submit(seeker, job_id, rating):
            try:
                barrier.wait()
                reviews.submit_review(CallerContext(user=seeker), job_id, rating, REVIEW_TEXT)
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [
            threading.Thread(target=submit, args=args) for args in self.reviews_to_submit
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        profile = TaskerProfile.objects.get(user=self.tasker)
        self.assertEqual(profile.rating_count, 2)
        self.assertAlmostEqual(profile.rating, 3.5)
