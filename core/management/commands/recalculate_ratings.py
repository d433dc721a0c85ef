# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import Avg, Count, F
from core.models import Review, SeekerProfile, TaskerProfile

RATING_TOLERANCE = 1e-6


class Command(BaseCommand):
    help = 'Recomputes seeker and tasker reputation profiles from stored reviews.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--seekers-only',
            action='store_true',
            help='Recalculate only seeker profiles.',
        )
        parser.add_argument(
            '--taskers-only',
            action='store_true',
            help='Recalculate only tasker profiles.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        seekers_only = options['seekers_only']
        taskers_only = options['taskers_only']
        batch_size = options['batch_size']

        if seekers_only and taskers_only:
            raise CommandError('--seekers-only and --taskers-only cannot be combined.')
        if batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        if not taskers_only:
            self.recalculate_profiles('seeker', SeekerProfile, 'job__seeker', dry_run, batch_size)

        if not seekers_only:
            self.recalculate_profiles('tasker', TaskerProfile, 'job__tasker', dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))

    def collect_stats(self, role_lookup):
        """Map reviewee id -> (average, count) for reviews received in one role."""
        rows = (
            Review.objects.filter(reviewee=F(role_lookup))
            .values('reviewee')
            .annotate(avg_rating=Avg('rating'), total=Count('id'))
        )
        return {
            row['reviewee']: (float(row['avg_rating']), row['total'])
            for row in rows
        }

    def recalculate_profiles(self, role, profile_model, role_lookup, dry_run, batch_size):
        self.stdout.write(f'Recalculating {role} ratings...')
        updates = []
        seen = set()
        count = 0

        with transaction.atomic():
            # Profiles stay locked until commit; a review submitted meanwhile
            # folds onto the recomputed value instead of being overwritten.
            locked = profile_model.objects.select_for_update().order_by('pk')
            locked_ids = list(locked.values_list('pk', flat=True))
            stats = self.collect_stats(role_lookup)

            if locked_ids:
                locked = locked.filter(pk__lte=locked_ids[-1])
            else:
                locked = locked.none()

            for profile in locked.iterator(chunk_size=batch_size):
                seen.add(profile.user_id)
                new_avg, new_total = stats.get(profile.user_id, (0.0, 0))
                new_avg = max(0.0, min(5.0, new_avg))

                if abs(profile.rating - new_avg) > RATING_TOLERANCE or profile.rating_count != new_total:
                    if dry_run:
                        self.stdout.write(
                            f'  [DRY-RUN] User {profile.user_id} ({role}): '
                            f'Rating {profile.rating:.4f} -> {new_avg:.4f}, '
                            f'Count {profile.rating_count} -> {new_total}'
                        )
                    profile.rating = new_avg
                    profile.rating_count = new_total
                    updates.append(profile)

                if len(updates) >= batch_size:
                    if not dry_run:
                        profile_model.objects.bulk_update(updates, ['rating', 'rating_count'])
                    updates = []

                count += 1
                if count % 100 == 0:
                    self.stdout.write(f'Processed {count} {role} profiles...')

            if updates and not dry_run:
                profile_model.objects.bulk_update(updates, ['rating', 'rating_count'])

            unseen = [user_id for user_id in stats if user_id not in seen]
            # Profiles created by a review after the lock already hold its fold
            created_meanwhile = set(
                profile_model.objects.filter(user_id__in=unseen).values_list('user_id', flat=True)
            )
            missing = [
                profile_model(user_id=user_id, rating=stats[user_id][0], rating_count=stats[user_id][1])
                for user_id in unseen
                if user_id not in created_meanwhile
            ]
            for profile in missing:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {profile.user_id} ({role}): '
                        f'create profile with rating {profile.rating:.4f}, '
                        f'count {profile.rating_count}'
                    )
            if missing and not dry_run:
                profile_model.objects.bulk_create(missing, batch_size=batch_size)

        self.stdout.write(
            f'Processed {count} {role} profiles total, '
            f'{len(missing)} missing profiles {"found" if dry_run else "created"}.'
        )
