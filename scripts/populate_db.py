import os
import sys
import django
import random
from datetime import timedelta
from django.utils import timezone
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tasker_marketplace.settings')
django.setup()

from core import conversations, proposals, reviews
from core.context import CallerContext
from core.models import User, Category, Job, Proposal

fake = Faker()

CATEGORY_NAMES = [
    "Furniture Assembly", "Home Repairs", "Moving Help",
    "Cleaning", "Yard Work", "Mounting & Installation"
]


def create_users(num_seekers=10, num_taskers=5):
    print(f"Creating {num_seekers} seekers and {num_taskers} taskers...")

    seekers = []
    taskers = []

    for group, size in ((seekers, num_seekers), (taskers, num_taskers)):
        for _ in range(size):
            email = fake.unique.email()
            user = User.objects.create_user(
                username=email.split('@')[0],
                email=email,
                password='password123',
                first_name=fake.first_name(),
                last_name=fake.last_name(),
            )
            group.append(user)

    print(f"Created {len(seekers)} seekers and {len(taskers)} taskers.")
    return seekers, taskers


def create_categories():
    print("Creating categories...")
    return [Category.objects.get_or_create(name=name)[0] for name in CATEGORY_NAMES]


def random_terms():
    return {
        'rate': random.choice([2500, 3000, 4000, 5000, 7500]),
        'rate_type': random.choice([Proposal.RATE_HOURLY, Proposal.RATE_FLAT]),
        'start_time': timezone.now() + timedelta(days=random.randint(1, 30), hours=random.randint(8, 17)),
        'notes': fake.sentence(),
    }


def negotiate(seekers, taskers):
    """Run conversations through the negotiation operations and return the created jobs."""
    print("Creating conversations and proposals...")
    jobs = []
    pairs = set()

    for seeker in seekers:
        for tasker in random.sample(taskers, random.randint(1, min(3, len(taskers)))):
            if (seeker.id, tasker.id) in pairs:
                continue
            pairs.add((seeker.id, tasker.id))

            seeker_ctx = CallerContext(user=seeker)
            tasker_ctx = CallerContext(user=tasker)

            conversation = conversations.open_conversation(
                seeker_ctx, tasker.id, fake.sentence()
            )
            conversations.send_message(tasker_ctx, conversation.id, fake.paragraph())

            proposal = proposals.send_proposal(tasker_ctx, conversation.id, **random_terms())

            outcome = random.choice(['accept', 'counter', 'decline', 'pending'])
            if outcome == 'accept':
                jobs.append(proposals.accept_proposal(seeker_ctx, proposal.id))
            elif outcome == 'counter':
                counter = proposals.counter_proposal(seeker_ctx, proposal.id, **random_terms())
                if random.random() < 0.5:
                    jobs.append(proposals.accept_proposal(tasker_ctx, counter.id))
            elif outcome == 'decline':
                proposals.decline_proposal(seeker_ctx, proposal.id)

            if random.random() < 0.5:
                conversations.mark_read(seeker_ctx, conversation.id)

    print(f"Created {len(pairs)} conversations and {len(jobs)} jobs.")
    return jobs


def complete_jobs_and_review(jobs):
    print("Completing jobs and creating reviews...")
    count = 0

    for job in jobs:
        if random.random() < 0.3:
            continue

        # Job completion is owned by the scheduling service; stamp it directly here
        completed_at = timezone.now() - timedelta(days=random.randint(1, 20))
        Job.objects.filter(pk=job.pk).update(status=Job.STATUS_COMPLETED, completed_at=completed_at)

        for reviewer in (job.seeker, job.tasker):
            # 70% chance of leaving a review
            if random.random() < 0.7:
                reviews.submit_review(
                    CallerContext(user=reviewer),
                    job.id,
                    random.randint(3, 5),
                    fake.paragraph(),
                )
                count += 1

    print(f"Created {count} reviews.")


def main():
    print("Starting database population...")

    seekers, taskers = create_users(num_seekers=20, num_taskers=10)
    create_categories()
    jobs = negotiate(seekers, taskers)
    complete_jobs_and_review(jobs)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
