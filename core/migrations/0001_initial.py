import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='user_email_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Display name of the category', max_length=100, unique=True, verbose_name='name')),
            ],
            options={
                'verbose_name': 'category',
                'verbose_name_plural': 'categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pair_key', models.CharField(editable=False, help_text='Order-independent key of the two participants', max_length=64, unique=True, verbose_name='participant pair key')),
                ('last_message_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Timestamp of the most recent conversation activity', verbose_name='last message at')),
                ('last_message_preview', models.CharField(blank=True, default='', help_text='Truncated content of the most recent message', max_length=255, verbose_name='last message preview')),
                ('seeker_unread_count', models.PositiveIntegerField(default=0, verbose_name='seeker unread count')),
                ('tasker_unread_count', models.PositiveIntegerField(default=0, verbose_name='tasker unread count')),
                ('seeker_last_read_at', models.DateTimeField(blank=True, null=True, verbose_name='seeker last read at')),
                ('tasker_last_read_at', models.DateTimeField(blank=True, null=True, verbose_name='tasker last read at')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('last_message_sender', models.ForeignKey(blank=True, help_text='Sender of the most recent message', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('seeker', models.ForeignKey(help_text='Seeker participating in the conversation', on_delete=django.db.models.deletion.CASCADE, related_name='conversations_as_seeker', to=settings.AUTH_USER_MODEL)),
                ('tasker', models.ForeignKey(help_text='Tasker participating in the conversation', on_delete=django.db.models.deletion.CASCADE, related_name='conversations_as_tasker', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'conversation',
                'verbose_name_plural': 'conversations',
                'ordering': ['-last_message_at'],
                'indexes': [
                    models.Index(fields=['seeker', 'last_message_at'], name='conv_seeker_activity_idx'),
                    models.Index(fields=['tasker', 'last_message_at'], name='conv_tasker_activity_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Proposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rate', models.PositiveIntegerField(help_text='Rate in minor currency units (cents)', verbose_name='rate')),
                ('rate_type', models.CharField(choices=[('hourly', 'Hourly'), ('flat', 'Flat')], max_length=10, verbose_name='rate type')),
                ('start_time', models.DateTimeField(help_text='Proposed start of the job', verbose_name='start time')),
                ('notes', models.TextField(blank=True, default='', verbose_name='notes')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('countered', 'Countered'), ('expired', 'Expired')], default='pending', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='updated at')),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals', to='core.conversation')),
                ('counter_proposal', models.OneToOneField(blank=True, help_text='Proposal that countered this one', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.proposal')),
                ('previous_proposal', models.OneToOneField(blank=True, help_text='Proposal this one counters', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.proposal')),
                ('receiver', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals_received', to=settings.AUTH_USER_MODEL)),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'proposal',
                'verbose_name_plural': 'proposals',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['conversation'], name='proposal_conversation_idx'),
                    models.Index(fields=['sender'], name='proposal_sender_idx'),
                    models.Index(fields=['receiver'], name='proposal_receiver_idx'),
                    models.Index(fields=['status'], name='proposal_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('sender', models.F('receiver')), _negated=True), name='proposal_sender_not_receiver'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('text', 'Text'), ('proposal', 'Proposal'), ('system', 'System')], default='text', max_length=10, verbose_name='kind')),
                ('content', models.TextField(help_text='Message text', verbose_name='content')),
                ('system_event', models.CharField(blank=True, choices=[('proposal_accepted', 'Proposal accepted'), ('proposal_declined', 'Proposal declined'), ('proposal_countered', 'Proposal countered'), ('review_submitted', 'Review submitted')], default='', max_length=32, verbose_name='system event')),
                ('attachments', models.JSONField(blank=True, default=list, help_text='Opaque storage references', verbose_name='attachments')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('conversation', models.ForeignKey(help_text='Conversation this message belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='core.conversation')),
                ('proposal', models.ForeignKey(blank=True, help_text='Proposal referenced by a proposal message', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='core.proposal')),
                ('sender', models.ForeignKey(help_text='User the message is attributed to', on_delete=django.db.models.deletion.CASCADE, related_name='messages_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'message',
                'verbose_name_plural': 'messages',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['conversation', 'created_at'], name='message_conv_created_idx'),
                    models.Index(fields=['sender'], name='message_sender_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Job',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category_name', models.CharField(blank=True, default='', max_length=100, verbose_name='category name')),
                ('description', models.TextField(verbose_name='description')),
                ('rate', models.PositiveIntegerField(help_text='Rate in minor currency units (cents)', verbose_name='rate')),
                ('rate_type', models.CharField(choices=[('hourly', 'Hourly'), ('flat', 'Flat')], max_length=10, verbose_name='rate type')),
                ('start_time', models.DateTimeField(verbose_name='start time')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='completed at')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('disputed', 'Disputed')], default='pending', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='jobs', to='core.category')),
                ('proposal', models.OneToOneField(help_text='Accepted proposal this job was created from', on_delete=django.db.models.deletion.PROTECT, related_name='job', to='core.proposal')),
                ('seeker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='jobs_as_seeker', to=settings.AUTH_USER_MODEL)),
                ('tasker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='jobs_as_tasker', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'job',
                'verbose_name_plural': 'jobs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['seeker'], name='job_seeker_idx'),
                    models.Index(fields=['tasker'], name='job_tasker_idx'),
                    models.Index(fields=['status'], name='job_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('text', models.TextField(help_text='Written feedback about the experience', verbose_name='text')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='created at')),
                ('job', models.ForeignKey(help_text='Job being reviewed', on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='core.job')),
                ('reviewee', models.ForeignKey(help_text='User receiving the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(help_text='User writing the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['reviewee'], name='review_reviewee_idx'),
                    models.Index(fields=['reviewer'], name='review_reviewer_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('job', 'reviewer'), name='unique_review_per_job_reviewer'),
                ],
            },
        ),
        migrations.AddField(
            model_name='conversation',
            name='last_message',
            field=models.ForeignKey(blank=True, help_text='Most recent message in the conversation', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.message'),
        ),
        migrations.AddField(
            model_name='conversation',
            name='job',
            field=models.ForeignKey(blank=True, help_text='Job bound to this conversation', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.job'),
        ),
        migrations.AddField(
            model_name='job',
            name='seeker_review',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.review'),
        ),
        migrations.AddField(
            model_name='job',
            name='tasker_review',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.review'),
        ),
        migrations.CreateModel(
            name='SeekerProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.FloatField(default=0.0, help_text='Running average rating from 0 to 5', validators=[django.core.validators.MinValueValidator(0.0, message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(5.0, message='Rating cannot exceed 5.')], verbose_name='rating')),
                ('rating_count', models.PositiveIntegerField(default=0, help_text='Number of reviews folded into the rating', verbose_name='rating count')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the profile was last updated', verbose_name='updated at')),
                ('user', models.OneToOneField(help_text='Owner of this profile', on_delete=django.db.models.deletion.CASCADE, related_name='%(class)s', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'seeker profile',
                'verbose_name_plural': 'seeker profiles',
            },
        ),
        migrations.CreateModel(
            name='TaskerProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.FloatField(default=0.0, help_text='Running average rating from 0 to 5', validators=[django.core.validators.MinValueValidator(0.0, message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(5.0, message='Rating cannot exceed 5.')], verbose_name='rating')),
                ('rating_count', models.PositiveIntegerField(default=0, help_text='Number of reviews folded into the rating', verbose_name='rating count')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the profile was last updated', verbose_name='updated at')),
                ('user', models.OneToOneField(help_text='Owner of this profile', on_delete=django.db.models.deletion.CASCADE, related_name='%(class)s', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'tasker profile',
                'verbose_name_plural': 'tasker profiles',
            },
        ),
    ]
