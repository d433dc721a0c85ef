"""
Django admin configuration for the negotiation core.

Ledger rows (messages, proposals, reviews) are append-only, so their admin
pages are read-only. Profile ratings are maintained by the review
aggregator and the recalculate_ratings command.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import (
    User,
    SeekerProfile,
    TaskerProfile,
    Category,
    Conversation,
    Message,
    Proposal,
    Job,
    Review,
)


class ReadOnlyAdminMixin:
    """Disallow add, change and delete for append-only records."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the timestamp fields.
    """

    list_display = [
        'email',
        'username',
        'first_name',
        'last_name',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = ['is_staff', 'is_superuser', 'is_active', 'created_at']

    search_fields = ['email', 'username', 'first_name', 'last_name']

    ordering = ['-created_at']

    fieldsets = BaseUserAdmin.fieldsets + (
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'password1', 'password2'),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    list_per_page = 25


@admin.register(SeekerProfile, TaskerProfile)
class ReputationProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'rating', 'rating_count', 'updated_at']
    search_fields = ['user__email', 'user__username']
    readonly_fields = ['rating', 'rating_count', 'updated_at']
    raw_id_fields = ['user']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name']
    search_fields = ['name']


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    can_delete = False
    fields = ['created_at', 'sender', 'kind', 'content', 'system_event']
    readonly_fields = fields
    ordering = ['created_at', 'id']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'seeker',
        'tasker',
        'last_message_at',
        'last_message_preview',
        'seeker_unread_count',
        'tasker_unread_count',
        'job',
    ]
    search_fields = ['seeker__email', 'tasker__email']
    readonly_fields = [
        'pair_key',
        'last_message',
        'last_message_at',
        'last_message_preview',
        'last_message_sender',
        'seeker_unread_count',
        'tasker_unread_count',
        'seeker_last_read_at',
        'tasker_last_read_at',
        'job',
        'created_at',
        'updated_at',
    ]
    raw_id_fields = ['seeker', 'tasker']
    inlines = [MessageInline]
    date_hierarchy = 'last_message_at'


@admin.register(Message)
class MessageAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['id', 'conversation', 'sender', 'kind', 'system_event', 'created_at']
    list_filter = ['kind', 'system_event']
    search_fields = ['content']


@admin.register(Proposal)
class ProposalAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        'id',
        'conversation',
        'sender',
        'receiver',
        'rate',
        'rate_type',
        'status',
        'previous_proposal',
        'counter_proposal',
        'created_at',
    ]
    list_filter = ['status', 'rate_type']


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Status and completion time are advanced by operations staff."""

    list_display = ['id', 'seeker', 'tasker', 'category_name', 'rate', 'rate_type', 'status', 'completed_at']
    list_filter = ['status', 'rate_type']
    readonly_fields = [
        'seeker',
        'tasker',
        'proposal',
        'rate',
        'rate_type',
        'start_time',
        'description',
        'seeker_review',
        'tasker_review',
        'created_at',
        'updated_at',
    ]


@admin.register(Review)
class ReviewAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['id', 'job', 'reviewer', 'reviewee', 'rating', 'created_at']
    list_filter = ['rating']
    search_fields = ['reviewer__email', 'reviewee__email', 'text']
