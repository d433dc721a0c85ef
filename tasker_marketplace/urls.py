"""
URL configuration for tasker_marketplace project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView, TokenVerifyView

from core.views import (
    ConversationListCreateView,
    ConversationDetailView,
    ConversationReadView,
    MessageCreateView,
    ProposalCreateView,
    ProposalAcceptView,
    ProposalDeclineView,
    ProposalCounterView,
    ReviewCreateView,
    JobReviewsView,
    JobCanReviewView,
    UserReviewsView,
    UserReputationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Conversation endpoints
    path('api/conversations/', ConversationListCreateView.as_view(), name='conversation_list'),
    path('api/conversations/<int:pk>/', ConversationDetailView.as_view(), name='conversation_detail'),
    path('api/conversations/<int:pk>/read/', ConversationReadView.as_view(), name='conversation_read'),
    path('api/conversations/<int:pk>/messages/', MessageCreateView.as_view(), name='message_create'),
    path('api/conversations/<int:pk>/proposals/', ProposalCreateView.as_view(), name='proposal_create'),

    # Proposal endpoints
    path('api/proposals/<int:pk>/accept/', ProposalAcceptView.as_view(), name='proposal_accept'),
    path('api/proposals/<int:pk>/decline/', ProposalDeclineView.as_view(), name='proposal_decline'),
    path('api/proposals/<int:pk>/counter/', ProposalCounterView.as_view(), name='proposal_counter'),

    # Review endpoints
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
    path('api/jobs/<int:pk>/reviews/', JobReviewsView.as_view(), name='job_reviews'),
    path('api/jobs/<int:pk>/can-review/', JobCanReviewView.as_view(), name='job_can_review'),
    path('api/users/<int:pk>/reviews/', UserReviewsView.as_view(), name='user_reviews'),
    path('api/users/<int:pk>/reputation/', UserReputationView.as_view(), name='user_reputation'),

    # JWT endpoints (tokens are issued by the identity service)
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
]
