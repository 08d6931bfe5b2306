"""
URL configuration for huddle.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /password/reset/confirm/{uid}/{token}/ - Redirect to the frontend reset form
    /api/v1/auth/                  - dj-rest-auth (login, token refresh, password change/reset)
    /api/v1/accounts/              - Registration, profile, avatar, logout
        register/                  - Start a registration
        register/validate/{token}/ - Check a registration token
        register/verify/           - Complete a registration
        check/tag/{tag}/           - Tag availability
        check/email/{email}/       - Email availability
        me/                        - Current user (GET/PATCH/DELETE)
        me/avatar/                 - Avatar upload/delete
        users/{id}/                - Public user preview
        logout/                    - Revoke refresh and access tokens
    /api/v1/chats/                 - Chats, membership and messages
        private/                   - Create a private chat
        group/                     - Create a group chat
        {id}/                      - Chat detail/edit/delete
        {id}/preview/              - Public chat preview
        {id}/join/, {id}/leave/    - Membership
        {id}/ban/, {id}/unban/, {id}/kick/ - Moderation
        {id}/members/              - Role and permission edits
        {id}/messages/             - Message history/send
        {id}/read/                 - Move the read marker
        messages/{id}/             - Message edit
    /api/v1/search/                - Search users and public groups
    ws/events/                     - WebSocket endpoint (see chat.routing)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check, password_reset_confirm

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (dj-rest-auth)
    path("auth/", include("dj_rest_auth.urls")),
    # Registration, profile and avatar
    path("accounts/", include("accounts.urls")),
    # Chats and search
    path("", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Password reset email link, redirected to the frontend reset form
    path(
        "password/reset/confirm/<uidb64>/<token>/",
        password_reset_confirm,
        name="password_reset_confirm",
    ),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Huddle Admin"
admin.site.site_title = "Huddle Admin Portal"
admin.site.index_title = "Accounts and chats"
