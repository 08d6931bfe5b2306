"""
URL configuration for accounts app.

URL structure:
    /api/v1/accounts/register/                 - Start a registration
    /api/v1/accounts/register/validate/<token>/ - Check a registration token
    /api/v1/accounts/register/verify/          - Complete a registration
    /api/v1/accounts/check/tag/<tag>/          - Tag availability
    /api/v1/accounts/check/email/<email>/      - Email availability
    /api/v1/accounts/me/                       - Current user (GET/PATCH/DELETE)
    /api/v1/accounts/me/avatar/                - Avatar (POST/DELETE)
    /api/v1/accounts/users/<uuid>/             - Public user preview
    /api/v1/accounts/logout/                   - Logout and revoke tokens

Note:
    Login, token refresh and password endpoints come from dj-rest-auth,
    included under /api/v1/auth/ in config/urls.py.
"""

from django.urls import path

from accounts.views import (
    AvatarView,
    CurrentUserView,
    EmailAvailabilityView,
    LogoutView,
    RegisterView,
    TagAvailabilityView,
    UserPreviewView,
    ValidateRegistrationTokenView,
    VerifyRegistrationView,
)

app_name = "accounts"

urlpatterns = [
    # Registration
    path("register/", RegisterView.as_view(), name="register"),
    path(
        "register/validate/<str:token>/",
        ValidateRegistrationTokenView.as_view(),
        name="register-validate",
    ),
    path("register/verify/", VerifyRegistrationView.as_view(), name="register-verify"),
    # Availability
    path("check/tag/<str:tag>/", TagAvailabilityView.as_view(), name="check-tag"),
    path("check/email/<str:email>/", EmailAvailabilityView.as_view(), name="check-email"),
    # Current user
    path("me/", CurrentUserView.as_view(), name="me"),
    path("me/avatar/", AvatarView.as_view(), name="avatar"),
    # Public
    path("users/<uuid:user_id>/", UserPreviewView.as_view(), name="user-preview"),
    # Session
    path("logout/", LogoutView.as_view(), name="logout"),
]
