"""
Account views.

This module provides API views for:
- Registration (start, token check, verification)
- Tag and email availability checks
- Current user profile (read, partial edit, delete)
- Avatar upload and removal
- Public user preview
- Logout with access-token revocation

Related files:
    - serializers.py: Request/response serialization
    - services.py: Business logic (AccountService)
    - identity.py: Token revocation
    - urls.py: URL routing

Note:
    Login, token refresh, password change and password reset are handled
    by dj-rest-auth:
    - Login: /api/v1/auth/login/
    - Token refresh: /api/v1/auth/token/refresh/
    - Password change: /api/v1/auth/password/change/
    - Password reset: /api/v1/auth/password/reset/
"""

from dj_rest_auth.views import LogoutView as RestAuthLogoutView
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from accounts import identity
from accounts.models import User
from accounts.serializers import (
    AuthenticatedUserSerializer,
    AvailabilitySerializer,
    AvatarSerializer,
    CurrentUserSerializer,
    ProfileEditSerializer,
    RegisterSerializer,
    TokenValiditySerializer,
    UserPreviewSerializer,
    VerifyRegistrationSerializer,
)
from accounts.services import AccountService
from core.exceptions import NotFoundError


# =============================================================================
# Registration Views
# =============================================================================


class RegisterView(APIView):
    """
    Start a registration.

    POST: Store a pending registration and mail the verification link

    URL: /api/v1/accounts/register/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Start registration",
        description=(
            "Mail a verification link to the address. Registering again with "
            "the same address replaces the previous link."
        ),
        tags=["Accounts - Registration"],
        request=RegisterSerializer,
        responses={202: OpenApiResponse(description="Verification mail queued")},
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        AccountService.register(**serializer.validated_data).raise_for_error()

        return Response(
            {"detail": "Verification Mail Sent"},
            status=status.HTTP_202_ACCEPTED,
        )


class ValidateRegistrationTokenView(APIView):
    """
    GET: Whether a registration token is still usable

    URL: /api/v1/accounts/register/validate/{token}/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Check registration token",
        tags=["Accounts - Registration"],
        responses={200: TokenValiditySerializer},
    )
    def get(self, request, token):
        return Response({"valid": AccountService.validate_registration_token(token)})


class VerifyRegistrationView(APIView):
    """
    Complete a registration.

    POST: Create the user from a pending registration and log them in

    URL: /api/v1/accounts/register/verify/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Complete registration",
        description="Pick a name and a unique tag. Returns the user and a token pair.",
        tags=["Accounts - Registration"],
        request=VerifyRegistrationSerializer,
        responses={201: AuthenticatedUserSerializer},
    )
    def post(self, request):
        serializer = VerifyRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AccountService.verify(**serializer.validated_data).raise_for_error()
        refresh = RefreshToken.for_user(user)

        return Response(
            {
                "user": CurrentUserSerializer(user, context={"request": request}).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


class TagAvailabilityView(APIView):
    """GET: Whether a user tag is free (case-insensitive)."""

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Check tag availability",
        tags=["Accounts - Registration"],
        responses={200: AvailabilitySerializer},
    )
    def get(self, request, tag):
        return Response({"available": AccountService.tag_available(tag)})


class EmailAvailabilityView(APIView):
    """GET: Whether an email address can be registered."""

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Check email availability",
        tags=["Accounts - Registration"],
        responses={200: AvailabilitySerializer},
    )
    def get(self, request, email):
        return Response({"available": AccountService.email_available(email)})


# =============================================================================
# Profile & Account Management Views
# =============================================================================


class CurrentUserView(APIView):
    """
    API view for the authenticated user.

    GET: Full profile with email and chat ids
    PATCH: Partial profile edit (name, tag, description, locale)
    DELETE: Delete the account and the chats only it held together

    URL: /api/v1/accounts/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Accounts - Profile"],
        responses={200: CurrentUserSerializer},
    )
    def get(self, request):
        return Response(CurrentUserSerializer(request.user, context={"request": request}).data)

    @extend_schema(
        summary="Edit profile",
        description="Partial update. Contacts receive USER_EDIT.",
        tags=["Accounts - Profile"],
        request=ProfileEditSerializer,
        responses={200: CurrentUserSerializer},
    )
    def patch(self, request):
        serializer = ProfileEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AccountService.edit_profile(request.user, **serializer.validated_data).raise_for_error()

        return Response(CurrentUserSerializer(user, context={"request": request}).data)

    @extend_schema(
        summary="Delete account",
        description=(
            "Deletes the user, their private chats and the groups they own. "
            "Contacts receive USER_DELETE."
        ),
        tags=["Accounts - Profile"],
        responses={204: None},
    )
    def delete(self, request):
        AccountService.delete_account(request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)


class AvatarView(APIView):
    """
    POST: Upload or replace the avatar (JPEG/PNG)
    DELETE: Remove the avatar

    URL: /api/v1/accounts/me/avatar/
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        summary="Upload avatar",
        tags=["Accounts - Profile"],
        request=AvatarSerializer,
        responses={200: CurrentUserSerializer},
    )
    def post(self, request):
        serializer = AvatarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AccountService.set_avatar(request.user, serializer.validated_data["avatar"]).raise_for_error()

        return Response(CurrentUserSerializer(user, context={"request": request}).data)

    @extend_schema(
        summary="Delete avatar",
        tags=["Accounts - Profile"],
        responses={204: None},
    )
    def delete(self, request):
        AccountService.delete_avatar(request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserPreviewView(APIView):
    """
    GET: Public preview of a user (no email)

    URL: /api/v1/accounts/users/{id}/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Preview user",
        tags=["Accounts - Profile"],
        responses={200: UserPreviewSerializer},
    )
    def get(self, request, user_id):
        user = User.objects.filter(id=user_id, is_active=True).first()
        if user is None:
            raise NotFoundError("User Not Found")
        return Response(UserPreviewSerializer(user, context={"request": request}).data)


class LogoutView(RestAuthLogoutView):
    """
    Logout that also revokes the presented access token.

    dj-rest-auth blacklists the refresh token sent in the body; the access
    token used for this request is revoked here, so it stops working on
    REST and WebSocket connections before it expires.

    URL: /api/v1/accounts/logout/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Logout",
        description="Blacklist the refresh token in the body and revoke the access token.",
        tags=["Accounts - Auth"],
    )
    def post(self, request, *args, **kwargs):
        if request.auth is not None:
            identity.revoke(request.auth)
        return super().post(request, *args, **kwargs)
