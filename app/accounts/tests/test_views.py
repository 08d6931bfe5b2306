"""
Tests for account API endpoints.

Endpoints tested:
- POST /api/v1/accounts/register/
- GET /api/v1/accounts/register/validate/{token}/
- POST /api/v1/accounts/register/verify/
- GET /api/v1/accounts/check/tag/{tag}/, check/email/{email}/
- GET/PATCH/DELETE /api/v1/accounts/me/
- POST/DELETE /api/v1/accounts/me/avatar/
- GET /api/v1/accounts/users/{id}/
- POST /api/v1/accounts/logout/
"""

from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from accounts.models import PendingUser, User
from accounts.tests.factories import PendingUserFactory, UserFactory
from accounts.tests.test_services import PNG_BYTES
from chat.services import ChatService


# =============================================================================
# URL Helpers
# =============================================================================


def register_url():
    return "/api/v1/accounts/register/"


def validate_url(token):
    return f"/api/v1/accounts/register/validate/{token}/"


def verify_url():
    return "/api/v1/accounts/register/verify/"


def me_url():
    return "/api/v1/accounts/me/"


def avatar_url():
    return "/api/v1/accounts/me/avatar/"


def preview_url(user_id):
    return f"/api/v1/accounts/users/{user_id}/"


def logout_url():
    return "/api/v1/accounts/logout/"


# =============================================================================
# Registration
# =============================================================================


class TestRegisterView:
    def test_register_accepts_and_stores_pending_user(self, db, api_client):
        response = api_client.post(
            register_url(),
            {"email": "new@example.com", "password": "Str0ng-Passw0rd"},
            format="json",
        )

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert PendingUser.objects.filter(email="new@example.com").exists()

    def test_register_with_taken_mail_is_conflict(self, db, api_client):
        UserFactory(email="taken@example.com")

        response = api_client.post(
            register_url(),
            {"email": "taken@example.com", "password": "Str0ng-Passw0rd"},
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data == {
            "statusCode": 409,
            "message": "Mail Has To Be Unique",
            "error": "Conflict",
        }

    def test_register_with_invalid_mail_is_bad_request(self, db, api_client):
        response = api_client.post(
            register_url(),
            {"email": "nope", "password": "Str0ng-Passw0rd"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error"] == "Bad Request"


class TestVerifyView:
    def test_validate_reports_token_state(self, db, api_client):
        pending = PendingUserFactory()

        assert api_client.get(validate_url(pending.token)).data == {"valid": True}
        assert api_client.get(validate_url("unknown")).data == {"valid": False}

    def test_verify_returns_user_and_tokens(self, db, api_client):
        """
        Why it matters: Verification logs the user in; the client gets a
        token pair without a separate login call.
        """
        pending = PendingUserFactory(email="ada@example.com")

        response = api_client.post(
            verify_url(),
            {"token": pending.token, "name": "Ada", "tag": "ada"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["user"]["tag"] == "ada"
        assert response.data["user"]["email"] == "ada@example.com"
        assert response.data["access"]
        assert response.data["refresh"]

    def test_verify_rejects_malformed_tag(self, db, api_client):
        pending = PendingUserFactory()

        response = api_client.post(
            verify_url(),
            {"token": pending.token, "name": "Ada", "tag": "a b"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["message"].startswith("Tag:")


class TestAvailabilityViews:
    def test_tag_check(self, db, api_client):
        UserFactory(tag="taken")

        assert api_client.get("/api/v1/accounts/check/tag/TAKEN/").data == {"available": False}
        assert api_client.get("/api/v1/accounts/check/tag/free/").data == {"available": True}

    def test_email_check(self, db, api_client):
        UserFactory(email="taken@example.com")

        response = api_client.get("/api/v1/accounts/check/email/taken@example.com/")

        assert response.data == {"available": False}


# =============================================================================
# Current user
# =============================================================================


class TestCurrentUserView:
    def test_requires_authentication(self, db, api_client):
        response = api_client.get(me_url())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["statusCode"] == 401

    def test_get_includes_email_and_chat_ids(self, user, auth_client):
        friend = UserFactory()
        chat = ChatService.create_private(user, friend.id).data

        response = auth_client.get(me_url())

        assert response.status_code == status.HTTP_200_OK
        assert response.data["email"] == user.email
        assert response.data["chats"] == [str(chat.id)]

    def test_patch_edits_profile(self, user, auth_client):
        response = auth_client.patch(me_url(), {"description": "Hello"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["description"] == "Hello"
        assert response.data["name"] == "Ada"

    def test_patch_without_fields_is_bad_request(self, user, auth_client):
        response = auth_client.patch(me_url(), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["message"] == "No Arguments Provided"

    def test_delete_removes_account(self, user, auth_client):
        response = auth_client.delete(me_url())

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not User.objects.filter(id=user.id).exists()


class TestAvatarView:
    def test_upload_png(self, user, auth_client):
        upload = SimpleUploadedFile("me.png", PNG_BYTES, content_type="image/png")

        response = auth_client.post(avatar_url(), {"avatar": upload}, format="multipart")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["avatar"].endswith(f"avatars/{user.id}.png")

    def test_rejects_other_extensions(self, user, auth_client):
        upload = SimpleUploadedFile("me.gif", PNG_BYTES, content_type="image/gif")

        response = auth_client.post(avatar_url(), {"avatar": upload}, format="multipart")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_without_avatar_is_not_found(self, user, auth_client):
        response = auth_client.delete(avatar_url())

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["message"] == "Avatar Not Found"


class TestUserPreviewView:
    def test_public_preview_hides_email(self, db, api_client):
        other = UserFactory(tag="grace")

        response = api_client.get(preview_url(other.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["tag"] == "grace"
        assert "email" not in response.data

    def test_unknown_user_is_not_found(self, db, api_client):
        response = api_client.get(preview_url("00000000-0000-0000-0000-000000000000"))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestLogoutView:
    def test_logout_revokes_access_token(self, user, tokens, auth_client):
        """
        Why it matters: A stolen access token must not outlive the session
        it belonged to.
        """
        response = auth_client.post(logout_url(), {"refresh": tokens["refresh"]}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert auth_client.get(me_url()).status_code == status.HTTP_401_UNAUTHORIZED
