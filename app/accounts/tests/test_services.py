"""
Tests for AccountService.

Covers registration (register, token validation, verification), the
availability checks, profile and avatar edits, and account deletion.

Fan-out is checked by patching chat.router.EventRouter where only the call
matters; the recipient rules themselves are tested in chat/tests/test_router.py.
"""

from unittest.mock import patch

from django.contrib.auth.hashers import check_password
from django.core.files.uploadedfile import SimpleUploadedFile

from accounts.models import PendingUser, User
from accounts.services import AccountService
from accounts.tests.factories import PendingUserFactory, UserFactory
from chat.events import ChatEvent
from chat.models import Chat, ChatKind, ChatMember
from chat.services import ChatService, MembershipService

# Smallest valid PNG (1x1 transparent pixel)
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


def png_upload(name="avatar.png"):
    return SimpleUploadedFile(name, PNG_BYTES, content_type="image/png")


# =============================================================================
# Registration
# =============================================================================


class TestRegister:
    def test_creates_pending_user_with_hashed_password(self, db):
        """
        Only the password hash is stored.

        Why it matters: Pending rows may sit in the database for days.
        """
        result = AccountService.register("new@example.com", "Secret123!")

        assert result.success is True
        pending = PendingUser.objects.get(email="new@example.com")
        assert pending.password != "Secret123!"
        assert check_password("Secret123!", pending.password)

    def test_sends_verification_mail_after_commit(
        self, db, mailoutbox, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            result = AccountService.register("new@example.com", "Secret123!")

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ["new@example.com"]
        assert result.data.token in mailoutbox[0].body

    def test_registering_again_replaces_pending_row(self, db):
        """
        Why it matters: A user who lost the first mail must be able to ask
        for a new link; the old token stops working.
        """
        first = AccountService.register("new@example.com", "Secret123!").data
        second = AccountService.register("new@example.com", "Other123!").data

        assert PendingUser.objects.filter(email="new@example.com").count() == 1
        assert first.token != second.token
        assert AccountService.validate_registration_token(first.token) is False

    def test_fails_when_mail_is_taken(self, db):
        UserFactory(email="taken@example.com")

        result = AccountService.register("taken@example.com", "Secret123!")

        assert result.success is False
        assert result.error_code == "CONFLICT"
        assert result.error == "Mail Has To Be Unique"
        assert not PendingUser.objects.exists()


class TestValidateRegistrationToken:
    def test_live_token_is_valid(self, db):
        pending = PendingUserFactory()
        assert AccountService.validate_registration_token(pending.token) is True

    def test_expired_token_is_invalid(self, db):
        pending = PendingUserFactory(expired=True)
        assert AccountService.validate_registration_token(pending.token) is False

    def test_unknown_token_is_invalid(self, db):
        assert AccountService.validate_registration_token("nope") is False


class TestVerify:
    def test_creates_user_and_consumes_pending_row(self, db):
        pending = PendingUserFactory(email="ada@example.com")

        result = AccountService.verify(pending.token, name="Ada", tag="ada", locale="de")

        assert result.success is True
        user = result.data
        assert user.email == "ada@example.com"
        assert user.tag == "ada"
        assert user.locale == "de"
        assert user.check_password("TestPass123!")
        assert not PendingUser.objects.filter(id=pending.id).exists()

    def test_expired_token_fails(self, db):
        pending = PendingUserFactory(expired=True)

        result = AccountService.verify(pending.token, name="Ada", tag="ada")

        assert result.error_code == "BAD_REQUEST"
        assert result.error == "Invalid Registration Token"
        assert not User.objects.filter(tag="ada").exists()

    def test_tag_taken_ignoring_case_fails(self, db):
        """
        Why it matters: Tags are how users find each other; "Ada" and "ada"
        must not both exist.
        """
        UserFactory(tag="Ada")
        pending = PendingUserFactory()

        result = AccountService.verify(pending.token, name="Ada", tag="ada")

        assert result.error_code == "CONFLICT"
        assert result.error == "Tag Has To Be Unique"
        assert PendingUser.objects.filter(id=pending.id).exists()


class TestAvailability:
    def test_tag_availability_ignores_case(self, db):
        UserFactory(tag="Grace")

        assert AccountService.tag_available("grace") is False
        assert AccountService.tag_available("hopper") is True

    def test_email_held_by_live_registration_is_unavailable(self, db):
        PendingUserFactory(email="pending@example.com")

        assert AccountService.email_available("pending@example.com") is False

    def test_email_of_expired_registration_is_available(self, db):
        PendingUserFactory(email="old@example.com", expired=True)

        assert AccountService.email_available("old@example.com") is True


# =============================================================================
# Profile
# =============================================================================


class TestEditProfile:
    def test_updates_only_given_fields(self, db):
        user = UserFactory(name="Ada", description="old")

        result = AccountService.edit_profile(user, description="new", name=None)

        user.refresh_from_db()
        assert result.success is True
        assert user.name == "Ada"
        assert user.description == "new"

    def test_tag_change_rechecks_uniqueness(self, db):
        UserFactory(tag="taken")
        user = UserFactory()

        result = AccountService.edit_profile(user, tag="TAKEN")

        assert result.error_code == "CONFLICT"

    def test_keeping_own_tag_with_other_case_is_allowed(self, db):
        user = UserFactory(tag="ada")

        result = AccountService.edit_profile(user, tag="Ada")

        assert result.success is True

    def test_notifies_contacts_with_user_edit(self, db):
        user = UserFactory()

        with patch("accounts.services.EventRouter.to_contacts") as to_contacts:
            AccountService.edit_profile(user, name="Renamed")

        to_contacts.assert_called_once()
        user_id, event = to_contacts.call_args.args
        assert user_id == user.id
        assert event.name == ChatEvent.USER_EDIT
        assert event.data["name"] == "Renamed"


class TestAvatar:
    def test_set_avatar_stores_file(self, db):
        user = UserFactory()

        result = AccountService.set_avatar(user, png_upload())

        assert result.success is True
        assert user.avatar.name.startswith("avatars/")

    def test_set_avatar_replaces_previous_file(self, db):
        user = UserFactory()
        AccountService.set_avatar(user, png_upload("first.png"))

        AccountService.set_avatar(user, png_upload("second.png"))

        # The storage would pick a suffixed name if the old file were still there
        assert user.avatar.name == f"avatars/{user.id}.png"
        assert user.avatar.storage.exists(user.avatar.name)

    def test_delete_avatar_without_avatar_fails(self, db):
        user = UserFactory()

        result = AccountService.delete_avatar(user)

        assert result.error_code == "NOT_FOUND"
        assert result.error == "Avatar Not Found"

    def test_delete_avatar_clears_field(self, db):
        user = UserFactory()
        AccountService.set_avatar(user, png_upload())

        result = AccountService.delete_avatar(user)

        user.refresh_from_db()
        assert result.success is True
        assert not user.avatar


# =============================================================================
# Account deletion
# =============================================================================


class TestDeleteAccount:
    def test_deletes_private_chats_and_owned_groups_only(self, db):
        """
        Why it matters: Chats the user held together must not outlive them,
        but groups owned by others keep running without the user.
        """
        user = UserFactory()
        friend = UserFactory()
        other_owner = UserFactory()

        private = ChatService.create_private(user, friend.id).data
        owned = ChatService.create_group(user, name="Mine", tag="mine").data
        foreign = ChatService.create_group(other_owner, name="Theirs", tag="theirs").data
        MembershipService.join(foreign.id, user)

        result = AccountService.delete_account(user)

        assert result.success is True
        assert not User.objects.filter(id=user.id).exists()
        assert not Chat.objects.filter(id__in=[private.id, owned.id]).exists()
        assert Chat.objects.filter(id=foreign.id).exists()
        assert not ChatMember.objects.filter(chat=foreign, user_id=user.id).exists()

    def test_notifies_former_contacts(self, db):
        user = UserFactory()
        friend = UserFactory()
        ChatService.create_private(user, friend.id)
        user_id = user.id

        with patch("accounts.services.EventRouter.to_contacts") as to_contacts:
            AccountService.delete_account(user)

        to_contacts.assert_called_once()
        assert to_contacts.call_args.args[0] == user_id
        assert to_contacts.call_args.args[1].name == ChatEvent.USER_DELETE
        assert to_contacts.call_args.kwargs["contact_ids"] == {friend.id}

    def test_deleting_user_without_chats_succeeds(self, db):
        user = UserFactory()

        result = AccountService.delete_account(user)

        assert result.success is True
        assert not Chat.objects.filter(kind=ChatKind.PRIVATE).exists()
