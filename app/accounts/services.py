"""
Account services.

This module provides the AccountService class for registration, profile
management, avatars and account deletion.

Related files:
    - models.py: User, PendingUser
    - tasks.py: Registration mail, cleanup of expired rows
    - identity.py: Token resolution and revocation
    - chat/router.py: USER_EDIT / USER_DELETE fan-out to contacts

Security:
    - Pending registrations store only the password hash
    - Registration tokens are cryptographically random (32 bytes)
    - Token expiration enforced on verification
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.contrib.auth.hashers import make_password
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.models import PendingUser, User
from accounts.tasks import send_registration_email
from chat import events
from chat.models import Chat, ChatKind, ChatMember, MemberRole
from chat.router import EventRouter
from chat.services import ChatService
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile


class AccountService(BaseService):
    """
    Centralized account business logic.

    Usage:
        from accounts.services import AccountService

        # Registration: mail, then verification with name and tag
        AccountService.register("a@example.com", "secret-password")
        user = AccountService.verify(token, name="Ada", tag="ada").raise_for_error()

        # Profile
        AccountService.edit_profile(user, description="Hi!")
    """

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @classmethod
    def register(cls, email: str, password: str) -> ServiceResult[PendingUser]:
        """
        Start a registration and mail the verification link.

        Registering again with the same mail replaces the earlier pending
        registration (new token, new expiry).

        Error codes:
            CONFLICT: A user already owns the mail
        """
        email = User.objects.normalize_email(email)
        if User.objects.filter(email__iexact=email).exists():
            return cls.fail("Mail Has To Be Unique", "CONFLICT")

        with transaction.atomic():
            PendingUser.objects.filter(email__iexact=email).delete()
            pending = PendingUser.objects.create(
                email=email,
                password=make_password(password),
            )
            transaction.on_commit(lambda: send_registration_email.delay(str(pending.id)))

        cls.get_logger().info(f"Pending registration {pending.id} created for {email}")
        return ServiceResult.success(pending)

    @classmethod
    def validate_registration_token(cls, token: str) -> bool:
        """Whether a registration token exists and has not expired."""
        pending = PendingUser.objects.filter(token=token).first()
        return pending is not None and not pending.is_expired

    @classmethod
    def verify(
        cls,
        token: str,
        name: str,
        tag: str,
        description: str = "",
        locale: str | None = None,
    ) -> ServiceResult[User]:
        """
        Finish a registration: create the user from the pending row.

        Error codes:
            BAD_REQUEST: Token unknown or expired
            CONFLICT: Tag or mail already taken
        """
        pending = PendingUser.objects.filter(token=token).first()
        if pending is None or pending.is_expired:
            return cls.fail("Invalid Registration Token", "BAD_REQUEST")
        if User.objects.tag_taken(tag):
            return cls.fail("Tag Has To Be Unique", "CONFLICT")
        if User.objects.filter(email__iexact=pending.email).exists():
            return cls.fail("Mail Has To Be Unique", "CONFLICT")

        extra = {"name": name, "tag": tag, "description": description or ""}
        if locale:
            extra["locale"] = locale

        try:
            with transaction.atomic():
                user = User.objects.create_user_with_hash(
                    pending.email,
                    pending.password,
                    **extra,
                )
                pending.delete()
        except IntegrityError:
            return cls.fail("Tag Has To Be Unique", "CONFLICT")

        cls.get_logger().info(f"Registration verified, created user {user.id} (@{user.tag})")
        return ServiceResult.success(user)

    @classmethod
    def tag_available(cls, tag: str) -> bool:
        return not User.objects.tag_taken(tag)

    @classmethod
    def email_available(cls, email: str) -> bool:
        """A mail is available if no user owns it and no live registration holds it."""
        if User.objects.filter(email__iexact=email).exists():
            return False
        return not PendingUser.objects.filter(
            Q(email__iexact=email) & Q(expires_at__gt=timezone.now())
        ).exists()

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    @classmethod
    def edit_profile(cls, user: User, **changes) -> ServiceResult[User]:
        """
        Partially update a profile and notify contacts with USER_EDIT.

        Only name, tag, description and locale are editable; keys that are
        missing or None are left unchanged.

        Error codes:
            CONFLICT: New tag already taken by another user
        """
        fields = {
            key: value
            for key, value in changes.items()
            if key in ("name", "tag", "description", "locale") and value is not None
        }

        if "tag" in fields and User.objects.tag_taken(fields["tag"], exclude_id=user.id):
            return cls.fail("Tag Has To Be Unique", "CONFLICT")

        for key, value in fields.items():
            setattr(user, key, value)
        try:
            with transaction.atomic():
                user.save(update_fields=[*fields, "updated_at"])
        except IntegrityError:
            return cls.fail("Tag Has To Be Unique", "CONFLICT")

        cls.get_logger().info(f"User {user.id} edited profile fields {sorted(fields)}")

        EventRouter.to_contacts(user.id, events.user_edit(user))
        return ServiceResult.success(user)

    @classmethod
    def set_avatar(cls, user: User, file: UploadedFile) -> ServiceResult[User]:
        """Replace the user's avatar. File type and size are validated by the serializer."""
        if user.avatar:
            user.avatar.delete(save=False)
        user.avatar = file
        user.save(update_fields=["avatar", "updated_at"])

        cls.get_logger().info(f"User {user.id} uploaded avatar {user.avatar.name}")

        EventRouter.to_contacts(user.id, events.user_edit(user))
        return ServiceResult.success(user)

    @classmethod
    def delete_avatar(cls, user: User) -> ServiceResult[User]:
        """
        Error codes:
            NOT_FOUND: User has no avatar
        """
        if not user.avatar:
            return cls.fail("Avatar Not Found", "NOT_FOUND")

        user.avatar.delete(save=False)
        user.avatar = None
        user.save(update_fields=["avatar", "updated_at"])

        cls.get_logger().info(f"User {user.id} deleted avatar")

        EventRouter.to_contacts(user.id, events.user_edit(user))
        return ServiceResult.success(user)

    @classmethod
    def delete_account(cls, user: User) -> ServiceResult[None]:
        """
        Delete a user and everything only they held together.

        Private chats and groups the user owns are deleted first (each fans
        out CHAT_DELETE). The remaining memberships cascade with the user
        row. Former contacts then receive USER_DELETE.
        """
        user_id = user.id
        contact_ids = ChatMember.objects.contact_ids(user_id)

        doomed = Chat.objects.filter(
            Q(kind=ChatKind.PRIVATE, members__user_id=user_id)
            | Q(members__user_id=user_id, members__role=MemberRole.OWNER)
        ).values_list("id", flat=True)
        for chat_id in list(doomed.distinct()):
            ChatService.delete_chat(chat_id, user).raise_for_error()

        if user.avatar:
            user.avatar.delete(save=False)
        user.delete()

        cls.get_logger().info(f"Deleted user {user_id}, notifying {len(contact_ids)} contacts")

        EventRouter.to_contacts(user_id, events.user_delete(user_id), contact_ids=contact_ids)
        return ServiceResult.success(None)
