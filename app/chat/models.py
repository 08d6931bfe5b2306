"""
Chat system models.

This module defines the data models for the chat system supporting:
- Private chats between exactly two users
- Public and private group chats with roles and admin permissions

Models:
    Chat: Container for members and messages
    PrivateChatPair: Enforces one private chat per unordered user pair
    ChatMember: A user's membership in a chat, with role and read position
    AdminPermission: Fine-grained capability held by an ADMIN member
    BannedMember: A user banned from a group chat
    MemberLog: Append-only join/leave audit trail
    Message: A message sent in a chat

Design Decisions:
    - Private chats are immutable once created (no joining/leaving)
    - Group chats use a three-tier role hierarchy: owner > admin > member
    - AdminPermission rows exist only while their member is ADMIN
    - A (chat, user) pair is a member, a banned non-member, or neither
    - Locking is done on the Chat row (select_for_update), see services.py
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Count, F, Q
from django.db.models.functions import Lower
from django.utils import timezone

from accounts.models import validate_tag_format
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ChatKind(models.TextChoices):
    """
    Kind of chat.

    PRIVATE: Exactly two members, no name or tag, immutable membership
    PUBLIC_GROUP: Listed in search, anyone not banned can join
    PRIVATE_GROUP: Not listed, details only visible to members
    """

    PRIVATE = "PRIVATE", "Private"
    PUBLIC_GROUP = "PUBLIC_GROUP", "Public group"
    PRIVATE_GROUP = "PRIVATE_GROUP", "Private group"


class MemberRole(models.TextChoices):
    """
    Role within a chat.

    Hierarchy: OWNER > ADMIN > MEMBER

    OWNER: Every permission, exactly one per group chat
    ADMIN: Only the permissions granted through AdminPermission
    MEMBER: No moderation rights

    Both members of a private chat are MEMBER.
    """

    OWNER = "OWNER", "Owner"
    ADMIN = "ADMIN", "Admin"
    MEMBER = "MEMBER", "Member"


class Permission(models.TextChoices):
    """Capabilities that can be granted to an ADMIN member."""

    KICK = "KICK", "Kick members"
    BAN = "BAN", "Ban members"
    UNBAN = "UNBAN", "Unban users"
    CHAT_EDIT = "CHAT_EDIT", "Edit chat"
    MEMBER_EDIT = "MEMBER_EDIT", "Edit members"


class ChatQuerySet(models.QuerySet):
    def for_user(self, user_id):
        """Chats the user is a member of."""
        return self.filter(
            id__in=ChatMember.objects.filter(user_id=user_id).values("chat_id")
        )

    def with_stats(self):
        """Annotate member count (size) and online member count (online)."""
        return self.annotate(
            size=Count("members", distinct=True),
            online=Count(
                "members",
                filter=Q(members__user__online=True),
                distinct=True,
            ),
        )


class Chat(UUIDPrimaryKeyMixin, BaseModel):
    """
    A private or group chat.

    Fields:
        kind: PRIVATE, PUBLIC_GROUP or PRIVATE_GROUP
        name: Display name (empty for private chats)
        tag: Public handle, unique ignoring case (null for private chats)
        description: Free-text description
    """

    kind = models.CharField(
        max_length=20,
        choices=ChatKind.choices,
        db_index=True,
        help_text="Private chat or public/private group",
    )
    name = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Group name",
    )
    tag = models.CharField(
        max_length=30,
        null=True,
        blank=True,
        validators=[validate_tag_format],
        help_text="Group handle, unique ignoring case",
    )
    description = models.CharField(
        max_length=300,
        blank=True,
        default="",
        help_text="Group description",
    )

    objects = ChatQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                Lower("tag"),
                condition=Q(tag__isnull=False),
                name="unique_chat_tag_case_insensitive",
            ),
        ]

    def __str__(self) -> str:
        if self.is_private:
            return f"Private chat {self.id}"
        return f"{self.name} (@{self.tag})"

    @property
    def is_private(self) -> bool:
        return self.kind == ChatKind.PRIVATE

    @property
    def is_group(self) -> bool:
        return self.kind != ChatKind.PRIVATE


class PrivateChatPair(models.Model):
    """
    Enforces uniqueness of private chats between two users.

    Stores the pair in canonical order (lower user id first) so that the
    unique constraint holds regardless of who created the chat.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One private chat per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    chat = models.OneToOneField(
        Chat,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="private_pair",
        help_text="The private chat this pair represents",
    )
    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with the lower id",
    )
    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with the higher id",
    )

    class Meta:
        db_table = "chat_private_chat_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_private_chat_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="private_pair_user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"PrivatePair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id, user_b_id) -> tuple:
        """Order two user ids the way they are stored."""
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class ChatMemberQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def contact_ids(self, user_id) -> set:
        """
        Ids of every other member across every chat the user belongs to.

        This is the recipient set for user-scoped events (profile edits,
        account deletion, presence).
        """
        chat_ids = self.for_user(user_id).values("chat_id")
        return set(
            self.filter(chat_id__in=chat_ids)
            .exclude(user_id=user_id)
            .values_list("user_id", flat=True)
            .distinct()
        )


class ChatMember(BaseModel):
    """
    A user's membership in a chat.

    Fields:
        chat: The chat
        user: The member
        role: OWNER, ADMIN or MEMBER
        joined_at: When the membership started
        last_read_at: Read position, only moves forward
        promoted_at: When the member became ADMIN (null otherwise)
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    role = models.CharField(
        max_length=10,
        choices=MemberRole.choices,
        default=MemberRole.MEMBER,
    )
    joined_at = models.DateTimeField(default=timezone.now)
    last_read_at = models.DateTimeField(default=timezone.now)
    promoted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set while the member holds the ADMIN role",
    )

    objects = ChatMemberQuerySet.as_manager()

    class Meta:
        ordering = ["joined_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_chat_member",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.chat_id} ({self.role})"

    @property
    def is_owner(self) -> bool:
        return self.role == MemberRole.OWNER

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


class AdminPermission(models.Model):
    """A single permission held by an ADMIN member of a chat."""

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="admin_permissions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    permission = models.CharField(max_length=20, choices=Permission.choices)
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user", "permission"],
                name="unique_admin_permission",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.permission} for {self.user_id} in {self.chat_id}"


class BannedMember(models.Model):
    """A user banned from a group chat. Never coexists with a ChatMember row."""

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="bans",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bans",
    )
    banned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-banned_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_banned_member",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} banned from {self.chat_id}"


class MemberLog(models.Model):
    """
    Append-only join/leave record.

    One row is written for every membership grant (including the initial
    members at chat creation) and every membership end (leave, kick, ban).
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="member_logs",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    joined = models.BooleanField()
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["timestamp"]

    def __str__(self) -> str:
        action = "joined" if self.joined else "left"
        return f"{self.user_id} {action} {self.chat_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Member log entries cannot be modified")
        super().save(*args, **kwargs)


class Message(UUIDPrimaryKeyMixin, models.Model):
    """
    A message in a chat.

    Fields:
        chat: The chat the message belongs to
        sender: Author, the only user allowed to edit it
        text: Body
        created_at: When it was sent, the history cursor
        edited: Number of text changes
        edited_at: When the text last changed
        pinned: Pinned flag
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    edited = models.PositiveIntegerField(default=0)
    edited_at = models.DateTimeField(null=True, blank=True)
    pinned = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["chat", "-created_at"],
                name="chat_message_history_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"Message({self.id}): {preview}"
