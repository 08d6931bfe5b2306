"""
Chat system service layer.

This module holds the membership and permission state machine. Every
operation validates its preconditions against freshly read state, performs
its mutation in one transaction, and only then hands events to the router.

Services:
    ChatService: Chat lifecycle (create private/group, edit, delete, reads)
    MembershipService: Join, leave, ban, unban, kick and role edits
    MessageService: Send, edit, mark read and message history

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() via cls.fail()
    - Unexpected failures raise exceptions
    - Read-check-write sequences lock the Chat row with select_for_update(),
      which serializes concurrent operations on the same chat
    - Fan-out happens after the transaction, never inside it
    - Services never touch sockets or the connection registry; they call
      chat.router.EventRouter

Error codes:
    BAD_REQUEST, UNAUTHORIZED, FORBIDDEN, NOT_FOUND, CONFLICT
    (see core.exceptions for the HTTP mapping)

Usage:
    from chat.services import ChatService, MembershipService, MessageService

    chat = ChatService.create_group(
        owner, name="Team", tag="team1"
    ).raise_for_error()

    MembershipService.join(chat.id, user_b)
    MembershipService.edit_role(
        chat.id, owner, user_b.id, MemberRole.ADMIN, [Permission.KICK]
    )
    MembershipService.kick(chat.id, user_c.id, user_b)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.models import User
from chat import events
from chat.constants import MESSAGE_CONFIG
from chat.models import (
    AdminPermission,
    BannedMember,
    Chat,
    ChatKind,
    ChatMember,
    MemberLog,
    MemberRole,
    Message,
    Permission,
    PrivateChatPair,
)
from chat.router import EventRouter
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from django.db.models import QuerySet


# =============================================================================
# Permission resolution
# =============================================================================


def has_permission(member: ChatMember, permission: str) -> bool:
    """
    Whether a member may perform an action guarded by a permission.

    OWNER always may, MEMBER never may, ADMIN may when it holds the
    permission. Looked up fresh on every call; permission sets change
    between requests.
    """
    if member.role == MemberRole.OWNER:
        return True
    if member.role == MemberRole.MEMBER:
        return False
    return AdminPermission.objects.filter(
        chat_id=member.chat_id,
        user_id=member.user_id,
        permission=permission,
    ).exists()


def permissions_of(chat_id, user_id) -> list[str]:
    """Sorted permission names held by a member."""
    return sorted(
        AdminPermission.objects.filter(chat_id=chat_id, user_id=user_id).values_list(
            "permission", flat=True
        )
    )


def _lock_chat(chat_id) -> Chat | None:
    """Re-read a chat inside the current transaction and lock its row."""
    return Chat.objects.select_for_update().filter(id=chat_id).first()


def _get_member(chat_id, user_id) -> ChatMember | None:
    return ChatMember.objects.select_related("user").filter(chat_id=chat_id, user_id=user_id).first()


def _revoke_admin(member: ChatMember) -> None:
    """Drop every AdminPermission of a member. Call on any role change away from ADMIN."""
    AdminPermission.objects.filter(chat_id=member.chat_id, user_id=member.user_id).delete()
    member.promoted_at = None


def _grant(chat_id, user_id, permissions: Iterable[str]) -> list[str]:
    granted = sorted(set(permissions))
    AdminPermission.objects.bulk_create(
        [AdminPermission(chat_id=chat_id, user_id=user_id, permission=p) for p in granted]
    )
    return granted


class RoleEditKind(str, Enum):
    """What a role edit changed."""

    SWAP = "swap"
    PROMOTE = "promote"
    DEMOTE = "demote"
    PERMISSION_UPDATE = "permissionUpdate"


@dataclass(frozen=True)
class RoleEditOutcome:
    """
    Result of MembershipService.edit_role.

    For SWAP, members is (new owner, previous owner). For the other kinds it
    holds the single edited member, and permissions its new permission set.
    """

    kind: RoleEditKind
    members: tuple[ChatMember, ...]
    permissions: tuple[str, ...] = ()

    @property
    def member(self) -> ChatMember:
        return self.members[0]


def _authorize(service: type[BaseService], member: ChatMember | None, permission: str) -> ServiceResult | None:
    """Return a failure unless the requester is a member holding the permission."""
    if member is None:
        return service.fail("User Not Found", "NOT_FOUND")
    if not has_permission(member, permission):
        return service.fail("Lacking Permissions", "UNAUTHORIZED")
    return None


# =============================================================================
# Chat lifecycle
# =============================================================================


class ChatService(BaseService):
    """
    Service for chat lifecycle operations.

    Methods:
        create_private: Create the private chat between two users
        create_group: Create a group chat owned by the requester
        edit_chat: Partially update a group's name, tag, description or kind
        delete_chat: Delete a chat and disconnect everyone from it
        get_chat: Chat with members and bans, for the detail view
        get_preview: Public summary of a group
        list_for_user: The user's chats with member and online counts
    """

    @classmethod
    def create_private(cls, requester: User, participant_id) -> ServiceResult[Chat]:
        """
        Create the private chat between the requester and another user.

        At most one private chat exists per unordered pair; a second
        creation fails even if the other user initiates it.

        Error codes:
            NOT_FOUND: Participant does not exist
            BAD_REQUEST: Participant is the requester
            CONFLICT: Private chat already exists
        """
        participant = User.objects.filter(id=participant_id, is_active=True).first()
        if participant is None:
            return cls.fail("User Not Found", "NOT_FOUND")
        if participant.id == requester.id:
            return cls.fail("Private Chat Needs Two Different Users", "BAD_REQUEST")

        user_lower, user_higher = PrivateChatPair.canonical(requester.id, participant.id)

        if PrivateChatPair.objects.filter(user_lower_id=user_lower, user_higher_id=user_higher).exists():
            return cls.fail("Private Chat Already Exists", "CONFLICT")

        now = timezone.now()
        try:
            with transaction.atomic():
                chat = Chat.objects.create(kind=ChatKind.PRIVATE)
                PrivateChatPair.objects.create(
                    chat=chat,
                    user_lower_id=user_lower,
                    user_higher_id=user_higher,
                )
                members = [
                    ChatMember.objects.create(
                        chat=chat,
                        user=user,
                        role=MemberRole.MEMBER,
                        joined_at=now,
                        last_read_at=now,
                    )
                    for user in (requester, participant)
                ]
                MemberLog.objects.bulk_create(
                    [MemberLog(chat=chat, user=user, joined=True, timestamp=now) for user in (requester, participant)]
                )
        except IntegrityError:
            # Concurrent creation of the same pair
            return cls.fail("Private Chat Already Exists", "CONFLICT")

        cls.get_logger().info(
            f"Created private chat {chat.id} between users {requester.id} and {participant.id}"
        )

        event = events.chat_create(chat, members)
        for member in members:
            EventRouter.subscribe(member.user_id, chat.id, event)

        return ServiceResult.success(chat)

    @classmethod
    def create_group(
        cls,
        requester: User,
        name: str,
        tag: str,
        description: str = "",
        kind: str = ChatKind.PUBLIC_GROUP,
        members: list[dict] | None = None,
    ) -> ServiceResult[Chat]:
        """
        Create a group chat with the requester as OWNER.

        Args:
            requester: Becomes the owner
            name, tag, description: Group fields (tag unique ignoring case)
            kind: PUBLIC_GROUP or PRIVATE_GROUP
            members: Initial members as [{"user": id, "role": ADMIN|MEMBER}]

        Error codes:
            BAD_REQUEST: Kind is PRIVATE, or an initial member is given OWNER
            NOT_FOUND: An initial member does not exist
            CONFLICT: Tag already used by another chat
        """
        if kind == ChatKind.PRIVATE:
            return cls.fail("Chat Has To Be Group", "BAD_REQUEST")

        roles: dict = {}
        for entry in members or []:
            role = entry.get("role", MemberRole.MEMBER)
            if role == MemberRole.OWNER:
                return cls.fail("Only The Creator Can Be Owner", "BAD_REQUEST")
            if entry["user"] != requester.id:
                roles[entry["user"]] = role

        users = {u.id: u for u in User.objects.filter(id__in=roles.keys(), is_active=True)}
        if len(users) != len(roles):
            return cls.fail("User Not Found", "NOT_FOUND")

        now = timezone.now()
        try:
            with transaction.atomic():
                if Chat.objects.filter(tag__iexact=tag).exists():
                    return cls.fail("Group Tag Has To Be Unique", "CONFLICT")

                chat = Chat.objects.create(
                    kind=kind,
                    name=name,
                    tag=tag,
                    description=description or "",
                )
                created = [
                    ChatMember.objects.create(
                        chat=chat,
                        user=requester,
                        role=MemberRole.OWNER,
                        joined_at=now,
                        last_read_at=now,
                    )
                ]
                for user_id, role in roles.items():
                    created.append(
                        ChatMember.objects.create(
                            chat=chat,
                            user=users[user_id],
                            role=role,
                            joined_at=now,
                            last_read_at=now,
                            promoted_at=now if role == MemberRole.ADMIN else None,
                        )
                    )
                MemberLog.objects.bulk_create(
                    [MemberLog(chat=chat, user_id=m.user_id, joined=True, timestamp=now) for m in created]
                )
        except IntegrityError:
            return cls.fail("Group Tag Has To Be Unique", "CONFLICT")

        cls.get_logger().info(
            f"Created group {chat.id} (@{chat.tag}) with {len(created)} members by user {requester.id}"
        )

        event = events.chat_create(chat, created)
        for member in created:
            EventRouter.subscribe(member.user_id, chat.id, event)

        return ServiceResult.success(chat)

    @classmethod
    def edit_chat(cls, chat_id, requester: User, **changes) -> ServiceResult[Chat]:
        """
        Partially update a group chat.

        Only keys present in changes (and not None) are applied. Allowed keys
        are name, tag, description and kind.

        Error codes:
            NOT_FOUND: Chat or requester membership missing
            BAD_REQUEST: Chat is private, or kind set to PRIVATE
            UNAUTHORIZED: Requester lacks CHAT_EDIT
            CONFLICT: New tag already used by another chat
        """
        fields = {
            key: value
            for key, value in changes.items()
            if key in ("name", "tag", "description", "kind") and value is not None
        }

        try:
            with transaction.atomic():
                chat = _lock_chat(chat_id)
                if chat is None:
                    return cls.fail("Chat Not Found", "NOT_FOUND")
                if chat.is_private:
                    return cls.fail("Only Groups Can Be Edited", "BAD_REQUEST")

                member = _get_member(chat.id, requester.id)
                if member is None:
                    return cls.fail("User Not Found In Group", "NOT_FOUND")
                if failure := _authorize(cls, member, Permission.CHAT_EDIT):
                    return failure

                if fields.get("kind") == ChatKind.PRIVATE:
                    return cls.fail("Chat Has To Be Group", "BAD_REQUEST")
                if "tag" in fields and (
                    Chat.objects.filter(tag__iexact=fields["tag"]).exclude(id=chat.id).exists()
                ):
                    return cls.fail("Group Tag Has To Be Unique", "CONFLICT")

                for key, value in fields.items():
                    setattr(chat, key, value)
                chat.save()
        except IntegrityError:
            return cls.fail("Group Tag Has To Be Unique", "CONFLICT")

        cls.get_logger().info(
            f"Edited chat {chat.id} fields {sorted(fields)} by user {requester.id}"
        )

        EventRouter.to_chat(chat.id, events.chat_edit(chat))
        return ServiceResult.success(chat)

    @classmethod
    def delete_chat(cls, chat_id, requester: User) -> ServiceResult[None]:
        """
        Delete a chat with everything in it.

        Group chats may only be deleted by their owner; either member of a
        private chat may delete it. Every subscribed connection receives
        CHAT_DELETE and leaves the chat channel.

        Error codes:
            NOT_FOUND: Chat or requester membership missing
            UNAUTHORIZED: Requester is not the owner of a group
        """
        with transaction.atomic():
            chat = _lock_chat(chat_id)
            if chat is None:
                return cls.fail("Chat Not Found", "NOT_FOUND")

            member = _get_member(chat.id, requester.id)
            if member is None:
                return cls.fail("User Not Found", "NOT_FOUND")
            if chat.is_group and not member.is_owner:
                return cls.fail("Only Owner Can Delete A Group", "UNAUTHORIZED")

            deleted_id = chat.id
            chat.delete()

        cls.get_logger().info(f"Deleted chat {deleted_id} by user {requester.id}")

        EventRouter.close_chat(deleted_id)
        return ServiceResult.success(None)

    @classmethod
    def get_chat(cls, chat_id, requester: User) -> ServiceResult[Chat]:
        """
        Chat with members, admin permissions and bans prefetched.

        Private chats and private groups are only visible to members.

        Error codes:
            NOT_FOUND: Chat does not exist
            BAD_REQUEST: Requester is not a member of a non-public chat
        """
        chat = (
            Chat.objects.with_stats()
            .prefetch_related("members__user", "admin_permissions", "bans__user")
            .filter(id=chat_id)
            .first()
        )
        if chat is None:
            return cls.fail("Chat Not Found", "NOT_FOUND")

        if chat.kind != ChatKind.PUBLIC_GROUP and not any(
            m.user_id == requester.id for m in chat.members.all()
        ):
            return cls.fail("User Has To Be Member Of Private Chat", "BAD_REQUEST")

        return ServiceResult.success(chat)

    @classmethod
    def get_preview(cls, chat_id) -> ServiceResult[Chat]:
        """
        Public summary of a group chat: size and online count.

        Error codes:
            NOT_FOUND: Chat does not exist or is private
        """
        chat = Chat.objects.with_stats().filter(id=chat_id).exclude(kind=ChatKind.PRIVATE).first()
        if chat is None:
            return cls.fail("Group Not Found", "NOT_FOUND")
        return ServiceResult.success(chat)

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Chat]:
        """The user's chats, most recent first, with size and online counts."""
        return Chat.objects.for_user(user.id).with_stats().order_by("-created_at")


# =============================================================================
# Membership
# =============================================================================


class MembershipService(BaseService):
    """
    Service for membership transitions in group chats.

    Methods:
        join: Become a MEMBER of a group
        leave: Stop being a member (owners cannot leave)
        ban: Remove a member and forbid rejoining
        unban: Lift a ban (membership is not restored)
        kick: Remove a member
        edit_role: Promote, demote, update admin permissions or hand over
            ownership

    Invariants kept by every method:
        - A group has exactly one OWNER
        - ChatMember and BannedMember never coexist for a (chat, user) pair
        - AdminPermission rows only exist for ADMIN members
        - Every membership start and end is appended to MemberLog
    """

    @classmethod
    def _lock_group(cls, chat_id, not_found: str = "Chat Not Found") -> tuple[Chat | None, ServiceResult | None]:
        chat = _lock_chat(chat_id)
        if chat is None:
            return None, cls.fail(not_found, "NOT_FOUND")
        if chat.is_private:
            return None, cls.fail("Chat Has To Be Group", "BAD_REQUEST")
        return chat, None

    @classmethod
    def join(cls, chat_id, user: User) -> ServiceResult[ChatMember]:
        """
        Join a group chat as MEMBER.

        Error codes:
            NOT_FOUND: Group does not exist
            BAD_REQUEST: Chat is private
            FORBIDDEN: User is banned from the chat
            CONFLICT: User is already a member
        """
        with transaction.atomic():
            chat, failure = cls._lock_group(chat_id, not_found="Group Not Found")
            if failure:
                return failure
            if BannedMember.objects.filter(chat=chat, user=user).exists():
                return cls.fail("User Is Banned", "FORBIDDEN")
            if ChatMember.objects.filter(chat=chat, user=user).exists():
                return cls.fail("User Is Already Joined", "CONFLICT")

            now = timezone.now()
            MemberLog.objects.create(chat=chat, user=user, joined=True, timestamp=now)
            member = ChatMember.objects.create(
                chat=chat,
                user=user,
                role=MemberRole.MEMBER,
                joined_at=now,
                last_read_at=now,
            )

        cls.get_logger().info(f"User {user.id} joined chat {chat.id}")

        event = events.member_join(member)
        EventRouter.to_chat(chat.id, event)
        EventRouter.subscribe(user.id, chat.id, event)
        return ServiceResult.success(member)

    @classmethod
    def leave(cls, chat_id, user: User) -> ServiceResult[None]:
        """
        Leave a group chat.

        The owner cannot leave; ownership has to be handed over or the
        group deleted first.

        Error codes:
            NOT_FOUND: Group does not exist or user is not a member
            BAD_REQUEST: Chat is private, or user is the owner
        """
        with transaction.atomic():
            chat, failure = cls._lock_group(chat_id, not_found="Group Not Found")
            if failure:
                return failure

            member = _get_member(chat.id, user.id)
            if member is None:
                return cls.fail("User Not Found", "NOT_FOUND")
            if member.is_owner:
                return cls.fail("Owner Can't Leave The Group", "BAD_REQUEST")

            _revoke_admin(member)
            member.delete()
            MemberLog.objects.create(chat=chat, user=user, joined=False)

        cls.get_logger().info(f"User {user.id} left chat {chat.id}")

        EventRouter.to_chat(chat.id, events.member_leave(chat.id, user.id))
        EventRouter.unsubscribe(user.id, chat.id)
        return ServiceResult.success(None)

    @classmethod
    def _remove_member(
        cls,
        chat_id,
        target_id,
        requester: User,
        permission: str,
        owner_error: str,
        ban: bool,
    ) -> ServiceResult:
        """Shared body of ban and kick."""
        with transaction.atomic():
            chat, failure = cls._lock_group(chat_id)
            if failure:
                return failure

            requester_member = _get_member(chat.id, requester.id)
            if failure := _authorize(cls, requester_member, permission):
                return failure
            if ban and BannedMember.objects.filter(chat=chat, user_id=target_id).exists():
                return cls.fail("User Is Already Banned", "CONFLICT")

            target = _get_member(chat.id, target_id)
            if target is None:
                return cls.fail("User Not Found", "NOT_FOUND")
            if target.is_owner:
                return cls.fail(owner_error, "UNAUTHORIZED")

            _revoke_admin(target)
            target.delete()
            MemberLog.objects.create(chat=chat, user_id=target_id, joined=False)
            banned = BannedMember.objects.create(chat=chat, user_id=target_id) if ban else None

        action = "Banned" if ban else "Kicked"
        cls.get_logger().info(f"{action} user {target_id} from chat {chat.id} by user {requester.id}")

        if ban:
            EventRouter.to_chat(chat.id, events.member_ban(banned))
        else:
            EventRouter.to_chat(chat.id, events.member_leave(chat.id, target_id))
        EventRouter.unsubscribe(target_id, chat.id)
        return ServiceResult.success(banned)

    @classmethod
    def ban(cls, chat_id, target_id, requester: User) -> ServiceResult[BannedMember]:
        """
        Ban a member: remove the membership and record the ban.

        Error codes:
            NOT_FOUND: Chat, requester or target membership missing
            BAD_REQUEST: Chat is private
            CONFLICT: Target is already banned
            UNAUTHORIZED: Requester lacks BAN, or target is the owner
        """
        return cls._remove_member(
            chat_id, target_id, requester, Permission.BAN, "Owner Can't Be Banned", ban=True
        )

    @classmethod
    def kick(cls, chat_id, target_id, requester: User) -> ServiceResult[None]:
        """
        Remove a member without banning them. They may join again.

        Error codes:
            NOT_FOUND: Chat, requester or target membership missing
            BAD_REQUEST: Chat is private
            UNAUTHORIZED: Requester lacks KICK, or target is the owner
        """
        return cls._remove_member(
            chat_id, target_id, requester, Permission.KICK, "Owner Can't Be Kicked", ban=False
        )

    @classmethod
    def unban(cls, chat_id, target_id, requester: User) -> ServiceResult[None]:
        """
        Lift a ban. Does not restore the membership.

        Error codes:
            NOT_FOUND: Chat, requester membership or ban record missing
            BAD_REQUEST: Chat is private
            UNAUTHORIZED: Requester lacks UNBAN
        """
        with transaction.atomic():
            chat, failure = cls._lock_group(chat_id)
            if failure:
                return failure

            requester_member = _get_member(chat.id, requester.id)
            if failure := _authorize(cls, requester_member, Permission.UNBAN):
                return failure

            deleted, _ = BannedMember.objects.filter(chat=chat, user_id=target_id).delete()
            if not deleted:
                return cls.fail("User Isn't Banned", "NOT_FOUND")

        cls.get_logger().info(f"Unbanned user {target_id} from chat {chat.id} by user {requester.id}")

        event = events.member_unban(chat.id, target_id)
        EventRouter.to_chat(chat.id, event)
        EventRouter.to_user(target_id, event)
        return ServiceResult.success(None)

    @classmethod
    def edit_role(
        cls,
        chat_id,
        requester: User,
        target_id,
        role: str,
        permissions: Iterable[str] = (),
    ) -> ServiceResult[RoleEditOutcome]:
        """
        Change a member's role or admin permissions.

        Transitions:
            OWNER: Requester and target swap; requester becomes MEMBER
            ADMIN: Promote a MEMBER, or replace an ADMIN's permission set
            MEMBER: Demote an ADMIN (a MEMBER target is rejected)

        Only the owner can hand over ownership or edit the owner. An ADMIN
        needs MEMBER_EDIT.

        Error codes:
            NOT_FOUND: Chat, requester or target membership missing
            BAD_REQUEST: Chat is private, self-edit, admin setting owner,
                target already MEMBER
            UNAUTHORIZED: Requester is MEMBER, lacks MEMBER_EDIT, or is an
                admin editing the owner
        """
        if str(target_id) == str(requester.id):
            return cls.fail("You Can Only Edit Other Members", "BAD_REQUEST")

        now = timezone.now()
        with transaction.atomic():
            chat = _lock_chat(chat_id)
            if chat is None:
                return cls.fail("Chat Not Found", "NOT_FOUND")
            if chat.is_private:
                return cls.fail("Only Members In Groups Can Be Edited", "BAD_REQUEST")

            sender = _get_member(chat.id, requester.id)
            if failure := _authorize(cls, sender, Permission.MEMBER_EDIT):
                return failure
            if sender.is_admin and role == MemberRole.OWNER:
                return cls.fail("Admin Can't Set Owner", "BAD_REQUEST")

            target = _get_member(chat.id, target_id)
            if target is None:
                return cls.fail("User Not Found", "NOT_FOUND")
            if target.is_owner:
                # Only reachable by an admin; the owner cannot target itself
                return cls.fail("Lacking Permissions", "UNAUTHORIZED")

            if role == MemberRole.OWNER:
                _revoke_admin(sender)
                sender.role = MemberRole.MEMBER
                sender.save(update_fields=["role", "promoted_at", "updated_at"])
                _revoke_admin(target)
                target.role = MemberRole.OWNER
                target.save(update_fields=["role", "promoted_at", "updated_at"])
                outcome = RoleEditOutcome(RoleEditKind.SWAP, (target, sender))

            elif role == MemberRole.ADMIN:
                if target.is_admin:
                    AdminPermission.objects.filter(chat=chat, user_id=target.user_id).delete()
                    granted = _grant(chat.id, target.user_id, permissions)
                    kind = RoleEditKind.PERMISSION_UPDATE
                else:
                    target.role = MemberRole.ADMIN
                    target.promoted_at = now
                    target.save(update_fields=["role", "promoted_at", "updated_at"])
                    granted = _grant(chat.id, target.user_id, permissions)
                    kind = RoleEditKind.PROMOTE
                outcome = RoleEditOutcome(kind, (target,), tuple(granted))

            elif role == MemberRole.MEMBER:
                if not target.is_admin:
                    return cls.fail("User Is Already Member", "BAD_REQUEST")
                _revoke_admin(target)
                target.role = MemberRole.MEMBER
                target.save(update_fields=["role", "promoted_at", "updated_at"])
                outcome = RoleEditOutcome(RoleEditKind.DEMOTE, (target,))

            else:
                return cls.fail("Invalid Role", "BAD_REQUEST")

        cls.get_logger().info(
            f"Role edit {outcome.kind.value} on user {target_id} in chat {chat.id} by user {requester.id}"
        )

        cls._publish_role_edit(chat.id, outcome)
        return ServiceResult.success(outcome)

    @staticmethod
    def _publish_role_edit(chat_id, outcome: RoleEditOutcome) -> None:
        if outcome.kind == RoleEditKind.SWAP:
            for member in outcome.members:
                EventRouter.to_chat(chat_id, events.member_edit(member))
        elif outcome.kind in (
            RoleEditKind.PROMOTE,
            RoleEditKind.DEMOTE,
            RoleEditKind.PERMISSION_UPDATE,
        ):
            EventRouter.to_chat(chat_id, events.member_edit(outcome.member, list(outcome.permissions)))
        else:
            raise ValueError(f"Unhandled role edit kind: {outcome.kind}")


# =============================================================================
# Messages
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send: Post a message and advance the sender's read position
        edit: Change text or pinned flag of one's own message
        mark_read: Move a member's read position forward
        history: Messages older than a timestamp, newest first
    """

    @classmethod
    def send(cls, chat_id, sender: User, text: str) -> ServiceResult[Message]:
        """
        Error codes:
            NOT_FOUND: Chat missing or sender is not a member
        """
        with transaction.atomic():
            chat = _lock_chat(chat_id)
            if chat is None:
                return cls.fail("Chat Not Found", "NOT_FOUND")

            member = ChatMember.objects.filter(chat=chat, user=sender).first()
            if member is None:
                return cls.fail("Sender Has To Be Chat Member", "NOT_FOUND")

            message = Message.objects.create(chat=chat, sender=sender, text=text)
            member.last_read_at = message.created_at
            member.save(update_fields=["last_read_at", "updated_at"])

        cls.get_logger().info(f"User {sender.id} sent message {message.id} in chat {chat.id}")

        EventRouter.to_chat(chat.id, events.message(message))
        return ServiceResult.success(message)

    @classmethod
    def edit(
        cls,
        message_id,
        requester: User,
        text: str | None = None,
        pinned: bool | None = None,
    ) -> ServiceResult[Message]:
        """
        Edit one's own message.

        The edit counter and edited timestamp only change when the text
        actually differs. Pinned is overwritten when given.

        Error codes:
            NOT_FOUND: Message missing, or requester left the chat
            UNAUTHORIZED: Requester is not the sender
        """
        with transaction.atomic():
            message = Message.objects.select_for_update().filter(id=message_id).first()
            if message is None:
                return cls.fail("Message Not Found", "NOT_FOUND")
            if message.sender_id != requester.id:
                return cls.fail("You Can Only Edit Your Own Messages", "UNAUTHORIZED")
            if not ChatMember.objects.filter(chat_id=message.chat_id, user=requester).exists():
                return cls.fail("User Not Found", "NOT_FOUND")

            if text is not None and text != message.text:
                message.text = text
                message.edited += 1
                message.edited_at = timezone.now()
            if pinned is not None:
                message.pinned = pinned
            message.save()

        cls.get_logger().info(f"User {requester.id} edited message {message.id}")

        EventRouter.to_chat(message.chat_id, events.message_edit(message))
        return ServiceResult.success(message)

    @classmethod
    def mark_read(cls, chat_id, user: User, timestamp: datetime) -> ServiceResult[ChatMember]:
        """
        Move the user's read position forward to timestamp.

        Error codes:
            NOT_FOUND: Chat missing or user is not a member
            BAD_REQUEST: Timestamp in the future, or not after the current
                read position
        """
        if timestamp > timezone.now():
            return cls.fail("Timestamp Can't Be In The Future", "BAD_REQUEST")

        with transaction.atomic():
            chat = _lock_chat(chat_id)
            if chat is None:
                return cls.fail("Chat Not Found", "NOT_FOUND")

            member = ChatMember.objects.filter(chat=chat, user=user).first()
            if member is None:
                return cls.fail("User Not Found", "NOT_FOUND")
            if timestamp <= member.last_read_at:
                return cls.fail("Timestamp Has To Be After Last Read", "BAD_REQUEST")

            member.last_read_at = timestamp
            member.save(update_fields=["last_read_at", "updated_at"])

        cls.get_logger().debug(f"User {user.id} read chat {chat.id} up to {timestamp.isoformat()}")

        EventRouter.to_user(user.id, events.message_read(chat.id, user.id, timestamp))
        return ServiceResult.success(member)

    @classmethod
    def history(
        cls,
        chat_id,
        requester: User,
        before: datetime | None = None,
        limit: int | None = None,
        before_id=None,
    ) -> ServiceResult[QuerySet[Message]]:
        """
        Messages strictly older than before (default now), newest first.

        With before_id, messages created exactly at before whose id sorts
        below before_id are included too, matching the (created_at, id)
        order, so a page boundary inside one timestamp loses nothing.

        Without a limit the queryset is returned unsliced, so a paginator
        can cut it; the REST view does that with MessageCursorPagination.

        Error codes:
            NOT_FOUND: Chat missing or requester is not a member
        """
        if not Chat.objects.filter(id=chat_id).exists():
            return cls.fail("Chat Not Found", "NOT_FOUND")
        if not ChatMember.objects.filter(chat_id=chat_id, user=requester).exists():
            return cls.fail("User Has To Be Member Of The Chat", "NOT_FOUND")

        before = before or timezone.now()
        older = Q(created_at__lt=before)
        if before_id is not None:
            older |= Q(created_at=before, id__lt=before_id)

        messages = Message.objects.filter(older, chat_id=chat_id).order_by("-created_at", "-id")
        if limit is not None:
            messages = messages[: max(1, min(limit, MESSAGE_CONFIG.MAX_PAGE_SIZE))]

        return ServiceResult.success(messages)


def chat_ids_for_user(user_id: UUID) -> list[str]:
    """Ids of every chat the user belongs to, as strings."""
    return [str(i) for i in ChatMember.objects.for_user(user_id).values_list("chat_id", flat=True)]
