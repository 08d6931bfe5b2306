"""
Real-time event protocol.

Every frame sent to a client has the shape:

    {"event": "<NAME>", "data": {...}}

Event names form a closed set (ChatEvent). The builder functions in this
module are the only place payloads are shaped; services pass model
instances in and hand the resulting Event to chat.router.EventRouter.

Identifiers are strings, timestamps ISO 8601 strings, keys camelCase.

Usage:
    from chat import events
    from chat.router import EventRouter

    EventRouter.to_chat(chat.id, events.message(message))

Consistency contract:
    - An event is built and sent only after its mutation has committed
    - Each successful mutation emits one primary event (two for an
      ownership swap)
    - Failed mutations emit nothing; only ACTION_ERROR reaches the caller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from accounts.models import User
    from chat.models import BannedMember, Chat, ChatMember, Message


class ChatEvent(str, Enum):
    """Closed set of event names, inbound and outbound."""

    # Chat-scoped
    MESSAGE = "MESSAGE"
    MESSAGE_EDIT = "MESSAGE_EDIT"
    MESSAGE_READ = "MESSAGE_READ"
    CHAT_EDIT = "CHAT_EDIT"
    CHAT_DELETE = "CHAT_DELETE"
    MEMBER_EDIT = "MEMBER_EDIT"
    MEMBER_JOIN = "MEMBER_JOIN"
    MEMBER_LEAVE = "MEMBER_LEAVE"
    MEMBER_BAN = "MEMBER_BAN"
    MEMBER_UNBAN = "MEMBER_UNBAN"

    # Sent to each initial member's personal channel
    PRIVATE_CREATE = "PRIVATE_CREATE"
    GROUP_CREATE = "GROUP_CREATE"

    # User-scoped, sent to contacts
    USER_EDIT = "USER_EDIT"
    USER_DELETE = "USER_DELETE"
    MEMBER_ONLINE = "MEMBER_ONLINE"
    MEMBER_OFFLINE = "MEMBER_OFFLINE"

    # Correlation replies, originating connection only
    ACTION_SUCCESS = "ACTION_SUCCESS"
    ACTION_ERROR = "ACTION_ERROR"


@dataclass(frozen=True)
class Event:
    """An encoded event ready to be sent to a connection."""

    name: ChatEvent
    data: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {"event": self.name.value, "data": self.data}


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _id(value) -> str | None:
    return str(value) if value is not None else None


# =============================================================================
# Payload fragments
# =============================================================================


def user_data(user: User) -> dict[str, Any]:
    """Public projection of a user (no email)."""
    return {
        "id": str(user.id),
        "name": user.name,
        "tag": user.tag,
        "description": user.description,
        "locale": user.locale,
        "avatar": user.avatar.url if user.avatar else None,
        "online": user.online,
        "lastSeen": _ts(user.last_seen),
    }


def chat_data(chat: Chat) -> dict[str, Any]:
    return {
        "id": str(chat.id),
        "kind": chat.kind,
        "name": chat.name,
        "tag": chat.tag,
        "description": chat.description,
        "createdAt": _ts(chat.created_at),
    }


def member_data(member: ChatMember, permissions: list[str] | None = None) -> dict[str, Any]:
    return {
        "chat": str(member.chat_id),
        "user": user_data(member.user),
        "role": member.role,
        "joinedAt": _ts(member.joined_at),
        "promotedAt": _ts(member.promoted_at),
        "permissions": sorted(permissions or []),
    }


def message_data(message: Message) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "chat": str(message.chat_id),
        "sender": str(message.sender_id),
        "text": message.text,
        "createdAt": _ts(message.created_at),
        "edited": message.edited,
        "editedAt": _ts(message.edited_at),
        "pinned": message.pinned,
    }


# =============================================================================
# Chat-scoped events
# =============================================================================


def message(msg: Message) -> Event:
    return Event(ChatEvent.MESSAGE, message_data(msg))


def message_edit(msg: Message) -> Event:
    return Event(ChatEvent.MESSAGE_EDIT, message_data(msg))


def message_read(chat_id, user_id, timestamp: datetime) -> Event:
    return Event(
        ChatEvent.MESSAGE_READ,
        {"chat": _id(chat_id), "user": _id(user_id), "timestamp": _ts(timestamp)},
    )


def chat_edit(chat: Chat) -> Event:
    return Event(ChatEvent.CHAT_EDIT, chat_data(chat))


def chat_delete(chat_id) -> Event:
    return Event(ChatEvent.CHAT_DELETE, {"chat": _id(chat_id)})


def member_edit(member: ChatMember, permissions: list[str] | None = None) -> Event:
    return Event(ChatEvent.MEMBER_EDIT, member_data(member, permissions))


def member_join(member: ChatMember) -> Event:
    return Event(ChatEvent.MEMBER_JOIN, member_data(member))


def member_leave(chat_id, user_id) -> Event:
    return Event(ChatEvent.MEMBER_LEAVE, {"chat": _id(chat_id), "user": _id(user_id)})


def member_ban(ban: BannedMember) -> Event:
    return Event(
        ChatEvent.MEMBER_BAN,
        {
            "chat": _id(ban.chat_id),
            "user": _id(ban.user_id),
            "bannedAt": _ts(ban.banned_at),
        },
    )


def member_unban(chat_id, user_id) -> Event:
    return Event(ChatEvent.MEMBER_UNBAN, {"chat": _id(chat_id), "user": _id(user_id)})


def chat_create(chat: Chat, members: list[ChatMember]) -> Event:
    """PRIVATE_CREATE or GROUP_CREATE depending on the chat kind."""
    name = ChatEvent.PRIVATE_CREATE if chat.is_private else ChatEvent.GROUP_CREATE
    return Event(
        name,
        {
            **chat_data(chat),
            "members": [member_data(m) for m in members],
        },
    )


# =============================================================================
# User-scoped events
# =============================================================================


def user_edit(user: User) -> Event:
    return Event(ChatEvent.USER_EDIT, user_data(user))


def user_delete(user_id) -> Event:
    return Event(ChatEvent.USER_DELETE, {"user": _id(user_id)})


def member_online(user_id) -> Event:
    return Event(ChatEvent.MEMBER_ONLINE, {"user": _id(user_id)})


def member_offline(user_id, last_seen: datetime | None) -> Event:
    return Event(
        ChatEvent.MEMBER_OFFLINE,
        {"user": _id(user_id), "lastSeen": _ts(last_seen)},
    )


# =============================================================================
# Correlation replies
# =============================================================================


def action_success(action_uuid: str, event: ChatEvent) -> Event:
    return Event(
        ChatEvent.ACTION_SUCCESS,
        {"actionUuid": action_uuid, "event": event.value},
    )


def action_error(action_uuid: str | None, error: dict[str, Any]) -> Event:
    """Wraps a {statusCode, message, error} body."""
    return Event(ChatEvent.ACTION_ERROR, {"actionUuid": action_uuid, **error})
