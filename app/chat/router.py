"""
Presence tracking and event fan-out.

This module owns two things:
    - ConnectionRegistry: which live socket connections each user has
    - EventRouter: which channel-layer groups receive each event

Channels:
    user.<uuid>  every connection of one user
    chat.<uuid>  every connection of every member of one chat

Recipient rules:
    Chat-scoped events (MESSAGE, CHAT_EDIT, MEMBER_JOIN, ...) go to the chat
    group. User-scoped events (USER_EDIT, USER_DELETE, MEMBER_ONLINE,
    MEMBER_OFFLINE) go to the personal group of every contact of the subject
    user. MEMBER_UNBAN goes to the chat group and to the unbanned user, who is
    no longer subscribed to the chat.

Group membership of other users' connections cannot be changed from here
directly (channel names are only known to the consumers), so subscription
changes are sent as control messages to the user's personal group:

    {"type": "chat.subscribe", "chat": "<uuid>", "event": {...} | None}
    {"type": "chat.unsubscribe", "chat": "<uuid>"}
    {"type": "chat.delete", "chat": "<uuid>", "event": {...}}  (to chat group)

Each consumer then adds or discards the chat group itself. Services never
touch the registry or the channel layer; they call EventRouter methods after
their transaction has committed.

Usage:
    from chat import events
    from chat.router import EventRouter

    EventRouter.to_chat(chat.id, events.message(message))
    EventRouter.subscribe(user.id, chat.id, events.member_join(member))
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from accounts.models import User
from chat import events
from chat.models import ChatMember

if TYPE_CHECKING:
    from collections.abc import Iterable

    from chat.events import Event

logger = logging.getLogger(__name__)


def user_group(user_id) -> str:
    """Channel-layer group holding every connection of one user."""
    return f"user.{user_id}"


def chat_group(chat_id) -> str:
    """Channel-layer group holding every connection subscribed to a chat."""
    return f"chat.{chat_id}"


class ConnectionRegistry:
    """
    In-process map of user id -> open connection (channel) names.

    Consumers run on the event loop while services run in worker threads,
    so every access goes through a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: dict[str, set[str]] = defaultdict(set)

    def add(self, user_id, channel_name: str) -> bool:
        """Register a connection. Returns True if it is the user's first."""
        key = str(user_id)
        with self._lock:
            first = not self._connections[key]
            self._connections[key].add(channel_name)
            return first

    def discard(self, user_id, channel_name: str) -> bool:
        """Forget a connection. Returns True if it was the user's last."""
        key = str(user_id)
        with self._lock:
            channels = self._connections.get(key)
            if not channels or channel_name not in channels:
                return False
            channels.discard(channel_name)
            if channels:
                return False
            del self._connections[key]
            return True

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()


registry = ConnectionRegistry()


class EventRouter:
    """
    Resolves recipients for events and sends them over the channel layer.

    All methods are synchronous; call them from sync code (services, or
    consumer helpers wrapped in database_sync_to_async).
    """

    @staticmethod
    def _group_send(group: str, message: dict) -> None:
        channel_layer = get_channel_layer()
        async_to_sync(channel_layer.group_send)(group, message)

    # -------------------------------------------------------------------------
    # Presence
    # -------------------------------------------------------------------------

    @classmethod
    def connect(cls, user_id, channel_name: str) -> bool:
        """
        Register a new live connection.

        On the user's first connection marks them online and broadcasts
        MEMBER_ONLINE to their contacts. Returns True if this was the first.
        """
        first = registry.add(user_id, channel_name)
        if first:
            User.objects.filter(id=user_id).update(online=True)
            cls.to_contacts(user_id, events.member_online(user_id))
            logger.info(f"User {user_id} is online")
        return first

    @classmethod
    def disconnect(cls, user_id, channel_name: str) -> bool:
        """
        Forget a closed connection.

        On the user's last connection marks them offline, records last seen
        and broadcasts MEMBER_OFFLINE. Returns True if this was the last.
        """
        last = registry.discard(user_id, channel_name)
        if last:
            now = timezone.now()
            User.objects.filter(id=user_id).update(online=False, last_seen=now)
            cls.to_contacts(user_id, events.member_offline(user_id, now))
            logger.info(f"User {user_id} is offline")
        return last

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    @classmethod
    def to_chat(cls, chat_id, event: Event) -> None:
        """Deliver to every connection subscribed to the chat."""
        logger.debug(f"{event.name.value} -> chat {chat_id}")
        cls._group_send(
            chat_group(chat_id),
            {"type": "event.send", "event": event.to_wire()},
        )

    @classmethod
    def to_user(cls, user_id, event: Event) -> None:
        """Deliver to every connection of one user."""
        logger.debug(f"{event.name.value} -> user {user_id}")
        cls._group_send(
            user_group(user_id),
            {"type": "event.send", "event": event.to_wire()},
        )

    @classmethod
    def to_users(cls, user_ids: Iterable, event: Event) -> None:
        for user_id in user_ids:
            cls.to_user(user_id, event)

    @classmethod
    def to_contacts(cls, user_id, event: Event, contact_ids: Iterable | None = None) -> None:
        """
        Deliver to every contact of a user.

        Contacts are the other members of every chat the user belongs to,
        deduplicated. Pass contact_ids when the memberships no longer exist
        (account deletion).
        """
        if contact_ids is None:
            contact_ids = ChatMember.objects.contact_ids(user_id)
        cls.to_users(contact_ids, event)

    # -------------------------------------------------------------------------
    # Chat channel maintenance
    # -------------------------------------------------------------------------

    @classmethod
    def subscribe(cls, user_id, chat_id, event: Event | None = None) -> None:
        """
        Subscribe every connection of a user to a chat.

        If an event is given, each connection delivers it right after
        subscribing, so the user sees it even though they were not in the
        chat group when it was broadcast.
        """
        cls._group_send(
            user_group(user_id),
            {
                "type": "chat.subscribe",
                "chat": str(chat_id),
                "event": event.to_wire() if event else None,
            },
        )

    @classmethod
    def unsubscribe(cls, user_id, chat_id) -> None:
        """Remove every connection of a user from a chat."""
        cls._group_send(
            user_group(user_id),
            {"type": "chat.unsubscribe", "chat": str(chat_id)},
        )

    @classmethod
    def close_chat(cls, chat_id) -> None:
        """Deliver CHAT_DELETE to the chat and drop every subscription."""
        logger.debug(f"CHAT_DELETE -> chat {chat_id}")
        cls._group_send(
            chat_group(chat_id),
            {
                "type": "chat.delete",
                "chat": str(chat_id),
                "event": events.chat_delete(chat_id).to_wire(),
            },
        )
