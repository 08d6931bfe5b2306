"""
WebSocket consumer for real-time events.

One connection per user session. The consumer carries every event the user
should see: messages and membership changes of every chat they belong to,
plus user-scoped events (profile edits, presence) about their contacts.

Consumers:
    EventConsumer: Authenticated event stream at ws/events/

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"]. Anonymous
    connections (missing, invalid or revoked token) are closed with 4001.

Channel Groups:
    user.<uuid>  joined on connect; receives user-scoped events and the
                 subscribe/unsubscribe control messages
    chat.<uuid>  one per chat the user belongs to; receives chat events

Inbound frames (from client):
    {"event": "MESSAGE" | "CHAT_EDIT" | "MESSAGE_EDIT" | "MEMBER_EDIT"
              | "MESSAGE_READ",
     "data": {...},
     "actionUuid": "<optional correlation id>"}

Replies (to the sending connection only):
    ACTION_SUCCESS {actionUuid, event}      when actionUuid was given
    ACTION_ERROR   {actionUuid, statusCode, message, error} on any failure

Channel layer message types (from chat.router.EventRouter):
    event.send        forward an encoded event
    chat.subscribe    join a chat group, then forward the optional event
    chat.unsubscribe  leave a chat group
    chat.delete       forward CHAT_DELETE, then leave the chat group
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat import events
from chat.constants import SOCKET_CONFIG
from chat.events import ChatEvent
from chat.middleware import JWT_SUBPROTOCOL
from chat.router import EventRouter, chat_group, user_group
from chat.serializers import SOCKET_SERIALIZERS
from chat.services import (
    ChatService,
    MembershipService,
    MessageService,
    chat_ids_for_user,
)
from core.exceptions import BadRequestError, BaseApplicationError, ValidationError
from core.handlers import UNKNOWN_ERROR_BODY, flatten_detail

if TYPE_CHECKING:
    from chat.events import Event

logger = logging.getLogger(__name__)


class EventConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for a user's event stream.

    Handles:
        - Authentication check and presence registration
        - Joining the user group and every chat group
        - Validating and dispatching inbound actions to the services
        - Forwarding fan-out events and keeping chat groups in sync

    Attributes:
        user: Authenticated user (after connect)
        chat_ids: Chat ids whose groups this connection has joined
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.chat_ids: set[str] = set()

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self):
        """
        Handle WebSocket connection.

        Rejects anonymous users with 4001. Otherwise joins the user group
        and one group per chat, accepts, and registers presence (the first
        connection of a user broadcasts MEMBER_ONLINE).
        """
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            logger.info("Rejected unauthenticated WebSocket connection")
            await self.close(code=SOCKET_CONFIG.CLOSE_UNAUTHENTICATED)
            return

        self.user = user
        await self.channel_layer.group_add(user_group(user.id), self.channel_name)
        for chat_id in await database_sync_to_async(chat_ids_for_user)(user.id):
            await self._join_chat(chat_id)

        subprotocols = self.scope.get("subprotocols") or []
        await self.accept(subprotocol=JWT_SUBPROTOCOL if JWT_SUBPROTOCOL in subprotocols else None)

        await database_sync_to_async(EventRouter.connect)(user.id, self.channel_name)
        logger.info(f"User {user.id} connected with {len(self.chat_ids)} chats")

    async def disconnect(self, close_code):
        """
        Leave every group and unregister presence.

        The last connection of a user marks them offline and broadcasts
        MEMBER_OFFLINE.
        """
        if self.user is None:
            return

        for chat_id in list(self.chat_ids):
            await self._leave_chat(chat_id)
        await self.channel_layer.group_discard(user_group(self.user.id), self.channel_name)

        await database_sync_to_async(EventRouter.disconnect)(self.user.id, self.channel_name)
        logger.info(f"User {self.user.id} disconnected ({close_code})")

    async def _join_chat(self, chat_id) -> None:
        chat_id = str(chat_id)
        if chat_id in self.chat_ids:
            return
        await self.channel_layer.group_add(chat_group(chat_id), self.channel_name)
        self.chat_ids.add(chat_id)

    async def _leave_chat(self, chat_id) -> None:
        chat_id = str(chat_id)
        if chat_id not in self.chat_ids:
            return
        await self.channel_layer.group_discard(chat_group(chat_id), self.channel_name)
        self.chat_ids.discard(chat_id)

    async def send_event(self, event: Event) -> None:
        await self.send_json(event.to_wire())

    # =========================================================================
    # Inbound actions
    # =========================================================================

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        """Decode the frame; malformed JSON is answered, not fatal."""
        try:
            content = await self.decode_json(text_data)
        except (TypeError, ValueError):
            await self.send_event(
                events.action_error(None, BadRequestError("Invalid Json").to_dict())
            )
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Validate an inbound action, run it, and reply to this connection.

        Failures never close the socket. Expected failures are answered
        with their own status and message; anything else is logged and
        answered with the generic 500 body.
        """
        action_uuid = content.get("actionUuid") if isinstance(content, dict) else None

        try:
            name = await database_sync_to_async(self.dispatch_action)(content)
        except BaseApplicationError as exc:
            await self.send_event(events.action_error(action_uuid, exc.to_dict()))
            return
        except Exception:
            logger.exception(f"Unhandled error in socket action from user {self.user.id}")
            await self.send_event(events.action_error(action_uuid, dict(UNKNOWN_ERROR_BODY)))
            return

        if action_uuid is not None:
            await self.send_event(events.action_success(action_uuid, name))

    def dispatch_action(self, content) -> ChatEvent:
        """
        Validate a frame and run its handler. Runs in a worker thread.

        Raises:
            BadRequestError: Frame is not an object or names no known action
            ValidationError: Payload failed its serializer
            BaseApplicationError: Service failure
        """
        if not isinstance(content, dict):
            raise BadRequestError("Invalid Frame")

        try:
            name = ChatEvent(content.get("event"))
        except ValueError:
            raise BadRequestError("Unknown Event") from None
        serializer_class = SOCKET_SERIALIZERS.get(name)
        if serializer_class is None:
            raise BadRequestError("Unknown Event")

        serializer = serializer_class(data=content.get("data") or {})
        if not serializer.is_valid():
            raise ValidationError(flatten_detail(serializer.errors))

        handler = getattr(self, f"handle_{name.value.lower()}")
        handler(dict(serializer.validated_data))
        return name

    def handle_message(self, data: dict) -> None:
        MessageService.send(data["chat"], self.user, data["text"]).raise_for_error()

    def handle_chat_edit(self, data: dict) -> None:
        chat_id = data.pop("chat")
        ChatService.edit_chat(chat_id, self.user, **data).raise_for_error()

    def handle_message_edit(self, data: dict) -> None:
        message_id = data.pop("message")
        MessageService.edit(message_id, self.user, **data).raise_for_error()

    def handle_member_edit(self, data: dict) -> None:
        MembershipService.edit_role(
            data["chat"],
            self.user,
            data["user"],
            data["role"],
            data["permissions"],
        ).raise_for_error()

    def handle_message_read(self, data: dict) -> None:
        MessageService.mark_read(data["chat"], self.user, data["timestamp"]).raise_for_error()

    # =========================================================================
    # Channel layer handlers
    # =========================================================================

    async def event_send(self, message):
        """Forward an encoded event to the client."""
        await self.send_json(message["event"])

    async def chat_subscribe(self, message):
        """Join a chat group, then deliver the event that caused it."""
        await self._join_chat(message["chat"])
        if message.get("event"):
            await self.send_json(message["event"])

    async def chat_unsubscribe(self, message):
        await self._leave_chat(message["chat"])

    async def chat_delete(self, message):
        """Deliver CHAT_DELETE, then drop the chat group."""
        await self.send_json(message["event"])
        await self._leave_chat(message["chat"])
