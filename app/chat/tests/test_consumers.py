"""
End-to-end tests for the WebSocket event stream.

These run the real consumer behind JWTAuthMiddleware on the in-memory
channel layer, so they cover authentication, group maintenance, inbound
actions and fan-out together.

Tests are transactional: the consumer reads the database from worker
threads, which would not see rows inside a per-test transaction.
"""

from unittest.mock import patch

import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from accounts import identity
from accounts.models import User
from chat.middleware import JWTAuthMiddleware
from chat.models import Message
from chat.routing import websocket_urlpatterns
from chat.services import ChatService, MembershipService, MessageService

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))

TIMEOUT = 3


# =============================================================================
# Helpers
# =============================================================================


def token_for(user) -> str:
    return str(AccessToken.for_user(user))


async def open_socket(user, **kwargs):
    """Connect as user with a ?token= credential and assert it was accepted."""
    token = await database_sync_to_async(token_for)(user)
    communicator = WebsocketCommunicator(application, f"/ws/events/?token={token}", **kwargs)
    connected, _ = await communicator.connect(timeout=TIMEOUT)
    assert connected
    return communicator


async def receive_event(communicator, name):
    """Read frames until one named name arrives; return it."""
    while True:
        frame = await communicator.receive_json_from(timeout=TIMEOUT)
        if frame["event"] == name:
            return frame


async def receive_events(communicator, count):
    return [await communicator.receive_json_from(timeout=TIMEOUT) for _ in range(count)]


# =============================================================================
# Connection and authentication
# =============================================================================


class TestConnect:
    async def test_missing_token_is_closed_with_4001(self):
        communicator = WebsocketCommunicator(application, "/ws/events/")

        connected, code = await communicator.connect(timeout=TIMEOUT)

        assert connected is False
        assert code == 4001

    async def test_garbage_token_is_closed_with_4001(self):
        communicator = WebsocketCommunicator(application, "/ws/events/?token=garbage")

        connected, code = await communicator.connect(timeout=TIMEOUT)

        assert (connected, code) == (False, 4001)

    async def test_revoked_token_is_closed(self, member):
        """
        Why it matters: Logging out must also stop new sockets, not only
        REST calls, even though the token has not expired.
        """
        token = AccessToken.for_user(member)
        await database_sync_to_async(identity.revoke)(token)
        communicator = WebsocketCommunicator(application, f"/ws/events/?token={token}")

        connected, code = await communicator.connect(timeout=TIMEOUT)

        assert (connected, code) == (False, 4001)

    async def test_token_in_subprotocol(self, member):
        token = await database_sync_to_async(token_for)(member)
        communicator = WebsocketCommunicator(application, "/ws/events/", subprotocols=["jwt", token])

        connected, subprotocol = await communicator.connect(timeout=TIMEOUT)

        assert connected is True
        assert subprotocol == "jwt"
        await communicator.disconnect()

    async def test_connect_marks_online_and_disconnect_offline(self, member):
        communicator = await open_socket(member)
        online = await database_sync_to_async(lambda: User.objects.get(id=member.id).online)()

        await communicator.disconnect()
        after = await database_sync_to_async(User.objects.get)(id=member.id)

        assert online is True
        assert after.online is False
        assert after.last_seen is not None


# =============================================================================
# Presence
# =============================================================================


class TestPresence:
    async def test_contacts_see_online_and_offline(self, group, owner, member):
        watcher = await open_socket(owner)

        socket = await open_socket(member)
        online = await receive_event(watcher, "MEMBER_ONLINE")
        await socket.disconnect()
        offline = await receive_event(watcher, "MEMBER_OFFLINE")

        assert online["data"] == {"user": str(member.id)}
        assert offline["data"]["user"] == str(member.id)
        assert offline["data"]["lastSeen"] is not None
        await watcher.disconnect()

    async def test_second_tab_does_not_announce_again(self, group, owner, member):
        watcher = await open_socket(owner)
        first = await open_socket(member)
        await receive_event(watcher, "MEMBER_ONLINE")

        second = await open_socket(member)
        await first.disconnect()

        assert await watcher.receive_nothing(timeout=0.3) is True
        await second.disconnect()
        await receive_event(watcher, "MEMBER_OFFLINE")
        await watcher.disconnect()


# =============================================================================
# Inbound actions
# =============================================================================


class TestActions:
    async def test_message_reaches_members_and_acknowledges(self, group, owner, member):
        other = await open_socket(owner)
        sender = await open_socket(member)
        await receive_event(other, "MEMBER_ONLINE")

        await sender.send_json_to(
            {
                "event": "MESSAGE",
                "data": {"chat": str(group.id), "text": "hello"},
                "actionUuid": "a-1",
            }
        )

        frames = await receive_events(sender, 2)
        by_name = {frame["event"]: frame for frame in frames}
        assert by_name["ACTION_SUCCESS"]["data"] == {"actionUuid": "a-1", "event": "MESSAGE"}
        assert by_name["MESSAGE"]["data"]["text"] == "hello"
        received = await receive_event(other, "MESSAGE")
        assert received["data"]["sender"] == str(member.id)
        await sender.disconnect()
        await other.disconnect()

    async def test_no_acknowledgement_without_action_uuid(self, group, member):
        socket = await open_socket(member)

        await socket.send_json_to({"event": "MESSAGE", "data": {"chat": str(group.id), "text": "hi"}})

        assert (await socket.receive_json_from(timeout=TIMEOUT))["event"] == "MESSAGE"
        assert await socket.receive_nothing(timeout=0.3) is True
        await socket.disconnect()

    async def test_service_failure_is_reported_to_sender_only(self, group, outsider):
        socket = await open_socket(outsider)

        await socket.send_json_to(
            {"event": "MESSAGE", "data": {"chat": str(group.id), "text": "hi"}, "actionUuid": "a-2"}
        )

        frame = await socket.receive_json_from(timeout=TIMEOUT)
        assert frame == {
            "event": "ACTION_ERROR",
            "data": {
                "actionUuid": "a-2",
                "statusCode": 404,
                "message": "Sender Has To Be Chat Member",
                "error": "Not Found",
            },
        }
        assert await database_sync_to_async(Message.objects.count)() == 0
        await socket.disconnect()

    async def test_invalid_payload_keeps_socket_open(self, group, member):
        """
        Why it matters: A bad frame from one buggy client action must not
        tear down the stream carrying every other event.
        """
        socket = await open_socket(member)

        await socket.send_json_to({"event": "MESSAGE", "data": {"chat": str(group.id)}, "actionUuid": "a-3"})
        error = await socket.receive_json_from(timeout=TIMEOUT)
        await socket.send_json_to({"event": "MESSAGE", "data": {"chat": str(group.id), "text": "ok"}})
        message = await socket.receive_json_from(timeout=TIMEOUT)

        assert error["event"] == "ACTION_ERROR"
        assert error["data"]["statusCode"] == 400
        assert error["data"]["message"] == "text: This field is required."
        assert message["event"] == "MESSAGE"
        await socket.disconnect()

    async def test_unknown_event_is_rejected(self, member):
        socket = await open_socket(member)

        await socket.send_json_to({"event": "PRIVATE_CREATE", "data": {}, "actionUuid": "a-4"})

        frame = await socket.receive_json_from(timeout=TIMEOUT)
        assert frame["data"]["message"] == "Unknown Event"
        assert frame["data"]["actionUuid"] == "a-4"
        await socket.disconnect()

    async def test_malformed_json_is_answered(self, member):
        socket = await open_socket(member)

        await socket.send_to(text_data="{not json")

        frame = await socket.receive_json_from(timeout=TIMEOUT)
        assert frame["event"] == "ACTION_ERROR"
        assert frame["data"]["actionUuid"] is None
        assert frame["data"]["message"] == "Invalid Json"
        await socket.disconnect()

    async def test_unexpected_error_is_scrubbed(self, group, member):
        socket = await open_socket(member)

        with patch("chat.consumers.MessageService.send", side_effect=RuntimeError("db password is hunter2")):
            await socket.send_json_to(
                {"event": "MESSAGE", "data": {"chat": str(group.id), "text": "hi"}, "actionUuid": "a-5"}
            )
            frame = await socket.receive_json_from(timeout=TIMEOUT)

        assert frame["data"] == {
            "actionUuid": "a-5",
            "statusCode": 500,
            "message": "Unknown Error",
            "error": "Internal Server Error",
        }
        await socket.disconnect()

    async def test_chat_edit_and_member_edit(self, group, owner, member):
        socket = await open_socket(owner)

        await socket.send_json_to(
            {"event": "CHAT_EDIT", "data": {"chat": str(group.id), "name": "Renamed"}, "actionUuid": "e-1"}
        )
        chat_edit = await receive_event(socket, "CHAT_EDIT")
        await socket.send_json_to(
            {
                "event": "MEMBER_EDIT",
                "data": {"chat": str(group.id), "user": str(member.id), "role": "ADMIN", "permissions": ["BAN"]},
                "actionUuid": "e-2",
            }
        )
        member_edit = await receive_event(socket, "MEMBER_EDIT")

        assert chat_edit["data"]["name"] == "Renamed"
        assert member_edit["data"]["user"]["id"] == str(member.id)
        assert member_edit["data"]["permissions"] == ["BAN"]
        await socket.disconnect()

    async def test_message_edit_and_read_marker(self, group, member):
        message = await database_sync_to_async(MessageService.send)(group.id, member, "hello")
        socket = await open_socket(member)

        await socket.send_json_to(
            {"event": "MESSAGE_EDIT", "data": {"message": str(message.data.id), "text": "hello world"}}
        )
        edit = await receive_event(socket, "MESSAGE_EDIT")
        await socket.send_json_to(
            {"event": "MESSAGE_READ", "data": {"chat": str(group.id), "timestamp": timezone.now().isoformat()}}
        )
        read = await receive_event(socket, "MESSAGE_READ")

        assert edit["data"]["edited"] == 1
        assert read["data"]["user"] == str(member.id)
        await socket.disconnect()


# =============================================================================
# Channel maintenance
# =============================================================================


class TestChannelMaintenance:
    async def test_joining_subscribes_live_connection(self, group, owner, outsider):
        socket = await open_socket(outsider)

        await database_sync_to_async(MembershipService.join)(group.id, outsider)
        joined = await receive_event(socket, "MEMBER_JOIN")
        await database_sync_to_async(MessageService.send)(group.id, owner, "welcome")
        message = await receive_event(socket, "MESSAGE")

        assert joined["data"]["user"]["id"] == str(outsider.id)
        assert message["data"]["text"] == "welcome"
        await socket.disconnect()

    async def test_banned_connection_stops_receiving_chat_events(self, group, owner, member):
        socket = await open_socket(member)

        await database_sync_to_async(MembershipService.ban)(group.id, member.id, owner)
        ban = await receive_event(socket, "MEMBER_BAN")
        assert await socket.receive_nothing(timeout=0.3) is True
        await database_sync_to_async(MessageService.send)(group.id, owner, "after the ban")

        assert ban["data"]["user"] == str(member.id)
        assert await socket.receive_nothing(timeout=0.3) is True
        await socket.disconnect()

    async def test_unbanned_user_is_told_directly(self, group, owner, member):
        await database_sync_to_async(MembershipService.ban)(group.id, member.id, owner)
        socket = await open_socket(member)

        await database_sync_to_async(MembershipService.unban)(group.id, member.id, owner)

        frame = await receive_event(socket, "MEMBER_UNBAN")
        assert frame["data"] == {"chat": str(group.id), "user": str(member.id)}
        await socket.disconnect()

    async def test_deleted_chat_is_announced_and_dropped(self, group, owner, member):
        socket = await open_socket(member)

        await database_sync_to_async(ChatService.delete_chat)(group.id, owner)
        frame = await receive_event(socket, "CHAT_DELETE")

        assert frame["data"] == {"chat": str(group.id)}
        assert await socket.receive_nothing(timeout=0.3) is True
        await socket.disconnect()

    async def test_new_private_chat_reaches_both_users(self, owner, member):
        socket = await open_socket(member)

        await database_sync_to_async(ChatService.create_private)(owner, member.id)
        frame = await receive_event(socket, "PRIVATE_CREATE")
        await database_sync_to_async(MessageService.send)(frame["data"]["id"], owner, "hi")
        message = await receive_event(socket, "MESSAGE")

        assert message["data"]["chat"] == frame["data"]["id"]
        await socket.disconnect()
