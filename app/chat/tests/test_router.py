"""
Tests for presence tracking and recipient resolution in chat.router.

The channel layer itself is replaced by the sent fixture; these tests pin
which groups receive what. Delivery to real sockets is covered in
test_consumers.py.
"""

from chat.events import ChatEvent, member_join, user_edit
from chat.models import ChatMember
from chat.router import ConnectionRegistry, EventRouter, chat_group, user_group
from chat.services import MembershipService


# =============================================================================
# ConnectionRegistry
# =============================================================================


class TestConnectionRegistry:
    def test_first_and_last_connection(self):
        connections = ConnectionRegistry()

        assert connections.add("u1", "chan-a") is True
        assert connections.add("u1", "chan-b") is False
        assert connections.discard("u1", "chan-a") is False
        assert connections.discard("u1", "chan-b") is True
        assert connections.add("u1", "chan-c") is True

    def test_discarding_unknown_connection_is_not_last(self):
        """
        Why it matters: A socket rejected before registering still runs
        disconnect; it must not mark the user offline.
        """
        connections = ConnectionRegistry()
        connections.add("u1", "chan-a")

        assert connections.discard("u1", "chan-x") is False
        assert connections.discard("u2", "chan-a") is False
        assert connections.discard("u1", "chan-a") is True

    def test_user_ids_are_normalised(self, owner):
        connections = ConnectionRegistry()
        connections.add(owner.id, "chan-a")

        assert connections.add(str(owner.id), "chan-b") is False


# =============================================================================
# Presence
# =============================================================================


class TestPresence:
    def test_first_connection_marks_online_and_tells_contacts(self, group, owner, admin, member, sent):
        first = EventRouter.connect(member.id, "chan-a")

        member.refresh_from_db()
        assert first is True
        assert member.online is True
        for contact in (owner, admin):
            assert sent.to(user_group(contact.id)) == [
                {
                    "type": "event.send",
                    "event": {"event": "MEMBER_ONLINE", "data": {"user": str(member.id)}},
                }
            ]
        assert sent.to(user_group(member.id)) == []

    def test_second_connection_is_silent(self, group, member, sent):
        EventRouter.connect(member.id, "chan-a")
        sent.reset()

        assert EventRouter.connect(member.id, "chan-b") is False
        assert sent.calls == []

    def test_offline_only_after_last_connection(self, group, owner, member, sent):
        EventRouter.connect(member.id, "chan-a")
        EventRouter.connect(member.id, "chan-b")
        sent.reset()

        EventRouter.disconnect(member.id, "chan-a")
        member.refresh_from_db()
        assert member.online is True
        assert sent.calls == []

        EventRouter.disconnect(member.id, "chan-b")
        member.refresh_from_db()
        assert member.online is False
        assert member.last_seen is not None
        [message] = sent.to(user_group(owner.id))
        assert message["event"]["event"] == ChatEvent.MEMBER_OFFLINE
        assert message["event"]["data"]["lastSeen"] == member.last_seen.isoformat()


# =============================================================================
# Delivery
# =============================================================================


class TestDelivery:
    def test_contacts_are_deduplicated(self, group, private_chat, owner, member, admin, sent):
        """
        owner shares the group and the private chat with member; member
        still receives a user-scoped event about owner once.
        """
        EventRouter.to_contacts(owner.id, user_edit(owner))

        assert len(sent.to(user_group(member.id))) == 1
        assert len(sent.to(user_group(admin.id))) == 1
        assert sent.to(user_group(owner.id)) == []

    def test_explicit_contact_ids(self, owner, member, sent):
        EventRouter.to_contacts(owner.id, user_edit(owner), contact_ids={member.id})

        assert [group for group, _ in sent.calls] == [user_group(member.id)]

    def test_to_chat_sends_wire_event(self, group, member, sent):
        event = member_join(ChatMember.objects.get(chat=group, user=member))

        EventRouter.to_chat(group.id, event)

        assert sent.calls == [
            (chat_group(group.id), {"type": "event.send", "event": event.to_wire()})
        ]

    def test_subscribe_without_event(self, group, member, sent):
        EventRouter.subscribe(member.id, group.id)

        assert sent.calls == [
            (
                user_group(member.id),
                {"type": "chat.subscribe", "chat": str(group.id), "event": None},
            )
        ]

    def test_unban_reaches_user_outside_chat(self, group, owner, member, sent):
        """
        Why it matters: After a ban the user is no longer in the chat
        group, so MEMBER_UNBAN has to be addressed to them directly.
        """
        MembershipService.ban(group.id, member.id, owner)
        sent.reset()

        MembershipService.unban(group.id, member.id, owner)

        assert [group_name for group_name, _ in sent.calls] == [
            chat_group(group.id),
            user_group(member.id),
        ]
