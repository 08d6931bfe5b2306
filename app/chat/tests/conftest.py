"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures with different roles in a shared group
- Chat fixtures (a group with owner/admin/member, a private chat)
- sent: records every channel-layer send made by EventRouter
- API client helpers for authenticated requests

Usage:
    def test_example(group, owner, client_for, sent):
        response = client_for(owner).get(f"/api/v1/chats/{group.id}/")
        assert response.status_code == 200
        assert sent.events(chat_group(group.id)) == []
"""

from unittest.mock import patch

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.tests.factories import UserFactory
from chat.models import MemberRole, Permission
from chat.router import EventRouter, registry
from chat.services import ChatService, MembershipService


@pytest.fixture(autouse=True)
def _clear_registry():
    """Presence state lives in memory; start every test with no connections."""
    registry.clear()
    yield
    registry.clear()


@pytest.fixture(autouse=True)
def _flush_channel_layer():
    """Drop queued messages and group memberships left by earlier tests."""
    yield
    async_to_sync(get_channel_layer().flush)()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def owner(db):
    return UserFactory(name="Olivia", tag="olivia")


@pytest.fixture
def admin(db):
    return UserFactory(name="Adam", tag="adam")


@pytest.fixture
def member(db):
    return UserFactory(name="Mia", tag="mia")


@pytest.fixture
def outsider(db):
    """A user who belongs to none of the fixture chats."""
    return UserFactory(name="Otto", tag="otto")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def group(owner, admin, member):
    """
    Public group "Team" (@team) owned by owner.

    admin holds KICK only; member is a plain MEMBER.
    """
    chat = ChatService.create_group(
        owner,
        name="Team",
        tag="team",
        members=[
            {"user": admin.id, "role": MemberRole.ADMIN},
            {"user": member.id, "role": MemberRole.MEMBER},
        ],
    ).raise_for_error()
    MembershipService.edit_role(
        chat.id, owner, admin.id, MemberRole.ADMIN, [Permission.KICK]
    ).raise_for_error()
    return chat


@pytest.fixture
def private_chat(owner, member):
    return ChatService.create_private(owner, member.id).raise_for_error()


# =============================================================================
# Channel layer
# =============================================================================


class SentMessages:
    """View over the (group, message) pairs passed to EventRouter._group_send."""

    def __init__(self, mock):
        self.mock = mock

    @property
    def calls(self) -> list[tuple[str, dict]]:
        return [(call.args[0], call.args[1]) for call in self.mock.call_args_list]

    def to(self, group: str) -> list[dict]:
        return [message for name, message in self.calls if name == group]

    def events(self, group: str) -> list[str]:
        """Names of the events delivered to a group, in order."""
        return [
            message["event"]["event"]
            for message in self.to(group)
            if message.get("event")
        ]

    def reset(self) -> None:
        self.mock.reset_mock()


@pytest.fixture
def sent():
    """
    Record channel-layer sends instead of performing them.

    Tests that check recipients use this; it sees exactly what EventRouter
    hands to the layer, in order.
    """
    with patch.object(EventRouter, "_group_send") as group_send:
        yield SentMessages(group_send)


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as the given user.

    Usage:
        response = client_for(owner).post(url, data, format="json")
    """

    def make(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
        return client

    return make
