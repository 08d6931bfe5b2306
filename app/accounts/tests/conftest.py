"""
Test configuration and fixtures for accounts tests.

Usage:
    def test_example(user, auth_client):
        response = auth_client.get("/api/v1/accounts/me/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from accounts.tests.factories import UserFactory
from chat.router import registry


@pytest.fixture(autouse=True)
def _clear_registry():
    """Presence state lives in memory; start every test with no connections."""
    registry.clear()
    yield
    registry.clear()


@pytest.fixture
def user(db):
    return UserFactory(name="Ada", tag="ada")


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def tokens(user):
    """A fresh refresh/access token pair for user."""
    refresh = RefreshToken.for_user(user)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


@pytest.fixture
def auth_client(tokens):
    """API client authenticated as user with a Bearer access token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
    return client
