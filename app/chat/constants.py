"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message operations (content limits, history paging)
- Group chat fields (name, tag and description limits)
- Search ranking weights (overridable via settings.CHAT_SEARCH_WEIGHTS)
- Socket close codes

Import example:
    from chat.constants import MESSAGE_CONFIG, SEARCH_CONFIG
"""

from typing import Final

from django.conf import settings


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_TEXT_LENGTH: Final[int] = 4000  # Characters
    MIN_TEXT_LENGTH: Final[int] = 1

    # History paging
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100


# =============================================================================
# Group Chat Configuration
# =============================================================================


class GROUP_CONFIG:
    """Field limits for group chats."""

    MAX_NAME_LENGTH: Final[int] = 50
    MAX_TAG_LENGTH: Final[int] = 30
    MAX_DESCRIPTION_LENGTH: Final[int] = 300
    MAX_INITIAL_MEMBERS: Final[int] = 100


# =============================================================================
# Search Configuration
# =============================================================================


DEFAULT_SEARCH_WEIGHTS: Final[dict] = {
    # Per-field weight of the matched fraction of the field
    "name": 40,
    "tag": 25,
    "id": 15,
    # Added once per field that starts with the query
    "prefix": 10,
    # Groups: shared contacts inside the group
    "shared_contact": 0.4,
    "shared_contact_cap": 8,
    # Groups: fraction of members online
    "online": 2,
    # Users: chats shared with the requester
    "shared_chat": 1,
    "shared_chat_cap": 10,
}


class SEARCH_CONFIG:
    """Configuration for user and group search."""

    MIN_QUERY_LENGTH: Final[int] = 1
    MAX_RESULTS: Final[int] = 50
    # Matches per kind that get scored before the final cut
    CANDIDATE_LIMIT: Final[int] = 500

    @staticmethod
    def weights() -> dict:
        """Built-in weights merged with settings.CHAT_SEARCH_WEIGHTS."""
        return {
            **DEFAULT_SEARCH_WEIGHTS,
            **getattr(settings, "CHAT_SEARCH_WEIGHTS", {}),
        }


# =============================================================================
# WebSocket Configuration
# =============================================================================


class SOCKET_CONFIG:
    """Close codes used by the event consumer."""

    CLOSE_UNAUTHENTICATED: Final[int] = 4001
