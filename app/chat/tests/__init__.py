"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Chat, membership, log and message model tests
- test_services.py: Membership state machine and message services
- test_router.py: Presence and recipient resolution
- test_events.py: Event payload shapes
- test_consumers.py: WebSocket event stream, end to end
- test_views.py: REST API endpoint tests
- test_search.py: Search ranking and endpoint

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
