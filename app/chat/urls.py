"""
URL configuration for chat app.

URL structure:
    /api/v1/chats/                   - The current user's chats (GET)
    /api/v1/chats/private/           - Create a private chat (POST)
    /api/v1/chats/group/             - Create a group chat (POST)
    /api/v1/chats/{id}/              - Chat detail/edit/delete
    /api/v1/chats/{id}/preview/      - Public group preview
    /api/v1/chats/{id}/join/         - Join (POST)
    /api/v1/chats/{id}/leave/        - Leave (POST)
    /api/v1/chats/{id}/ban/          - Ban (POST)
    /api/v1/chats/{id}/unban/        - Unban (POST)
    /api/v1/chats/{id}/kick/         - Kick (POST)
    /api/v1/chats/{id}/members/      - Role edit (PATCH)
    /api/v1/chats/{id}/messages/     - History (GET), send (POST)
    /api/v1/chats/{id}/read/         - Read marker (POST)
    /api/v1/chats/messages/{id}/     - Message edit (PATCH)
    /api/v1/search/                  - Search (GET ?q=)

WebSocket routes live in routing.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ChatViewSet, MessageEditView, SearchView

app_name = "chat"

router = DefaultRouter()
router.include_root_view = False
router.register("chats", ChatViewSet, basename="chat")

urlpatterns = [
    path(
        "chats/messages/<uuid:message_id>/",
        MessageEditView.as_view(),
        name="message-edit",
    ),
    path("search/", SearchView.as_view(), name="search"),
    path("", include(router.urls)),
]
