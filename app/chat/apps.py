"""
Chat application configuration.

This app provides the chat system with:
- Private chats and public/private group chats
- Role-based permissions (owner, admin, member) with admin permission grants
- Bans, membership audit log and read tracking
- Real-time fan-out over a single per-user WebSocket
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
