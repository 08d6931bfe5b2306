"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat management with member, admin permission and ban inlines
- Membership audit log (read-only)
- Message moderation
"""

from django.contrib import admin

from chat.models import (
    AdminPermission,
    BannedMember,
    Chat,
    ChatMember,
    MemberLog,
    Message,
)


class ChatMemberInline(admin.TabularInline):
    """Inline display of members in chat admin."""

    model = ChatMember
    extra = 0
    readonly_fields = ["joined_at", "last_read_at", "promoted_at"]
    raw_id_fields = ["user"]


class AdminPermissionInline(admin.TabularInline):
    model = AdminPermission
    extra = 0
    raw_id_fields = ["user"]


class BannedMemberInline(admin.TabularInline):
    model = BannedMember
    extra = 0
    readonly_fields = ["banned_at"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    """Admin interface for Chat model."""

    list_display = ["id", "kind", "name", "tag", "created_at"]
    list_filter = ["kind", "created_at"]
    search_fields = ["name", "tag", "id"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ChatMemberInline, AdminPermissionInline, BannedMemberInline]


@admin.register(MemberLog)
class MemberLogAdmin(admin.ModelAdmin):
    """Append-only audit log; nothing here is editable."""

    list_display = ["chat", "user", "joined", "timestamp"]
    list_filter = ["joined", "timestamp"]
    raw_id_fields = ["chat", "user"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "chat", "sender", "short_text", "edited", "pinned", "created_at"]
    list_filter = ["pinned", "created_at"]
    search_fields = ["text", "sender__tag"]
    readonly_fields = ["created_at", "edited", "edited_at"]
    raw_id_fields = ["chat", "sender"]

    @admin.display(description="Text")
    def short_text(self, obj):
        return obj.text[:50] + "..." if len(obj.text) > 50 else obj.text
