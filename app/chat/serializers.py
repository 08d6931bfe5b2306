"""
Serializers for chat API.

This module provides serializers for the chat system:
- Chat serializers (preview, detail, private/group create, edit)
- Member serializers (detail rows, moderation targets, role edits)
- Message serializers (read, create, edit, read marker)
- Socket payload serializers for inbound real-time events

Serializer Hierarchy:
    ChatPreviewSerializer: List and public preview, with size/online counts
    ChatDetailSerializer: Preview plus members and banned users
    PrivateChatCreateSerializer / GroupChatCreateSerializer: Creation input
    ChatEditSerializer: Partial group update

    ChatMemberSerializer: Member row with nested admin block
    BannedMemberSerializer: Ban row
    MemberTargetSerializer: Ban, unban and kick input
    MemberEditSerializer: Role and permission edit input

    MessageSerializer: Message read
    MessageCreateSerializer / MessageEditSerializer: Message input
    ReadMarkerSerializer: Read position input

    Socket*Serializer: The REST inputs plus the id the socket frame names
    (chat or message), keyed by event name in SOCKET_SERIALIZERS

Design Decisions:
    - Read and write serializers are separate for clarity
    - Inputs are validated once here; services receive only checked values
    - Partial edits reject empty bodies with "No Arguments Provided"
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.models import validate_tag_format
from accounts.serializers import UserPreviewSerializer
from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
from chat.events import ChatEvent
from chat.models import (
    BannedMember,
    Chat,
    ChatKind,
    ChatMember,
    MemberRole,
    Message,
    Permission,
)


def _require_any(attrs):
    if not attrs:
        raise serializers.ValidationError("No Arguments Provided")
    return attrs


# =============================================================================
# Chat Read Serializers
# =============================================================================


class ChatPreviewSerializer(serializers.ModelSerializer):
    """
    Summary of a chat with member and online counts.

    Expects a Chat annotated by ChatQuerySet.with_stats().
    """

    size = serializers.IntegerField(read_only=True)
    online = serializers.IntegerField(read_only=True)

    class Meta:
        model = Chat
        fields = [
            "id",
            "kind",
            "name",
            "tag",
            "description",
            "size",
            "online",
            "created_at",
        ]
        read_only_fields = fields


class ChatMemberSerializer(serializers.ModelSerializer):
    """
    A member row of the chat detail.

    admin is null unless the member is ADMIN. Permissions are read from
    the chat's prefetched admin_permissions.
    """

    user = UserPreviewSerializer(read_only=True)
    admin = serializers.SerializerMethodField()

    class Meta:
        model = ChatMember
        fields = ["joined_at", "role", "user", "admin"]
        read_only_fields = fields

    def get_admin(self, obj: ChatMember) -> dict | None:
        if obj.role != MemberRole.ADMIN:
            return None
        permissions = sorted(
            p.permission for p in obj.chat.admin_permissions.all() if p.user_id == obj.user_id
        )
        promoted_at = obj.promoted_at
        return {
            "promoted_at": serializers.DateTimeField().to_representation(promoted_at) if promoted_at else None,
            "permissions": permissions,
        }


class BannedMemberSerializer(serializers.ModelSerializer):
    user = UserPreviewSerializer(read_only=True)

    class Meta:
        model = BannedMember
        fields = ["banned_at", "user"]
        read_only_fields = fields


class ChatDetailSerializer(ChatPreviewSerializer):
    """Full chat view: preview fields, members and banned users."""

    members = ChatMemberSerializer(many=True, read_only=True)
    banned = BannedMemberSerializer(source="bans", many=True, read_only=True)

    class Meta(ChatPreviewSerializer.Meta):
        fields = ChatPreviewSerializer.Meta.fields + ["members", "banned"]
        read_only_fields = fields


# =============================================================================
# Chat Write Serializers
# =============================================================================


class PrivateChatCreateSerializer(serializers.Serializer):
    user = serializers.UUIDField(help_text="The other participant")


class GroupMemberInputSerializer(serializers.Serializer):
    """An initial member of a new group. OWNER is rejected by the service."""

    user = serializers.UUIDField()
    role = serializers.ChoiceField(choices=MemberRole.choices, default=MemberRole.MEMBER)


class GroupChatCreateSerializer(serializers.Serializer):
    """Input for creating a group chat; the requester becomes OWNER."""

    name = serializers.CharField(max_length=GROUP_CONFIG.MAX_NAME_LENGTH)
    tag = serializers.CharField(
        max_length=GROUP_CONFIG.MAX_TAG_LENGTH,
        validators=[validate_tag_format],
    )
    description = serializers.CharField(
        max_length=GROUP_CONFIG.MAX_DESCRIPTION_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    kind = serializers.ChoiceField(choices=ChatKind.choices, default=ChatKind.PUBLIC_GROUP)
    members = GroupMemberInputSerializer(many=True, required=False)

    def validate_members(self, value):
        if len(value) > GROUP_CONFIG.MAX_INITIAL_MEMBERS:
            raise serializers.ValidationError(
                f"At Most {GROUP_CONFIG.MAX_INITIAL_MEMBERS} Initial Members Allowed"
            )
        return value


class ChatEditSerializer(serializers.Serializer):
    """
    Partial group update.

    Every field is optional; omitted fields are left unchanged.
    """

    name = serializers.CharField(max_length=GROUP_CONFIG.MAX_NAME_LENGTH, required=False)
    tag = serializers.CharField(
        max_length=GROUP_CONFIG.MAX_TAG_LENGTH,
        required=False,
        validators=[validate_tag_format],
    )
    description = serializers.CharField(
        max_length=GROUP_CONFIG.MAX_DESCRIPTION_LENGTH,
        required=False,
        allow_blank=True,
    )
    kind = serializers.ChoiceField(choices=ChatKind.choices, required=False)

    def validate(self, attrs):
        return _require_any(attrs)


# =============================================================================
# Member Serializers
# =============================================================================


class MemberTargetSerializer(serializers.Serializer):
    """Target of ban, unban and kick."""

    user = serializers.UUIDField()


class MemberEditSerializer(serializers.Serializer):
    """
    Role edit.

    role OWNER hands over ownership, ADMIN promotes or replaces the
    permission set, MEMBER demotes.
    """

    user = serializers.UUIDField()
    role = serializers.ChoiceField(choices=MemberRole.choices)
    permissions = serializers.ListField(
        child=serializers.ChoiceField(choices=Permission.choices),
        required=False,
        default=list,
    )


# =============================================================================
# Message Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    chat = serializers.UUIDField(source="chat_id", read_only=True)
    sender = serializers.UUIDField(source="sender_id", read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "chat",
            "sender",
            "text",
            "created_at",
            "edited",
            "edited_at",
            "pinned",
        ]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    text = serializers.CharField(
        min_length=MESSAGE_CONFIG.MIN_TEXT_LENGTH,
        max_length=MESSAGE_CONFIG.MAX_TEXT_LENGTH,
    )


class MessageEditSerializer(serializers.Serializer):
    """Text and/or pinned flag; at least one is required."""

    text = serializers.CharField(
        min_length=MESSAGE_CONFIG.MIN_TEXT_LENGTH,
        max_length=MESSAGE_CONFIG.MAX_TEXT_LENGTH,
        required=False,
    )
    pinned = serializers.BooleanField(required=False)

    def validate(self, attrs):
        return _require_any(attrs)


class ReadMarkerSerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField()


class HistoryCursorField(serializers.Field):
    """
    A history cursor: "<timestamp>" or "<timestamp>,<message id>".

    The id breaks ties between messages created at the same instant; a bare
    timestamp jumps to a point in time.
    """

    default_error_messages = {"invalid": "Invalid Cursor"}

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail("invalid")
        timestamp, _, message_id = data.partition(",")
        try:
            created_at = serializers.DateTimeField().to_internal_value(timestamp)
            return created_at, (serializers.UUIDField().to_internal_value(message_id) if message_id else None)
        except serializers.ValidationError:
            self.fail("invalid")

    def to_representation(self, value):
        created_at, message_id = value
        return f"{created_at.isoformat()},{message_id}"


class HistoryQuerySerializer(serializers.Serializer):
    """Query parameters of the message history endpoint."""

    before = HistoryCursorField(required=False)
    limit = serializers.IntegerField(
        min_value=1,
        max_value=MESSAGE_CONFIG.MAX_PAGE_SIZE,
        default=MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    )


# =============================================================================
# Socket Payload Serializers
# =============================================================================


class SocketMessageSerializer(MessageCreateSerializer):
    chat = serializers.UUIDField()


class SocketChatEditSerializer(ChatEditSerializer):
    chat = serializers.UUIDField()

    def validate(self, attrs):
        _require_any({k: v for k, v in attrs.items() if k != "chat"})
        return attrs


class SocketMessageEditSerializer(MessageEditSerializer):
    message = serializers.UUIDField()

    def validate(self, attrs):
        _require_any({k: v for k, v in attrs.items() if k != "message"})
        return attrs


class SocketMemberEditSerializer(MemberEditSerializer):
    chat = serializers.UUIDField()


class SocketReadMarkerSerializer(ReadMarkerSerializer):
    chat = serializers.UUIDField()


SOCKET_SERIALIZERS: dict[ChatEvent, type[serializers.Serializer]] = {
    ChatEvent.MESSAGE: SocketMessageSerializer,
    ChatEvent.CHAT_EDIT: SocketChatEditSerializer,
    ChatEvent.MESSAGE_EDIT: SocketMessageEditSerializer,
    ChatEvent.MEMBER_EDIT: SocketMemberEditSerializer,
    ChatEvent.MESSAGE_READ: SocketReadMarkerSerializer,
}
