"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ChatViewSet: Chat lifecycle, membership, moderation and messages
- MessageEditView: Edit one's own message
- SearchView: Search users and public groups

URL Structure:
    /api/v1/chats/                      GET
    /api/v1/chats/private/              POST
    /api/v1/chats/group/                POST
    /api/v1/chats/{id}/                 GET, PATCH, DELETE
    /api/v1/chats/{id}/preview/         GET (public)
    /api/v1/chats/{id}/join/            POST
    /api/v1/chats/{id}/leave/           POST
    /api/v1/chats/{id}/ban/             POST
    /api/v1/chats/{id}/unban/           POST
    /api/v1/chats/{id}/kick/            POST
    /api/v1/chats/{id}/members/         PATCH
    /api/v1/chats/{id}/messages/        GET, POST
    /api/v1/chats/{id}/read/            POST
    /api/v1/chats/messages/{id}/        PATCH
    /api/v1/search/?q=                  GET

Design Decisions:
    - Views only validate input and render output; every rule lives in
      chat.services
    - Service failures become exceptions via raise_for_error(), rendered by
      core.handlers as {statusCode, message, error}
    - A REST mutation fans out exactly like its socket counterpart, since
      both go through the same service method
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.serializers import UserPreviewSerializer
from chat.pagination import MessageCursorPagination
from chat.search import SearchService
from chat.serializers import (
    ChatDetailSerializer,
    ChatEditSerializer,
    ChatPreviewSerializer,
    GroupChatCreateSerializer,
    MemberEditSerializer,
    MemberTargetSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageSerializer,
    PrivateChatCreateSerializer,
    ReadMarkerSerializer,
)
from chat.services import ChatService, MembershipService, MessageService

UUID_PATTERN = "[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


def _detail(chat, request) -> dict:
    """Re-read a chat with members and stats for the response body."""
    chat = ChatService.get_chat(chat.id, request.user).raise_for_error()
    return ChatDetailSerializer(chat, context={"request": request}).data


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chats",
        summary="List chats",
        description="Chats the current user is a member of, newest first.",
        tags=["Chat - Chats"],
        responses={200: ChatPreviewSerializer(many=True)},
    ),
    retrieve=extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        description=(
            "Chat with members and banned users. Private chats and private "
            "groups are only visible to members."
        ),
        tags=["Chat - Chats"],
        responses={200: ChatDetailSerializer},
    ),
    partial_update=extend_schema(
        operation_id="edit_chat",
        summary="Edit group",
        description="Owner, or admin with CHAT_EDIT. Members receive CHAT_EDIT.",
        tags=["Chat - Chats"],
        request=ChatEditSerializer,
        responses={200: ChatDetailSerializer},
    ),
    destroy=extend_schema(
        operation_id="delete_chat",
        summary="Delete chat",
        description=(
            "Groups can only be deleted by their owner, private chats by "
            "either member. Members receive CHAT_DELETE."
        ),
        tags=["Chat - Chats"],
        responses={204: None},
    ),
)
class ChatViewSet(viewsets.ViewSet):
    """
    ViewSet for chat operations.

    list:
        The current user's chats with member and online counts.

    private / group:
        Create a chat. Every initial member receives PRIVATE_CREATE or
        GROUP_CREATE on their personal channel.

    retrieve / partial_update / destroy:
        Chat detail, group edit, chat deletion.

    preview:
        Public summary of a group; no credential needed.

    join / leave / ban / unban / kick / members:
        Membership transitions, see MembershipService.

    messages / read:
        History (timestamp cursor), sending, and the read marker.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_PATTERN

    def get_permissions(self):
        if self.action == "preview":
            return [AllowAny()]
        return [IsAuthenticated()]

    # =========================================================================
    # Chat lifecycle
    # =========================================================================

    def list(self, request):
        chats = ChatService.list_for_user(request.user)
        return Response(ChatPreviewSerializer(chats, many=True).data)

    @extend_schema(
        operation_id="create_private_chat",
        summary="Create private chat",
        description="At most one private chat exists per pair of users.",
        tags=["Chat - Chats"],
        request=PrivateChatCreateSerializer,
        responses={201: ChatDetailSerializer, 409: OpenApiResponse(description="Already exists")},
    )
    @action(detail=False, methods=["post"])
    def private(self, request):
        serializer = PrivateChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        chat = ChatService.create_private(
            request.user, serializer.validated_data["user"]
        ).raise_for_error()

        return Response(_detail(chat, request), status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="create_group_chat",
        summary="Create group chat",
        description="The requester becomes OWNER. Initial members may be ADMIN or MEMBER.",
        tags=["Chat - Chats"],
        request=GroupChatCreateSerializer,
        responses={201: ChatDetailSerializer, 409: OpenApiResponse(description="Tag taken")},
    )
    @action(detail=False, methods=["post"])
    def group(self, request):
        serializer = GroupChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        chat = ChatService.create_group(request.user, **serializer.validated_data).raise_for_error()

        return Response(_detail(chat, request), status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        chat = ChatService.get_chat(pk, request.user).raise_for_error()
        return Response(ChatDetailSerializer(chat, context={"request": request}).data)

    def partial_update(self, request, pk=None):
        serializer = ChatEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        chat = ChatService.edit_chat(pk, request.user, **serializer.validated_data).raise_for_error()

        return Response(_detail(chat, request))

    def destroy(self, request, pk=None):
        ChatService.delete_chat(pk, request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="preview_chat",
        summary="Preview group",
        description="Public summary of a group: size and online count.",
        tags=["Chat - Chats"],
        responses={200: ChatPreviewSerializer},
    )
    @action(detail=True, methods=["get"], authentication_classes=[])
    def preview(self, request, pk=None):
        chat = ChatService.get_preview(pk).raise_for_error()
        return Response(ChatPreviewSerializer(chat).data)

    # =========================================================================
    # Membership
    # =========================================================================

    @extend_schema(
        operation_id="join_chat",
        summary="Join group",
        tags=["Chat - Members"],
        request=None,
        responses={200: ChatDetailSerializer, 403: OpenApiResponse(description="Banned")},
    )
    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        member = MembershipService.join(pk, request.user).raise_for_error()
        return Response(_detail(member.chat, request))

    @extend_schema(
        operation_id="leave_chat",
        summary="Leave group",
        description="The owner cannot leave; hand over ownership or delete the group.",
        tags=["Chat - Members"],
        request=None,
        responses={204: None},
    )
    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        MembershipService.leave(pk, request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="ban_member",
        summary="Ban member",
        description="Requires BAN. Removes the membership and blocks rejoining.",
        tags=["Chat - Members"],
        request=MemberTargetSerializer,
        responses={204: None},
    )
    @action(detail=True, methods=["post"])
    def ban(self, request, pk=None):
        serializer = MemberTargetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        MembershipService.ban(pk, serializer.validated_data["user"], request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="unban_member",
        summary="Unban user",
        description="Requires UNBAN. Does not restore the membership.",
        tags=["Chat - Members"],
        request=MemberTargetSerializer,
        responses={204: None},
    )
    @action(detail=True, methods=["post"])
    def unban(self, request, pk=None):
        serializer = MemberTargetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        MembershipService.unban(pk, serializer.validated_data["user"], request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="kick_member",
        summary="Kick member",
        description="Requires KICK. The user may join again.",
        tags=["Chat - Members"],
        request=MemberTargetSerializer,
        responses={204: None},
    )
    @action(detail=True, methods=["post"])
    def kick(self, request, pk=None):
        serializer = MemberTargetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        MembershipService.kick(pk, serializer.validated_data["user"], request.user).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="edit_member",
        summary="Edit member role",
        description=(
            "OWNER hands over ownership (owner only), ADMIN promotes or "
            "replaces the permission set, MEMBER demotes."
        ),
        tags=["Chat - Members"],
        request=MemberEditSerializer,
        responses={200: ChatDetailSerializer},
    )
    @action(detail=True, methods=["patch"])
    def members(self, request, pk=None):
        serializer = MemberEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        outcome = MembershipService.edit_role(
            pk,
            request.user,
            data["user"],
            data["role"],
            data["permissions"],
        ).raise_for_error()

        return Response(_detail(outcome.member.chat, request))

    # =========================================================================
    # Messages
    # =========================================================================

    @extend_schema(
        operation_id="list_messages",
        summary="Message history",
        description="Messages older than before, newest first.",
        tags=["Chat - Messages"],
        parameters=[
            OpenApiParameter(
                "before",
                OpenApiTypes.STR,
                description="Cursor: the \"next\" value of the previous page, or a timestamp (default: now)",
            ),
            OpenApiParameter("limit", OpenApiTypes.INT, description="Page size (default 50, max 100)"),
        ],
        responses={200: MessageSerializer(many=True)},
    )
    @action(detail=True, methods=["get"], url_path="messages")
    def messages(self, request, pk=None):
        paginator = MessageCursorPagination()
        before, _ = paginator.get_query_params(request)
        before_at, before_id = before or (None, None)

        messages = MessageService.history(pk, request.user, before=before_at, before_id=before_id).raise_for_error()
        page = paginator.paginate_queryset(messages, request, view=self)

        return paginator.get_paginated_response(MessageSerializer(page, many=True).data)

    @extend_schema(
        operation_id="send_message",
        summary="Send message",
        tags=["Chat - Messages"],
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
    )
    @messages.mapping.post
    def send_message(self, request, pk=None):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageService.send(pk, request.user, serializer.validated_data["text"]).raise_for_error()

        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="mark_chat_read",
        summary="Mark chat as read",
        description="Moves the read marker forward; it never moves back.",
        tags=["Chat - Messages"],
        request=ReadMarkerSerializer,
        responses={204: None},
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        serializer = ReadMarkerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        MessageService.mark_read(pk, request.user, serializer.validated_data["timestamp"]).raise_for_error()
        return Response(status=status.HTTP_204_NO_CONTENT)


class MessageEditView(APIView):
    """
    PATCH: Edit text and/or pinned flag of one's own message

    URL: /api/v1/chats/messages/{id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="edit_message",
        summary="Edit message",
        description="Only the sender may edit. Identical text does not count as an edit.",
        tags=["Chat - Messages"],
        request=MessageEditSerializer,
        responses={200: MessageSerializer},
    )
    def patch(self, request, message_id):
        serializer = MessageEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageService.edit(message_id, request.user, **serializer.validated_data).raise_for_error()

        return Response(MessageSerializer(message).data)


class SearchView(APIView):
    """
    GET: Search users and public groups by name, tag or id

    URL: /api/v1/search/?q=
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="search",
        summary="Search users and groups",
        description="Results are ranked by match quality, shared contacts and activity.",
        tags=["Chat - Search"],
        parameters=[OpenApiParameter("q", OpenApiTypes.STR, required=True)],
    )
    def get(self, request):
        hits = SearchService.search(request.user, request.query_params.get("q", "")).raise_for_error()

        results = []
        for hit in hits:
            if hit.kind == "user":
                data = UserPreviewSerializer(hit.obj, context={"request": request}).data
            else:
                data = ChatPreviewSerializer(hit.obj).data
            results.append({"type": hit.kind, "score": round(hit.score, 3), "item": data})

        return Response({"results": results})
