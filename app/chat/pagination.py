"""
Pagination classes for chat API.

This module provides timestamp-cursor pagination for message history:
- MessageCursorPagination: newest first, strictly older than a cursor

Query parameters:
    before: "<ISO 8601 timestamp>" or "<timestamp>,<message id>"; only
        messages older than it are returned (default: now)
    limit: Page size (default 50, at most 100)

Response:
    {"results": [...], "next": "<created_at>,<id> of the oldest result" | null}

Design Decisions:
    - The cursor is a plain timestamp so clients can also jump to a point
      in time, not only page forward
    - Messages are ordered by (created_at, id) descending and the cursor
      carries both, so messages sharing a timestamp are never skipped
"""

from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from chat.constants import MESSAGE_CONFIG
from chat.serializers import HistoryCursorField, HistoryQuerySerializer


class MessageCursorPagination(BasePagination):
    """
    Timestamp cursor pagination for message history.

    The queryset passed in must already be filtered by the cursor
    (see get_query_params) and ordered newest first; this class applies the page
    size and builds the response.
    """

    before_query_param = "before"
    limit_query_param = "limit"
    page_size = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE

    def get_query_params(self, request):
        """
        Validated (before, limit) from the query string.

        before is a (timestamp, message id or None) pair, or None.
        """
        serializer = HistoryQuerySerializer(
            data={
                key: request.query_params[key]
                for key in (self.before_query_param, self.limit_query_param)
                if key in request.query_params
            }
        )
        serializer.is_valid(raise_exception=True)
        return (
            serializer.validated_data.get("before"),
            min(serializer.validated_data["limit"], self.max_page_size),
        )

    def paginate_queryset(self, queryset, request, view=None):
        _, limit = self.get_query_params(request)
        self.page = list(queryset[:limit])
        return self.page

    def get_next_cursor(self):
        if not self.page:
            return None
        oldest = self.page[-1]
        return HistoryCursorField().to_representation((oldest.created_at, oldest.id))

    def get_paginated_response(self, data):
        return Response({"results": data, "next": self.get_next_cursor()})

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["results", "next"],
            "properties": {
                "results": schema,
                "next": {
                    "type": "string",
                    "nullable": True,
                },
            },
        }
