"""
Search across users and public groups.

Matching is a case-insensitive substring test on name, tag and id. Every
match is scored and the results are sorted by score, highest first.

Score of a match:
    For each of name, tag and id containing the query:
        weight[field] * len(query) / len(value)
        + weight["prefix"] if value starts with the query
    Users additionally:
        min(shared chats * weight["shared_chat"], weight["shared_chat_cap"])
    Groups additionally:
        min(shared contacts * weight["shared_contact"], weight["shared_contact_cap"])
        + online members / members * weight["online"]

The weights come from SEARCH_CONFIG.weights(), which merges
settings.CHAT_SEARCH_WEIGHTS over the built-in defaults.

Usage:
    from chat.search import SearchService

    results = SearchService.search(request.user, "tea").raise_for_error()
    for hit in results:
        print(hit.kind, hit.score, hit.obj)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db.models import Count, Q

from accounts.models import User
from chat.constants import SEARCH_CONFIG
from chat.models import BannedMember, Chat, ChatKind, ChatMember
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class SearchHit:
    """A scored search result. kind is "user" or "chat"."""

    kind: str
    score: float
    obj: Any


def field_score(query: str, value, weight: float, prefix_bonus: float) -> float:
    """
    Score one field against an already lowercased query.

    Zero when the field does not contain the query.
    """
    if value is None:
        return 0.0
    text = str(value).lower()
    if not text or query not in text:
        return 0.0
    score = weight * len(query) / len(text)
    if text.startswith(query):
        score += prefix_bonus
    return score


class SearchService(BaseService):
    """
    Weighted search over users and PUBLIC_GROUP chats.

    Excludes the requester and groups the requester is banned from.
    """

    @classmethod
    def _match_score(cls, query: str, obj, weights: dict) -> float:
        return sum(
            field_score(query, getattr(obj, field), weights[field], weights["prefix"])
            for field in ("name", "tag", "id")
        )

    @classmethod
    def _text_filter(cls, query: str) -> Q:
        return Q(name__icontains=query) | Q(tag__icontains=query) | Q(id__icontains=query)

    @classmethod
    def _search_users(cls, requester: User, query: str, weights: dict) -> list[SearchHit]:
        users = list(
            User.objects.filter(cls._text_filter(query), is_active=True)
            .exclude(id=requester.id)[: SEARCH_CONFIG.CANDIDATE_LIMIT]
        )
        if not users:
            return []

        my_chats = ChatMember.objects.filter(user=requester).values("chat_id")
        shared = dict(
            ChatMember.objects.filter(chat_id__in=my_chats, user_id__in=[u.id for u in users])
            .values("user_id")
            .annotate(n=Count("chat_id"))
            .values_list("user_id", "n")
        )

        hits = []
        for user in users:
            score = cls._match_score(query, user, weights)
            score += min(
                shared.get(user.id, 0) * weights["shared_chat"],
                weights["shared_chat_cap"],
            )
            hits.append(SearchHit("user", score, user))
        return hits

    @classmethod
    def _search_chats(cls, requester: User, query: str, weights: dict) -> list[SearchHit]:
        contact_ids = ChatMember.objects.contact_ids(requester.id)
        banned_from = BannedMember.objects.filter(user=requester).values("chat_id")

        chats = (
            Chat.objects.filter(cls._text_filter(query), kind=ChatKind.PUBLIC_GROUP)
            .exclude(id__in=banned_from)
            .with_stats()
            .annotate(
                shared_contacts=Count(
                    "members",
                    filter=Q(members__user_id__in=contact_ids),
                    distinct=True,
                )
            )[: SEARCH_CONFIG.CANDIDATE_LIMIT]
        )

        hits = []
        for chat in chats:
            score = cls._match_score(query, chat, weights)
            score += min(
                chat.shared_contacts * weights["shared_contact"],
                weights["shared_contact_cap"],
            )
            if chat.size:
                score += chat.online / chat.size * weights["online"]
            hits.append(SearchHit("chat", score, chat))
        return hits

    @classmethod
    def search(cls, requester: User, query: str) -> ServiceResult[list[SearchHit]]:
        """
        Search users and public groups.

        Error codes:
            BAD_REQUEST: Query shorter than SEARCH_CONFIG.MIN_QUERY_LENGTH
        """
        query = (query or "").strip().lower()
        if len(query) < SEARCH_CONFIG.MIN_QUERY_LENGTH:
            return cls.fail("Search Query Is Required", "BAD_REQUEST")

        weights = SEARCH_CONFIG.weights()
        hits = cls._search_users(requester, query, weights) + cls._search_chats(
            requester, query, weights
        )
        hits.sort(key=lambda hit: hit.score, reverse=True)

        cls.get_logger().debug(f"Search {query!r} by user {requester.id}: {len(hits)} hits")
        return ServiceResult.success(hits[: SEARCH_CONFIG.MAX_RESULTS])
