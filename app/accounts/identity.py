"""
Identity context: credential resolution and revocation.

The chat core never inspects tokens itself. It asks this module two
questions:
    resolve(raw_token)  -> user id, or None when the credential is invalid
    is_revoked(jti)     -> whether a credential was explicitly revoked

Tokens are simplejwt access tokens. Revocation reuses simplejwt's
token_blacklist tables (OutstandingToken + BlacklistedToken) so that
refresh-token blacklisting and access-token revocation share one store and
one cleanup job (see accounts.tasks.flush_expired_tokens).

Usage:
    from accounts import identity

    user_id = identity.resolve(raw_token)
    if user_id is None:
        ...reject...

    identity.revoke(request.auth)  # on logout
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.token_blacklist.models import (
    BlacklistedToken,
    OutstandingToken,
)
from rest_framework_simplejwt.tokens import AccessToken
from rest_framework_simplejwt.utils import datetime_from_epoch

from accounts.models import User

if TYPE_CHECKING:
    from rest_framework_simplejwt.tokens import Token

logger = logging.getLogger(__name__)


def is_revoked(jti: str) -> bool:
    """Return True if the token with this id has been blacklisted."""
    return BlacklistedToken.objects.filter(token__jti=jti).exists()


def resolve(raw_token: str) -> UUID | None:
    """
    Resolve a raw access token into the user id it was issued for.

    Returns None when the token is malformed, expired, signed with another
    key, or revoked.
    """
    try:
        token = AccessToken(raw_token)
    except TokenError:
        return None

    if is_revoked(token[api_settings.JTI_CLAIM]):
        logger.info(f"Rejected revoked token {token[api_settings.JTI_CLAIM]}")
        return None

    try:
        return UUID(str(token[api_settings.USER_ID_CLAIM]))
    except (KeyError, ValueError):
        return None


def resolve_user(raw_token: str) -> User | None:
    """Resolve a raw access token into an active User, or None."""
    user_id = resolve(raw_token)
    if user_id is None:
        return None
    return User.objects.filter(id=user_id, is_active=True).first()


def revoke(token: Token) -> None:
    """
    Blacklist a validated token by its jti.

    Idempotent: revoking an already revoked token is a no-op.
    """
    jti = token[api_settings.JTI_CLAIM]
    user_id = token.get(api_settings.USER_ID_CLAIM)

    outstanding, _ = OutstandingToken.objects.get_or_create(
        jti=jti,
        defaults={
            "user_id": user_id,
            "token": str(token),
            "created_at": timezone.now(),
            "expires_at": datetime_from_epoch(token["exp"]),
        },
    )
    BlacklistedToken.objects.get_or_create(token=outstanding)
    logger.info(f"Revoked token {jti} for user {user_id}")
