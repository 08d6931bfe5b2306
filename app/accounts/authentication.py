"""
DRF authentication backed by the identity context.

simplejwt's JWTAuthentication validates signature and expiry only. This
subclass also refuses access tokens that were revoked on logout, so a
logged-out token stops working immediately instead of at expiry.
"""

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.settings import api_settings

from accounts import identity


class RevocableJWTAuthentication(JWTAuthentication):
    """JWTAuthentication that also rejects revoked tokens."""

    def get_validated_token(self, raw_token):
        token = super().get_validated_token(raw_token)
        if identity.is_revoked(token[api_settings.JTI_CLAIM]):
            raise InvalidToken("Token is revoked")
        return token
