"""
Serializers for accounts.

This module provides DRF serializers for:
- User reads (current user, public preview)
- Registration (start, verify)
- Profile edits and avatar uploads

Related files:
    - models.py: User and PendingUser models
    - views.py: Views that use these serializers
    - settings.py: REST_AUTH["USER_DETAILS_SERIALIZER"] points at
      CurrentUserSerializer

Security:
    - Password fields are write-only and run Django's password validators
    - Email is only exposed to the user themselves
"""

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from accounts.models import User, validate_tag_format
from chat.services import chat_ids_for_user
from core.validators import validate_file_extension, validate_file_size


class UserPreviewSerializer(serializers.ModelSerializer):
    """
    Public projection of a user.

    Used for the user preview endpoint and nested in chat member lists.
    """

    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "tag",
            "description",
            "locale",
            "avatar",
            "online",
            "last_seen",
            "date_joined",
        ]
        read_only_fields = fields

    def get_avatar(self, obj):
        """Return the avatar URL, absolute when a request is available."""
        if not obj.avatar:
            return None
        request = self.context.get("request")
        if request:
            return request.build_absolute_uri(obj.avatar.url)
        return obj.avatar.url


class CurrentUserSerializer(UserPreviewSerializer):
    """
    Full view of the authenticated user, including email and chat ids.

    Also used by dj-rest-auth for /api/v1/auth/user/. Read-only there;
    profile edits go through /api/v1/accounts/me/.
    """

    chats = serializers.SerializerMethodField()

    class Meta(UserPreviewSerializer.Meta):
        fields = UserPreviewSerializer.Meta.fields + ["email", "chats"]
        read_only_fields = fields

    def get_chats(self, obj) -> list[str]:
        return chat_ids_for_user(obj.id)


class RegisterSerializer(serializers.Serializer):
    """Input for starting a registration."""

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        max_length=128,
        style={"input_type": "password"},
    )

    def validate_password(self, value):
        validate_password(value)
        return value


class VerifyRegistrationSerializer(serializers.Serializer):
    """Input for completing a registration."""

    token = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=50)
    tag = serializers.CharField(max_length=30, validators=[validate_tag_format])
    description = serializers.CharField(
        max_length=300, required=False, allow_blank=True, default=""
    )
    locale = serializers.CharField(max_length=10, required=False)


class ProfileEditSerializer(serializers.Serializer):
    """
    Partial profile update.

    Every field is optional; omitted fields are left unchanged.
    """

    name = serializers.CharField(max_length=50, required=False)
    tag = serializers.CharField(
        max_length=30, required=False, validators=[validate_tag_format]
    )
    description = serializers.CharField(max_length=300, required=False, allow_blank=True)
    locale = serializers.CharField(max_length=10, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No Arguments Provided")
        return attrs


class AvatarSerializer(serializers.Serializer):
    """Avatar upload: JPEG or PNG, at most AVATAR_MAX_SIZE_KB."""

    avatar = serializers.ImageField(
        validators=[
            validate_file_size(max_kb=settings.AVATAR_MAX_SIZE_KB),
            validate_file_extension(["jpg", "jpeg", "png"]),
        ]
    )


class AvailabilitySerializer(serializers.Serializer):
    available = serializers.BooleanField()


class TokenValiditySerializer(serializers.Serializer):
    valid = serializers.BooleanField()


class AuthenticatedUserSerializer(serializers.Serializer):
    """Response of a completed registration: the user and a token pair."""

    user = CurrentUserSerializer()
    access = serializers.CharField()
    refresh = serializers.CharField()
