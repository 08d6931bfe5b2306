"""
Account models.

This module defines:
- User: Custom user model with email login, a public handle ("tag"),
  profile fields and presence state
- PendingUser: A registration waiting for its verification link to be used

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: AccountService business logic
    - identity.py: Credential resolution and revocation

Security:
    - Passwords are hashed with Django's password hashers, including the
      pending registration's password (never stored raw)
    - Registration tokens are cryptographically random
"""

import os
import re
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.functions import Lower
from django.utils import timezone

from accounts.managers import UserManager
from core.helpers import generate_token
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

TAG_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")


def validate_tag_format(value):
    """Validate tag format: 3-30 chars, alphanumeric + _ + -."""
    if not TAG_PATTERN.match(value):
        raise ValidationError(
            "Tag must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


def avatar_upload_to(instance, filename):
    """Store one avatar per user, named after the user id."""
    ext = os.path.splitext(filename)[1].lower()
    return f"avatars/{instance.id}{ext}"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    Fields:
        id: Stable, immutable UUID used everywhere on the wire
        email: Login identifier, unique
        name: Display name
        tag: Public handle, unique ignoring case
        description: Free-text profile description
        locale: Preferred language code
        avatar: Optional profile image
        online: True while the user has at least one live socket
        last_seen: When the user's last socket closed
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (login identifier)",
    )

    name = models.CharField(
        max_length=50,
        help_text="Display name",
    )
    tag = models.CharField(
        max_length=30,
        validators=[validate_tag_format],
        help_text="Public handle, unique ignoring case",
    )
    description = models.CharField(
        max_length=300,
        blank=True,
        default="",
        help_text="Profile description",
    )
    locale = models.CharField(
        max_length=10,
        default="en",
        help_text="Preferred language code",
    )
    avatar = models.ImageField(
        upload_to=avatar_upload_to,
        null=True,
        blank=True,
        help_text="Profile image",
    )

    # Presence
    online = models.BooleanField(
        default=False,
        help_text="Whether the user currently has a live connection",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user's last live connection closed",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"

    # Prompted by createsuperuser in addition to email and password
    REQUIRED_FIELDS = ["name", "tag"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        constraints = [
            models.UniqueConstraint(
                Lower("tag"),
                name="unique_user_tag_case_insensitive",
            ),
        ]

    def __str__(self):
        return f"{self.name} (@{self.tag})"


def default_pending_expiry():
    return timezone.now() + timedelta(days=settings.PENDING_USER_EXPIRY_DAYS)


def default_registration_token():
    return generate_token(32)


class PendingUser(UUIDPrimaryKeyMixin, BaseModel):
    """
    A registration that has not been verified yet.

    Holds the email and the hashed password until the user follows the
    verification link and picks a name and tag. At most one pending row
    exists per email; registering again replaces it.

    Fields:
        email: Address the verification link was sent to
        password: Hashed password (Django hasher format)
        token: Random verification token (64 hex chars)
        expires_at: After this, the token is rejected and the row is
            removed by the cleanup task
    """

    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="Email address awaiting verification",
    )
    password = models.CharField(
        max_length=128,
        help_text="Hashed password",
    )
    token = models.CharField(
        max_length=64,
        unique=True,
        default=default_registration_token,
        help_text="Verification token sent by mail",
    )
    expires_at = models.DateTimeField(
        default=default_pending_expiry,
        db_index=True,
        help_text="When the verification token stops being valid",
    )

    class Meta:
        verbose_name = "pending user"
        verbose_name_plural = "pending users"
        ordering = ["-created_at"]

    def __str__(self):
        return f"PendingUser({self.email})"

    @property
    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at
