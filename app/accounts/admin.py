"""
Django admin configuration for account models.

This module registers User and PendingUser with the Django admin site.

Related files:
    - models.py: Model definitions
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import PendingUser, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for User model.

    Customized for email-based authentication with a public tag.
    """

    list_display = (
        "email",
        "tag",
        "name",
        "online",
        "is_active",
        "is_staff",
        "date_joined",
    )
    list_filter = (
        "online",
        "is_active",
        "is_staff",
        "is_superuser",
        "date_joined",
    )
    search_fields = ("email", "tag", "name")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("name", "tag", "description", "locale", "avatar")}),
        ("Presence", {"fields": ("online", "last_seen")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser")},
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "name", "tag", "password1", "password2"),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login", "online", "last_seen")


@admin.register(PendingUser)
class PendingUserAdmin(admin.ModelAdmin):
    """Pending registrations, read-only apart from deletion."""

    list_display = ("email", "created_at", "expires_at")
    search_fields = ("email",)
    ordering = ("-created_at",)
    readonly_fields = ("email", "password", "token", "created_at", "expires_at")
