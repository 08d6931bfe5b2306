import uuid

import django.db.models.functions.text
from django.db import migrations, models

import accounts.managers
import accounts.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "email",
                    models.EmailField(
                        db_index=True,
                        help_text="User's email address (login identifier)",
                        max_length=254,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(help_text="Display name", max_length=50)),
                (
                    "tag",
                    models.CharField(
                        help_text="Public handle, unique ignoring case",
                        max_length=30,
                        validators=[accounts.models.validate_tag_format],
                    ),
                ),
                (
                    "description",
                    models.CharField(blank=True, default="", help_text="Profile description", max_length=300),
                ),
                ("locale", models.CharField(default="en", help_text="Preferred language code", max_length=10)),
                (
                    "avatar",
                    models.ImageField(
                        blank=True,
                        help_text="Profile image",
                        null=True,
                        upload_to=accounts.models.avatar_upload_to,
                    ),
                ),
                (
                    "online",
                    models.BooleanField(default=False, help_text="Whether the user currently has a live connection"),
                ),
                (
                    "last_seen",
                    models.DateTimeField(
                        blank=True, help_text="When the user's last live connection closed", null=True
                    ),
                ),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Whether this user account is active. Deselect instead of deleting.",
                    ),
                ),
                (
                    "is_staff",
                    models.BooleanField(default=False, help_text="Whether the user can access the admin site."),
                ),
                (
                    "date_joined",
                    models.DateTimeField(auto_now_add=True, help_text="When the user account was created"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="When the user record was last modified"),
                ),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("tag"),
                        name="unique_user_tag_case_insensitive",
                    )
                ],
            },
            managers=[
                ("objects", accounts.managers.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="PendingUser",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                (
                    "email",
                    models.EmailField(help_text="Email address awaiting verification", max_length=254, unique=True),
                ),
                ("password", models.CharField(help_text="Hashed password", max_length=128)),
                (
                    "token",
                    models.CharField(
                        default=accounts.models.default_registration_token,
                        help_text="Verification token sent by mail",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "expires_at",
                    models.DateTimeField(
                        db_index=True,
                        default=accounts.models.default_pending_expiry,
                        help_text="When the verification token stops being valid",
                    ),
                ),
            ],
            options={
                "verbose_name": "pending user",
                "verbose_name_plural": "pending users",
                "ordering": ["-created_at"],
            },
        ),
    ]
