"""
Custom user manager for email-based authentication.

Related files:
    - models.py: User model that uses this manager

Security:
    - Passwords are automatically hashed via set_password()
    - Email addresses are normalized (lowercase domain)
"""

from django.contrib.auth.models import BaseUserManager


class UserManager(BaseUserManager):
    """
    Custom manager for User model with email-based authentication.

    Usage:
        user = User.objects.create_user(
            email="user@example.com",
            password="securepassword",
            name="User",
            tag="user",
        )
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user with the given email and password.

        Args:
            email: User's email address (required)
            password: Raw password, or None for an unusable password
            **extra_fields: Additional fields; `tag` is required

        Raises:
            ValueError: If email or tag is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")
        if not extra_fields.get("tag"):
            raise ValueError("The Tag field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        extra_fields.setdefault("name", extra_fields["tag"])

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_user_with_hash(self, email, password_hash, **extra_fields):
        """
        Create a user whose password was hashed earlier.

        Used when a pending registration is verified: the raw password
        is never stored, only its hash.
        """
        extra_fields.setdefault("name", extra_fields.get("tag", ""))
        user = self.model(
            email=self.normalize_email(email),
            password=password_hash,
            **extra_fields,
        )
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser with the given email and password.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)

    def tag_taken(self, tag: str, exclude_id=None) -> bool:
        """Case-insensitive tag lookup, optionally ignoring one user."""
        queryset = self.filter(tag__iexact=tag)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()
