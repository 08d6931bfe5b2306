"""
Custom validators for Django models and DRF serializers.

This module provides domain-agnostic validators for file uploads.

Usage:
    from core.validators import validate_file_extension, validate_file_size

    class AvatarSerializer(serializers.Serializer):
        avatar = serializers.ImageField(
            validators=[validate_file_size(max_kb=100), validate_file_extension(["jpg"])]
        )
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError

if TYPE_CHECKING:
    from django.core.files import File


def validate_file_size(max_kb: int = 100):
    """
    Validator factory for file size limits.

    Args:
        max_kb: Maximum file size in kilobytes

    Returns:
        Validator function
    """

    def validator(file: File):
        max_bytes = max_kb * 1024
        if file.size > max_bytes:
            raise ValidationError(
                f"File size must be less than {max_kb}KB. "
                f"Current size: {file.size / 1024:.1f}KB"
            )

    return validator


def validate_file_extension(allowed_extensions: list[str]):
    """
    Validator factory for file extension limits.

    Args:
        allowed_extensions: List of allowed extensions (without dot)

    Returns:
        Validator function
    """

    def validator(file: File):
        ext = os.path.splitext(file.name)[1].lower().lstrip(".")
        if ext not in allowed_extensions:
            raise ValidationError(
                f"File extension '{ext}' is not allowed. "
                f"Allowed: {', '.join(allowed_extensions)}"
            )

    return validator
