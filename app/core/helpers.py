"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Token generation (cryptographic)
- Error message normalisation

Usage:
    from core.helpers import generate_token, capitalize_words

    token = generate_token(32)
    message = capitalize_words("user not found")  # "User Not Found"
"""

from __future__ import annotations

import secrets


def generate_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Number of bytes (resulting string is 2x length in hex)

    Returns:
        Hexadecimal token string

    Example:
        token = generate_token(32)  # Returns 64-character hex string
    """
    return secrets.token_hex(length)


def capitalize_words(value: str) -> str:
    """
    Capitalise the first letter of every word, leaving the rest untouched.

    Unlike str.title(), apostrophes do not start a new word:
    "owner can't leave" becomes "Owner Can't Leave".
    """
    return " ".join(word[:1].upper() + word[1:] for word in value.split(" "))
