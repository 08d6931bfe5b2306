"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across REST and WebSocket boundaries
- Machine-readable error codes for client handling
- A fixed wire shape: {"statusCode": int, "message": str, "error": str}

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── BadRequestError - Invariant-violating transitions (400)
    ├── ValidationError - Input validation failures (400)
    ├── UnauthorizedError - Authenticated but lacking rights (401)
    ├── PermissionDeniedError - Access refused, e.g. banned (403)
    ├── NotFoundError - Referenced entity absent (404)
    └── ConflictError - Uniqueness / duplicate-state violations (409)

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError("Chat Not Found")

    raise ConflictError("Tag Has To Be Unique", error_code="CONFLICT")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Service code does not raise these for expected failures; it returns a
ServiceResult.failure() with one of the error codes below. Views and the
WebSocket consumer turn failures into exceptions with
ServiceResult.raise_for_error().
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status the error maps to

    Example:
        try:
            ...
        except NotFoundError as e:
            logger.warning(f"Lookup failed: {e.error_code}")
            return Response(e.to_dict(), status=e.status_code)
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    @property
    def error(self) -> str:
        """HTTP reason phrase for the status, e.g. "Bad Request"."""
        return HTTPStatus(self.status_code).phrase

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the wire error shape.

        Example:
            {
                "statusCode": 404,
                "message": "Chat Not Found",
                "error": "Not Found"
            }
        """
        result: dict[str, Any] = {
            "statusCode": self.status_code,
            "message": self.message,
            "error": self.error,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class BadRequestError(BaseApplicationError):
    """
    Raised when a request is well-formed but the transition is not allowed.

    Use for:
    - Owner leaving their own group
    - Joining a private chat
    - Future or regressing read timestamps
    """

    default_error_code: str = "BAD_REQUEST"
    status_code: int = 400


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Example:
        raise ValidationError(
            "Validation failed",
            details={"tag": ["This field is required."]}
        )

    Note:
        Request payloads are validated by DRF serializers first; this
        class covers what is only detectable in the service layer.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class UnauthorizedError(BaseApplicationError):
    """
    Raised when the caller is known but lacks the rights for the action.

    Example:
        raise UnauthorizedError("Lacking Permissions")
    """

    default_error_code: str = "UNAUTHORIZED"
    status_code: int = 401


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when access is refused outright, e.g. a banned user joining.
    """

    default_error_code: str = "FORBIDDEN"
    status_code: int = 403


class NotFoundError(BaseApplicationError):
    """Raised when a referenced entity does not exist."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current state.

    Use for:
    - Duplicate tags or emails
    - A private chat that already exists for the pair
    - Banning a user twice
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


ERROR_CODE_EXCEPTIONS: dict[str, type[BaseApplicationError]] = {
    "BAD_REQUEST": BadRequestError,
    "VALIDATION_ERROR": ValidationError,
    "UNAUTHORIZED": UnauthorizedError,
    "FORBIDDEN": PermissionDeniedError,
    "NOT_FOUND": NotFoundError,
    "CONFLICT": ConflictError,
}


def exception_for_code(error_code: str | None) -> type[BaseApplicationError]:
    """
    Map a service error code to its exception class.

    Unknown codes map to BadRequestError so that a service failure is never
    reported as an internal error.
    """
    return ERROR_CODE_EXCEPTIONS.get(error_code or "", BadRequestError)
