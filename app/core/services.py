"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views and consumers handle transport concerns, models handle data,
    services handle rules.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class ChatService(BaseService):
        @classmethod
        def create_group(cls, owner, name, tag) -> ServiceResult[Chat]:
            if Chat.objects.filter(tag__iexact=tag).exists():
                return ServiceResult.failure(
                    "Group Tag Has To Be Unique",
                    error_code="CONFLICT",
                )

            with transaction.atomic():
                chat = Chat.objects.create(name=name, tag=tag)
                ChatMember.objects.create(chat=chat, user=owner, role=MemberRole.OWNER)

            cls.get_logger().info(f"Created group {chat.id}")
            return ServiceResult.success(chat)

    # In view
    result = ChatService.create_group(request.user, name, tag)
    chat = result.raise_for_error()
    return Response(ChatPreviewSerializer(chat).data, status=201)

Related:
    - core.exceptions: error codes and their HTTP mapping
    - core.handlers: renders raised errors as {statusCode, message, error}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from core.exceptions import BaseApplicationError, exception_for_code

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code, one of core.exceptions.ERROR_CODE_EXCEPTIONS
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(chat)

        # Failure case
        return ServiceResult.failure("Chat Not Found", "NOT_FOUND")

        # Check result
        result = MembershipService.join(chat_id, user)
        if result.success:
            member = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure("User Is Already Banned", "CONFLICT")
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_exception(self) -> BaseApplicationError:
        """Build the application error matching this failed result."""
        exc_class = exception_for_code(self.error_code)
        details = {"errors": self.errors} if self.errors else None
        return exc_class(self.error or "Unknown Error", self.error_code, details)

    def raise_for_error(self) -> T:
        """
        Return the data on success, raise the matching exception on failure.

        Example:
            chat = ChatService.create_group(...).raise_for_error()
        """
        if not self.success:
            raise self.to_exception()
        return self.data  # type: ignore[return-value]

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Logged failure results

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def fail(cls, error: str, error_code: str) -> ServiceResult:
        """
        Log a rejected operation and return its failure result.

        Example:
            if member.is_owner:
                return cls.fail("Owner Can't Leave The Group", "BAD_REQUEST")
        """
        cls.get_logger().info(f"Rejected ({error_code}): {error}")
        return ServiceResult.failure(error, error_code=error_code)
