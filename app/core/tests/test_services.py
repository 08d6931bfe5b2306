"""
Tests for core.services: ServiceResult and BaseService.

ServiceResult is the contract between every service and its callers
(REST views and the WebSocket consumer), so its failure-to-exception
mapping is exercised for each error code.
"""

import pytest

from core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UnauthorizedError,
    ValidationError,
)
from core.services import BaseService, ServiceResult


class TestServiceResult:
    """Tests for ServiceResult construction and conversion."""

    def test_success_carries_data(self):
        """
        success() stores the payload and is truthy.

        Why it matters: Callers branch on `if result:`.
        """
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert bool(result) is True

    def test_failure_is_falsy_and_keeps_code(self):
        result = ServiceResult.failure("Chat Not Found", error_code="NOT_FOUND")

        assert result.success is False
        assert bool(result) is False
        assert result.error == "Chat Not Found"
        assert result.error_code == "NOT_FOUND"

    @pytest.mark.parametrize(
        ("error_code", "exc_class", "status_code"),
        [
            ("BAD_REQUEST", BadRequestError, 400),
            ("VALIDATION_ERROR", ValidationError, 400),
            ("UNAUTHORIZED", UnauthorizedError, 401),
            ("FORBIDDEN", PermissionDeniedError, 403),
            ("NOT_FOUND", NotFoundError, 404),
            ("CONFLICT", ConflictError, 409),
        ],
    )
    def test_raise_for_error_maps_code_to_exception(
        self, error_code, exc_class, status_code
    ):
        """
        raise_for_error() raises the exception class matching the code.

        Why it matters: The HTTP status of every service failure is derived
        from this mapping.
        """
        result = ServiceResult.failure("Something", error_code=error_code)

        with pytest.raises(exc_class) as exc_info:
            result.raise_for_error()

        assert exc_info.value.status_code == status_code
        assert exc_info.value.message == "Something"

    def test_raise_for_error_returns_data_on_success(self):
        assert ServiceResult.success(42).raise_for_error() == 42

    def test_unknown_code_maps_to_bad_request(self):
        """
        An unrecognised error code is still a client error, never a 500.
        """
        result = ServiceResult.failure("Odd", error_code="SOMETHING_NEW")

        with pytest.raises(BadRequestError):
            result.raise_for_error()


class TestBaseService:
    """Tests for BaseService helpers."""

    def test_logger_is_named_after_service(self):
        class ExampleService(BaseService):
            pass

        assert ExampleService.get_logger().name.endswith("ExampleService")
