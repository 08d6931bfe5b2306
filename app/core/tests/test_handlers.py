"""
Tests for core.handlers.api_exception_handler.

Verifies that every error leaving the REST API has the
{statusCode, message, error} shape and that internal details of
unexpected failures never reach the client.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions

from core.exceptions import ConflictError, UnauthorizedError
from core.handlers import api_exception_handler, flatten_detail


class _View:
    pass


CONTEXT = {"view": _View()}


class TestApiExceptionHandler:
    def test_application_error_uses_its_status(self):
        response = api_exception_handler(UnauthorizedError("Lacking Permissions"), CONTEXT)

        assert response.status_code == 401
        assert response.data == {
            "statusCode": 401,
            "message": "Lacking Permissions",
            "error": "Unauthorized",
        }

    def test_conflict_error(self):
        response = api_exception_handler(ConflictError("Tag Has To Be Unique"), CONTEXT)

        assert response.status_code == 409
        assert response.data["error"] == "Conflict"

    def test_drf_validation_error_is_flattened(self):
        """
        Serializer errors become one message.

        Why it matters: Clients read a single `message` string, never the
        nested DRF structure.
        """
        exc = exceptions.ValidationError({"tag": ["This field is required."]})

        response = api_exception_handler(exc, CONTEXT)

        assert response.status_code == 400
        assert response.data["statusCode"] == 400
        assert response.data["error"] == "Bad Request"
        assert response.data["message"] == "Tag: This Field Is Required."

    def test_django_validation_error_is_bad_request(self):
        response = api_exception_handler(DjangoValidationError("Not a valid UUID."), CONTEXT)

        assert response.status_code == 400
        assert response.data["error"] == "Bad Request"
        assert response.data["message"] == "Not A Valid UUID."

    def test_drf_not_authenticated(self):
        response = api_exception_handler(exceptions.NotAuthenticated(), CONTEXT)

        assert response.status_code == 401
        assert response.data["error"] == "Unauthorized"

    def test_unexpected_error_is_scrubbed(self, caplog):
        """
        Unknown exceptions are logged and answered with a generic body.

        Why it matters: Internal messages and stack traces must never reach
        the wire.
        """
        response = api_exception_handler(
            RuntimeError("database password is hunter2"), CONTEXT
        )

        assert response.status_code == 500
        assert response.data == {
            "statusCode": 500,
            "message": "Unknown Error",
            "error": "Internal Server Error",
        }
        assert "hunter2" not in str(response.data)
        assert "Unhandled error" in caplog.text


class TestFlattenDetail:
    def test_nested_structures(self):
        detail = {
            "non_field_errors": ["Bad pair."],
            "members": [{"role": ["Invalid."]}],
        }

        assert flatten_detail(detail) == "Bad pair., members: role: Invalid."
