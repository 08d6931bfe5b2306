"""
DRF exception handler producing the API's single error shape.

Every error leaving the REST API looks like:

    {"statusCode": 404, "message": "Chat Not Found", "error": "Not Found"}

Sources handled:
    - BaseApplicationError (raised from ServiceResult.raise_for_error())
    - DRF APIException subclasses (validation, authentication, 404, 405, ...)
    - Django Http404 / PermissionDenied (converted by DRF's default handler)
    - Django ValidationError (e.g. a malformed id reaching a UUIDField): 400
    - Anything else: logged with traceback, answered with a generic 500

Configured in settings:
    REST_FRAMEWORK["EXCEPTION_HANDLER"] = "core.handlers.api_exception_handler"
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError
from core.helpers import capitalize_words

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_BODY = {
    "statusCode": 500,
    "message": "Unknown Error",
    "error": "Internal Server Error",
}


def error_body(status_code: int, message: str) -> dict[str, Any]:
    """Build the wire error shape for a status code and message."""
    return {
        "statusCode": status_code,
        "message": capitalize_words(message),
        "error": HTTPStatus(status_code).phrase,
    }


def flatten_detail(detail: Any) -> str:
    """
    Collapse DRF error detail (str, list or nested dict) into one message.

    Field errors are prefixed with their field name:
        {"tag": ["This field is required."]} -> "tag: This field is required."
    """
    if isinstance(detail, dict):
        parts = []
        for key, value in detail.items():
            message = flatten_detail(value)
            parts.append(message if key == "non_field_errors" else f"{key}: {message}")
        return ", ".join(parts)
    if isinstance(detail, (list, tuple)):
        return ", ".join(flatten_detail(item) for item in detail)
    return str(detail)


def api_exception_handler(exc: Exception, context: dict) -> Response:
    """
    Render any exception raised in a DRF view as {statusCode, message, error}.

    Unexpected exceptions are logged server-side with full detail; only the
    scrubbed generic body reaches the client.
    """
    if isinstance(exc, BaseApplicationError):
        logger.info(f"{exc.error_code}: {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(detail=exc.messages)

    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data
        if isinstance(detail, dict) and "detail" in detail:
            detail = detail["detail"]
        response.data = error_body(response.status_code, flatten_detail(detail))
        return response

    view = context.get("view")
    logger.exception(
        f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}"
    )
    return Response(dict(UNKNOWN_ERROR_BODY), status=500)
