"""
DRF exception handler rendering every failure in one envelope.

Response body:
    {"error": "<safe message>", "error_code": "<CODE>", "details": {...}}

Domain exceptions from core.exceptions map to their ``http_status``.
Unexpected database errors are logged and rendered as PersistenceError so
internal failure detail never reaches the client.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError, PersistenceError

logger = logging.getLogger(__name__)


def application_exception_handler(exc, context):
    if isinstance(exc, BaseApplicationError):
        return Response(exc.to_dict(), status=exc.http_status)

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception(
            "Unhandled database error in %s", view.__class__.__name__ if view else "view"
        )
        error = PersistenceError("Chat store is unavailable, try again")
        return Response(error.to_dict(), status=error.http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        body = {
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "details": response.data,
        }
    else:
        detail = response.data.get("detail", "") if isinstance(response.data, dict) else ""
        codes = exc.get_codes() if isinstance(exc, drf_exceptions.APIException) else ""
        body = {
            "error": str(detail) or "Request failed",
            "error_code": str(codes).upper() if isinstance(codes, str) else "ERROR",
        }
    response.data = body
    return response
