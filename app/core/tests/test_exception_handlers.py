"""
Tests for the DRF exception handler in core/exception_handlers.py.

Every failure must reach REST clients in the same envelope:
    {"error": ..., "error_code": ..., "details": ...}
"""

from django.db import OperationalError
from rest_framework import exceptions as drf_exceptions

from core.exception_handlers import application_exception_handler
from core.exceptions import ConflictError, NotFoundError, PersistenceError


def handle(exc):
    return application_exception_handler(exc, {"view": None})


class TestApplicationErrors:
    def test_uses_http_status_of_error_class(self):
        response = handle(NotFoundError("Room x not found", error_code="ROOM_NOT_FOUND"))

        assert response.status_code == 404
        assert response.data == {"error": "Room x not found", "error_code": "ROOM_NOT_FOUND"}

    def test_includes_details(self):
        response = handle(
            ConflictError("Room exists", error_code="ROOM_EXISTS", details={"room_id": "general"})
        )

        assert response.status_code == 409
        assert response.data["details"] == {"room_id": "general"}

    def test_persistence_error_is_503(self):
        assert handle(PersistenceError("Chat store is unavailable")).status_code == 503


class TestDatabaseErrors:
    def test_raw_database_error_is_hidden(self):
        """
        An unexpected database error never leaks its text to the client.

        Why it matters: Driver messages can contain table names and SQL.
        """
        response = handle(OperationalError("no such table: chat_message"))

        assert response.status_code == 503
        assert response.data["error_code"] == "PERSISTENCE_FAILURE"
        assert "chat_message" not in response.data["error"]


class TestDrfErrors:
    def test_validation_error_envelope(self):
        response = handle(drf_exceptions.ValidationError({"name": ["This field is required."]}))

        assert response.status_code == 400
        assert response.data == {
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "details": {"name": ["This field is required."]},
        }

    def test_method_not_allowed(self):
        response = handle(drf_exceptions.MethodNotAllowed("PUT"))

        assert response.status_code == 405
        assert response.data["error_code"] == "METHOD_NOT_ALLOWED"

    def test_unknown_exception_is_not_handled(self):
        assert handle(RuntimeError("boom")) is None
