"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or missing input, user-correctable
    ├── NotFoundError - Room/message id does not resolve
    ├── PermissionDeniedError - Actor lacks the relationship to the target
    ├── ConflictError - State conflicts (duplicate room ids, etc.)
    ├── PersistenceError - Store unavailable or write failed
    └── ExternalServiceError - Blob store or other collaborator failures

Every class carries the HTTP status used when it surfaces through the REST
layer (see core.exception_handlers) and an error code that the chat gateway
forwards to the initiating socket.

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Room name is required", error_code="ROOM_NAME_REQUIRED")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles request-parsing exceptions (serializer errors, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description, safe to show to clients
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 400

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

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Message not found",
                "error_code": "MESSAGE_NOT_FOUND",
                "details": {"message_id": 12}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for missing sender fields, empty text content, unknown room types,
    attachments the room settings reject, and similar service-layer checks.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        raise NotFoundError(
            f"Room {room_id} not found",
            error_code="ROOM_NOT_FOUND",
            details={"room_id": room_id},
        )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when an identity lacks permission for an operation.

    Deleting another identity's message without a moderating role, editing
    someone else's message, or posting to a room where the member has
    can_send_messages switched off.
    """

    default_error_code: str = "PERMISSION_DENIED"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class PersistenceError(BaseApplicationError):
    """
    Raised when the database is unavailable or a write fails.

    The message is always a safe, generic description; the original
    database error is chained as ``__cause__`` and logged server-side.
    Retrying is left to the caller.
    """

    default_error_code: str = "PERSISTENCE_FAILURE"
    http_status: int = 503


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external collaborator call fails.

    Used for blob store writes. Log the original error for debugging but
    don't expose internal details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502
