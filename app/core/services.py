"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from views, consumers and
models. Views and consumers handle transport concerns, models handle data,
services handle logic. Expected failures are raised as core.exceptions
subclasses; database failures are converted to PersistenceError at the
service boundary so transports can report them without leaking internals.

Usage:
    from core.services import BaseService

    class RoomDirectory(BaseService):
        @classmethod
        def create(cls, name: str) -> Room:
            cls.validate_required(name=name)
            with cls.atomic():
                room = Room.objects.create(name=name)
            cls.get_logger().info("Created room %s", room.room_id)
            return room
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction

from core.exceptions import PersistenceError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @classmethod (no instance state)
        - Services should be stateless
        - Raise core.exceptions for expected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around transaction.atomic() that also converts database
        failures into PersistenceError. Domain exceptions raised inside the
        block roll the transaction back and propagate unchanged.

        Example:
            with cls.atomic():
                room = Room.objects.select_for_update().get(pk=pk)
                room.total_members = room.members.count()
                room.save(update_fields=["total_members"])
        """
        with cls.persistence_guard():
            with transaction.atomic():
                yield

    @classmethod
    @contextmanager
    def persistence_guard(cls, context: str = "") -> Generator[None, None, None]:
        """
        Convert DatabaseError into PersistenceError with logging.

        IntegrityError passes through unchanged so services can translate
        unique constraint violations into ConflictError.

        Args:
            context: Short description of the operation for the log line
        """
        try:
            yield
        except IntegrityError:
            # Constraint violations are conflicts the caller can name
            raise
        except DatabaseError as exc:
            cls.get_logger().exception(
                "Database failure%s", f" during {context}" if context else ""
            )
            raise PersistenceError("Chat store is unavailable, try again") from exc

    @classmethod
    def validate_required(cls, **kwargs) -> None:
        """
        Validate that required fields are provided.

        Raises:
            ValidationError: listing every field that is None or blank

        Example:
            cls.validate_required(sender_id=sender.id, sender_name=sender.name)
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            raise ValidationError(
                "Required fields missing: " + ", ".join(sorted(errors)),
                error_code="VALIDATION_ERROR",
                details=errors,
            )
