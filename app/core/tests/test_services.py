"""
Tests for BaseService in core/services.py.
"""

import pytest
from django.db import IntegrityError, OperationalError

from chat.models import Room
from core.exceptions import PersistenceError, ValidationError
from core.services import BaseService


class SampleService(BaseService):
    pass


class TestValidateRequired:
    def test_passes_when_all_present(self):
        SampleService.validate_required(name="Algebra", sender_id="s-1")

    def test_lists_every_missing_field(self):
        with pytest.raises(ValidationError) as exc:
            SampleService.validate_required(name="  ", sender_id=None, room_id="general")

        assert exc.value.error_code == "VALIDATION_ERROR"
        assert set(exc.value.details) == {"name", "sender_id"}
        assert exc.value.message == "Required fields missing: name, sender_id"

    def test_falsy_non_strings_are_present(self):
        SampleService.validate_required(count=0, flag=False)


class TestPersistenceGuard:
    def test_database_error_becomes_persistence_error(self):
        with pytest.raises(PersistenceError) as exc:
            with SampleService.persistence_guard("lookup"):
                raise OperationalError("database is locked")

        assert exc.value.error_code == "PERSISTENCE_FAILURE"
        assert "locked" not in exc.value.message
        assert isinstance(exc.value.__cause__, OperationalError)

    def test_integrity_error_passes_through(self):
        with pytest.raises(IntegrityError):
            with SampleService.persistence_guard():
                raise IntegrityError("duplicate key")

    def test_other_exceptions_pass_through(self):
        with pytest.raises(KeyError):
            with SampleService.persistence_guard():
                raise KeyError("x")


class TestAtomic:
    def test_domain_error_rolls_back(self, db):
        with pytest.raises(ValidationError):
            with SampleService.atomic():
                Room.objects.create(room_id="rolled-back", name="Rolled back")
                raise ValidationError("nope")

        assert not Room.objects.filter(room_id="rolled-back").exists()

    def test_commits_on_success(self, db):
        with SampleService.atomic():
            Room.objects.create(room_id="kept", name="Kept")

        assert Room.objects.filter(room_id="kept").exists()


class TestGetLogger:
    def test_logger_is_named_after_service(self):
        assert SampleService.get_logger().name.endswith("test_services.SampleService")
