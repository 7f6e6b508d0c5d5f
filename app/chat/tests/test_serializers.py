"""
Tests for chat serializers.

Output shape is covered by the view and gateway tests; these pin down the
input conversions that the services rely on.
"""

from datetime import datetime, timezone

from chat.serializers import (
    HistoryQuerySerializer,
    MessageCreateSerializer,
    RoomCreateSerializer,
    to_wire,
)


class TestHistoryQuerySerializer:
    def test_before_accepts_epoch_millis(self):
        serializer = HistoryQuerySerializer(data={"before": "1767225600000"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["before"] == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_naive_iso_is_utc(self):
        serializer = HistoryQuerySerializer(data={"before": "2026-01-01T08:30:00"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["before"].utcoffset().total_seconds() == 0

    def test_garbage_before_is_invalid(self):
        serializer = HistoryQuerySerializer(data={"before": "last tuesday"})

        assert not serializer.is_valid()
        assert "before" in serializer.errors


class TestRoomCreateSerializer:
    def test_room_options_are_snake_case(self):
        serializer = RoomCreateSerializer(
            data={
                "name": "Physics",
                "classLevel": "Grade 11",
                "settings": {"allowFileSharing": False, "allowedFileTypes": ["image/*"]},
            }
        )

        assert serializer.is_valid(), serializer.errors
        assert serializer.room_options() == {
            "class_level": "Grade 11",
            "allow_file_sharing": False,
            "allowed_file_types": ["image/*"],
        }
        assert serializer.creator() is None

    def test_creator_is_resolved(self):
        serializer = RoomCreateSerializer(
            data={"name": "Physics", "createdBy": {"id": "t-1", "name": "Dr. P", "role": "Teacher"}}
        )

        assert serializer.is_valid(), serializer.errors
        creator = serializer.creator()
        assert creator.id == "t-1"
        assert creator.role == "teacher"


class TestMessageCreateSerializer:
    def test_defaults_to_text(self):
        serializer = MessageCreateSerializer(data={"senderId": "s-1", "senderName": "Sam"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["type"] == "text"
        assert serializer.sender().role == "student"


class TestToWire:
    def test_datetimes_become_strings(self):
        wire = to_wire({"at": datetime(2026, 1, 1, tzinfo=timezone.utc), "n": 1})

        assert wire["n"] == 1
        assert isinstance(wire["at"], str)
        assert wire["at"].startswith("2026-01-01T00:00:00")
