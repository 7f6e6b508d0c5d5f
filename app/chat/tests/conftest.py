"""
Test configuration and fixtures for chat tests.

This module provides:
- Identity fixtures for a teacher, two students and an admin
- Room fixtures created through RoomDirectory so stats are consistent
- API client for the REST façade
- A fresh ChatRuntime per test and a channel layer listener for
  asserting on room broadcasts

Usage:
    def test_example(api_client, algebra_room, student):
        response = api_client.get(f"/api/v1/chat/rooms/{algebra_room.room_id}/")
        assert response.status_code == 200

Note:
    The 0002 data migration seeds the rooms "general", "students" and
    "teachers"; tests that count rooms must account for them.
"""

import asyncio

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from rest_framework.test import APIClient

from chat.constants import room_group_name
from chat.identity import Role
from chat.presence import PresenceRegistry
from chat.runtime import ChatRuntime
from chat.services import RoomDirectory
from chat.tests.factories import make_identity


# =============================================================================
# Identity Fixtures
# =============================================================================


@pytest.fixture
def teacher():
    return make_identity("teacher-1", "Ms. Taylor", Role.TEACHER)


@pytest.fixture
def student():
    return make_identity("student-1", "Sam Student", Role.STUDENT)


@pytest.fixture
def other_student():
    return make_identity("student-2", "Riley Student", Role.STUDENT)


@pytest.fixture
def admin_identity():
    return make_identity("admin-1", "Principal Admin", Role.ADMIN)


# =============================================================================
# Room Fixtures
# =============================================================================


@pytest.fixture
def algebra_room(db, teacher):
    """Subject room created by the teacher, who becomes its admin member."""
    return RoomDirectory.create(
        name="Algebra 1",
        room_type="subject",
        created_by=teacher,
        room_id="algebra-1",
        subject="Math",
        class_level="Grade 9",
    )


@pytest.fixture
def joined_room(algebra_room, student):
    """algebra-1 with the student as a plain member."""
    RoomDirectory.add_member(algebra_room.room_id, student)
    algebra_room.refresh_from_db()
    return algebra_room


# =============================================================================
# Transport Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def runtime():
    """Runtime with its own registry and sequencer, not the app-wide one."""
    return ChatRuntime(registry=PresenceRegistry(typing_ttl=10))


@pytest.fixture
def channel_layer():
    layer = get_channel_layer()
    yield layer
    async_to_sync(layer.flush)()


class RoomListener:
    """A bare channel subscribed to a room group, for asserting broadcasts."""

    def __init__(self, layer, room_id):
        self.layer = layer
        self.group = room_group_name(room_id)
        self.channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(self.group, self.channel)

    def receive(self, timeout=1.0):
        async def _receive():
            return await asyncio.wait_for(self.layer.receive(self.channel), timeout)

        return async_to_sync(_receive)()

    def receive_events(self, count, timeout=1.0):
        return [self.receive(timeout)["event"] for _ in range(count)]

    def assert_nothing_received(self, timeout=0.1):
        with pytest.raises(asyncio.TimeoutError):
            self.receive(timeout)


@pytest.fixture
def room_listener(channel_layer):
    def listen(room_id):
        return RoomListener(channel_layer, room_id)

    return listen
