"""
Tests for chat Celery tasks.
"""

from chat.models import Room
from chat.tasks import reconcile_room_stats
from chat.tests.factories import MessageFactory, RoomFactory, RoomMemberFactory


class TestReconcileRoomStats:
    def test_repairs_drifted_counters(self, algebra_room):
        """
        Counters edited outside the services are recounted from the rows.

        Why it matters: Listings show totalMembers and totalMessages directly.
        """
        MessageFactory(room=algebra_room)
        MessageFactory(room=algebra_room)
        Room.objects.filter(pk=algebra_room.pk).update(total_members=9, total_messages=0)

        changed = reconcile_room_stats(["algebra-1"])

        algebra_room.refresh_from_db()
        assert changed == 1
        assert algebra_room.total_members == 1
        assert algebra_room.total_messages == 2

    def test_consistent_rooms_are_not_counted(self, algebra_room):
        assert reconcile_room_stats(["algebra-1"]) == 0

    def test_all_active_rooms_by_default(self, db):
        room = RoomFactory(room_id="drifted")
        RoomMemberFactory(room=room)
        inactive = RoomFactory(room_id="archived", is_active=False)
        MessageFactory(room=inactive)

        result = reconcile_room_stats.apply().get()

        inactive.refresh_from_db()
        assert result == 1
        assert inactive.total_messages == 0

    def test_missing_room_is_skipped(self, algebra_room):
        assert reconcile_room_stats(["nowhere", "algebra-1"]) == 0
