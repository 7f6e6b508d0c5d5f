"""
Tests for chat models.

Covers:
- Room: last_message preview, MIME pattern matching, default rooms
- RoomMember: default permissions per room role
- Message: sender identity, reply snapshot, tombstones, reaction buckets,
  per-room sequence uniqueness
- ReadReceipt: one receipt per identity and message
"""

import pytest
from django.db import IntegrityError
from django.utils import timezone

from chat.identity import Identity, Role
from chat.models import DeletedByModel, MemberRole, Message, Room, RoomMember
from chat.tests.factories import (
    MessageFactory,
    MessageReactionFactory,
    ReadReceiptFactory,
    RoomFactory,
)


class TestRoom:
    def test_default_rooms_are_seeded(self, db):
        """
        The data migration creates the portal's standing rooms.

        Why it matters: Clients join "general" without anyone creating it.
        """
        assert set(
            Room.objects.filter(room_id__in=["general", "students", "teachers"]).values_list(
                "room_id", flat=True
            )
        ) == {"general", "students", "teachers"}

    def test_last_message_is_none_without_messages(self, db):
        room = RoomFactory()

        assert room.last_message is None

    def test_last_message_exposes_preview_fields(self, db):
        now = timezone.now()
        room = RoomFactory(
            last_message_content="See you tomorrow",
            last_message_at=now,
            last_message_sender_name="Ms. Taylor",
            last_message_type="text",
        )

        assert room.last_message == {
            "content": "See you tomorrow",
            "timestamp": now,
            "senderName": "Ms. Taylor",
            "messageType": "text",
        }

    @pytest.mark.parametrize(
        "mime_type,expected",
        [
            ("image/png", True),
            ("IMAGE/JPEG", True),
            ("application/pdf", True),
            ("application/zip", False),
        ],
    )
    def test_accepts_mime_type_matches_patterns(self, db, mime_type, expected):
        room = RoomFactory()

        assert room.accepts_mime_type(mime_type) is expected

    def test_empty_allowed_types_rejects_everything(self, db):
        room = RoomFactory(allowed_file_types=[])

        assert room.accepts_mime_type("image/png") is False


class TestRoomMember:
    def test_admin_gets_every_permission(self):
        assert all(RoomMember.default_permissions(MemberRole.ADMIN).values())

    def test_moderator_can_delete_but_not_manage_members(self):
        permissions = RoomMember.default_permissions(MemberRole.MODERATOR)

        assert permissions["can_delete_messages"] is True
        assert permissions["can_add_members"] is False

    def test_member_can_only_send(self):
        permissions = RoomMember.default_permissions(MemberRole.MEMBER)

        assert permissions == {
            "can_send_messages": True,
            "can_delete_messages": False,
            "can_add_members": False,
            "can_remove_members": False,
        }

    def test_identity_is_unique_per_room(self, db):
        room = RoomFactory()
        RoomMember.objects.create(room=room, identity_id="student-1")

        with pytest.raises(IntegrityError):
            RoomMember.objects.create(room=room, identity_id="student-1")


class TestMessage:
    def test_sender_rebuilds_identity(self, db):
        message = MessageFactory(sender_id="t-1", sender_name="Ms. Taylor", sender_role="teacher")

        assert message.sender == Identity(id="t-1", name="Ms. Taylor", role=Role.TEACHER)

    def test_reply_snapshot_is_none_without_reply(self, db):
        assert MessageFactory().reply_snapshot is None

    def test_reply_snapshot_uses_stored_fields(self, db):
        room = RoomFactory()
        original = MessageFactory(room=room)
        reply = MessageFactory(
            room=room,
            reply_to=original,
            reply_to_sender_name="Ms. Taylor",
            reply_to_content="Solve for x",
            reply_to_truncated=False,
        )

        assert reply.reply_snapshot == {
            "messageId": original.pk,
            "senderName": "Ms. Taylor",
            "content": "Solve for x",
            "truncated": False,
        }

    def test_sequence_is_unique_per_room(self, db):
        room = RoomFactory()
        MessageFactory(room=room, sequence=1)

        with pytest.raises(IntegrityError):
            MessageFactory(room=room, sequence=1)

    def test_factory_continues_room_sequence(self, db):
        room = RoomFactory()
        first = MessageFactory(room=room)
        second = MessageFactory(room=room)

        assert (first.sequence, second.sequence) == (1, 2)

    @pytest.mark.parametrize(
        "role,expected",
        [
            (Role.ADMIN, DeletedByModel.ADMIN),
            (Role.TEACHER, DeletedByModel.TEACHER),
            (Role.STUDENT, DeletedByModel.USER),
            (Role.PARENT, DeletedByModel.USER),
        ],
    )
    def test_deleted_by_model_follows_actor_role(self, role, expected):
        assert Message.deleted_by_model_for(Identity(id="x", role=role)) == expected

    def test_mark_deleted_keeps_content(self, db):
        message = MessageFactory(content="Homework is due Friday")

        message.mark_deleted(Identity(id="t-1", role=Role.TEACHER))
        message.refresh_from_db()

        assert message.is_deleted is True
        assert message.deleted_at is not None
        assert message.deleted_by == "t-1"
        assert message.deleted_by_model == DeletedByModel.TEACHER
        assert message.content == "Homework is due Friday"

    def test_reaction_buckets_group_by_emoji(self, db):
        message = MessageFactory()
        MessageReactionFactory(message=message, emoji="👍", identity_id="a", name="A")
        MessageReactionFactory(message=message, emoji="🎉", identity_id="b", name="B")
        MessageReactionFactory(message=message, emoji="👍", identity_id="c", name="C")

        buckets = message.reaction_buckets()

        assert [b["emoji"] for b in buckets] == ["👍", "🎉"]
        assert buckets[0]["count"] == 2
        assert [u["id"] for u in buckets[0]["users"]] == ["a", "c"]
        assert all(b["count"] == len(b["users"]) for b in buckets)


class TestReadReceipt:
    def test_one_receipt_per_identity_and_message(self, db):
        message = MessageFactory()
        ReadReceiptFactory(message=message, identity_id="student-1")

        with pytest.raises(IntegrityError):
            ReadReceiptFactory(message=message, identity_id="student-1")
