"""
Tests for ChatAuthorizationService.

Policy:
    delete: sender, or an admin or teacher role
    edit: sender only
"""

import pytest

from chat.authorization import ChatAuthorizationService
from chat.services import MessageStore, RoomDirectory
from chat.tests.factories import MessageFactory, RoomMemberFactory
from core.exceptions import PermissionDeniedError


@pytest.fixture
def student_message(joined_room, student):
    return MessageFactory(room=joined_room, sender_id=student.id, sender_name=student.name)


class TestDelete:
    def test_sender_can_delete(self, student_message, student):
        assert ChatAuthorizationService.can_delete_message(student, student_message)

    def test_teacher_can_delete_any_message(self, student_message, teacher):
        assert ChatAuthorizationService.can_delete_message(teacher, student_message)

    def test_admin_can_delete_any_message(self, student_message, admin_identity):
        assert ChatAuthorizationService.can_delete_message(admin_identity, student_message)

    def test_other_student_cannot_delete(self, student_message, other_student):
        with pytest.raises(PermissionDeniedError) as exc:
            ChatAuthorizationService.require_delete(other_student, student_message)

        assert exc.value.error_code == "DELETE_NOT_ALLOWED"

    def test_member_flag_does_not_grant_delete(self, student_message, joined_room, other_student):
        RoomMemberFactory(
            room=joined_room,
            identity_id=other_student.id,
            role_in_room="moderator",
            can_delete_messages=True,
        )

        assert not ChatAuthorizationService.can_delete_message(other_student, student_message)

    def test_student_room_creator_cannot_delete_teacher_message(self, db, student, teacher):
        """
        A student creates a study room and a teacher posts in it.

        Why it matters: Anyone may create a room, so owning one must not
        let a student remove a teacher's messages.
        """
        room = RoomDirectory.create("Study group", "study", created_by=student, room_id="study-1")
        RoomDirectory.add_member(room.room_id, teacher)
        message = MessageStore.post(room.room_id, teacher, content="Read chapter 4")

        with pytest.raises(PermissionDeniedError):
            ChatAuthorizationService.require_delete(student, message)


class TestEdit:
    def test_sender_can_edit(self, student_message, student):
        ChatAuthorizationService.require_edit(student, student_message)

    def test_teacher_cannot_edit(self, student_message, teacher):
        with pytest.raises(PermissionDeniedError) as exc:
            ChatAuthorizationService.require_edit(teacher, student_message)

        assert exc.value.error_code == "EDIT_NOT_ALLOWED"
