"""
Factory Boy factories for chat models.

Provides realistic test data generation for:
- Room: Public rooms by default, with room_id derived from a sequence
- RoomMember: Identity snapshots with permissions for their room role
- Message: Text messages with per-room sequence numbers
- MessageReaction / ReadReceipt

Usage:
    from chat.tests.factories import RoomFactory, RoomMemberFactory, MessageFactory

    room = RoomFactory(room_id="algebra-1", subject="Math")
    RoomMemberFactory(room=room, identity_id="t-1", identity_role="teacher")
    message = MessageFactory(room=room, sender_id="t-1", sender_name="Ms. T")

Factories write rows directly and do not touch room stats; use the services
when a test is about stats or previews.
"""

import factory
from django.db.models import Max

from chat.identity import Identity, IdentityModel, Role
from chat.models import (
    MemberRole,
    Message,
    MessageReaction,
    ReadReceipt,
    Room,
    RoomMember,
    RoomType,
)


def make_identity(identity_id="student-1", name="Sam Student", role=Role.STUDENT, avatar=""):
    """Identity value object for service and gateway tests."""
    return Identity(id=identity_id, name=name, role=role, avatar=avatar)


def _next_sequence(message):
    last = Message.objects.filter(room_id=message.room.room_id).aggregate(last=Max("sequence"))
    return (last["last"] or 0) + 1


class RoomFactory(factory.django.DjangoModelFactory):
    """
    Factory for Room model.

    Examples:
        room = RoomFactory()
        room = RoomFactory(room_type=RoomType.PRIVATE, allow_file_sharing=False)
        room = RoomFactory(is_active=False)
    """

    class Meta:
        model = Room
        django_get_or_create = ("room_id",)

    room_id = factory.Sequence(lambda n: f"room-{n}")
    name = factory.Sequence(lambda n: f"Study Room {n}")
    room_type = RoomType.PUBLIC
    is_active = True


class RoomMemberFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = RoomMember

    room = factory.SubFactory(RoomFactory)
    identity_id = factory.Sequence(lambda n: f"user-{n}")
    identity_model = IdentityModel.USER
    name = factory.Faker("name")
    identity_role = Role.STUDENT
    role_in_room = MemberRole.MEMBER
    can_send_messages = True
    can_delete_messages = False


class MessageFactory(factory.django.DjangoModelFactory):
    """
    Factory for Message model.

    The sequence continues after the newest message in the room.

    Examples:
        message = MessageFactory(room=room)
        deleted = MessageFactory(room=room, is_deleted=True)
    """

    class Meta:
        model = Message

    room = factory.SubFactory(RoomFactory)
    sequence = factory.LazyAttribute(_next_sequence)
    sender_id = factory.Sequence(lambda n: f"user-{n}")
    sender_model = IdentityModel.USER
    sender_name = factory.Faker("name")
    sender_role = Role.STUDENT
    content = factory.Faker("sentence")
    message_type = "text"


class MessageReactionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MessageReaction

    message = factory.SubFactory(MessageFactory)
    emoji = "👍"
    identity_id = factory.Sequence(lambda n: f"user-{n}")
    name = factory.Faker("first_name")


class ReadReceiptFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ReadReceipt

    message = factory.SubFactory(MessageFactory)
    identity_id = factory.Sequence(lambda n: f"user-{n}")
