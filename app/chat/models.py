"""
Chat system models.

Models:
    Room: Named conversation scope with settings, metadata and rolling stats
    RoomMember: Identity membership in a room with role and permissions
    Message: One entry in a room's ordered log
    MessageReaction: One identity's emoji on one message
    ReadReceipt: One identity having read one message

Design Decisions:
    - Identities live outside this service; rows keep a snapshot (id, model,
      name, role, avatar) taken when the row is written
    - Message.room references Room.room_id (the external id), so the hot
      history query filters on the message table alone
    - Message.sequence is assigned under the room row lock and is the
      authoritative per-room order
    - Deletion is soft; edits keep the first original text
    - Reaction counts are derived from rows, never stored
"""

from __future__ import annotations

import fnmatch

from django.db import models
from django.db.models import Q
from django.utils import timezone

from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
from chat.content import MessageType
from chat.identity import Identity, IdentityModel, Role, normalize_role
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel


class RoomType(models.TextChoices):
    PUBLIC = "public", "Public"
    PRIVATE = "private", "Private"
    SUBJECT = "subject", "Subject"
    GROUP = "group", "Group"
    STUDY = "study", "Study"


class MemberRole(models.TextChoices):
    """
    Role within a room.

    ADMIN: Room creator; every permission
    MODERATOR: Can send and delete messages
    MEMBER: Can send messages
    """

    ADMIN = "admin", "Admin"
    MODERATOR = "moderator", "Moderator"
    MEMBER = "member", "Member"


class DeletedByModel(models.TextChoices):
    USER = "User", "User"
    ADMIN = "Admin", "Admin"
    TEACHER = "Teacher", "Teacher"


def default_allowed_file_types() -> list[str]:
    return list(ROOM_CONFIG.DEFAULT_ALLOWED_FILE_TYPES)


class Room(BaseModel):
    """
    A chat room.

    Fields:
        room_id: Stable external id used in URLs, socket frames and groups
        room_type: Public, private, subject, group or study
        allow_* / moderation_enabled / max_file_size / allowed_file_types:
            Room settings applied when a message is posted
        subject / class_level / tags / category: Catalog metadata for filtering
        last_message_*: Denormalized preview of the newest non-deleted message
        total_messages / total_members / last_activity: Rolling statistics
        is_active: Inactive rooms are hidden from listings and reject posts
    """

    room_id = models.CharField(
        max_length=ROOM_CONFIG.MAX_ROOM_ID_LENGTH,
        unique=True,
        help_text="Stable external identifier",
    )
    name = models.CharField(max_length=ROOM_CONFIG.MAX_NAME_LENGTH)
    description = models.TextField(blank=True, default="")
    room_type = models.CharField(
        max_length=10,
        choices=RoomType.choices,
        default=RoomType.PUBLIC,
        db_index=True,
    )
    avatar = models.CharField(max_length=500, blank=True, default="")

    # Settings
    allow_file_sharing = models.BooleanField(default=True)
    allow_voice_messages = models.BooleanField(default=True)
    allow_video_messages = models.BooleanField(default=True)
    moderation_enabled = models.BooleanField(default=False)
    max_file_size = models.PositiveBigIntegerField(
        default=ROOM_CONFIG.DEFAULT_MAX_FILE_SIZE,
        help_text="Largest attachment accepted, in bytes",
    )
    allowed_file_types = models.JSONField(
        default=default_allowed_file_types,
        blank=True,
        help_text="MIME patterns such as image/* accepted for attachments",
    )

    # Metadata
    subject = models.CharField(max_length=100, blank=True, default="", db_index=True)
    class_level = models.CharField(max_length=50, blank=True, default="", db_index=True)
    tags = models.JSONField(default=list, blank=True)
    category = models.CharField(max_length=50, blank=True, default="")

    created_by_id = models.CharField(max_length=64, blank=True, default="")
    created_by_model = models.CharField(
        max_length=10, choices=IdentityModel.choices, blank=True, default=""
    )

    # Last message preview
    last_message_content = models.CharField(
        max_length=MESSAGE_CONFIG.PREVIEW_LENGTH, blank=True, default=""
    )
    last_message_at = models.DateTimeField(null=True, blank=True)
    last_message_sender_name = models.CharField(max_length=120, blank=True, default="")
    last_message_type = models.CharField(
        max_length=10, choices=MessageType.choices, blank=True, default=""
    )

    # Stats
    total_messages = models.PositiveIntegerField(default=0)
    total_members = models.PositiveIntegerField(default=0)
    last_activity = models.DateTimeField(default=timezone.now, db_index=True)

    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "chat_room"
        ordering = ["-last_activity"]
        indexes = [
            models.Index(
                fields=["room_type", "is_active"],
                name="chat_room_type_active_idx",
            ),
            models.Index(
                fields=["subject", "class_level"],
                name="chat_room_subject_class_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.room_id})"

    @property
    def last_message(self) -> dict | None:
        if self.last_message_at is None:
            return None
        return {
            "content": self.last_message_content,
            "timestamp": self.last_message_at,
            "senderName": self.last_message_sender_name,
            "messageType": self.last_message_type,
        }

    def accepts_mime_type(self, mime_type: str) -> bool:
        patterns = self.allowed_file_types or []
        return any(fnmatch.fnmatch(mime_type.lower(), p.lower()) for p in patterns)


class RoomMember(BaseModel):
    """
    Membership of one identity in one room.

    The (room, identity_id) pair is unique, so a room never lists the same
    identity twice. Permission flags default from role_in_room.
    """

    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name="members")
    identity_id = models.CharField(max_length=64, db_index=True)
    identity_model = models.CharField(
        max_length=10, choices=IdentityModel.choices, default=IdentityModel.USER
    )
    name = models.CharField(max_length=120, blank=True, default="")
    identity_role = models.CharField(
        max_length=10, choices=Role.choices, default=Role.STUDENT
    )
    avatar = models.CharField(max_length=500, blank=True, default="")
    role_in_room = models.CharField(
        max_length=10, choices=MemberRole.choices, default=MemberRole.MEMBER
    )

    can_send_messages = models.BooleanField(default=True)
    can_delete_messages = models.BooleanField(default=False)
    can_add_members = models.BooleanField(default=False)
    can_remove_members = models.BooleanField(default=False)

    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_room_member"
        ordering = ["joined_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["room", "identity_id"],
                name="chat_member_unique_identity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name or self.identity_id} in {self.room_id} ({self.role_in_room})"

    @staticmethod
    def default_permissions(role_in_room: str) -> dict[str, bool]:
        if role_in_room == MemberRole.ADMIN:
            return {
                "can_send_messages": True,
                "can_delete_messages": True,
                "can_add_members": True,
                "can_remove_members": True,
            }
        if role_in_room == MemberRole.MODERATOR:
            return {
                "can_send_messages": True,
                "can_delete_messages": True,
                "can_add_members": False,
                "can_remove_members": False,
            }
        return {
            "can_send_messages": True,
            "can_delete_messages": False,
            "can_add_members": False,
            "can_remove_members": False,
        }

    @property
    def permissions(self) -> dict[str, bool]:
        return {
            "canSendMessages": self.can_send_messages,
            "canDeleteMessages": self.can_delete_messages,
            "canAddMembers": self.can_add_members,
            "canRemoveMembers": self.can_remove_members,
        }


class Message(SoftDeleteMixin, BaseModel):
    """
    A single message in a room.

    Fields:
        room: Room, stored as its external room_id
        sequence: Per-room order assigned by the store
        sender_*: Identity snapshot taken at send time, never updated
        content / message_type / attachment: Flattened content variant
        reply_to / reply_to_*: Snapshot of the replied-to message at reply time
        deleted_by / deleted_by_model: Tombstone details (with is_deleted, deleted_at)
        is_edited / edited_at / original_content: Edit block, first original kept
    """

    room = models.ForeignKey(
        Room,
        to_field="room_id",
        db_column="room_id",
        on_delete=models.PROTECT,
        related_name="messages",
    )
    sequence = models.PositiveBigIntegerField()

    sender_id = models.CharField(max_length=64, db_index=True)
    sender_model = models.CharField(
        max_length=10, choices=IdentityModel.choices, default=IdentityModel.USER
    )
    sender_name = models.CharField(max_length=120)
    sender_role = models.CharField(max_length=10, choices=Role.choices, default=Role.STUDENT)
    sender_avatar = models.CharField(max_length=500, blank=True, default="")

    content = models.TextField(blank=True, default="")
    message_type = models.CharField(
        max_length=10, choices=MessageType.choices, default=MessageType.TEXT
    )
    attachment = models.JSONField(null=True, blank=True)

    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        db_constraint=False,
    )
    reply_to_sender_name = models.CharField(max_length=120, blank=True, default="")
    reply_to_content = models.CharField(
        max_length=MESSAGE_CONFIG.PREVIEW_LENGTH, blank=True, default=""
    )
    reply_to_truncated = models.BooleanField(default=False)

    deleted_by = models.CharField(max_length=64, blank=True, default="")
    deleted_by_model = models.CharField(
        max_length=10, choices=DeletedByModel.choices, blank=True, default=""
    )

    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    original_content = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "chat_message"
        ordering = ["room_id", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["room", "sequence"],
                name="chat_message_room_sequence_uniq",
            ),
        ]
        indexes = [
            models.Index(
                fields=["room", "-sequence"],
                name="chat_msg_room_seq_live_idx",
                condition=Q(is_deleted=False),
            ),
            models.Index(
                fields=["room", "created_at"],
                name="chat_msg_room_created_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"{self.sender_name} in {self.room_id}: {preview}"

    @property
    def sender(self) -> Identity:
        return Identity(
            id=self.sender_id,
            name=self.sender_name,
            role=normalize_role(self.sender_role),
            avatar=self.sender_avatar,
        )

    @property
    def reply_snapshot(self) -> dict | None:
        if not self.reply_to_id:
            return None
        return {
            "messageId": self.reply_to_id,
            "senderName": self.reply_to_sender_name,
            "content": self.reply_to_content,
            "truncated": self.reply_to_truncated,
        }

    @staticmethod
    def deleted_by_model_for(identity: Identity) -> str:
        role = str(identity.role)
        if role == Role.ADMIN:
            return DeletedByModel.ADMIN
        if role == Role.TEACHER:
            return DeletedByModel.TEACHER
        return DeletedByModel.USER

    def mark_deleted(self, actor: Identity) -> None:
        """Tombstone this message on behalf of actor. Content is left intact."""
        self.deleted_by = actor.id
        self.deleted_by_model = self.deleted_by_model_for(actor)
        self.soft_delete(update_fields=["deleted_by", "deleted_by_model"])

    def reaction_buckets(self) -> list[dict]:
        """
        Reactions grouped by emoji in first-reacted order.

        Each bucket is {"emoji", "users", "count"} with count == len(users).
        Uses the prefetched reactions when available.
        """
        buckets: dict[str, dict] = {}
        for reaction in sorted(self.reactions.all(), key=lambda r: (r.created_at, r.pk)):
            bucket = buckets.setdefault(reaction.emoji, {"emoji": reaction.emoji, "users": []})
            bucket["users"].append(
                {
                    "id": reaction.identity_id,
                    "model": reaction.identity_model,
                    "name": reaction.name,
                }
            )
        for bucket in buckets.values():
            bucket["count"] = len(bucket["users"])
        return list(buckets.values())


class MessageReaction(BaseModel):
    """One identity's emoji on one message; unique per (message, emoji, identity)."""

    message = models.ForeignKey(
        Message, on_delete=models.CASCADE, related_name="reactions"
    )
    emoji = models.CharField(max_length=MESSAGE_CONFIG.MAX_EMOJI_LENGTH)
    identity_id = models.CharField(max_length=64)
    identity_model = models.CharField(
        max_length=10, choices=IdentityModel.choices, default=IdentityModel.USER
    )
    name = models.CharField(max_length=120, blank=True, default="")

    class Meta:
        db_table = "chat_message_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "emoji", "identity_id"],
                name="chat_reaction_unique_identity_emoji",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name or self.identity_id} reacted {self.emoji} on {self.message_id}"


class ReadReceipt(models.Model):
    """One identity having read one message; unique per (message, identity)."""

    message = models.ForeignKey(
        Message, on_delete=models.CASCADE, related_name="read_receipts"
    )
    identity_id = models.CharField(max_length=64, db_index=True)
    identity_model = models.CharField(
        max_length=10, choices=IdentityModel.choices, default=IdentityModel.USER
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_read_receipt"
        ordering = ["read_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "identity_id"],
                name="chat_receipt_unique_identity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.identity_id} read {self.message_id}"
