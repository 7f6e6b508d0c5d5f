"""
Chat service layer.

Services:
    RoomDirectory: Room catalog, membership and rolling statistics
    MessageStore: Ordered per-room message log (post, history, delete,
        edit, reactions, read receipts)
    AttachmentService: Uploads attachment bytes to the configured BlobStore

Both the WebSocket gateway and the REST façade call these services; there
is exactly one persistence routine per operation.

Concurrency:
    Every mutation of a room's members or stats runs in a transaction that
    holds the room row lock (select_for_update), so total_members and
    total_messages never lose updates. Message.sequence is assigned under
    the same lock, which makes it the authoritative per-room order.
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings
from django.db import IntegrityError
from django.db.models import Count, F, Max
from django.utils import timezone
from django.utils.module_loading import import_string
from django.utils.text import slugify

from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
from chat.content import Audio, File, Image, Text, Video, parse_content
from chat.identity import Identity
from chat.models import MemberRole, Message, MessageReaction, ReadReceipt, Room, RoomMember, RoomType
from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService

if TYPE_CHECKING:
    from datetime import datetime

    from chat.content import MessageContent
    from core.protocols import BlobStore, StoredBlob


ROOM_ID_RE = re.compile(ROOM_CONFIG.ROOM_ID_PATTERN)

ROOM_SETTING_FIELDS = (
    "allow_file_sharing",
    "allow_voice_messages",
    "allow_video_messages",
    "moderation_enabled",
    "max_file_size",
    "allowed_file_types",
)

ROOM_METADATA_FIELDS = ("description", "avatar", "subject", "class_level", "tags", "category")


def validate_room_id(room_id: Any) -> str:
    text = "" if room_id is None else str(room_id).strip()
    if not ROOM_ID_RE.match(text):
        raise ValidationError(
            "Room id must be 1-80 letters, digits, '.', '_' or '-'",
            error_code="INVALID_ROOM_ID",
            details={"room_id": room_id},
        )
    return text


def _preview(text: str) -> tuple[str, bool]:
    limit = MESSAGE_CONFIG.PREVIEW_LENGTH
    return text[:limit], len(text) > limit


# =============================================================================
# Room Directory
# =============================================================================


class RoomDirectory(BaseService):
    """Persisted catalog of rooms, their membership and statistics."""

    @classmethod
    def get(cls, room_id: str) -> Room:
        with cls.persistence_guard("room lookup"):
            room = Room.objects.filter(room_id=room_id).first()
        if room is None:
            raise NotFoundError(
                f"Room {room_id} not found",
                error_code="ROOM_NOT_FOUND",
                details={"room_id": room_id},
            )
        return room

    @classmethod
    def lock(cls, room_id: str) -> Room:
        """Fetch the room row with a lock. Must be called inside atomic()."""
        room = Room.objects.select_for_update().filter(room_id=room_id).first()
        if room is None:
            raise NotFoundError(
                f"Room {room_id} not found",
                error_code="ROOM_NOT_FOUND",
                details={"room_id": room_id},
            )
        return room

    @classmethod
    def create(
        cls,
        name: str,
        room_type: str = RoomType.PUBLIC,
        created_by: Identity | None = None,
        room_id: str | None = None,
        **options: Any,
    ) -> Room:
        """
        Create a room and add its creator as the admin member.

        Args:
            name: Display name, required
            room_type: One of RoomType
            created_by: Identity that becomes the room admin
            room_id: Caller-chosen id; generated as {type}-{slug}-{ms} if omitted
            **options: Room settings (allow_file_sharing, max_file_size, ...)
                and metadata (description, subject, class_level, tags, ...)

        Raises:
            ValidationError: name missing, unknown type or option, bad room_id
            ConflictError: room_id already taken
        """
        name = (name or "").strip()
        cls.validate_required(name=name)
        if len(name) > ROOM_CONFIG.MAX_NAME_LENGTH:
            raise ValidationError("Room name is too long", error_code="ROOM_NAME_TOO_LONG")
        if room_type not in RoomType.values:
            raise ValidationError(
                f"Unknown room type '{room_type}'",
                error_code="INVALID_ROOM_TYPE",
                details={"type": RoomType.values},
            )
        unknown = set(options) - set(ROOM_SETTING_FIELDS) - set(ROOM_METADATA_FIELDS)
        if unknown:
            raise ValidationError(
                "Unknown room options: " + ", ".join(sorted(unknown)),
                error_code="INVALID_ROOM_OPTION",
            )

        if room_id:
            room_id = validate_room_id(room_id)
        else:
            room_id = cls.generate_room_id(name, room_type)

        if Room.objects.filter(room_id=room_id).exists():
            raise ConflictError(
                f"Room {room_id} already exists",
                error_code="ROOM_EXISTS",
                details={"room_id": room_id},
            )

        fields = {k: v for k, v in options.items() if v is not None}
        if created_by is not None:
            fields["created_by_id"] = created_by.id
            fields["created_by_model"] = created_by.model

        try:
            with cls.atomic():
                room = Room.objects.create(
                    room_id=room_id, name=name, room_type=room_type, **fields
                )
                if created_by is not None:
                    cls._insert_member(room, created_by, MemberRole.ADMIN)
                    cls._recount_members(room)
        except IntegrityError:
            raise ConflictError(
                f"Room {room_id} already exists",
                error_code="ROOM_EXISTS",
                details={"room_id": room_id},
            ) from None

        cls.get_logger().info("Created room %s (%s)", room.room_id, room.room_type)
        return room

    @staticmethod
    def generate_room_id(name: str, room_type: str) -> str:
        slug = slugify(name) or "room"
        suffix = f"-{int(time.time() * 1000)}"
        prefix = f"{room_type}-"
        room_id = prefix + slug[: ROOM_CONFIG.MAX_ROOM_ID_LENGTH - len(prefix) - len(suffix)]
        return room_id + suffix

    @classmethod
    def add_member(
        cls, room_id: str, identity: Identity, role: str = MemberRole.MEMBER
    ) -> tuple[RoomMember, bool]:
        """
        Add identity to the room; no-op if already a member.

        Returns:
            (member, created)
        """
        if role not in MemberRole.values:
            raise ValidationError(f"Unknown member role '{role}'", error_code="INVALID_MEMBER_ROLE")
        with cls.atomic():
            room = cls.lock(room_id)
            member = RoomMember.objects.filter(room=room, identity_id=identity.id).first()
            if member is not None:
                return member, False
            member = cls._insert_member(room, identity, role)
            cls._recount_members(room)
        cls.get_logger().debug("%s joined room %s", identity.id, room_id)
        return member, True

    @classmethod
    def remove_member(cls, room_id: str, identity_id: str) -> bool:
        """Remove the member; returns False if it was not a member."""
        with cls.atomic():
            room = cls.lock(room_id)
            deleted, _ = RoomMember.objects.filter(room=room, identity_id=identity_id).delete()
            if not deleted:
                return False
            cls._recount_members(room)
        cls.get_logger().debug("%s left room %s", identity_id, room_id)
        return True

    @classmethod
    def get_member(cls, room_id: str, identity_id: str) -> RoomMember | None:
        return RoomMember.objects.filter(room__room_id=room_id, identity_id=identity_id).first()

    @classmethod
    def record_message_posted(cls, room: Room, message: Message) -> None:
        """
        Update preview and stats for a freshly persisted message.

        Must run inside the posting transaction with ``room`` locked.
        """
        content, _ = _preview(message.content or (message.attachment or {}).get("name", ""))
        room.last_message_content = content
        room.last_message_at = message.created_at
        room.last_message_sender_name = message.sender_name
        room.last_message_type = message.message_type
        room.total_messages = F("total_messages") + 1
        room.last_activity = timezone.now()
        room.save(
            update_fields=[
                "last_message_content",
                "last_message_at",
                "last_message_sender_name",
                "last_message_type",
                "total_messages",
                "last_activity",
                "updated_at",
            ]
        )
        room.refresh_from_db(fields=["total_messages"])

    @classmethod
    def refresh_last_message(cls, room_id: str) -> Room:
        """Recompute the preview from the newest non-deleted message."""
        with cls.atomic():
            room = cls.lock(room_id)
            latest = (
                Message.objects.filter(room_id=room_id, is_deleted=False)
                .order_by("-sequence")
                .first()
            )
            if latest is None:
                room.last_message_content = ""
                room.last_message_at = None
                room.last_message_sender_name = ""
                room.last_message_type = ""
            else:
                content, _ = _preview(latest.content or (latest.attachment or {}).get("name", ""))
                room.last_message_content = content
                room.last_message_at = latest.created_at
                room.last_message_sender_name = latest.sender_name
                room.last_message_type = latest.message_type
            room.save(
                update_fields=[
                    "last_message_content",
                    "last_message_at",
                    "last_message_sender_name",
                    "last_message_type",
                    "updated_at",
                ]
            )
        return room

    @classmethod
    def find(
        cls,
        room_type: str | None = None,
        subject: str | None = None,
        class_level: str | None = None,
        is_active: bool | None = True,
        limit: int | None = None,
    ) -> list[Room]:
        """Rooms matching the filters, most recently active first."""
        queryset = Room.objects.annotate(member_count=Count("members"))
        if room_type:
            queryset = queryset.filter(room_type=room_type)
        if subject:
            queryset = queryset.filter(subject__iexact=subject)
        if class_level:
            queryset = queryset.filter(class_level__iexact=class_level)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        limit = limit or settings.CHAT_ROOMS_LIST_LIMIT
        with cls.persistence_guard("room search"):
            return list(queryset.order_by("-last_activity", "-id")[:limit])

    @classmethod
    def reconcile_stats(cls, room_id: str) -> Room:
        """Recount members and messages from the rows themselves."""
        with cls.atomic():
            room = cls.lock(room_id)
            room.total_members = room.members.count()
            room.total_messages = Message.objects.filter(room_id=room_id).count()
            room.save(update_fields=["total_members", "total_messages", "updated_at"])
        return room

    @classmethod
    def _insert_member(cls, room: Room, identity: Identity, role: str) -> RoomMember:
        return RoomMember.objects.create(
            room=room,
            identity_id=identity.id,
            identity_model=identity.model,
            name=identity.name,
            identity_role=str(identity.role),
            avatar=identity.avatar,
            role_in_room=role,
            **RoomMember.default_permissions(role),
        )

    @classmethod
    def _recount_members(cls, room: Room) -> None:
        room.total_members = room.members.count()
        room.save(update_fields=["total_members", "updated_at"])


# =============================================================================
# Message Store
# =============================================================================


@dataclass(frozen=True)
class HistoryPage:
    messages: list[Message]
    has_more: bool


class MessageStore(BaseService):
    """Persisted, ordered, append-mostly log of messages per room."""

    @classmethod
    def get(cls, message_id: Any) -> Message:
        pk = cls._coerce_id(message_id)
        with cls.persistence_guard("message lookup"):
            message = (
                Message.objects.filter(pk=pk).prefetch_related("reactions").first()
                if pk is not None
                else None
            )
        if message is None:
            raise NotFoundError(
                f"Message {message_id} not found",
                error_code="MESSAGE_NOT_FOUND",
                details={"message_id": message_id},
            )
        return message

    @classmethod
    def post(
        cls,
        room_id: str,
        sender: Identity,
        message_type: str = "text",
        content: str = "",
        attachment: dict | None = None,
        reply_to_id: Any = None,
    ) -> Message:
        """
        Validate, sequence and persist a message, then update room stats.

        A reply_to_id that does not resolve to a live message in the same
        room is dropped; the send still succeeds.

        Raises:
            ValidationError: missing sender fields, bad content, attachment
                rejected by the room settings
            NotFoundError: room does not exist
            PermissionDeniedError: room inactive or member muted
        """
        cls.validate_required(sender_id=sender.id, sender_name=sender.name)
        variant = parse_content(message_type, content, attachment)

        with cls.atomic():
            room = RoomDirectory.lock(room_id)
            if not room.is_active:
                raise PermissionDeniedError(
                    "This room is no longer active", error_code="ROOM_INACTIVE"
                )
            member = RoomMember.objects.filter(room=room, identity_id=sender.id).first()
            if member is not None and not member.can_send_messages:
                raise PermissionDeniedError(
                    "You cannot send messages in this room",
                    error_code="SEND_NOT_ALLOWED",
                )
            cls._check_room_settings(room, variant)

            reply_fields = cls._reply_snapshot(room.room_id, reply_to_id)
            last = Message.objects.filter(room_id=room.room_id).aggregate(
                last=Max("sequence")
            )["last"]
            message = Message.objects.create(
                room=room,
                sequence=(last or 0) + 1,
                sender_id=sender.id,
                sender_model=sender.model,
                sender_name=sender.name,
                sender_role=str(sender.role),
                sender_avatar=sender.avatar,
                message_type=variant.message_type,
                **variant.storage_fields(),
                **reply_fields,
            )
            RoomDirectory.record_message_posted(room, message)

        cls.get_logger().info(
            "Message %s posted to %s by %s (seq %s)",
            message.pk,
            room_id,
            sender.id,
            message.sequence,
        )
        return message

    @classmethod
    def history(
        cls,
        room_id: str,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> HistoryPage:
        """
        One page of non-deleted messages, returned oldest to newest.

        With ``before``, the page holds the ``limit`` newest messages created
        strictly before that instant.
        """
        RoomDirectory.get(room_id)
        if limit is None:
            limit = settings.CHAT_HISTORY_DEFAULT_LIMIT
        limit = max(1, min(int(limit), settings.CHAT_HISTORY_MAX_LIMIT))

        queryset = Message.objects.filter(room_id=room_id, is_deleted=False)
        if before is not None:
            queryset = queryset.filter(created_at__lt=before)

        with cls.persistence_guard("history"):
            page = list(
                queryset.prefetch_related("reactions", "read_receipts").order_by("-sequence")[
                    : limit + 1
                ]
            )
        has_more = len(page) > limit
        page = page[:limit]
        page.reverse()
        return HistoryPage(messages=page, has_more=has_more)

    @classmethod
    def soft_delete(cls, message_id: Any, actor: Identity) -> Message:
        """
        Tombstone a message. The caller has already authorized ``actor``.

        Idempotent: deleting an already deleted message returns it unchanged.
        """
        pk = cls._require_id(message_id)
        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=pk).first()
            if message is None:
                raise NotFoundError(
                    f"Message {message_id} not found", error_code="MESSAGE_NOT_FOUND"
                )
            if message.is_deleted:
                return message
            message.mark_deleted(actor)
        RoomDirectory.refresh_last_message(message.room_id)
        cls.get_logger().info(
            "Message %s deleted by %s (%s)", message.pk, actor.id, message.deleted_by_model
        )
        return message

    @classmethod
    def edit(cls, message_id: Any, actor: Identity, content: str) -> Message:
        """
        Replace the text of a message. The caller has already authorized ``actor``.

        original_content keeps the text from before the first edit.
        """
        new_body = parse_content("text", content).body
        pk = cls._require_id(message_id)
        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=pk).first()
            if message is None:
                raise NotFoundError(
                    f"Message {message_id} not found", error_code="MESSAGE_NOT_FOUND"
                )
            if message.is_deleted:
                raise ConflictError("Message has been deleted", error_code="MESSAGE_DELETED")
            if message.message_type != Text.message_type:
                raise ValidationError(
                    "Only text messages can be edited", error_code="NOT_EDITABLE"
                )
            if not message.is_edited:
                message.original_content = message.content
            message.content = new_body
            message.is_edited = True
            message.edited_at = timezone.now()
            message.save(
                update_fields=[
                    "content",
                    "is_edited",
                    "edited_at",
                    "original_content",
                    "updated_at",
                ]
            )
        RoomDirectory.refresh_last_message(message.room_id)
        return message

    @classmethod
    def react(cls, message_id: Any, identity: Identity, emoji: str) -> tuple[Message, list[dict]]:
        """
        Toggle identity's ``emoji`` reaction on the message.

        Returns:
            (message, reaction buckets after the toggle)
        """
        emoji = (emoji or "").strip()
        if not emoji:
            raise ValidationError("Emoji is required", error_code="EMOJI_REQUIRED")
        if len(emoji) > MESSAGE_CONFIG.MAX_EMOJI_LENGTH:
            raise ValidationError("Emoji is too long", error_code="INVALID_EMOJI")

        pk = cls._require_id(message_id)
        with cls.atomic():
            message = Message.objects.select_for_update().filter(pk=pk).first()
            if message is None:
                raise NotFoundError(
                    f"Message {message_id} not found", error_code="MESSAGE_NOT_FOUND"
                )
            if message.is_deleted:
                raise ConflictError("Message has been deleted", error_code="MESSAGE_DELETED")
            removed, _ = MessageReaction.objects.filter(
                message=message, emoji=emoji, identity_id=identity.id
            ).delete()
            if not removed:
                MessageReaction.objects.create(
                    message=message,
                    emoji=emoji,
                    identity_id=identity.id,
                    identity_model=identity.model,
                    name=identity.name,
                )
        return message, message.reaction_buckets()

    @classmethod
    def mark_read(cls, room_ids: str | Iterable[str], identity: Identity) -> int:
        """
        Record a read receipt on every non-deleted message in scope.

        Set semantics: an identity has at most one receipt per message.

        Returns:
            Number of receipts created
        """
        room_ids = [room_ids] if isinstance(room_ids, str) else list(dict.fromkeys(room_ids))
        if not room_ids:
            raise ValidationError("At least one room id is required", error_code="ROOM_REQUIRED")

        with cls.persistence_guard("mark read"):
            found = set(Room.objects.filter(room_id__in=room_ids).values_list("room_id", flat=True))
            missing = [r for r in room_ids if r not in found]
            if missing:
                raise NotFoundError(
                    "Rooms not found: " + ", ".join(missing),
                    error_code="ROOM_NOT_FOUND",
                    details={"room_ids": missing},
                )

            unread = list(
                Message.objects.filter(room_id__in=room_ids, is_deleted=False)
                .exclude(read_receipts__identity_id=identity.id)
                .values_list("pk", flat=True)
            )
            now = timezone.now()
            ReadReceipt.objects.bulk_create(
                [
                    ReadReceipt(
                        message_id=pk,
                        identity_id=identity.id,
                        identity_model=identity.model,
                        read_at=now,
                    )
                    for pk in unread
                ],
                ignore_conflicts=True,
            )
        return len(unread)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _coerce_id(message_id: Any) -> int | None:
        try:
            return int(message_id)
        except (TypeError, ValueError):
            return None

    @classmethod
    def _require_id(cls, message_id: Any) -> int:
        pk = cls._coerce_id(message_id)
        if pk is None:
            raise NotFoundError(
                f"Message {message_id} not found", error_code="MESSAGE_NOT_FOUND"
            )
        return pk

    @classmethod
    def _reply_snapshot(cls, room_id: str, reply_to_id: Any) -> dict[str, Any]:
        if reply_to_id in (None, ""):
            return {}
        pk = cls._coerce_id(reply_to_id)
        target = Message.objects.filter(pk=pk).first() if pk is not None else None
        if target is None or target.room_id != room_id or target.is_deleted:
            cls.get_logger().debug("Dropping reply link to %s in %s", reply_to_id, room_id)
            return {}
        content, truncated = _preview(target.content)
        return {
            "reply_to": target,
            "reply_to_sender_name": target.sender_name,
            "reply_to_content": content,
            "reply_to_truncated": truncated,
        }

    @classmethod
    def _check_room_settings(cls, room: Room, variant: MessageContent) -> None:
        if isinstance(variant, Audio):
            allowed = room.allow_voice_messages
        elif isinstance(variant, Video):
            allowed = room.allow_video_messages
        elif isinstance(variant, (File, Image)):
            allowed = room.allow_file_sharing
        else:
            return

        if not allowed:
            raise ValidationError(
                f"{variant.message_type} messages are disabled in this room",
                error_code="ATTACHMENT_NOT_ALLOWED",
            )
        attachment = variant.attachment
        if attachment.size > room.max_file_size:
            raise ValidationError(
                "Attachment exceeds the room's size limit",
                error_code="FILE_TOO_LARGE",
                details={"max_file_size": room.max_file_size, "size": attachment.size},
            )
        if not room.accepts_mime_type(attachment.mime_type):
            raise ValidationError(
                f"File type {attachment.mime_type} is not allowed in this room",
                error_code="FILE_TYPE_NOT_ALLOWED",
                details={"allowed_file_types": room.allowed_file_types},
            )


# =============================================================================
# Attachments
# =============================================================================


DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,;]*)*?;base64,(?P<data>.*)$", re.S)


def get_blob_store() -> BlobStore:
    """Instantiate the store named by settings.CHAT_BLOB_STORE."""
    return import_string(settings.CHAT_BLOB_STORE)()


class AttachmentService(BaseService):
    """Stores attachment bytes and describes them for a later post()."""

    @classmethod
    def upload(cls, data: bytes, name: str, content_type: str) -> StoredBlob:
        if not data:
            raise ValidationError("Uploaded file is empty", error_code="EMPTY_UPLOAD")
        max_size = settings.CHAT_UPLOAD_MAX_SIZE
        if len(data) > max_size:
            raise ValidationError(
                "Uploaded file is too large",
                error_code="FILE_TOO_LARGE",
                details={"max_size": max_size, "size": len(data)},
            )
        content_type = (content_type or "application/octet-stream").lower()
        try:
            blob = get_blob_store().put(data, name=name or "upload", content_type=content_type)
        except OSError as exc:
            cls.get_logger().exception("Blob store write failed for %s", name)
            raise ExternalServiceError(
                "File storage is unavailable, try again", error_code="BLOB_STORE_ERROR"
            ) from exc
        cls.get_logger().info("Stored upload %s (%d bytes)", blob.handle, blob.size)
        return blob

    @classmethod
    def upload_data_url(cls, data_url: str, name: str = "") -> StoredBlob:
        """Store a base64 ``data:`` URL such as a recorded voice message."""
        match = DATA_URL_RE.match((data_url or "").strip())
        if not match:
            raise ValidationError(
                "Audio must be a base64 data URL", error_code="INVALID_DATA_URL"
            )
        content_type = match.group("mime") or "audio/webm"
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(
                "Audio data is not valid base64", error_code="INVALID_DATA_URL"
            ) from None
        if not name:
            extension = content_type.split("/")[-1].split(";")[0]
            name = f"voice-{int(time.time() * 1000)}.{extension}"
        return cls.upload(data, name=name, content_type=content_type)
