"""
Serializers for the chat REST façade and socket payloads.

Output serializers render camelCase JSON shared by REST responses and
gateway events. Input serializers only check shape; business validation
(content rules, room settings, role normalization) happens in the services
and in chat.identity so both transports behave the same.

Serializer Hierarchy:
    MessageSerializer: Canonical message
    RoomSerializer / RoomDetailSerializer: Room listing and detail
    RoomMemberSerializer: Member with identity snapshot and permissions

    RoomCreateSerializer, MessageCreateSerializer, IdentityBodySerializer,
    ReactionSerializer, MessageEditSerializer, MarkReadSerializer,
    HistoryQuerySerializer, RoomQuerySerializer, UploadSerializer,
    AudioUploadSerializer: request bodies and query strings
"""

from __future__ import annotations

import json
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import serializers
from rest_framework.renderers import JSONRenderer

from chat.identity import Identity, resolve_identity
from chat.models import Message, Room, RoomMember, RoomType

_datetime_field = serializers.DateTimeField()


def _iso(value):
    return _datetime_field.to_representation(value) if value else None


def to_wire(data) -> dict:
    """Plain JSON types only, safe for the channel layer's msgpack encoding."""
    return json.loads(JSONRenderer().render(data))


# =============================================================================
# Output Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """
    Canonical message as broadcast to sockets and returned by REST.

    Deleted messages keep their content here; history never returns them
    and tombstone events carry only ids.
    """

    roomId = serializers.CharField(source="room_id", read_only=True)
    type = serializers.CharField(source="message_type", read_only=True)
    sender = serializers.SerializerMethodField()
    replyTo = serializers.SerializerMethodField()
    reactions = serializers.SerializerMethodField()
    readBy = serializers.SerializerMethodField()
    deleted = serializers.SerializerMethodField()
    edited = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "roomId",
            "sequence",
            "sender",
            "content",
            "type",
            "attachment",
            "replyTo",
            "reactions",
            "readBy",
            "deleted",
            "edited",
            "createdAt",
        ]
        read_only_fields = fields

    def get_sender(self, obj: Message) -> dict:
        return obj.sender.to_dict()

    def get_replyTo(self, obj: Message) -> dict | None:
        return obj.reply_snapshot

    def get_reactions(self, obj: Message) -> list[dict]:
        return obj.reaction_buckets()

    def get_readBy(self, obj: Message) -> list[dict]:
        return [
            {"identityId": r.identity_id, "model": r.identity_model, "readAt": _iso(r.read_at)}
            for r in obj.read_receipts.all()
        ]

    def get_deleted(self, obj: Message) -> dict:
        return {
            "isDeleted": obj.is_deleted,
            "deletedAt": _iso(obj.deleted_at),
            "deletedBy": obj.deleted_by or None,
            "deletedByModel": obj.deleted_by_model or None,
        }

    def get_edited(self, obj: Message) -> dict:
        return {
            "isEdited": obj.is_edited,
            "editedAt": _iso(obj.edited_at),
            "originalContent": obj.original_content,
        }


class RoomMemberSerializer(serializers.ModelSerializer):
    identity = serializers.SerializerMethodField()
    roleInRoom = serializers.CharField(source="role_in_room", read_only=True)
    permissions = serializers.DictField(read_only=True)
    joinedAt = serializers.DateTimeField(source="joined_at", read_only=True)

    class Meta:
        model = RoomMember
        fields = ["identity", "roleInRoom", "permissions", "joinedAt"]
        read_only_fields = fields

    def get_identity(self, obj: RoomMember) -> dict:
        return {
            "id": obj.identity_id,
            "model": obj.identity_model,
            "name": obj.name,
            "role": obj.identity_role,
            "avatar": obj.avatar,
        }


class RoomSerializer(serializers.ModelSerializer):
    roomId = serializers.CharField(source="room_id", read_only=True)
    type = serializers.CharField(source="room_type", read_only=True)
    settings = serializers.SerializerMethodField()
    metadata = serializers.SerializerMethodField()
    lastMessage = serializers.SerializerMethodField()
    stats = serializers.SerializerMethodField()
    memberCount = serializers.SerializerMethodField()
    isActive = serializers.BooleanField(source="is_active", read_only=True)
    createdBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Room
        fields = [
            "roomId",
            "name",
            "description",
            "type",
            "avatar",
            "settings",
            "metadata",
            "lastMessage",
            "stats",
            "memberCount",
            "isActive",
            "createdBy",
            "createdAt",
        ]
        read_only_fields = fields

    def get_settings(self, obj: Room) -> dict:
        return {
            "allowFileSharing": obj.allow_file_sharing,
            "allowVoiceMessages": obj.allow_voice_messages,
            "allowVideoMessages": obj.allow_video_messages,
            "moderationEnabled": obj.moderation_enabled,
            "maxFileSize": obj.max_file_size,
            "allowedFileTypes": obj.allowed_file_types,
        }

    def get_metadata(self, obj: Room) -> dict:
        return {
            "subject": obj.subject,
            "classLevel": obj.class_level,
            "tags": obj.tags,
            "category": obj.category,
        }

    def get_lastMessage(self, obj: Room) -> dict | None:
        preview = obj.last_message
        if preview is None:
            return None
        return {**preview, "timestamp": _iso(preview["timestamp"])}

    def get_stats(self, obj: Room) -> dict:
        return {
            "totalMessages": obj.total_messages,
            "totalMembers": obj.total_members,
            "lastActivity": _iso(obj.last_activity),
        }

    def get_memberCount(self, obj: Room) -> int:
        return getattr(obj, "member_count", obj.total_members)

    def get_createdBy(self, obj: Room) -> dict | None:
        if not obj.created_by_id:
            return None
        return {"id": obj.created_by_id, "model": obj.created_by_model}


class RoomDetailSerializer(RoomSerializer):
    members = RoomMemberSerializer(many=True, read_only=True)

    class Meta(RoomSerializer.Meta):
        fields = RoomSerializer.Meta.fields + ["members"]
        read_only_fields = fields


# =============================================================================
# Input Serializers
# =============================================================================


class IdentityBodySerializer(serializers.Serializer):
    """Identity asserted in a request body: {identityId, name, role, avatar}."""

    identityId = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    role = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    avatar = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def to_identity(self, require_name: bool = False) -> Identity:
        data = self.validated_data
        return resolve_identity(
            {
                "id": data["identityId"],
                "name": data.get("name"),
                "role": data.get("role"),
                "avatar": data.get("avatar"),
            },
            require_name=require_name,
        )


class IdentityRefSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    role = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    avatar = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class RoomSettingsSerializer(serializers.Serializer):
    allowFileSharing = serializers.BooleanField(source="allow_file_sharing", required=False)
    allowVoiceMessages = serializers.BooleanField(source="allow_voice_messages", required=False)
    allowVideoMessages = serializers.BooleanField(source="allow_video_messages", required=False)
    moderationEnabled = serializers.BooleanField(source="moderation_enabled", required=False)
    maxFileSize = serializers.IntegerField(source="max_file_size", min_value=0, required=False)
    allowedFileTypes = serializers.ListField(
        source="allowed_file_types", child=serializers.CharField(max_length=100), required=False
    )


class RoomCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    type = serializers.ChoiceField(choices=RoomType.choices, default=RoomType.PUBLIC)
    roomId = serializers.CharField(max_length=80, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    avatar = serializers.CharField(max_length=500, required=False, allow_blank=True)
    subject = serializers.CharField(max_length=100, required=False, allow_blank=True)
    classLevel = serializers.CharField(max_length=50, required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True)
    settings = RoomSettingsSerializer(required=False)
    createdBy = IdentityRefSerializer(required=False)

    def room_options(self) -> dict:
        data = self.validated_data
        options = {
            "description": data.get("description"),
            "avatar": data.get("avatar"),
            "subject": data.get("subject"),
            "class_level": data.get("classLevel"),
            "tags": data.get("tags"),
            "category": data.get("category"),
        }
        options.update(data.get("settings") or {})
        return {k: v for k, v in options.items() if v is not None}

    def creator(self) -> Identity | None:
        creator = self.validated_data.get("createdBy")
        return resolve_identity(creator, require_name=True) if creator else None


class MessageCreateSerializer(serializers.Serializer):
    senderId = serializers.CharField(max_length=64)
    senderName = serializers.CharField(max_length=120)
    senderRole = serializers.CharField(max_length=32, required=False, allow_blank=True, allow_null=True)
    senderAvatar = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    content = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    type = serializers.CharField(max_length=10, required=False, default="text")
    attachment = serializers.DictField(required=False, allow_null=True)
    replyToId = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def sender(self) -> Identity:
        data = self.validated_data
        return resolve_identity(
            {
                "id": data["senderId"],
                "name": data["senderName"],
                "role": data.get("senderRole"),
                "avatar": data.get("senderAvatar"),
            },
            require_name=True,
        )


class ReactionSerializer(IdentityBodySerializer):
    emoji = serializers.CharField(max_length=32)


class MessageEditSerializer(IdentityBodySerializer):
    content = serializers.CharField(trim_whitespace=False, allow_blank=True)


class MarkReadSerializer(IdentityBodySerializer):
    roomIds = serializers.ListField(
        child=serializers.CharField(max_length=80), required=False, allow_empty=False
    )


class TimestampField(serializers.Field):
    """ISO-8601 datetime or epoch milliseconds."""

    default_error_messages = {"invalid": "Expected an ISO-8601 datetime or epoch milliseconds."}

    def to_internal_value(self, data):
        text = str(data).strip()
        try:
            if text.isdigit():
                return datetime.fromtimestamp(int(text) / 1000, tz=dt_timezone.utc)
            parsed = parse_datetime(text)
        except (OverflowError, OSError, ValueError):
            self.fail("invalid")
        if parsed is None:
            self.fail("invalid")
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, dt_timezone.utc)
        return parsed

    def to_representation(self, value):
        return _iso(value)


class HistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False)
    before = TimestampField(required=False)


class RoomQuerySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=RoomType.choices, required=False)
    subject = serializers.CharField(required=False, allow_blank=True)
    classLevel = serializers.CharField(required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False, default=True)


class UploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class AudioUploadSerializer(serializers.Serializer):
    audio = serializers.CharField(trim_whitespace=True)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class StoredBlobSerializer(serializers.Serializer):
    url = serializers.CharField()
    handle = serializers.CharField()
    name = serializers.CharField()
    type = serializers.CharField(source="content_type")
    size = serializers.IntegerField()
