"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Room management with member inline
- Message moderation
- Reaction and read receipt viewing
"""

from django.contrib import admin

from chat.models import Message, MessageReaction, ReadReceipt, Room, RoomMember


class RoomMemberInline(admin.TabularInline):
    """Inline display of members in room admin."""

    model = RoomMember
    extra = 0
    readonly_fields = ["joined_at"]


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = [
        "room_id",
        "name",
        "room_type",
        "total_members",
        "total_messages",
        "is_active",
        "last_activity",
    ]
    list_filter = ["room_type", "is_active", "subject", "class_level"]
    search_fields = ["room_id", "name", "subject"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "total_members",
        "total_messages",
        "last_activity",
        "last_message_content",
        "last_message_at",
        "last_message_sender_name",
        "last_message_type",
    ]
    inlines = [RoomMemberInline]
    ordering = ["-last_activity"]


class MessageReactionInline(admin.TabularInline):
    model = MessageReaction
    extra = 0
    readonly_fields = ["emoji", "identity_id", "identity_model", "name", "created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "room",
        "sequence",
        "sender_name",
        "message_type",
        "is_deleted",
        "is_edited",
        "created_at",
    ]
    list_filter = ["message_type", "is_deleted", "is_edited", "created_at"]
    search_fields = ["content", "sender_name", "sender_id"]
    readonly_fields = [
        "sequence",
        "created_at",
        "updated_at",
        "deleted_at",
        "deleted_by",
        "deleted_by_model",
        "edited_at",
        "original_content",
    ]
    raw_id_fields = ["reply_to"]
    inlines = [MessageReactionInline]
    ordering = ["-created_at"]


@admin.register(ReadReceipt)
class ReadReceiptAdmin(admin.ModelAdmin):
    list_display = ["message", "identity_id", "identity_model", "read_at"]
    search_fields = ["identity_id"]
    raw_id_fields = ["message"]
