"""
Server-to-client gateway event payloads.

Both the WebSocket consumer and the REST views broadcast through these
builders so a subscriber sees the same frame whichever transport caused it.
Every payload is plain JSON data and can cross the channel layer as is.
"""

from __future__ import annotations

from typing import Any

from chat.identity import Identity
from chat.models import Message
from chat.serializers import MessageSerializer, to_wire


def message_payload(message: Message) -> dict[str, Any]:
    return to_wire(MessageSerializer(message).data)


def message_event(message: Message, client_id: Any = None) -> tuple[int, dict[str, Any]]:
    """(sequence, event) for RoomBroadcastSequencer."""
    event = {
        "type": "message",
        "roomId": message.room_id,
        "message": message_payload(message),
    }
    if client_id is not None:
        event["clientId"] = client_id
    return message.sequence, event


def message_deleted_event(message: Message) -> dict[str, Any]:
    return to_wire(
        {
            "type": "message-deleted",
            "roomId": message.room_id,
            "messageId": message.pk,
            "deletedBy": {"id": message.deleted_by, "model": message.deleted_by_model},
            "deletedAt": message.deleted_at,
        }
    )


def message_edited_event(message: Message) -> dict[str, Any]:
    return {
        "type": "message-edited",
        "roomId": message.room_id,
        "messageId": message.pk,
        "message": message_payload(message),
    }


def reaction_updated_event(message: Message, reactions: list[dict]) -> dict[str, Any]:
    return {
        "type": "reaction-updated",
        "roomId": message.room_id,
        "messageId": message.pk,
        "reactions": reactions,
    }


def identity_event(event_type: str, room_id: str, identity: Identity) -> dict[str, Any]:
    """user-joined, user-left, typing-started and typing-stopped."""
    return {"type": event_type, "roomId": room_id, "identity": identity.to_dict()}


def error_event(message: str, code: str) -> dict[str, Any]:
    return {"type": "error", "message": message, "code": code}
