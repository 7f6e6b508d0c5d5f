"""
WebSocket consumer for the chat gateway.

One socket per client. The client identifies itself, then joins one room at
a time; every persisted change is broadcast to the room's channel group.

Session States:
    Connected -> identify -> Identified -> join -> InRoom(roomId)
    InRoom -> leave -> Identified; any state -> Disconnected on close

Channel Groups:
    Each room has a channel group named "chat_room_{roomId}". Frames are
    delivered through ChatConsumer.chat_event, which skips the excluded
    channel so typing and join notices never echo to their author.

Message Types (from client):
    identify, join, leave, send, typing-start, typing-stop, react, delete,
    edit, mark-read, get-online-users, ping

Message Types (to client):
    connected, joined, left, user-joined, user-left, message,
    message-deleted, message-edited, reaction-updated, typing-started,
    typing-stopped, online-users, read, pong, error

Errors:
    A failed event is answered with an error frame to the sender only. The
    connection stays open.
"""

from __future__ import annotations

import asyncio
import logging
import time

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from chat.authorization import ChatAuthorizationService
from chat.constants import GATEWAY_CONFIG, room_group_name
from chat.events import (
    error_event,
    identity_event,
    message_deleted_event,
    message_edited_event,
    message_event,
    reaction_updated_event,
)
from chat.identity import Identity, resolve_identity
from chat.middleware import default_runtime
from chat.runtime import ChatRuntime, room_event
from chat.services import MessageStore, RoomDirectory, validate_room_id
from core.exceptions import BaseApplicationError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    Gateway session for one socket.

    Attributes:
        runtime: Process ChatRuntime (presence registry and sequencer)
        identity: Identity announced by ``identify``, or None
        room_id: Active room, or None
        last_activity: Monotonic time of the last inbound frame
    """

    handlers = {
        "identify": "handle_identify",
        "join": "handle_join",
        "leave": "handle_leave",
        "send": "handle_send",
        "typing-start": "handle_typing_start",
        "typing-stop": "handle_typing_stop",
        "react": "handle_react",
        "delete": "handle_delete",
        "edit": "handle_edit",
        "mark-read": "handle_mark_read",
        "get-online-users": "handle_get_online_users",
        "ping": "handle_ping",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.runtime: ChatRuntime | None = None
        self.identity: Identity | None = None
        self.room_id: str | None = None
        self.last_activity = 0.0
        self._watchdog: asyncio.Task | None = None
        self._closed = False

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        self.runtime = self.scope.get("chat_runtime") or default_runtime()
        await self.accept()
        self.last_activity = time.monotonic()
        if settings.CHAT_HEARTBEAT_TIMEOUT:
            self._watchdog = asyncio.create_task(self._watch_heartbeat())
        logger.debug("Socket %s connected", self.channel_name)

    async def disconnect(self, close_code):
        await self._cleanup()
        logger.debug("Socket %s disconnected (%s)", self.channel_name, close_code)

    async def _cleanup(self) -> None:
        """Disconnect cascade: presence, typing and room subscription."""
        if self._closed:
            return
        self._closed = True

        if self._watchdog is not None and self._watchdog is not asyncio.current_task():
            self._watchdog.cancel()

        if self.room_id:
            await self.channel_layer.group_discard(room_group_name(self.room_id), self.channel_name)

        if self.identity is None:
            return
        departure = self.runtime.registry.unregister(self.identity.id, self.channel_name)
        if departure is None:
            return
        for room_id in departure.typing_rooms:
            await self._broadcast(identity_event("typing-stopped", room_id, departure.identity), room_id)
        if departure.room_id:
            await self._broadcast(
                identity_event("user-left", departure.room_id, departure.identity),
                departure.room_id,
            )
        logger.info("%s went offline", departure.identity.id)

    async def _watch_heartbeat(self) -> None:
        timeout = settings.CHAT_HEARTBEAT_TIMEOUT
        interval = min(settings.CHAT_HEARTBEAT_INTERVAL, timeout)
        while True:
            await asyncio.sleep(interval)
            if time.monotonic() - self.last_activity > timeout:
                logger.info("Closing idle socket %s", self.channel_name)
                await self._cleanup()
                await self.close(code=GATEWAY_CONFIG.CLOSE_CODE_IDLE)
                return

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    @classmethod
    async def decode_json(cls, text_data):
        try:
            return await super().decode_json(text_data)
        except ValueError:
            return None

    async def receive_json(self, content, **kwargs):
        self.last_activity = time.monotonic()
        if self.identity is not None:
            self.runtime.registry.touch(self.identity.id)

        if not isinstance(content, dict):
            await self.send_error("Frames must be JSON objects", "INVALID_EVENT")
            return
        event_type = content.get("type")
        handler_name = self.handlers.get(event_type) if isinstance(event_type, str) else None
        if handler_name is None:
            await self.send_error(f"Unknown event type '{event_type}'", "UNKNOWN_EVENT")
            return

        try:
            await getattr(self, handler_name)(content)
        except BaseApplicationError as exc:
            await self.send_error(exc.message, exc.error_code)
        except DatabaseError:
            logger.exception("Database error handling %s", content.get("type"))
            await self.send_error("The chat store is unavailable, try again", "PERSISTENCE_FAILURE")
        except Exception:
            logger.exception("Unhandled error handling %s", content.get("type"))
            await self.send_error("Something went wrong", "INTERNAL_ERROR")

    async def send_error(self, message: str, code: str) -> None:
        await self.send_json(error_event(message, code))

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def handle_identify(self, content):
        payload = content.get("identity")
        if payload is None:
            payload = {k: content.get(k) for k in ("id", "userId", "name", "role", "avatar")}
        identity = await database_sync_to_async(resolve_identity)(payload)

        if self.identity is not None and self.identity.id != identity.id:
            if self.room_id:
                await self._leave_room(self.room_id)
            self.runtime.registry.unregister(self.identity.id, self.channel_name)

        self.runtime.registry.register(identity, self.channel_name)
        self.identity = identity
        await self.send_json(
            {"type": "connected", "identityId": identity.id, "identity": identity.to_dict()}
        )

    async def handle_join(self, content):
        identity = self._require_identity()
        room_id = validate_room_id(content.get("roomId"))
        await database_sync_to_async(RoomDirectory.add_member)(room_id, identity)

        if self.room_id and self.room_id != room_id:
            await self._leave_room(self.room_id)

        await self.channel_layer.group_add(room_group_name(room_id), self.channel_name)
        registry = self.runtime.registry
        previous = registry.set_active_room(identity.id, room_id)
        self.room_id = room_id
        if previous != room_id:
            await self._broadcast(identity_event("user-joined", room_id, identity), room_id)

        roster = registry.list_online(room_id)
        await self.send_json(
            {
                "type": "joined",
                "roomId": room_id,
                "onlineCount": len(roster),
                "roster": [member.to_dict() for member in roster],
            }
        )

    async def handle_leave(self, content):
        self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        await self._leave_room(room_id)
        await self.send_json({"type": "left", "roomId": room_id})

    async def handle_send(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        client_id = content.get("clientId")

        await self.runtime.persist_and_broadcast(
            room_id,
            lambda: MessageStore.post(
                room_id,
                identity,
                message_type=content.get("messageType") or "text",
                content=content.get("content") or "",
                attachment=content.get("attachment"),
                reply_to_id=content.get("replyToId"),
            ),
            lambda message: message_event(message, client_id),
        )

        if self.runtime.registry.stop_typing(room_id, identity.id):
            await self._broadcast(identity_event("typing-stopped", room_id, identity), room_id)

    async def handle_typing_start(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        if self.runtime.registry.start_typing(room_id, identity.id):
            await self._broadcast(identity_event("typing-started", room_id, identity), room_id)

    async def handle_typing_stop(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        if self.runtime.registry.stop_typing(room_id, identity.id):
            await self._broadcast(identity_event("typing-stopped", room_id, identity), room_id)

    async def handle_react(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        message_id = content.get("messageId")

        @database_sync_to_async
        def react():
            self._require_message_in_room(MessageStore.get(message_id), room_id)
            return MessageStore.react(message_id, identity, content.get("emoji"))

        message, reactions = await react()
        await self.runtime.emit(
            message.room_id, room_event(reaction_updated_event(message, reactions))
        )

    async def handle_delete(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        message_id = content.get("messageId")

        @database_sync_to_async
        def delete():
            message = self._require_message_in_room(MessageStore.get(message_id), room_id)
            ChatAuthorizationService.require_delete(identity, message)
            if message.is_deleted:
                return None
            message = MessageStore.soft_delete(message.pk, identity)
            return message, message_deleted_event(message)

        deleted = await delete()
        if deleted is not None:
            message, event = deleted
            await self.runtime.emit(message.room_id, room_event(event))

    async def handle_edit(self, content):
        identity = self._require_identity()
        room_id = self._require_room(content.get("roomId"))
        message_id = content.get("messageId")

        @database_sync_to_async
        def edit():
            message = self._require_message_in_room(MessageStore.get(message_id), room_id)
            ChatAuthorizationService.require_edit(identity, message)
            message = MessageStore.edit(message.pk, identity, content.get("content"))
            return message, message_edited_event(message)

        message, event = await edit()
        await self.runtime.emit(message.room_id, room_event(event))

    async def handle_mark_read(self, content):
        identity = self._require_identity()
        room_ids = content.get("roomIds") or [self._require_room(content.get("roomId"))]
        if not isinstance(room_ids, list):
            raise ValidationError("roomIds must be a list", error_code="INVALID_EVENT")
        count = await database_sync_to_async(MessageStore.mark_read)(room_ids, identity)
        await self.send_json({"type": "read", "roomIds": room_ids, "count": count})

    async def handle_get_online_users(self, content):
        room_id = content.get("roomId") or self.room_id
        if not room_id:
            raise ValidationError("roomId is required", error_code="ROOM_REQUIRED")
        users = self.runtime.registry.list_online(room_id)
        await self.send_json(
            {
                "type": "online-users",
                "roomId": room_id,
                "users": [user.to_dict() for user in users],
                "count": len(users),
            }
        )

    async def handle_ping(self, content):
        await self.send_json({"type": "pong", "timestamp": timezone.now().isoformat()})

    # -------------------------------------------------------------------------
    # Channel layer events
    # -------------------------------------------------------------------------

    async def chat_event(self, event):
        """Room broadcast from ChatRuntime; skips the excluded channel."""
        if event.get("exclude") == self.channel_name:
            return
        await self.send_json(event["event"])

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_identity(self) -> Identity:
        if self.identity is None:
            raise PermissionDeniedError("Identify before sending events", error_code="NOT_IDENTIFIED")
        return self.identity

    def _require_room(self, room_id) -> str:
        if self.room_id is None:
            raise PermissionDeniedError("Join a room first", error_code="NOT_IN_ROOM")
        if room_id and room_id != self.room_id:
            raise PermissionDeniedError(
                f"Not joined to room {room_id}",
                error_code="NOT_IN_ROOM",
                details={"roomId": room_id},
            )
        return self.room_id

    @staticmethod
    def _require_message_in_room(message, room_id: str):
        if message.room_id != room_id:
            raise PermissionDeniedError(
                "Message belongs to another room",
                error_code="NOT_IN_ROOM",
                details={"messageId": message.pk},
            )
        return message

    async def _leave_room(self, room_id: str) -> None:
        identity = self.identity
        registry = self.runtime.registry
        was_typing = identity.id in registry.typing_in(room_id)

        await self.channel_layer.group_discard(room_group_name(room_id), self.channel_name)
        self.room_id = None
        # A newer socket for the same identity now speaks for its presence.
        if not registry.owns(identity.id, self.channel_name):
            return
        registry.set_active_room(identity.id, None)
        registry.stop_typing(room_id, identity.id)

        if was_typing:
            await self._broadcast(identity_event("typing-stopped", room_id, identity), room_id)
        await self._broadcast(identity_event("user-left", room_id, identity), room_id)

    async def _broadcast(self, payload: dict, room_id: str) -> None:
        """Send to everyone in the room except this socket."""
        await self.runtime.emit(room_id, room_event(payload, exclude=self.channel_name))
