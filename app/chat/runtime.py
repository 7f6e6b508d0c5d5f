"""
Process-wide chat runtime.

ChatRuntime owns the in-memory collaborators that live for the whole
server process: the PresenceRegistry and the RoomBroadcastSequencer. It is
built by ChatConfig.ready(), started and stopped by the ASGI lifespan
(chat.middleware.ChatLifespan) and reaches consumers and HTTP views through
``scope["chat_runtime"]``.

Broadcasting goes through the runtime so that the gateway and the REST
façade share one sequencer and therefore one per-room emission order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from django.conf import settings

from chat.broadcast import RoomBroadcastSequencer
from chat.constants import room_group_name
from chat.events import identity_event
from chat.presence import PresenceRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Persisted result -> (store sequence, event payload)
EventBuilder = Callable[[Any], "tuple[int, dict[str, Any]]"]


def room_event(payload: dict[str, Any], exclude: str | None = None) -> dict[str, Any]:
    """Channel layer message delivered to ChatConsumer.chat_event."""
    return {"type": "chat.event", "event": payload, "exclude": exclude}


class ChatRuntime:
    def __init__(
        self,
        registry: PresenceRegistry | None = None,
        sequencer: RoomBroadcastSequencer | None = None,
        typing_sweep_interval: float = 2,
    ):
        self.registry = registry or PresenceRegistry()
        self.sequencer = sequencer or RoomBroadcastSequencer()
        self.typing_sweep_interval = typing_sweep_interval
        self._sweeper: asyncio.Task | None = None

    @classmethod
    def from_settings(cls) -> "ChatRuntime":
        return cls(
            registry=PresenceRegistry(typing_ttl=settings.CHAT_TYPING_TTL),
            typing_sweep_interval=settings.CHAT_TYPING_SWEEP_INTERVAL,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        self.registry.start()
        if self.registry.typing_ttl and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_typing())
        logger.info("Chat runtime started")

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        self.registry.stop()
        logger.info("Chat runtime stopped")

    async def _sweep_typing(self) -> None:
        while True:
            await asyncio.sleep(self.typing_sweep_interval)
            await self.expire_typing()

    async def expire_typing(self, now: float | None = None) -> int:
        """Broadcast typing-stopped for every expired typing mark."""
        expired = self.registry.expire_typing(now)
        for room_id, identity in expired:
            session = self.registry.session(identity.id)
            await self.emit(
                room_id,
                room_event(
                    identity_event("typing-stopped", room_id, identity),
                    exclude=session.socket_id if session else None,
                ),
            )
        return len(expired)

    # -------------------------------------------------------------------------
    # Broadcasting
    # -------------------------------------------------------------------------

    async def emit(self, room_id: str, message: dict[str, Any]) -> None:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer configured, dropping %s", message["type"])
            return
        await channel_layer.group_send(room_group_name(room_id), message)

    async def persist_and_broadcast(
        self, room_id: str, persist: Callable[[], T], build_event: EventBuilder
    ) -> T:
        """
        Run the synchronous persist callable off the event loop, then
        broadcast its event to the room in store sequence order.

        Exceptions from persist propagate after the reservation is released;
        nothing is broadcast for a failed write.
        """

        def persist_and_build():
            result = persist()
            return result, build_event(result)

        ticket = self.sequencer.reserve(room_id)
        published = False
        try:
            result, (sequence, payload) = await database_sync_to_async(persist_and_build)()
            self.sequencer.publish(ticket, sequence, room_event(payload))
            published = True
            return result
        finally:
            if not published:
                self.sequencer.cancel(ticket)
            await self.flush(room_id)

    def persist_and_broadcast_sync(
        self, room_id: str, persist: Callable[[], T], build_event: EventBuilder
    ) -> T:
        """Variant of persist_and_broadcast for synchronous views."""
        ticket = self.sequencer.reserve(room_id)
        published = False
        try:
            result = persist()
            sequence, payload = build_event(result)
            self.sequencer.publish(ticket, sequence, room_event(payload))
            published = True
            return result
        finally:
            if not published:
                self.sequencer.cancel(ticket)
            async_to_sync(self.flush)(room_id)

    async def flush(self, room_id: str) -> int:
        return await self.sequencer.flush(
            room_id, lambda message: self.emit(room_id, message)
        )

    def emit_sync(self, room_id: str, payload: dict[str, Any]) -> None:
        """Unsequenced broadcast from synchronous code (deletes, reactions)."""
        async_to_sync(self.emit)(room_id, room_event(payload))
