"""
Per-room ordered broadcast of persisted messages.

Two sends to the same room can race: both persist (the store assigns the
sequence under the room lock) and their completions reach the event loop
in either order. RoomBroadcastSequencer buffers completed events and
releases them in store sequence order.

Protocol for a caller:
    1. ticket = sequencer.reserve(room_id)       before persisting
    2. persist; on success sequencer.publish(ticket, sequence, event)
       on failure sequencer.cancel(ticket)
    3. await sequencer.flush(room_id, emit)

A buffered event is released once every ticket reserved before it was
published has settled. A ticket reserved after an event was published
belongs to a write that started after that event committed, so it can only
receive a later sequence. At most one flusher drains a room at a time; a
flusher keeps draining until nothing is releasable, so events published
while it awaits are emitted by it in order.

Guarantees hold within one process. The lock guards bookkeeping only and
is never held across persistence or emission.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Emit = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class Ticket:
    room_id: str
    stamp: int


@dataclass
class _RoomQueue:
    clock: int = 0
    in_flight: set[int] = field(default_factory=set)
    # (sequence, published_at_stamp, tiebreak, event)
    ready: list = field(default_factory=list)
    flushing: bool = False

    @property
    def idle(self) -> bool:
        return not self.in_flight and not self.ready and not self.flushing


class RoomBroadcastSequencer:
    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: dict[str, _RoomQueue] = {}
        self._tiebreak = itertools.count()

    def reserve(self, room_id: str) -> Ticket:
        with self._lock:
            queue = self._rooms.setdefault(room_id, _RoomQueue())
            queue.clock += 1
            queue.in_flight.add(queue.clock)
            return Ticket(room_id=room_id, stamp=queue.clock)

    def publish(self, ticket: Ticket, sequence: int, event: dict[str, Any]) -> None:
        with self._lock:
            queue = self._rooms.setdefault(ticket.room_id, _RoomQueue())
            queue.in_flight.discard(ticket.stamp)
            queue.clock += 1
            heapq.heappush(
                queue.ready, (sequence, queue.clock, next(self._tiebreak), event)
            )

    def cancel(self, ticket: Ticket) -> None:
        with self._lock:
            queue = self._rooms.get(ticket.room_id)
            if queue is None:
                return
            queue.in_flight.discard(ticket.stamp)
            self._forget_if_idle(ticket.room_id, queue)

    def pending(self, room_id: str) -> int:
        """Number of buffered events not yet emitted."""
        with self._lock:
            queue = self._rooms.get(room_id)
            return len(queue.ready) if queue else 0

    async def flush(self, room_id: str, emit: Emit) -> int:
        """
        Emit every releasable event for room_id in sequence order.

        Returns the number of events this call emitted. Returns 0 at once
        when another flusher already owns the room.
        """
        with self._lock:
            queue = self._rooms.get(room_id)
            if queue is None or queue.flushing:
                return 0
            queue.flushing = True

        emitted = 0
        try:
            while True:
                with self._lock:
                    batch = self._drain(queue)
                    if not batch:
                        queue.flushing = False
                        self._forget_if_idle(room_id, queue)
                        return emitted
                for event in batch:
                    try:
                        await emit(event)
                        emitted += 1
                    except Exception:
                        logger.exception("Broadcast to room %s failed", room_id)
        except BaseException:
            with self._lock:
                queue.flushing = False
            raise

    def _drain(self, queue: _RoomQueue) -> list[dict[str, Any]]:
        batch = []
        while queue.ready:
            sequence, published_at, _, event = queue.ready[0]
            if any(stamp < published_at for stamp in queue.in_flight):
                break
            heapq.heappop(queue.ready)
            batch.append(event)
        return batch

    def _forget_if_idle(self, room_id: str, queue: _RoomQueue) -> None:
        if queue.idle and self._rooms.get(room_id) is queue:
            del self._rooms[room_id]
