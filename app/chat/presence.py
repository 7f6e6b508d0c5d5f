"""
In-process presence registry for chat connections.

Tracks which identities hold an open socket, which room each is active in,
and who is typing where. State is process-local and never persisted; the
registry is owned by the ChatRuntime, which starts it with the ASGI lifespan
and hands it to consumers through the connection scope.

Thread safety:
    Every method takes the registry lock for the duration of in-memory
    bookkeeping only. Callers never hold it across I/O.

Usage:
    registry = PresenceRegistry(typing_ttl=10)
    registry.start()
    registry.register(identity, socket_id="specific.abc!def")
    registry.set_active_room(identity.id, "algebra-1")
    registry.list_online("algebra-1")
    departure = registry.unregister(identity.id, socket_id="specific.abc!def")
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from chat.identity import Identity

logger = logging.getLogger(__name__)


@dataclass
class Session:
    socket_id: str
    identity: Identity
    connected_at: float
    last_seen: float
    active_room_id: str | None = None


@dataclass(frozen=True)
class Departure:
    """What an unregister removed, so the gateway can tell the rooms."""

    identity: Identity
    room_id: str | None
    typing_rooms: tuple[str, ...] = field(default_factory=tuple)


class PresenceRegistry:
    """
    Connection sessions keyed by identity id, plus per-room typing sets.

    One session per identity: a reconnect replaces the prior session, and
    an unregister carrying a stale socket id is ignored so an old socket
    closing late cannot evict the newer one.
    """

    def __init__(
        self,
        typing_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.typing_ttl = typing_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        # room_id -> identity_id -> started_at
        self._typing: dict[str, dict[str, float]] = {}
        self._running = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            self._running = True
        logger.info("Presence registry started")

    def stop(self) -> None:
        with self._lock:
            self._running = False
            dropped = len(self._sessions)
            self._sessions.clear()
            self._typing.clear()
        logger.info("Presence registry stopped, dropped %d sessions", dropped)

    @property
    def running(self) -> bool:
        return self._running

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def register(self, identity: Identity, socket_id: str) -> Session | None:
        """
        Create or overwrite the session for identity.

        Re-registering from the same socket keeps the active room and
        refreshes the cached identity fields. Returns the session that was
        replaced, if any.
        """
        now = self._clock()
        with self._lock:
            previous = self._sessions.get(identity.id)
            same_socket = previous is not None and previous.socket_id == socket_id
            self._sessions[identity.id] = Session(
                socket_id=socket_id,
                identity=identity,
                connected_at=previous.connected_at if same_socket else now,
                last_seen=now,
                active_room_id=previous.active_room_id if same_socket else None,
            )
        if previous is not None and previous.socket_id != socket_id:
            logger.debug("Session for %s replaced by socket %s", identity.id, socket_id)
        return previous

    def set_active_room(self, identity_id: str, room_id: str | None) -> str | None:
        """Point the session at room_id; returns the previously active room."""
        with self._lock:
            session = self._sessions.get(identity_id)
            if session is None:
                return None
            previous = session.active_room_id
            session.active_room_id = room_id
            if previous and previous != room_id:
                self._clear_typing(previous, identity_id)
            return previous

    def unregister(self, identity_id: str, socket_id: str | None = None) -> Departure | None:
        """
        Remove the session and cascade out of online and typing tracking.

        Returns None when there is nothing to remove or when socket_id no
        longer owns the session.
        """
        with self._lock:
            session = self._sessions.get(identity_id)
            if session is None:
                return None
            if socket_id is not None and session.socket_id != socket_id:
                return None
            del self._sessions[identity_id]
            typing_rooms = tuple(
                room_id
                for room_id in list(self._typing)
                if self._clear_typing(room_id, identity_id)
            )
        return Departure(
            identity=session.identity,
            room_id=session.active_room_id,
            typing_rooms=typing_rooms,
        )

    def session(self, identity_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(identity_id)

    def owns(self, identity_id: str, socket_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(identity_id)
            return session is not None and session.socket_id == socket_id

    def touch(self, identity_id: str) -> None:
        with self._lock:
            session = self._sessions.get(identity_id)
            if session is not None:
                session.last_seen = self._clock()

    def list_online(self, room_id: str) -> list[Identity]:
        with self._lock:
            return [
                s.identity
                for s in self._sessions.values()
                if s.active_room_id == room_id
            ]

    def online_count(self, room_id: str) -> int:
        return len(self.list_online(room_id))

    # -------------------------------------------------------------------------
    # Typing
    # -------------------------------------------------------------------------

    def start_typing(self, room_id: str, identity_id: str) -> bool:
        """Mark identity as typing; returns True if it was not already."""
        with self._lock:
            typists = self._typing.setdefault(room_id, {})
            added = identity_id not in typists
            typists[identity_id] = self._clock()
            return added

    def stop_typing(self, room_id: str, identity_id: str) -> bool:
        """Clear the typing mark; returns True if one was present."""
        with self._lock:
            return self._clear_typing(room_id, identity_id)

    def typing_in(self, room_id: str) -> list[str]:
        with self._lock:
            return list(self._typing.get(room_id, {}))

    def expire_typing(self, now: float | None = None) -> list[tuple[str, Identity]]:
        """
        Drop typing marks older than typing_ttl.

        Returns (room_id, identity) for each expired mark so the caller can
        broadcast typing-stopped.
        """
        if not self.typing_ttl:
            return []
        now = self._clock() if now is None else now
        expired: list[tuple[str, Identity]] = []
        with self._lock:
            for room_id in list(self._typing):
                typists = self._typing[room_id]
                for identity_id, started_at in list(typists.items()):
                    if now - started_at < self.typing_ttl:
                        continue
                    del typists[identity_id]
                    session = self._sessions.get(identity_id)
                    identity = session.identity if session else Identity(id=identity_id)
                    expired.append((room_id, identity))
                if not typists:
                    del self._typing[room_id]
        return expired

    def _clear_typing(self, room_id: str, identity_id: str) -> bool:
        typists = self._typing.get(room_id)
        if not typists or identity_id not in typists:
            return False
        del typists[identity_id]
        if not typists:
            del self._typing[room_id]
        return True
