"""
Tests for ChatRuntime and the ASGI plumbing around it.
"""

import asyncio
import time

import pytest
from asgiref.sync import async_to_sync

from chat.middleware import ChatLifespan, ChatRuntimeMiddleware
from chat.runtime import ChatRuntime, room_event


class TestRoomEvent:
    def test_shape(self):
        assert room_event({"type": "pong"}, exclude="sock-1") == {
            "type": "chat.event",
            "event": {"type": "pong"},
            "exclude": "sock-1",
        }


class TestLifecycle:
    def test_start_and_stop(self, runtime):
        async def scenario():
            await runtime.start()
            started = runtime.registry.running and runtime._sweeper is not None
            await runtime.stop()
            return started

        assert async_to_sync(scenario)() is True
        assert runtime.registry.running is False
        assert runtime._sweeper is None

    def test_no_sweeper_without_typing_ttl(self):
        runtime = ChatRuntime()

        async def scenario():
            await runtime.start()
            sweeper = runtime._sweeper
            await runtime.stop()
            return sweeper

        assert async_to_sync(scenario)() is None


class TestPersistAndBroadcast:
    def test_failed_write_broadcasts_nothing(self, runtime, channel_layer, room_listener):
        listener = room_listener("algebra-1")

        def persist():
            raise RuntimeError("write failed")

        with pytest.raises(RuntimeError):
            runtime.persist_and_broadcast_sync("algebra-1", persist, lambda result: (1, {}))

        assert runtime.sequencer.pending("algebra-1") == 0
        listener.assert_nothing_received()

    def test_sync_variant_emits_event(self, runtime, channel_layer, room_listener):
        listener = room_listener("algebra-1")

        result = runtime.persist_and_broadcast_sync(
            "algebra-1", lambda: "saved", lambda result: (1, {"type": "message", "value": result})
        )

        assert result == "saved"
        assert listener.receive()["event"] == {"type": "message", "value": "saved"}

    def test_emit_sync(self, runtime, channel_layer, room_listener):
        listener = room_listener("algebra-1")

        runtime.emit_sync("algebra-1", {"type": "reaction-updated"})

        assert listener.receive() == room_event({"type": "reaction-updated"})


class TestExpireTyping:
    def test_expired_mark_excludes_the_typist(self, runtime, channel_layer, room_listener, student):
        listener = room_listener("algebra-1")
        runtime.registry.register(student, "sock-student")
        runtime.registry.set_active_room(student.id, "algebra-1")
        runtime.registry.start_typing("algebra-1", student.id)

        expired = async_to_sync(runtime.expire_typing)(now=time.monotonic() + 60)

        message = listener.receive()
        assert expired == 1
        assert message["event"]["type"] == "typing-stopped"
        assert message["exclude"] == "sock-student"


class TestMiddleware:
    def test_injects_runtime_into_scope(self, runtime):
        seen = {}

        async def inner(scope, receive, send):
            seen.update(scope)

        async def scenario():
            await ChatRuntimeMiddleware(inner, runtime=runtime)({"type": "http"}, None, None)

        async_to_sync(scenario)()

        assert seen["chat_runtime"] is runtime

    def test_falls_back_to_app_runtime(self):
        from django.apps import apps

        seen = {}

        async def inner(scope, receive, send):
            seen.update(scope)

        async_to_sync(ChatRuntimeMiddleware(inner))({"type": "http"}, None, None)

        assert seen["chat_runtime"] is apps.get_app_config("chat").runtime


class TestLifespan:
    def test_startup_and_shutdown(self, runtime):
        """
        The ASGI lifespan starts the runtime before serving and stops it after.

        Why it matters: The presence registry must be running before the
        first socket connects.
        """
        sent = []

        async def scenario():
            inbox = asyncio.Queue()
            await inbox.put({"type": "lifespan.startup"})
            await inbox.put({"type": "lifespan.shutdown"})

            async def send(message):
                sent.append((message["type"], runtime.registry.running))

            await ChatLifespan(runtime)({"type": "lifespan"}, inbox.get, send)

        async_to_sync(scenario)()

        assert sent == [
            ("lifespan.startup.complete", True),
            ("lifespan.shutdown.complete", False),
        ]

    def test_startup_failure_is_reported(self, runtime, monkeypatch):
        async def broken_start():
            raise RuntimeError("no registry")

        monkeypatch.setattr(runtime, "start", broken_start)
        sent = []

        async def receive():
            return {"type": "lifespan.startup"}

        async def send(message):
            sent.append(message)

        async_to_sync(ChatLifespan(runtime))({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "no registry"}]
