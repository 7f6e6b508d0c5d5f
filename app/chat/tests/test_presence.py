"""
Tests for PresenceRegistry.

The registry is pure in-memory state, so these tests drive it with a fake
clock and no database.
"""

import threading

import pytest

from chat.identity import Identity, Role
from chat.presence import PresenceRegistry

SAM = Identity(id="s-1", name="Sam", role=Role.STUDENT)
RILEY = Identity(id="s-2", name="Riley", role=Role.STUDENT)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    registry = PresenceRegistry(typing_ttl=10, clock=clock)
    registry.start()
    return registry


class TestLifecycle:
    def test_start_and_stop(self, registry):
        registry.register(SAM, "sock-1")
        assert registry.running

        registry.stop()

        assert not registry.running
        assert registry.session(SAM.id) is None


class TestSessions:
    def test_register_creates_session(self, registry, clock):
        assert registry.register(SAM, "sock-1") is None

        session = registry.session(SAM.id)
        assert session.socket_id == "sock-1"
        assert session.connected_at == clock.now
        assert session.active_room_id is None

    def test_reregister_from_same_socket_keeps_room(self, registry):
        """
        Re-identifying on the same connection only refreshes profile fields.

        Why it matters: Renaming yourself must not drop you out of the room.
        """
        registry.register(SAM, "sock-1")
        registry.set_active_room(SAM.id, "algebra-1")

        registry.register(SAM.with_profile(name="Samuel"), "sock-1")

        session = registry.session(SAM.id)
        assert session.active_room_id == "algebra-1"
        assert session.identity.name == "Samuel"

    def test_register_from_new_socket_replaces_session(self, registry):
        registry.register(SAM, "sock-1")
        registry.set_active_room(SAM.id, "algebra-1")

        previous = registry.register(SAM, "sock-2")

        assert previous.socket_id == "sock-1"
        assert registry.owns(SAM.id, "sock-2")
        assert registry.session(SAM.id).active_room_id is None

    def test_stale_socket_cannot_unregister_newer_session(self, registry):
        registry.register(SAM, "sock-1")
        registry.register(SAM, "sock-2")

        assert registry.unregister(SAM.id, "sock-1") is None
        assert registry.owns(SAM.id, "sock-2")

    def test_unregister_unknown_identity_is_noop(self, registry):
        assert registry.unregister("nobody") is None

    def test_set_active_room_returns_previous(self, registry):
        registry.register(SAM, "sock-1")

        assert registry.set_active_room(SAM.id, "algebra-1") is None
        assert registry.set_active_room(SAM.id, "biology") == "algebra-1"

    def test_set_active_room_without_session(self, registry):
        assert registry.set_active_room("nobody", "algebra-1") is None

    def test_touch_updates_last_seen(self, registry, clock):
        registry.register(SAM, "sock-1")
        clock.now += 30

        registry.touch(SAM.id)

        assert registry.session(SAM.id).last_seen == clock.now


class TestOnline:
    def test_list_online_is_scoped_to_room(self, registry):
        registry.register(SAM, "sock-1")
        registry.register(RILEY, "sock-2")
        registry.set_active_room(SAM.id, "algebra-1")
        registry.set_active_room(RILEY.id, "biology")

        assert registry.list_online("algebra-1") == [SAM]
        assert registry.online_count("biology") == 1

    def test_unregister_cascades_out_of_online_and_typing(self, registry):
        """
        Disconnect removes the identity from every room it was tracked in.

        Why it matters: A dropped client must not linger as online or typing.
        """
        registry.register(SAM, "sock-1")
        registry.set_active_room(SAM.id, "algebra-1")
        registry.start_typing("algebra-1", SAM.id)

        departure = registry.unregister(SAM.id, "sock-1")

        assert departure.identity == SAM
        assert departure.room_id == "algebra-1"
        assert departure.typing_rooms == ("algebra-1",)
        assert registry.list_online("algebra-1") == []
        assert registry.typing_in("algebra-1") == []


class TestTyping:
    def test_start_and_stop_report_changes(self, registry):
        assert registry.start_typing("algebra-1", SAM.id) is True
        assert registry.start_typing("algebra-1", SAM.id) is False
        assert registry.typing_in("algebra-1") == [SAM.id]

        assert registry.stop_typing("algebra-1", SAM.id) is True
        assert registry.stop_typing("algebra-1", SAM.id) is False

    def test_switching_rooms_clears_typing_in_old_room(self, registry):
        registry.register(SAM, "sock-1")
        registry.set_active_room(SAM.id, "algebra-1")
        registry.start_typing("algebra-1", SAM.id)

        registry.set_active_room(SAM.id, "biology")

        assert registry.typing_in("algebra-1") == []

    def test_expire_typing_drops_old_marks(self, registry, clock):
        registry.register(SAM, "sock-1")
        registry.start_typing("algebra-1", SAM.id)
        clock.now += 5
        registry.start_typing("algebra-1", RILEY.id)
        clock.now += 6

        expired = registry.expire_typing()

        assert expired == [("algebra-1", SAM)]
        assert registry.typing_in("algebra-1") == [RILEY.id]

    def test_expire_typing_without_session_uses_bare_identity(self, registry, clock):
        registry.start_typing("algebra-1", "ghost")

        expired = registry.expire_typing(clock.now + 10)

        assert expired == [("algebra-1", Identity(id="ghost"))]

    def test_expire_typing_disabled_without_ttl(self, clock):
        registry = PresenceRegistry(typing_ttl=None, clock=clock)
        registry.start_typing("algebra-1", SAM.id)

        assert registry.expire_typing(clock.now + 3600) == []


class TestConcurrency:
    def test_parallel_registrations_are_all_recorded(self, registry):
        def worker(n):
            identity = Identity(id=f"user-{n}")
            registry.register(identity, f"sock-{n}")
            registry.set_active_room(identity.id, "general")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(50)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.online_count("general") == 50
