import threading

from app.domain.identity import Identity
from app.enums import AccountStatus, Role
from app.services.presence_registry import PresenceRegistry


def _identity(user_id: int, username: str = "alice", role: Role = Role.USER) -> Identity:
    return Identity(id=user_id, username=username, role=role, status=AccountStatus.ACTIVE)


def test_first_connect_publishes_user_online(recording_bus):
    registry = PresenceRegistry(recording_bus)

    assert registry.mark_online(_identity(1), "sid-a") is True
    assert registry.is_online(1)
    assert registry.connection_of(1) == "sid-a"
    assert recording_bus.published == [("user_online", {"userId": 1, "username": "alice"})]


def test_reconnect_replaces_mapping_without_events(recording_bus):
    registry = PresenceRegistry(recording_bus)
    registry.mark_online(_identity(1), "sid-a")

    assert registry.mark_online(_identity(1), "sid-b") is False
    assert registry.connection_of(1) == "sid-b"
    assert recording_bus.topics() == ["user_online"]


def test_stale_disconnect_is_ignored(recording_bus):
    registry = PresenceRegistry(recording_bus)
    registry.mark_online(_identity(1), "sid-a")
    registry.mark_online(_identity(1), "sid-b")

    assert registry.mark_offline(1, "sid-a") is False
    assert registry.is_online(1)
    assert recording_bus.topics() == ["user_online"]


def test_current_disconnect_publishes_user_offline(recording_bus):
    registry = PresenceRegistry(recording_bus)
    registry.mark_online(_identity(1), "sid-a")

    assert registry.mark_offline(1, "sid-a") is True
    assert not registry.is_online(1)
    assert recording_bus.published[-1] == ("user_offline", {"userId": 1, "username": "alice"})
    # Already offline: nothing more is published.
    assert registry.mark_offline(1) is False
    assert recording_bus.topics() == ["user_online", "user_offline"]


def test_teardown_listener_drops_only_matching_connection(recording_bus):
    registry = PresenceRegistry(recording_bus)
    registry.mark_online(_identity(1), "sid-a")

    registry.handle_connection_lost(1, "sid-old")
    assert registry.is_online(1)
    registry.handle_connection_lost(1, "sid-a")
    assert not registry.is_online(1)


def test_connections_by_role_follow_identity_updates(recording_bus):
    registry = PresenceRegistry(recording_bus)
    registry.mark_online(_identity(1, "alice"), "sid-a")
    registry.mark_online(_identity(2, "bob", Role.ADMIN), "sid-b")

    assert registry.connections_of(Role.ADMIN) == {"sid-b"}
    registry.update_identity(_identity(1, "alice", Role.ADMIN))
    assert registry.connections_of(Role.ADMIN) == {"sid-a", "sid-b"}
    assert registry.online_ids() == {1, 2}


def test_durable_flag_is_mirrored(recording_bus, make_user, user_repo):
    alice = make_user("alice")
    registry = PresenceRegistry(recording_bus, user_repo)

    registry.mark_online(alice, "sid-a")
    assert user_repo.get(alice.id).is_online is True
    registry.mark_offline(alice.id, "sid-a")
    assert user_repo.get(alice.id).is_online is False


def test_concurrent_connect_disconnect_keeps_one_transition_each(recording_bus):
    registry = PresenceRegistry(recording_bus)
    identity = _identity(7)
    barrier = threading.Barrier(8)

    def connect(index: int) -> None:
        barrier.wait()
        registry.mark_online(identity, f"sid-{index}")

    threads = [threading.Thread(target=connect, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert recording_bus.topics().count("user_online") == 1
    current = registry.connection_of(7)
    assert current is not None

    stale = [f"sid-{i}" for i in range(8) if f"sid-{i}" != current]
    threads = [threading.Thread(target=registry.mark_offline, args=(7, sid)) for sid in stale]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.is_online(7)
    assert registry.mark_offline(7, current) is True
    assert recording_bus.topics().count("user_offline") == 1
    assert registry.tracked_locks() == 0


def test_account_locks_are_released_after_each_transition(recording_bus):
    registry = PresenceRegistry(recording_bus)
    for user_id in range(1, 6):
        registry.mark_online(_identity(user_id, f"user{user_id}"), f"sid-{user_id}")
    registry.update_identity(_identity(3, "renamed"))
    for user_id in range(1, 6):
        registry.mark_offline(user_id)

    assert registry.tracked_locks() == 0
    assert registry.online_ids() == set()
