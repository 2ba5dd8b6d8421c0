"""
Presence Registry
=================

Process-wide, in-memory map from account id to its current live
connection. It is the source of truth for "who is online" while the process
runs; the ``Users.is_online`` column is only a best-effort mirror and is
reset at startup.

Policy
------
* Last connect wins: a new connection for an account replaces the previous
  mapping. Several sessions per account are allowed; only the newest is
  tracked.
* A disconnect from a connection that is no longer the current mapping is
  ignored, so a slow teardown of an old socket cannot mark a freshly
  reconnected account offline.
* Offline->online and online->offline transitions publish ``user_online`` /
  ``user_offline`` on the broadcast bus. Replacing a live mapping publishes
  nothing.

All mutation for one account happens under that account's lock. Events are
published after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from app.domain.exceptions import PersistenceError
from app.domain.identity import Identity
from app.enums import LiveTopic, Role

if TYPE_CHECKING:
    from app.services.protocols import BroadcastBus
    from infrastructure.database.repositories.users import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _LiveEntry:
    connection: str
    username: str
    role: Role


@dataclass
class _LockSlot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class PresenceRegistry:
    def __init__(self, bus: "BroadcastBus", users: "UserRepository | None" = None) -> None:
        self._bus = bus
        self._users = users
        self._entries: dict[int, _LiveEntry] = {}
        self._locks: dict[int, _LockSlot] = {}
        self._guard = threading.Lock()

    @contextmanager
    def _lock_for(self, identity_id: int) -> Iterator[None]:
        # Slots are reference counted so an account with no pending transition holds no lock.
        with self._guard:
            slot = self._locks.get(identity_id)
            if slot is None:
                slot = self._locks[identity_id] = _LockSlot()
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._locks[identity_id]

    def _mirror(self, identity_id: int, online: bool, connection: str | None) -> None:
        if self._users is None:
            return
        try:
            self._users.set_presence(identity_id, online, connection)
        except PersistenceError as exc:
            logger.warning("Durable online flag for user %s not updated: %s", identity_id, exc)

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #
    def mark_online(self, identity: Identity, connection: str) -> bool:
        """Map *identity* to *connection*; return True on an offline->online transition."""
        with self._lock_for(identity.id):
            with self._guard:
                previous = self._entries.get(identity.id)
                self._entries[identity.id] = _LiveEntry(connection, identity.username, identity.role)
            self._mirror(identity.id, True, connection)

        if previous is not None:
            logger.info("User %s reconnected (%s replaces %s)", identity.username, connection, previous.connection)
            return False

        logger.info("User %s online (%s)", identity.username, connection)
        self._bus.publish(LiveTopic.USER_ONLINE.value, {"userId": identity.id, "username": identity.username})
        return True

    def mark_offline(self, identity_id: int, connection: str | None = None) -> bool:
        """Drop the mapping for *identity_id*.

        With *connection* given, only that exact connection is dropped; a
        stale disconnect is a no-op. Returns True on an online->offline
        transition.
        """
        with self._lock_for(identity_id):
            with self._guard:
                current = self._entries.get(identity_id)
                if current is None:
                    return False
                if connection is not None and current.connection != connection:
                    logger.debug("Ignoring stale disconnect %s for user %s", connection, identity_id)
                    return False
                del self._entries[identity_id]
            self._mirror(identity_id, False, None)

        logger.info("User %s offline (%s)", current.username, current.connection)
        self._bus.publish(LiveTopic.USER_OFFLINE.value, {"userId": identity_id, "username": current.username})
        return True

    def handle_connection_lost(self, identity_id: int, connection: str) -> None:
        """Teardown listener for the broadcast bus."""
        self.mark_offline(identity_id, connection)

    def update_identity(self, identity: Identity) -> None:
        """Refresh role / username of a live entry after an account change."""
        with self._lock_for(identity.id), self._guard:
            current = self._entries.get(identity.id)
            if current is not None:
                self._entries[identity.id] = _LiveEntry(current.connection, identity.username, identity.role)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def is_online(self, identity_id: int) -> bool:
        with self._guard:
            return identity_id in self._entries

    def connection_of(self, identity_id: int) -> str | None:
        with self._guard:
            entry = self._entries.get(identity_id)
        return entry.connection if entry else None

    def connections_of(self, role: Role) -> set[str]:
        with self._guard:
            return {entry.connection for entry in self._entries.values() if entry.role is role}

    def online_ids(self) -> set[int]:
        with self._guard:
            return set(self._entries)

    def tracked_locks(self) -> int:
        with self._guard:
            return len(self._locks)
