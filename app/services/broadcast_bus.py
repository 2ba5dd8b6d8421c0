"""
Broadcast Bus
=============

Purpose:
    Fan out named live events to every authenticated Socket.IO connection,
    or to a single connection for targeted notices such as
    ``force_disconnect``.

Delivery contract:
- At-most-once, best-effort. Connections that are not attached when
  ``publish`` runs never see the event; there is no backlog or replay, so
  clients re-fetch state through the read endpoints after reconnecting.
- Fan-out runs concurrently on a worker pool. Each connection gets a
  bounded write window that opens when its write starts. A connection
  whose write fails or does not finish in time is treated as dead: it is
  detached and disconnected, and every teardown listener (the presence
  registry) is told about it. A write still queued behind stuck workers
  long after the fan-out began is cancelled; that connection misses the
  event but stays attached.
- ``publish`` returns once every per-connection attempt has completed or
  timed out, so consecutive publishes from one operation reach a given
  connection in publish order.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from typing import Any

from app.services.protocols import TeardownListener

logger = logging.getLogger("broadcast_bus")

_POLL_INTERVAL = 0.05


@dataclass
class PublishReport:
    topic: str
    attempted: int = 0
    delivered: int = 0
    dropped: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _jsonable(payload: Any) -> Any:
    if hasattr(payload, "model_dump"):
        return payload.model_dump(mode="json")
    if is_dataclass(payload) and not isinstance(payload, type):
        return asdict(payload)
    if isinstance(payload, Enum):
        return payload.value
    return payload


class SocketIOBroadcastBus:
    """
    Socket.IO-backed broadcast bus.

    Attributes:
        sio: Flask-SocketIO instance (anything with ``emit`` and ``server``).
        write_timeout: Seconds each connection is given to accept a write.
        namespace: Socket.IO namespace all live connections share.
    """

    def __init__(
        self,
        sio: Any,
        *,
        write_timeout: float = 2.0,
        max_workers: int = 16,
        namespace: str = "/",
    ) -> None:
        self.sio = sio
        self.write_timeout = write_timeout
        self.namespace = namespace
        self._max_workers = max(1, max_workers)
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="broadcast")
        self._live: dict[str, int] = {}
        self._lock = threading.Lock()
        self._teardown_listeners: list[TeardownListener] = []

    # ------------------------------------------------------------------ #
    # Connection table
    # ------------------------------------------------------------------ #
    def attach(self, connection: str, identity_id: int) -> None:
        with self._lock:
            self._live[connection] = identity_id

    def detach(self, connection: str) -> int | None:
        with self._lock:
            return self._live.pop(connection, None)

    def is_live(self, connection: str) -> bool:
        with self._lock:
            return connection in self._live

    def live_connections(self) -> list[str]:
        with self._lock:
            return list(self._live)

    def connections_for(self, identity_id: int) -> list[str]:
        with self._lock:
            return [sid for sid, owner in self._live.items() if owner == identity_id]

    def add_teardown_listener(self, listener: TeardownListener) -> None:
        self._teardown_listeners.append(listener)

    # ------------------------------------------------------------------ #
    # Publishing
    # ------------------------------------------------------------------ #
    def publish(self, topic: str, payload: Any = None) -> PublishReport:
        topic = _jsonable(topic)
        body = _jsonable(payload)
        targets = self.live_connections()
        report = PublishReport(topic=topic, attempted=len(targets))
        if not targets:
            return report

        started: dict[str, float] = {}
        futures = {self._executor.submit(self._deliver_timed, sid, topic, body, started): sid for sid in targets}
        pending = set(futures)
        # Writes that never get a worker before this point are skipped, not dropped.
        rounds = math.ceil(len(targets) / self._max_workers)
        give_up_at = time.monotonic() + self.write_timeout * (rounds + 2)

        while pending:
            done, pending = wait(pending, timeout=_POLL_INTERVAL)
            for future in done:
                sid = futures[future]
                if future.exception() is None:
                    report.delivered += 1
                else:
                    logger.warning("Delivery of '%s' to %s failed: %s", topic, sid, future.exception())
                    report.dropped.append(sid)

            now = time.monotonic()
            for future in list(pending):
                if future.done():
                    continue
                sid = futures[future]
                began = started.get(sid)
                if began is not None and now - began >= self.write_timeout:
                    logger.warning("Delivery of '%s' to %s timed out after %.1fs", topic, sid, self.write_timeout)
                    report.dropped.append(sid)
                    pending.discard(future)
                elif began is None and now >= give_up_at and future.cancel():
                    logger.warning("Delivery of '%s' to %s skipped: no worker became free", topic, sid)
                    report.skipped.append(sid)
                    pending.discard(future)

        for sid in report.dropped:
            self.disconnect(sid)

        logger.debug("Published '%s' to %d/%d connections", topic, report.delivered, report.attempted)
        return report

    def publish_to(self, connection: str, topic: str, payload: Any = None) -> bool:
        if not self.is_live(connection):
            logger.debug("Skipping '%s' for %s: not live", topic, connection)
            return False
        topic = _jsonable(topic)
        future = self._executor.submit(self._deliver, connection, topic, _jsonable(payload))
        done, _ = wait([future], timeout=self.write_timeout)
        if future in done and future.exception() is None:
            return True
        logger.warning("Targeted delivery of '%s' to %s failed", topic, connection)
        self.disconnect(connection)
        return False

    def _deliver(self, connection: str, topic: str, payload: Any) -> None:
        self.sio.emit(topic, payload, to=connection, namespace=self.namespace)

    def _deliver_timed(self, connection: str, topic: str, payload: Any, started: dict[str, float]) -> None:
        started[connection] = time.monotonic()
        self._deliver(connection, topic, payload)

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #
    def disconnect(self, connection: str) -> None:
        identity_id = self.detach(connection)
        server = getattr(self.sio, "server", None)
        if server is not None:
            try:
                server.disconnect(connection, namespace=self.namespace)
            except Exception as exc:
                logger.warning("Failed to close connection %s: %s", connection, exc)
        if identity_id is None:
            return
        for listener in list(self._teardown_listeners):
            try:
                listener(identity_id, connection)
            except Exception:
                logger.exception("Teardown listener failed for connection %s", connection)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
