"""
Service protocols (structural typing interfaces).

Protocols let consumer services declare the *minimal* surface they depend on
without importing the concrete class, breaking circular imports and making
tests trivially mockable.

Usage
-----
In a consumer service::

    from __future__ import annotations
    from typing import TYPE_CHECKING
    if TYPE_CHECKING:
        from app.services.protocols import BroadcastBus

    class SyncOrchestrator:
        def __init__(self, bus: "BroadcastBus", ...): ...

The Socket.IO-backed ``SocketIOBroadcastBus`` satisfies ``BroadcastBus``
structurally; tests pass a recording fake instead.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Protocol, runtime_checkable


@runtime_checkable
class BroadcastBus(Protocol):
    """Fan-out of named events to live connections.

    Delivery is at-most-once: a connection that is not live when an event is
    published never receives it.
    """

    def publish(self, topic: str, payload: Any) -> Any:
        """Deliver *payload* to every live connection; return once all attempts finished or timed out."""
        ...

    def publish_to(self, connection: str, topic: str, payload: Any) -> bool:
        """Deliver *payload* to one connection only; ``False`` if it is not live."""
        ...

    def disconnect(self, connection: str) -> None:
        """Tear the connection down and forget it."""
        ...

    def connections_for(self, identity_id: int) -> list[str]:
        """Every attached connection owned by *identity_id*."""
        ...


@runtime_checkable
class DeviceRelay(Protocol):
    """Outbound calls to the edge controller; every method raises ``RelayError`` on failure."""

    def push_thresholds(self, changed: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    def send_command(self, command: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    def resume_auto(self) -> Dict[str, Any]:
        ...


TeardownListener = Callable[[int, str], None]
"""Called with ``(identity_id, connection)`` when the bus drops a dead connection."""