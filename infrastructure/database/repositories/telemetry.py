from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from infrastructure.database.ops.telemetry import TelemetryOperations


@dataclass(frozen=True)
class TelemetryRepository:
    """Repository facade for device readings and automation events."""

    _backend: TelemetryOperations

    def add_readings(self, readings: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return self._backend.insert_readings(readings)

    def latest_reading(self) -> dict[str, Any] | None:
        return self._backend.get_latest_reading()

    def add_events(self, events: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return self._backend.insert_events(events)

    def count_events(self) -> int:
        return self._backend.count_events()
