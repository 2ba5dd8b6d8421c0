from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.domain.greenhouse_thresholds import ThresholdSet
from infrastructure.database.ops.thresholds import ThresholdOperations


@dataclass(frozen=True)
class ThresholdRepository:
    """Repository facade for the ThresholdSet and PiStatus singletons."""

    _backend: ThresholdOperations

    def load(self) -> ThresholdSet:
        return ThresholdSet.from_row(self._backend.load_or_create_thresholds())

    def save(self, thresholds: ThresholdSet) -> None:
        self._backend.save_thresholds(
            thresholds.values(),
            last_updated_by=thresholds.last_updated_by,
            updated_at=thresholds.updated_at,
        )

    def stamp_synced(self, synced_at: str) -> None:
        self._backend.stamp_thresholds_synced(synced_at)

    def save_pi_status(self, status: Mapping[str, Any]) -> dict[str, Any]:
        return self._backend.upsert_pi_status(status)

    def pi_status(self) -> dict[str, Any] | None:
        return self._backend.get_pi_status()
