"""
Greenhouse Threshold Set
========================
The singleton record of controller setpoints shared with the edge device.

Only one ThresholdSet logically exists. It is loaded once at startup by
``ThresholdStore`` and every mutation goes through the sync orchestrator's
durable phase.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

THRESHOLD_DEFAULTS: dict[str, float] = {
    "soil1": 60,
    "soil2": 60,
    "temp_high": 35,
    "temp_low": 15,
    "hum_high": 80,
    "hum_low": 30,
    "npk_n": 20,
    "npk_p": 20,
    "npk_k": 20,
}

THRESHOLD_KEYS: tuple[str, ...] = tuple(THRESHOLD_DEFAULTS)


@dataclass(frozen=True)
class ThresholdSet:
    """
    Immutable snapshot of the controller setpoints.

    Attributes:
        soil1, soil2: Soil moisture setpoints (%) for the two beds
        temp_high, temp_low: Air temperature band (°C)
        hum_high, hum_low: Relative humidity band (%)
        npk_n, npk_p, npk_k: Nutrient targets
        last_updated_by: Account id of the last writer
        last_synced_at: When the edge device last confirmed these values
        updated_at: When the durable record last changed
    """

    soil1: float = 60
    soil2: float = 60
    temp_high: float = 35
    temp_low: float = 15
    hum_high: float = 80
    hum_low: float = 30
    npk_n: float = 20
    npk_p: float = 20
    npk_k: float = 20
    last_updated_by: int | None = None
    last_synced_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ThresholdSet":
        values = {key: row[key] for key in THRESHOLD_KEYS}
        return cls(
            **values,
            last_updated_by=row["last_updated_by"],
            last_synced_at=row["last_synced_at"],
            updated_at=row["updated_at"],
        )

    def with_changes(self, changed: Mapping[str, float], **meta: Any) -> "ThresholdSet":
        return replace(self, **dict(changed), **meta)

    def values(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in THRESHOLD_KEYS}

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        return {
            **self.values(),
            "lastUpdatedBy": payload["last_updated_by"],
            "lastSyncedAt": payload["last_synced_at"],
            "updatedAt": payload["updated_at"],
        }
