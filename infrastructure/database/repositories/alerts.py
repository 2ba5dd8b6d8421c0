from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from infrastructure.database.ops.alerts import AlertOperations


@dataclass(frozen=True)
class AlertRepository:
    """Repository facade for alert operations."""

    _backend: AlertOperations

    def add_many(self, alerts: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return self._backend.insert_alerts(alerts)

    def newest(self, limit: int = 100) -> list[dict[str, Any]]:
        return self._backend.list_alerts(limit)

    def get(self, alert_id: int) -> dict[str, Any] | None:
        return self._backend.get_alert(alert_id)

    def acknowledge(self, alert_id: int, acknowledged_by: int) -> bool:
        return self._backend.acknowledge_alert(alert_id, acknowledged_by)

    def purge_before(self, cutoff_iso: str) -> int:
        return self._backend.purge_alerts_before(cutoff_iso)
