from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)


def _decode_alert(row: Mapping[str, Any]) -> Dict[str, Any]:
    alert = dict(row)
    alert["acknowledged"] = bool(alert["acknowledged"])
    return alert


class AlertOperations:
    """Database operations for SystemAlerts."""

    @persistence_guard("insert_alerts")
    def insert_alerts(self, alerts: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        stored: List[Dict[str, Any]] = []
        with self.connection() as db:
            for alert in alerts:
                cur = db.execute(
                    "INSERT INTO SystemAlerts (level, message, source, timestamp) VALUES (?, ?, ?, ?)",
                    (alert["level"], alert["message"], alert["source"], alert["timestamp"]),
                )
                stored.append(
                    {"id": cur.lastrowid, "acknowledged": False, "acknowledged_by": None, **alert}
                )
        return stored

    @persistence_guard("list_alerts")
    def list_alerts(self, limit: int = 100) -> List[Dict[str, Any]]:
        rows = self.get_db().execute(
            "SELECT * FROM SystemAlerts ORDER BY timestamp DESC, id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [_decode_alert(r) for r in rows]

    @persistence_guard("get_alert")
    def get_alert(self, alert_id: int) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute("SELECT * FROM SystemAlerts WHERE id = ?", (alert_id,)).fetchone()
        return _decode_alert(row) if row else None

    @persistence_guard("acknowledge_alert")
    def acknowledge_alert(self, alert_id: int, acknowledged_by: int) -> bool:
        with self.connection() as db:
            cur = db.execute(
                "UPDATE SystemAlerts SET acknowledged = 1, acknowledged_by = ? WHERE id = ?",
                (acknowledged_by, alert_id),
            )
        return cur.rowcount > 0

    @persistence_guard("purge_alerts")
    def purge_alerts_before(self, cutoff_iso: str) -> int:
        with self.connection() as db:
            cur = db.execute("DELETE FROM SystemAlerts WHERE timestamp < ?", (cutoff_iso,))
        return cur.rowcount
