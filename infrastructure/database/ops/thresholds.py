from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from app.domain.greenhouse_thresholds import THRESHOLD_KEYS
from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)


class ThresholdOperations:
    """Database operations for the single-row ThresholdSet and PiStatus tables."""

    @persistence_guard("load_thresholds")
    def load_or_create_thresholds(self) -> Dict[str, Any]:
        with self.connection() as db:
            db.execute("INSERT OR IGNORE INTO ThresholdSet (id) VALUES (1)")
            row = db.execute("SELECT * FROM ThresholdSet WHERE id = 1").fetchone()
        return dict(row)

    @persistence_guard("save_thresholds")
    def save_thresholds(self, values: Mapping[str, Any], *, last_updated_by: int | None, updated_at: str) -> None:
        columns = [key for key in THRESHOLD_KEYS if key in values]
        assignments = "".join(f"{column} = ?, " for column in columns)
        params = [values[column] for column in columns] + [last_updated_by, updated_at]
        with self.connection() as db:
            db.execute(
                f"UPDATE ThresholdSet SET {assignments}last_updated_by = ?, updated_at = ? WHERE id = 1",
                params,
            )

    @persistence_guard("stamp_thresholds_synced")
    def stamp_thresholds_synced(self, synced_at: str) -> None:
        with self.connection() as db:
            db.execute("UPDATE ThresholdSet SET last_synced_at = ? WHERE id = 1", (synced_at,))

    @persistence_guard("upsert_pi_status")
    def upsert_pi_status(self, status: Mapping[str, Any]) -> Dict[str, Any]:
        """Overwrite the heartbeat snapshot; fields missing from *status* become NULL."""
        with self.connection() as db:
            db.execute(
                """
                INSERT OR REPLACE INTO PiStatus (
                    id, arduino_connected, backend_reachable, wifi_available, arduino_port,
                    webcam_device, webcam_active, arduino_reboot_count, pending_readings, last_heartbeat
                ) VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    status.get("arduino_connected"),
                    status.get("backend_reachable"),
                    status.get("wifi_available"),
                    status.get("arduino_port"),
                    status.get("webcam_device"),
                    status.get("webcam_active"),
                    status.get("arduino_reboot_count"),
                    status.get("pending_readings"),
                    status["last_heartbeat"],
                ),
            )
            row = db.execute("SELECT * FROM PiStatus WHERE id = 1").fetchone()
        return dict(row)

    @persistence_guard("get_pi_status")
    def get_pi_status(self) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute("SELECT * FROM PiStatus WHERE id = 1").fetchone()
        return dict(row) if row else None
