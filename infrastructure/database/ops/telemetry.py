from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)

_JSON_COLUMNS = ("dht11", "dht22", "npk", "actuators")


def _decode_reading(row: Mapping[str, Any]) -> Dict[str, Any]:
    reading = dict(row)
    for column in _JSON_COLUMNS:
        raw = reading.get(column)
        reading[column] = json.loads(raw) if raw else None
    return reading


class TelemetryOperations:
    """Database operations for Readings and AutomationEvents."""

    @persistence_guard("insert_readings")
    def insert_readings(self, readings: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Store a batch of readings in one transaction and return them with ids."""
        stored: List[Dict[str, Any]] = []
        with self.connection() as db:
            for reading in readings:
                encoded = {
                    column: json.dumps(reading[column]) if reading.get(column) is not None else None
                    for column in _JSON_COLUMNS
                }
                cur = db.execute(
                    """
                    INSERT INTO Readings (
                        temp, hum, soil1, soil2, dht11, dht22, npk, actuators, recorded_at, received_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        reading.get("temp"),
                        reading.get("hum"),
                        reading.get("soil1"),
                        reading.get("soil2"),
                        encoded["dht11"],
                        encoded["dht22"],
                        encoded["npk"],
                        encoded["actuators"],
                        reading["recorded_at"],
                        reading["received_at"],
                    ),
                )
                stored.append({"id": cur.lastrowid, **reading})
        return stored

    @persistence_guard("get_latest_reading")
    def get_latest_reading(self) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute(
            "SELECT * FROM Readings ORDER BY received_at DESC, id DESC LIMIT 1"
        ).fetchone()
        return _decode_reading(row) if row else None

    @persistence_guard("insert_events")
    def insert_events(self, events: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        stored: List[Dict[str, Any]] = []
        with self.connection() as db:
            for event in events:
                cur = db.execute(
                    "INSERT INTO AutomationEvents (event, reason, recorded_at, received_at) VALUES (?, ?, ?, ?)",
                    (event["event"], event.get("reason"), event["recorded_at"], event["received_at"]),
                )
                stored.append({"id": cur.lastrowid, **event})
        return stored

    @persistence_guard("count_events")
    def count_events(self) -> int:
        return int(self.get_db().execute("SELECT COUNT(*) FROM AutomationEvents").fetchone()[0])
