"""
Telemetry Ingest Service
========================
Stores what the edge device uploads and pushes it to live viewers.

Each batch endpoint is all-or-nothing: the whole batch is validated first
and then written in a single transaction, so a malformed item or a store
failure leaves no partial rows behind. Live events are published only after
the write committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from app.domain.exceptions import NotFoundError, ValidationError
from app.enums import AlertSource, LiveTopic
from app.schemas.telemetry import AlertBatch, EventBatch, Heartbeat, ReadingBatch
from app.utils.time import coerce_iso, iso_now

if TYPE_CHECKING:
    from app.services.protocols import BroadcastBus
    from infrastructure.database.repositories.alerts import AlertRepository
    from infrastructure.database.repositories.telemetry import TelemetryRepository
    from infrastructure.database.repositories.thresholds import ThresholdRepository

logger = logging.getLogger(__name__)

_PI_STATUS_FLAGS = ("arduino_connected", "backend_reachable", "wifi_available", "webcam_active")


def _require_list(payload: Mapping[str, Any] | None, key: str, label: str) -> dict[str, Any]:
    if not isinstance(payload, Mapping) or not isinstance(payload.get(key), list):
        raise ValidationError(f"{label} array required")
    return dict(payload)


def pi_status_view(row: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    status = {key: value for key, value in row.items() if key != "id"}
    for flag in _PI_STATUS_FLAGS:
        if status.get(flag) is not None:
            status[flag] = bool(status[flag])
    status["lastHeartbeat"] = status.pop("last_heartbeat", None)
    return status


@dataclass
class TelemetryIngestService:
    telemetry: "TelemetryRepository"
    alerts: "AlertRepository"
    thresholds: "ThresholdRepository"
    bus: "BroadcastBus"

    def ingest_readings(self, payload: Mapping[str, Any]) -> int:
        batch = ReadingBatch.model_validate(_require_list(payload, "readings", "Readings"))
        received_at = iso_now()
        rows = []
        for reading in batch.readings:
            row = reading.model_dump(exclude_none=True)
            row["recorded_at"] = coerce_iso(reading.recorded_at)
            row["received_at"] = received_at
            rows.append(row)

        stored = self.telemetry.add_readings(rows)
        if stored:
            self.bus.publish(LiveTopic.NEW_READING.value, stored[-1])
        logger.debug("Stored %d readings", len(stored))
        return len(stored)

    def ingest_events(self, payload: Mapping[str, Any]) -> int:
        batch = EventBatch.model_validate(_require_list(payload, "events", "Events"))
        received_at = iso_now()
        rows = [
            {
                "event": event.event,
                "reason": event.reason,
                "recorded_at": coerce_iso(event.recorded_at),
                "received_at": received_at,
            }
            for event in batch.events
        ]

        stored = self.telemetry.add_events(rows)
        for event in stored:
            self.bus.publish(LiveTopic.AUTOMATION_EVENT.value, event)
        return len(stored)

    def record_heartbeat(self, payload: Mapping[str, Any] | None) -> dict[str, Any]:
        heartbeat = Heartbeat.model_validate(dict(payload or {}))
        snapshot = {**heartbeat.model_dump(), "last_heartbeat": iso_now()}
        status = pi_status_view(self.thresholds.save_pi_status(snapshot))
        self.bus.publish(LiveTopic.PI_STATUS.value, status)
        return status

    def ingest_alerts(self, payload: Mapping[str, Any]) -> int:
        batch = AlertBatch.model_validate(_require_list(payload, "alerts", "Alerts"))
        rows = [
            {
                "level": alert.level.value,
                "message": alert.message,
                "source": AlertSource.PI.value,
                "timestamp": coerce_iso(alert.timestamp),
            }
            for alert in batch.alerts
        ]

        stored = self.alerts.add_many(rows)
        urgent = [row for alert, row in zip(batch.alerts, stored) if alert.level.is_urgent]
        for row in urgent:
            self.bus.publish(LiveTopic.SYSTEM_ALERT.value, row)
        if urgent:
            logger.warning("Edge device raised %d urgent alert(s)", len(urgent))
        return len(stored)

    # --- reads -------------------------------------------------------------
    def latest_reading(self) -> dict[str, Any]:
        reading = self.telemetry.latest_reading()
        if reading is None:
            raise NotFoundError("No readings available yet")
        return reading

    def pi_status(self) -> dict[str, Any] | None:
        return pi_status_view(self.thresholds.pi_status())
