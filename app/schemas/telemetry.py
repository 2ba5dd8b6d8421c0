"""
Device Telemetry Schemas
========================

Batches posted by the edge device: readings, automation events, alerts and
the heartbeat snapshot.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.enums import AlertLevel


class _DeviceModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DhtReading(_DeviceModel):
    temp: Optional[float] = None
    hum: Optional[float] = None


class NpkReading(_DeviceModel):
    n: Optional[float] = None
    p: Optional[float] = None
    k: Optional[float] = None


class ReadingIn(_DeviceModel):
    temp: Optional[float] = None
    hum: Optional[float] = None
    soil1: Optional[float] = None
    soil2: Optional[float] = None
    dht11: Optional[DhtReading] = None
    dht22: Optional[DhtReading] = None
    npk: Optional[NpkReading] = None
    actuators: Optional[dict[str, Union[bool, int, float]]] = None
    recorded_at: Optional[str] = None


class ReadingBatch(_DeviceModel):
    readings: list[ReadingIn]


class EventIn(_DeviceModel):
    event: str = Field(..., min_length=1)
    reason: Optional[str] = None
    recorded_at: Optional[str] = None


class EventBatch(_DeviceModel):
    events: list[EventIn]


class AlertIn(_DeviceModel):
    level: AlertLevel
    message: str = Field(..., min_length=1)
    timestamp: Optional[str] = None


class AlertBatch(_DeviceModel):
    alerts: list[AlertIn]


class Heartbeat(_DeviceModel):
    arduino_connected: Optional[bool] = None
    backend_reachable: Optional[bool] = None
    wifi_available: Optional[bool] = None
    arduino_port: Optional[str] = None
    webcam_device: Optional[str] = None
    webcam_active: Optional[bool] = None
    arduino_reboot_count: Optional[int] = None
    pending_readings: Optional[int] = None
