from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import get_container, success
from app.security.auth import allow_read
from app.utils.http import safe_route

sensors_api = Blueprint("sensors_api", __name__)


@sensors_api.get("/latest")
@safe_route("Failed to read latest reading")
@allow_read
def latest_reading():
    """Most recently received reading (404 before the first upload)."""
    return success(get_container().telemetry_service.latest_reading())


@sensors_api.get("/status")
@safe_route("Failed to read device status")
@allow_read
def device_status():
    """Last heartbeat snapshot from the edge device, ``null`` before the first one."""
    return success(get_container().telemetry_service.pi_status())
