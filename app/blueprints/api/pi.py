"""
Edge device ingestion endpoints.

Authenticated with the shared ``X-API-Key`` header rather than a bearer
credential. Every batch is stored in one transaction or not at all.
"""

from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import get_container, get_json, success
from app.security.auth import pi_auth
from app.utils.http import safe_route

pi_api = Blueprint("pi_api", __name__)


@pi_api.post("/readings")
@safe_route("Failed to save readings")
@pi_auth
def ingest_readings():
    count = get_container().telemetry_service.ingest_readings(get_json())
    return success({"count": count})


@pi_api.post("/events")
@safe_route("Failed to save events")
@pi_auth
def ingest_events():
    count = get_container().telemetry_service.ingest_events(get_json())
    return success({"count": count})


@pi_api.post("/heartbeat")
@safe_route("Failed to update status")
@pi_auth
def heartbeat():
    return success(get_container().telemetry_service.record_heartbeat(get_json()))


@pi_api.post("/alerts")
@safe_route("Failed to save alerts")
@pi_auth
def ingest_alerts():
    count = get_container().telemetry_service.ingest_alerts(get_json())
    return success({"count": count})
