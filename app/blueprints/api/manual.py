"""
Manual actuator control.

Commands go straight to the greenhouse controller; when it cannot be
reached the request fails with 503 (unreachable) or 504 (timed out).
"""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint

from app.blueprints.api._common import get_container, get_json, success
from app.security.auth import allow_write, current_identity
from app.utils.http import safe_route

manual_api = Blueprint("manual_api", __name__)


@manual_api.post("/control")
@safe_route("Failed to send manual command")
@allow_write
def manual_control():
    result = get_container().sync_orchestrator.send_manual_command(current_identity(), get_json())
    data = asdict(result)
    data["deviceResponse"] = data.pop("device_response")
    return success(data, message=f"{result.actuator} turned {'on' if result.state else 'off'}")


@manual_api.post("/auto")
@safe_route("Failed to resume automatic mode")
@allow_write
def resume_auto():
    data = get_container().sync_orchestrator.resume_auto(current_identity())
    return success(data, message="Automatic mode resumed")
