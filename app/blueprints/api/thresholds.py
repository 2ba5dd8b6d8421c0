"""
Threshold endpoints.

``PUT`` is a partial update: only recognised numeric fields are applied and
stored before the hub tries to push them to the greenhouse controller. A
controller that cannot be reached does not fail the request; the response
``sync`` block says whether the push went through.
"""

from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import get_container, get_json, success
from app.security.auth import allow_read, allow_write, current_identity
from app.utils.http import safe_route

thresholds_api = Blueprint("thresholds_api", __name__)


@thresholds_api.get("")
@safe_route("Failed to read thresholds")
@allow_read
def get_thresholds():
    return success(get_container().sync_orchestrator.current_thresholds().to_dict())


@thresholds_api.put("")
@safe_route("Failed to update thresholds")
@allow_write
def update_thresholds():
    result = get_container().sync_orchestrator.update_thresholds(current_identity(), get_json())
    message = (
        "Thresholds updated and synced to greenhouse controller"
        if result.relayed
        else "Thresholds saved; greenhouse controller sync pending"
    )
    return success(
        {"thresholds": result.thresholds.to_dict(), "changed": result.changed, "sync": result.sync_block()},
        message=message,
    )
