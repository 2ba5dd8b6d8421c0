"""
Settings API Module
Per-account preferences (username and theme).
"""

from __future__ import annotations

from flask import Blueprint

from app.blueprints.api._common import get_container, get_json, success
from app.security.auth import allow_read, allow_write, current_identity
from app.utils.http import safe_route

settings_api = Blueprint("settings_api", __name__)


@settings_api.get("")
@safe_route("Failed to load settings")
@allow_read
def get_settings():
    return success(get_container().settings_service.get_settings(current_identity()))


@settings_api.put("/username")
@safe_route("Failed to change username")
@allow_write
def change_username():
    data = get_container().settings_service.change_username(current_identity(), get_json())
    return success(data, message="Username updated successfully")


@settings_api.put("/theme")
@safe_route("Failed to change theme")
@allow_read
def change_theme():
    data = get_container().settings_service.change_theme(current_identity(), get_json())
    return success(data, message="Theme updated successfully")


__all__ = ["settings_api"]
