"""
Blueprint Common Utilities
==========================

Shared helpers for all API blueprints.

Usage:
    from app.blueprints.api._common import get_container, get_json, success, client_ip
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from flask import current_app, request

from app.domain.exceptions import ValidationError
from app.utils.http import error_response, success_response

logger = logging.getLogger("api._common")


# ============================================================================
# CONTAINER ACCESS
# ============================================================================

def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


# ============================================================================
# REQUEST HELPERS
# ============================================================================

def get_json() -> dict:
    """
    Get the JSON object request body.

    A missing body reads as ``{}``; a body that is not a JSON object is a
    ValidationError.
    """
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def client_ip() -> Optional[str]:
    return request.remote_addr


# ============================================================================
# RESPONSE HELPERS
# ============================================================================

def success(data: Any = None, status: int = 200, *, message: str | None = None):
    """
    Standard success response wrapper.

    Returns:
        Flask Response with format: {"ok": true, "data": ..., "error": null}
    """
    return success_response(data, status, message=message)


def fail(message: str, status: int = 400, *, kind: str = "Error", details: dict | None = None):
    """
    Standard error response wrapper.

    Returns:
        Flask Response with format: {"ok": false, "data": null, "error": {...}}
    """
    return error_response(message, status, kind=kind, details=details)
