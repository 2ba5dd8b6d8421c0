from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify

from app.utils.time import iso_now

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Generic user-facing messages, never internals
# ---------------------------------------------------------------------------
_GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    409: "Conflict",
    413: "Request payload too large",
    500: "An internal error occurred",
    503: "Failed to communicate with greenhouse controller",
    504: "Greenhouse controller did not respond in time",
}


def safe_error(
    exc: BaseException,
    status: int = 500,
    *,
    context: str = "",
    kind: str | None = None,
) -> Response:
    """Return a generic error response while logging the real exception.

    Use this instead of ``error_response(str(e), …)`` to prevent internal
    details (file paths, SQL fragments, class names) from leaking to
    clients.

    Parameters
    ----------
    exc:
        The caught exception, logged server-side, **never** sent to the
        client.
    status:
        HTTP status code for the response (determines the generic message).
    context:
        Optional human-readable context string logged alongside *exc*.
    kind:
        Stable error kind returned to the caller; defaults to
        ``exc.kind`` when the exception carries one.
    """
    _log.error("API error [%s] %s: %s", status, context, exc, exc_info=exc)
    message = _GENERIC_MESSAGES.get(status, _GENERIC_MESSAGES[500])
    return error_response(message, status, kind=kind or getattr(exc, "kind", "InternalError"))


def success_response(
    data: Any = None,
    status: int = 200,
    *,
    message: str | None = None,
) -> Response:
    payload: dict[str, Any] = {"ok": True, "data": data, "error": None}
    if message is not None:
        payload["message"] = message
    response = jsonify(payload)
    response.status_code = status
    return response


def error_response(
    message: str,
    status: int = 500,
    *,
    kind: str = "Error",
    details: dict | None = None,
) -> Response:
    payload: dict[str, Any] = {"kind": kind, "message": message, "timestamp": iso_now()}
    if details:
        payload.update(details)
    response_body: dict[str, Any] = {
        "ok": False,
        "data": None,
        "error": payload,
        "message": message,
    }
    if details:
        response_body["details"] = details
    response = jsonify(response_body)
    response.status_code = status
    return response


def hub_error_response(exc: BaseException, *, context: str = "") -> Response:
    """Map a :class:`~app.domain.exceptions.HubError` to its JSON envelope."""
    status = getattr(exc, "http_status", 500)
    if status >= 500:
        return safe_error(exc, status, context=context or type(exc).__name__)
    # 4xx: surface the message; it was written for the caller.
    return error_response(
        str(exc) or _GENERIC_MESSAGES.get(status, "Request failed"),
        status,
        kind=getattr(exc, "kind", "Error"),
        details=getattr(exc, "detail", None) or None,
    )


# ---------------------------------------------------------------------------
# Route decorator
# ---------------------------------------------------------------------------


def safe_route(
    error_message: str = "An internal error occurred",
    *,
    error_status: int = 500,
) -> Callable:
    """Decorator that wraps a Flask route handler with standardized error handling.

    Catches :class:`~app.domain.exceptions.HubError` subclasses and maps
    them to the correct HTTP status via ``exc.http_status``. Pydantic
    validation failures become ``ValidationError`` responses. Any other
    ``Exception`` is logged and returns a generic 500.

    Usage::

        @thresholds_api.get("")
        @safe_route("Failed to read thresholds")
        @allow_read
        def get_thresholds():
            ...
    """
    import pydantic

    from app.domain.exceptions import HubError, ValidationError

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except HubError as exc:
                return hub_error_response(exc, context=error_message)
            except pydantic.ValidationError as exc:
                translated = ValidationError(
                    "Invalid request payload",
                    detail={"errors": exc.errors(include_url=False, include_context=False)},
                )
                return hub_error_response(translated, context=error_message)
            except Exception as exc:
                return safe_error(exc, error_status, context=error_message)

        return wrapper

    return decorator
