"""Centralized exception hierarchy for the greenhouse hub.

All domain and service exceptions inherit from :class:`HubError` so that
callers can catch a single base class when they need a broad safety net, yet
still match on specific subclasses where narrower handling is appropriate.

Every error carries a stable ``kind`` string that is returned to HTTP
callers alongside the message, and an ``http_status`` used by
``app/utils/http.safe_route`` and the global error handler.

Hierarchy
---------
::

    HubError (base, maps to 500)
    ├── Unauthenticated          (401: missing / invalid / expired credential)
    ├── AccountBanned            (403: valid credential, banned account)
    ├── Forbidden                (403: role or target rule violation)
    ├── ValidationError          (400: bad input from caller)
    ├── NotFoundError            (404: entity does not exist)
    ├── ConflictError            (409: duplicate / state conflict)
    ├── RelayError               (503: edge device unreachable)
    │   ├── RelayUnavailable     (503: network error / non-2xx)
    │   └── RelayTimeout         (504: no answer within the relay timeout)
    └── PersistenceError         (500: durable store failure)
"""

from __future__ import annotations


class HubError(Exception):
    """Base exception for all hub errors.

    Parameters
    ----------
    message:
        Human-readable description. Surfaced to HTTP callers for 4xx errors,
        logged server-side only for 5xx errors.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging and 4xx response details.
    """

    http_status: int = 500
    kind: str = "HubError"

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class Unauthenticated(HubError):
    """Credential missing, malformed, expired or not matching an account (HTTP 401)."""

    http_status: int = 401
    kind: str = "Unauthenticated"


class AccountBanned(HubError):
    """Credential is structurally valid but the account is banned (HTTP 403)."""

    http_status: int = 403
    kind: str = "AccountBanned"


class Forbidden(HubError):
    """Role, status or target-identity rule rejected the operation (HTTP 403)."""

    http_status: int = 403
    kind: str = "Forbidden"


class ValidationError(HubError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400
    kind: str = "ValidationError"


class NotFoundError(HubError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404
    kind: str = "NotFound"


class ConflictError(HubError):
    """Operation conflicts with existing state (HTTP 409)."""

    http_status: int = 409
    kind: str = "Conflict"


# ── Server errors (5xx) ──────────────────────────────────────────────


class RelayError(HubError):
    """The edge device could not be reached (HTTP 503)."""

    http_status: int = 503
    kind: str = "RelayUnavailable"


class RelayUnavailable(RelayError):
    """Network failure or non-2xx answer from the edge device (HTTP 503)."""

    http_status: int = 503
    kind: str = "RelayUnavailable"


class RelayTimeout(RelayError):
    """The edge device did not answer within the relay timeout (HTTP 504)."""

    http_status: int = 504
    kind: str = "RelayTimeout"


class PersistenceError(HubError):
    """Durable store failure; always aborts the operation (HTTP 500)."""

    http_status: int = 500
    kind: str = "PersistenceError"
