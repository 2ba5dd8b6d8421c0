"""Request guards for the JSON API.

``protect`` resolves the bearer credential into an :class:`Identity` stored
on ``flask.g``; ``require`` runs the command gate for an operation class;
``pi_auth`` checks the edge device's ``X-API-Key`` header. Guards raise
:class:`~app.domain.exceptions.HubError` subclasses, which the global API
error handler renders as JSON envelopes.
"""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Callable, TypeVar, cast

from flask import current_app, g, request

from app.domain.exceptions import Unauthenticated
from app.domain.identity import Identity
from app.enums import OperationClass
from app.security.credentials import extract_bearer

F = TypeVar("F", bound=Callable[..., object])


def _container():
    return current_app.config["CONTAINER"]


def protect(view_func: F) -> F:
    """Require a valid bearer credential (401 / 403 for banned accounts)."""

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        token = extract_bearer(request.headers.get("Authorization"))
        g.identity = _container().credentials.verify(token)
        return view_func(*args, **kwargs)

    return cast(F, wrapped)


def require(operation: OperationClass) -> Callable[[F], F]:
    """Authenticate, then authorize *operation* through the command gate."""

    def decorator(view_func: F) -> F:
        @wraps(view_func)
        def gated(*args, **kwargs):
            _container().command_gate.authorize(g.identity, operation)
            return view_func(*args, **kwargs)

        return protect(cast(F, gated))

    return decorator


allow_read = require(OperationClass.READ)
allow_write = require(OperationClass.WRITE)
admin_only = require(OperationClass.ADMIN_ACTION)
head_admin_only = require(OperationClass.HEAD_ADMIN_ACTION)


def current_identity() -> Identity:
    identity = g.get("identity")
    if identity is None:
        raise Unauthenticated("Authentication required")
    return identity


def pi_auth(view_func: F) -> F:
    """Require the edge device API key in ``X-API-Key``."""

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        expected = current_app.config.get("PI_API_KEY") or ""
        supplied = request.headers.get("X-API-Key") or ""
        if not expected or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            raise Unauthenticated("Invalid device API key")
        return view_func(*args, **kwargs)

    return cast(F, wrapped)
