"""app.socketio.live_handlers

Handshake authentication and lifecycle for live viewers.

* ``connect``: the credential comes from the handshake ``auth`` payload
  (``{"token": ...}``) or an ``Authorization: Bearer`` header. Invalid,
  expired or banned credentials refuse the connection.
* ``disconnect``: detaches the connection and marks the account offline
  unless a newer connection already replaced it.
* ``request_live_data``: answered to the sender only.
"""

import logging

from flask import current_app, request
from flask_socketio import ConnectionRefusedError, emit

from app.domain.exceptions import HubError
from app.enums import LiveTopic
from app.security.credentials import extract_bearer
from app.utils.time import iso_now

logger = logging.getLogger(__name__)


def _container():
    return current_app.config["CONTAINER"]


def _handshake_token(auth):
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"])
    return extract_bearer(request.headers.get("Authorization"))


def handle_connect(auth=None):
    container = _container()
    try:
        identity = container.credentials.verify(_handshake_token(auth))
    except HubError as exc:
        logger.info("Refused live connection %s: %s", request.sid, exc)
        raise ConnectionRefusedError({"kind": exc.kind, "message": str(exc)})

    container.presence.mark_online(identity, request.sid)
    container.broadcast_bus.attach(request.sid, identity.id)
    logger.debug("Live connection %s accepted for %s", request.sid, identity.username)


def handle_disconnect(reason=None):
    container = _container()
    identity_id = container.broadcast_bus.detach(request.sid)
    if identity_id is None:
        return
    container.presence.mark_offline(identity_id, request.sid)
    logger.debug("Live connection %s closed (%s)", request.sid, reason)


def handle_request_live_data(data=None):
    container = _container()
    if not container.broadcast_bus.is_live(request.sid):
        return
    emit(LiveTopic.LIVE_DATA_REQUESTED.value, {"timestamp": iso_now()})
