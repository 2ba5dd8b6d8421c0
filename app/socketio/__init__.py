"""
Socket.IO Event Handlers
========================

Live connections on the default namespace. Every connection must present a
bearer credential in the handshake; accepted connections join the broadcast
bus and the presence registry.

Usage:
    Call after socketio.init_app() to register all handlers.

    from app.socketio import register_handlers
    register_handlers()
"""

import logging

from app.extensions import socketio

logger = logging.getLogger(__name__)


def register_handlers():
    """Bind the live handlers to the Socket.IO server created by the last ``init_app``."""
    from app.socketio import live_handlers

    socketio.on_event("connect", live_handlers.handle_connect)
    socketio.on_event("disconnect", live_handlers.handle_disconnect)
    socketio.on_event("request_live_data", live_handlers.handle_request_live_data)
    logger.info("Socket.IO handlers registered")
