from __future__ import annotations

import atexit
import contextlib
import logging
import signal
import threading
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from app.blueprints.api.admin import admin_api
from app.blueprints.api.auth import auth_api
from app.blueprints.api.manual import manual_api
from app.blueprints.api.pi import pi_api
from app.blueprints.api.sensors import sensors_api
from app.blueprints.api.settings import settings_api
from app.blueprints.api.thresholds import thresholds_api
from app.config import load_config, setup_logging
from app.extensions import init_extensions, socketio


def create_app(config_overrides: dict[str, Any] | None = None, *, relay: Any = None) -> Flask:
    config = load_config()
    if config_overrides:
        for key, value in config_overrides.items():
            setattr(config, key.lower(), value)

    # Configure logging early so container startup is visible in the terminal and the log file.
    setup_logging(debug=config.DEBUG, log_path=config.log_path)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    # Socket.IO must be initialised before the container builds the broadcast bus
    init_extensions(flask_app, config.socketio_cors_origins)

    from app.extensions import socketio as extension_socketio
    from app.services.container import ServiceContainer

    container = ServiceContainer.build(config, sio=extension_socketio, relay=relay)
    flask_app.config["CONTAINER"] = container
    flask_app.config["LOGIN_LIMITER"] = container.login_limiter
    flask_app.teardown_appcontext(container.database.close_db)

    # ── Graceful shutdown handlers ──────────────────────────────────
    _shutdown_lock = threading.Lock()
    _shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal _shutdown_done
        with _shutdown_lock:
            if _shutdown_done:
                return
            _shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        try:
            container.shutdown()
        except Exception as exc:
            logging.warning("Error during graceful shutdown: %s", exc)

    def _signal_handler(signum: int, _frame: object) -> None:
        logging.info("Received %s, shutting down", signal.Signals(signum).name)
        _graceful_shutdown(signal.Signals(signum).name)
        raise SystemExit(0)

    atexit.register(_graceful_shutdown, "atexit")
    if threading.current_thread() is threading.main_thread():
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(OSError, ValueError):
                signal.signal(sig, _signal_handler)

    # Global JSON error handler: anything unhandled on /api/ routes becomes an
    # envelope; HubError subclasses carry their own status and kind.
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if not request.path.startswith("/api/"):
            raise exc
        from app.domain.exceptions import HubError
        from app.utils.http import error_response, hub_error_response, safe_error

        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            return error_response(exc.description or "Request failed", status, kind=exc.name.replace(" ", ""))

        if isinstance(exc, HubError):
            return hub_error_response(exc)

        return safe_error(exc, 500, context="unhandled")

    @flask_app.errorhandler(413)
    def _handle_too_large(_exc):
        from app.utils.http import error_response

        return error_response("Request payload too large", 413, kind="PayloadTooLarge")

    # ── API version prefix ──────────────────────────────────────────
    V1 = "/api/v1"
    flask_app.register_blueprint(auth_api, url_prefix=f"{V1}/auth")
    flask_app.register_blueprint(thresholds_api, url_prefix=f"{V1}/thresholds")
    flask_app.register_blueprint(manual_api, url_prefix=f"{V1}/manual")
    flask_app.register_blueprint(sensors_api, url_prefix=f"{V1}/sensors")
    flask_app.register_blueprint(settings_api, url_prefix=f"{V1}/settings")
    flask_app.register_blueprint(admin_api, url_prefix=f"{V1}/admin")
    flask_app.register_blueprint(pi_api, url_prefix=f"{V1}/pi")

    # Register Socket.IO event handlers (must be after socketio init)
    from app.socketio import register_handlers

    register_handlers()

    for bp_name in flask_app.blueprints:
        logging.debug("Registered blueprint: %s", bp_name)

    # ── Backward-compat: rewrite /api/* → /api/v1/* ─────────────
    # WSGI-level rewrite (no HTTP redirect, fully transparent to clients).
    _original_wsgi = flask_app.wsgi_app

    def _legacy_api_rewrite(environ, start_response):
        path = environ.get("PATH_INFO", "")
        if path.startswith("/api/") and not path.startswith("/api/v1/"):
            environ["PATH_INFO"] = "/api/v1" + path[4:]
        return _original_wsgi(environ, start_response)

    flask_app.wsgi_app = _legacy_api_rewrite  # type: ignore[assignment]

    logging.getLogger(__name__).info("Greenhouse hub initialized (environment=%s).", config.environment)
    return flask_app


__all__ = ["create_app", "socketio"]
