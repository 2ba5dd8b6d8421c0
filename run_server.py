"""Run the greenhouse hub with the Flask-SocketIO server."""

import logging
import os
import sys

from app import create_app, socketio

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")


def build_app():
    return create_app()


def main() -> None:
    app = build_app()
    host = os.environ.get("GREENHOUSE_HOST", "0.0.0.0")
    port = int(os.environ.get("GREENHOUSE_PORT", os.environ.get("FLASK_RUN_PORT", 8000)))

    logging.getLogger(__name__).info("Server starting on http://%s:%s", host, port)
    try:
        socketio.run(
            app,
            host=host,
            port=port,
            debug=False,
            use_reloader=False,
            allow_unsafe_werkzeug=True,
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")


if __name__ == "__main__":
    main()
