"""
Shared test fixtures for the greenhouse hub test suite.

Provides:
- In-memory SQLite database with all tables created
- Repository instances wired to the test database
- Recording fakes for Socket.IO, the broadcast bus and the device relay
- An application fixture built with ``create_app`` against a temp database

Usage:
    def test_example(user_repo):
        identity = user_repo.create("alice", "alice@example.com", "hash")
        assert identity.role is Role.HEAD_ADMIN
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import bcrypt
import pytest

from app.domain.exceptions import RelayTimeout, RelayUnavailable
from app.security.command_gate import CommandGate
from app.services.application.activity_logger import ActivityLogger
from infrastructure.database.repositories import (
    ActivityRepository,
    AlertRepository,
    PasswordRequestRepository,
    TelemetryRepository,
    ThresholdRepository,
    UserRepository,
)
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("app").setLevel(logging.WARNING)

FAST_HASH_ROUNDS = 4


def fast_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=FAST_HASH_ROUNDS)).decode("utf-8")


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler
    handler.close_db()


@pytest.fixture()
def user_repo(db_handler):
    return UserRepository(db_handler)


@pytest.fixture()
def threshold_repo(db_handler):
    return ThresholdRepository(db_handler)


@pytest.fixture()
def telemetry_repo(db_handler):
    return TelemetryRepository(db_handler)


@pytest.fixture()
def alert_repo(db_handler):
    return AlertRepository(db_handler)


@pytest.fixture()
def activity_repo(db_handler):
    return ActivityRepository(db_handler)


@pytest.fixture()
def password_request_repo(db_handler):
    return PasswordRequestRepository(db_handler)


@pytest.fixture()
def activity_logger(activity_repo):
    return ActivityLogger(activity_repo)


@pytest.fixture()
def gate():
    return CommandGate()


# ========================== Account Helpers ================================


@pytest.fixture()
def make_user(user_repo):
    """Create an account and optionally move it to another role / status.

    The first account created in a database is always head_admin.
    """

    def _make(username: str, *, role: str | None = None, status: str | None = None, password: str = "secret1"):
        identity = user_repo.create(username, f"{username}@example.com", fast_hash(password))
        changes = {}
        if role is not None:
            changes["role"] = role
        if status is not None:
            changes["status"] = status
        if changes:
            user_repo.update(identity.id, **changes)
            identity = user_repo.get(identity.id)
        return identity

    return _make


# ========================== Live Fakes =====================================


class FakeServer:
    def __init__(self) -> None:
        self.disconnected: list[tuple[str, str]] = []

    def disconnect(self, sid, namespace="/"):
        self.disconnected.append((sid, namespace))


class FakeSocketIO:
    """Records every emit; sids listed in ``failing`` raise on write."""

    def __init__(self) -> None:
        self.emits: list[dict[str, Any]] = []
        self.failing: set[str] = set()
        self.slow: dict[str, float] = {}
        self.server = FakeServer()
        self._lock = threading.Lock()

    def emit(self, event, payload, to=None, namespace="/"):
        if to in self.failing:
            raise ConnectionError(f"write to {to} failed")
        if to in self.slow:
            threading.Event().wait(self.slow[to])
        with self._lock:
            self.emits.append({"event": event, "payload": payload, "to": to, "namespace": namespace})

    def events_for(self, sid: str) -> list[str]:
        with self._lock:
            return [e["event"] for e in self.emits if e["to"] == sid]


class RecordingBus:
    """Broadcast bus double that records calls instead of emitting."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []
        self.targeted: list[tuple[str, str, Any]] = []
        self.disconnected: list[str] = []

    def publish(self, topic, payload=None):
        self.published.append((topic, payload))

    def publish_to(self, connection, topic, payload=None):
        self.targeted.append((connection, topic, payload))
        return True

    def disconnect(self, connection):
        self.disconnected.append(connection)

    def connections_for(self, identity_id):
        return []

    def topics(self) -> list[str]:
        return [topic for topic, _ in self.published]


class FakeRelay:
    """Device relay double; set ``failure`` to ``"timeout"`` or ``"unavailable"``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.failure: str | None = None

    def _record(self, name: str, body: dict) -> dict:
        self.calls.append((name, dict(body)))
        if self.failure == "timeout":
            raise RelayTimeout("Greenhouse controller did not respond in time")
        if self.failure == "unavailable":
            raise RelayUnavailable("Failed to communicate with greenhouse controller")
        return {"success": True}

    def push_thresholds(self, changed):
        return self._record("push_thresholds", changed)

    def send_command(self, command):
        return self._record("send_command", command)

    def resume_auto(self):
        return self._record("resume_auto", {})

    def close(self):
        return None


@pytest.fixture()
def fake_sio():
    return FakeSocketIO()


@pytest.fixture()
def recording_bus():
    return RecordingBus()


@pytest.fixture()
def fake_relay():
    return FakeRelay()


# ========================== Application Fixtures ===========================

PI_KEY = "test-pi-key"


@pytest.fixture()
def app(tmp_path, monkeypatch, fake_relay):
    monkeypatch.setenv("GREENHOUSE_SECRET_KEY", "test-secret")
    monkeypatch.setenv("GREENHOUSE_PI_API_KEY", PI_KEY)
    real_gensalt = bcrypt.gensalt
    monkeypatch.setattr(bcrypt, "gensalt", lambda *args, **kwargs: real_gensalt(rounds=FAST_HASH_ROUNDS))

    from app import create_app

    flask_app = create_app(
        {
            "database_path": str(tmp_path / "test.db"),
            "log_path": str(tmp_path / "logs" / "greenhouse.log"),
            "audit_log_path": str(tmp_path / "logs" / "audit.log"),
            "enable_scheduler": False,
            "debug": True,
        },
        relay=fake_relay,
    )
    flask_app.config["TESTING"] = True
    try:
        yield flask_app
    finally:
        container = flask_app.config.get("CONTAINER")
        if container is not None:
            container.shutdown()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def container(app):
    return app.config["CONTAINER"]


def register(client, username: str, password: str = "secret1") -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def head_admin(client):
    """First registered account; always head_admin."""
    return register(client, "root")


@pytest.fixture()
def operator(client, head_admin):
    return register(client, "grower")
