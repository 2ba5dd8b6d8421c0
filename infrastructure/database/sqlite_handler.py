import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from flask import Flask

from infrastructure.database.ops.activity_log import ActivityOperations
from infrastructure.database.ops.alerts import AlertOperations
from infrastructure.database.ops.password_requests import PasswordRequestOperations
from infrastructure.database.ops.telemetry import TelemetryOperations
from infrastructure.database.ops.thresholds import ThresholdOperations
from infrastructure.database.ops.users import UserOperations

logger = logging.getLogger(__name__)


class SQLiteDatabaseHandler(
    UserOperations,
    ThresholdOperations,
    TelemetryOperations,
    AlertOperations,
    ActivityOperations,
    PasswordRequestOperations,
):
    """Thread-safe SQLite handler decoupled from Flask globals."""

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        self._local = threading.local()

        if database_path != ":memory:":
            db_path = Path(database_path)
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Created database directory: %s", db_path.parent)

    # --- Lifecycle ------------------------------------------------------------
    def init_app(self, app: Flask | None = None) -> None:
        if app is not None:
            app.teardown_appcontext(self.close_db)
        self.create_tables()

    def get_db(self) -> sqlite3.Connection:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._open_connection()
            self._local.connection = connection
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except Exception:
            connection.close()
            raise

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """Configure SQLite connection with Raspberry Pi-friendly settings.

        - WAL mode: concurrent readers while the ingestion endpoints write
        - NORMAL synchronous: safe with WAL, far fewer fsyncs
        - foreign keys: password requests cascade with their account
        """
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA foreign_keys=ON")
        connection.execute("PRAGMA cache_size=-8000")
        connection.execute("PRAGMA temp_store=MEMORY")
        connection.commit()

    def close_db(self, _e: Optional[BaseException] = None) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield this thread's connection as one transaction.

        Commits when the block completes, rolls back when it raises, so a
        batch written inside one block is stored entirely or not at all.
        """
        conn = self.get_db()
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        with self.connection() as db:
            db.executescript(_SCHEMA)
        logger.debug("Database schema ensured at %s", self._database_path)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS Users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user',
    status TEXT NOT NULL DEFAULT 'active',
    theme TEXT NOT NULL DEFAULT 'light',
    last_login TEXT,
    is_online INTEGER NOT NULL DEFAULT 0,
    socket_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ThresholdSet (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    soil1 REAL NOT NULL DEFAULT 60,
    soil2 REAL NOT NULL DEFAULT 60,
    temp_high REAL NOT NULL DEFAULT 35,
    temp_low REAL NOT NULL DEFAULT 15,
    hum_high REAL NOT NULL DEFAULT 80,
    hum_low REAL NOT NULL DEFAULT 30,
    npk_n REAL NOT NULL DEFAULT 20,
    npk_p REAL NOT NULL DEFAULT 20,
    npk_k REAL NOT NULL DEFAULT 20,
    last_updated_by INTEGER,
    last_synced_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS PiStatus (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    arduino_connected INTEGER,
    backend_reachable INTEGER,
    wifi_available INTEGER,
    arduino_port TEXT,
    webcam_device TEXT,
    webcam_active INTEGER,
    arduino_reboot_count INTEGER,
    pending_readings INTEGER,
    last_heartbeat TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS Readings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    temp REAL,
    hum REAL,
    soil1 REAL,
    soil2 REAL,
    dht11 TEXT,
    dht22 TEXT,
    npk TEXT,
    actuators TEXT,
    recorded_at TEXT NOT NULL,
    received_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_readings_received_at ON Readings (received_at);

CREATE TABLE IF NOT EXISTS AutomationEvents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event TEXT NOT NULL,
    reason TEXT,
    recorded_at TEXT NOT NULL,
    received_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_received_at ON AutomationEvents (received_at);

CREATE TABLE IF NOT EXISTS SystemAlerts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    level TEXT NOT NULL,
    message TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT 'pi',
    acknowledged INTEGER NOT NULL DEFAULT 0,
    acknowledged_by INTEGER,
    timestamp TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alerts_timestamp ON SystemAlerts (timestamp);

CREATE TABLE IF NOT EXISTS ActivityLog (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    username TEXT,
    action TEXT NOT NULL,
    details TEXT,
    ip_address TEXT,
    timestamp TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activity_timestamp ON ActivityLog (timestamp);

CREATE TABLE IF NOT EXISTS PasswordResetRequests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES Users (id) ON DELETE CASCADE,
    username TEXT,
    email TEXT,
    message TEXT,
    remembered_password_matches INTEGER,
    status TEXT NOT NULL DEFAULT 'pending',
    approved_by INTEGER,
    created_at TEXT NOT NULL,
    resolved_at TEXT
);
"""
