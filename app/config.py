"""
Configuration for the Greenhouse Hub
====================================
Main application runtime settings, loaded from environment variables.
Sets up the logging configuration as well.
"""

import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from typing import Any

_DEFAULT_SECRET = "GreenhouseDevSecretKey"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


def _env_str_multi(names: tuple[str, ...], default: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value
    return default


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("GREENHOUSE_ENV", "development"))
    secret_key: str = field(default_factory=lambda: os.getenv("GREENHOUSE_SECRET_KEY", _DEFAULT_SECRET))
    database_path: str = field(
        default_factory=lambda: os.getenv("GREENHOUSE_DATABASE_PATH", "database/greenhouse.db")
    )
    socketio_cors_origins: str = field(default_factory=lambda: os.getenv("GREENHOUSE_SOCKETIO_CORS", "*"))

    # Edge device (Raspberry Pi) relay
    pi_base_url: str = field(
        default_factory=lambda: _env_str_multi(("GREENHOUSE_PI_BASE_URL", "PI_BASE_URL"), "http://localhost:5000")
    )
    pi_api_key: str = field(default_factory=lambda: _env_str_multi(("GREENHOUSE_PI_API_KEY", "PI_API_KEY"), ""))
    relay_timeout_seconds: float = field(default_factory=lambda: _env_float("GREENHOUSE_RELAY_TIMEOUT", 5.0))

    # Bearer credentials
    token_max_age_seconds: int = field(
        default_factory=lambda: _env_int("GREENHOUSE_TOKEN_MAX_AGE", 7 * 24 * 60 * 60)
    )

    # Broadcast fan-out
    broadcast_write_timeout_seconds: float = field(
        default_factory=lambda: _env_float("GREENHOUSE_BROADCAST_WRITE_TIMEOUT", 2.0)
    )
    broadcast_max_workers: int = field(default_factory=lambda: _env_int("GREENHOUSE_BROADCAST_WORKERS", 16))

    # Retention sweep
    enable_scheduler: bool = field(default_factory=lambda: _env_bool("GREENHOUSE_ENABLE_SCHEDULER", True))
    activity_retention_days: int = field(default_factory=lambda: _env_int("GREENHOUSE_ACTIVITY_RETENTION_DAYS", 30))
    alert_retention_days: int = field(default_factory=lambda: _env_int("GREENHOUSE_ALERT_RETENTION_DAYS", 7))
    retention_sweep_interval_seconds: int = field(
        default_factory=lambda: _env_int("GREENHOUSE_RETENTION_SWEEP_INTERVAL", 60 * 60)
    )

    # Upload / request size limits
    max_upload_mb: int = field(default_factory=lambda: _env_int("GREENHOUSE_MAX_UPLOAD_MB", 10))

    # Login brute-force protection
    login_max_attempts: int = field(default_factory=lambda: _env_int("GREENHOUSE_LOGIN_MAX_ATTEMPTS", 5))
    login_lockout_minutes: int = field(default_factory=lambda: _env_int("GREENHOUSE_LOGIN_LOCKOUT_MINUTES", 15))

    DEBUG: bool = field(default_factory=lambda: _env_bool("GREENHOUSE_DEBUG", False))
    log_path: str = field(default_factory=lambda: os.getenv("GREENHOUSE_LOG_PATH", "logs/greenhouse.log"))
    audit_log_path: str = field(default_factory=lambda: os.getenv("GREENHOUSE_AUDIT_LOG_PATH", "logs/audit.log"))

    def __post_init__(self) -> None:
        if self.environment == "production":
            if self.secret_key == _DEFAULT_SECRET:
                raise ValueError("GREENHOUSE_SECRET_KEY must be set in production.")
            if not self.pi_api_key:
                raise ValueError("PI_API_KEY must be set in production.")

    @property
    def debug(self) -> bool:
        return self.DEBUG

    @debug.setter
    def debug(self, value: bool) -> None:
        self.DEBUG = bool(value)

    def as_flask_config(self) -> dict[str, Any]:
        return {
            "SECRET_KEY": self.secret_key,
            "DEBUG": self.DEBUG,
            "ENV": self.environment,
            "DATABASE_PATH": self.database_path,
            "MAX_CONTENT_LENGTH": self.max_upload_mb * 1024 * 1024,
            "PI_BASE_URL": self.pi_base_url,
            "PI_API_KEY": self.pi_api_key,
        }


def load_config() -> AppConfig:
    return AppConfig()


def setup_logging(debug: bool = False, log_path: str = "logs/greenhouse.log") -> None:
    """Setup logging configuration."""
    log_level = logging.DEBUG if debug else logging.INFO

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level)

    # Keep existing handlers but avoid adding duplicates when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "greenhouse_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "greenhouse_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "greenhouse_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "greenhouse_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"greenhouse_console", "greenhouse_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    if _env_bool("GREENHOUSE_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    # Engine.IO polling logs every ping; keep them out of the file handler
    if _env_bool("GREENHOUSE_SILENCE_SOCKETIO", True):
        logging.getLogger("socketio").setLevel(logging.WARNING)
        logging.getLogger("engineio").setLevel(logging.WARNING)
