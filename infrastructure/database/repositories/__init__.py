"""Repository facades exposing typed accessors over low-level mixins."""

from infrastructure.database.repositories.activity_log import ActivityRepository
from infrastructure.database.repositories.alerts import AlertRepository
from infrastructure.database.repositories.password_requests import PasswordRequestRepository
from infrastructure.database.repositories.telemetry import TelemetryRepository
from infrastructure.database.repositories.thresholds import ThresholdRepository
from infrastructure.database.repositories.users import UserRepository

__all__ = [
    "ActivityRepository",
    "AlertRepository",
    "PasswordRequestRepository",
    "TelemetryRepository",
    "ThresholdRepository",
    "UserRepository",
]
