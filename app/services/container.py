from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.config import AppConfig
from app.security.command_gate import CommandGate
from app.security.credentials import CredentialVerifier
from app.security.login_limiter import LoginLimiter
from app.services.application.activity_logger import ActivityLogger
from app.services.application.admin_service import AdminService
from app.services.application.auth_service import UserAuthManager
from app.services.application.settings_service import SettingsService
from app.services.application.telemetry_ingest import TelemetryIngestService
from app.services.broadcast_bus import SocketIOBroadcastBus
from app.services.container_builder import ContainerBuilder
from app.services.presence_registry import PresenceRegistry
from app.services.protocols import DeviceRelay
from app.services.sync_orchestrator import SyncOrchestrator
from app.workers.unified_scheduler import UnifiedScheduler
from infrastructure.database.repositories import (
    ActivityRepository,
    AlertRepository,
    PasswordRequestRepository,
    TelemetryRepository,
    ThresholdRepository,
    UserRepository,
)
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Aggregate and manage core backend services."""

    config: AppConfig
    database: SQLiteDatabaseHandler
    user_repo: UserRepository
    threshold_repo: ThresholdRepository
    telemetry_repo: TelemetryRepository
    alert_repo: AlertRepository
    activity_repo: ActivityRepository
    password_request_repo: PasswordRequestRepository
    audit_logger: AuditLogger
    # Live layer
    broadcast_bus: SocketIOBroadcastBus
    presence: PresenceRegistry
    device_relay: DeviceRelay
    # Security
    command_gate: CommandGate
    credentials: CredentialVerifier
    login_limiter: LoginLimiter
    # Application services
    activity_logger: ActivityLogger
    sync_orchestrator: SyncOrchestrator
    auth_manager: UserAuthManager
    admin_service: AdminService
    settings_service: SettingsService
    telemetry_service: TelemetryIngestService
    scheduler: UnifiedScheduler

    @classmethod
    def build(cls, config: AppConfig, *, sio: Any, relay: DeviceRelay | None = None) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            sio: Flask-SocketIO instance the broadcast bus emits through
            relay: Optional device relay override (tests inject a fake)
        """
        logger.info("Building ServiceContainer...")
        container = cls(**ContainerBuilder(config, sio=sio, relay=relay).build())

        if config.enable_scheduler:
            from app.workers.scheduled_tasks import configure_scheduler

            try:
                configure_scheduler(container.scheduler, container)
            except Exception as e:
                raise RuntimeError("Failed to initialize scheduler") from e

        logger.info("ServiceContainer built successfully.")
        return container

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        try:
            self.scheduler.shutdown()
        except Exception as e:
            logger.warning("Failed to stop scheduler: %s", e)

        self.broadcast_bus.shutdown()
        close = getattr(self.device_relay, "close", None)
        if close is not None:
            close()
        self.database.close_db()
        logger.info("ServiceContainer shutdown complete.")
