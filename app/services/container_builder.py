"""
Container Builder
=================

Construction logic for ServiceContainer, split by layer:

- build_infrastructure(): database handler, repositories, audit log
- build_live(): broadcast bus, presence registry, device relay
- build_services(): security, control and application services

The broadcast bus and the presence registry depend on each other only
through a teardown listener registered here, so neither imports the other.
"""

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
from app.services.device_relay import DeviceRelayClient
from app.services.presence_registry import PresenceRegistry
from app.services.sync_orchestrator import SyncOrchestrator
from app.services.threshold_store import ThresholdStore
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
class InfrastructureComponents:
    """Infrastructure layer components (database, repos, logging)."""

    database: SQLiteDatabaseHandler
    user_repo: UserRepository
    threshold_repo: ThresholdRepository
    telemetry_repo: TelemetryRepository
    alert_repo: AlertRepository
    activity_repo: ActivityRepository
    password_request_repo: PasswordRequestRepository
    audit_logger: AuditLogger


@dataclass
class LiveComponents:
    """Live connection layer: fan-out, presence and the edge device link."""

    broadcast_bus: SocketIOBroadcastBus
    presence: PresenceRegistry
    device_relay: DeviceRelayClient


class ContainerBuilder:
    def __init__(self, config: AppConfig, *, sio: Any, relay: Any = None) -> None:
        self.config = config
        self.sio = sio
        self.relay = relay

    def build_infrastructure(self) -> InfrastructureComponents:
        database = SQLiteDatabaseHandler(self.config.database_path)
        database.init_app()

        user_repo = UserRepository(database)
        cleared = user_repo.clear_presence()
        if cleared:
            logger.info("Reset %d stale online flags from a previous run", cleared)

        return InfrastructureComponents(
            database=database,
            user_repo=user_repo,
            threshold_repo=ThresholdRepository(database),
            telemetry_repo=TelemetryRepository(database),
            alert_repo=AlertRepository(database),
            activity_repo=ActivityRepository(database),
            password_request_repo=PasswordRequestRepository(database),
            audit_logger=AuditLogger(self.config.audit_log_path),
        )

    def build_live(self, infra: InfrastructureComponents) -> LiveComponents:
        bus = SocketIOBroadcastBus(
            self.sio,
            write_timeout=self.config.broadcast_write_timeout_seconds,
            max_workers=self.config.broadcast_max_workers,
        )
        presence = PresenceRegistry(bus, infra.user_repo)
        bus.add_teardown_listener(presence.handle_connection_lost)

        relay = self.relay or DeviceRelayClient(
            self.config.pi_base_url,
            self.config.pi_api_key,
            timeout=self.config.relay_timeout_seconds,
        )
        return LiveComponents(broadcast_bus=bus, presence=presence, device_relay=relay)

    def build_services(self, infra: InfrastructureComponents, live: LiveComponents) -> dict[str, Any]:
        gate = CommandGate()
        credentials = CredentialVerifier(
            secret_key=self.config.secret_key,
            users=infra.user_repo,
            max_age_seconds=self.config.token_max_age_seconds,
        )
        activity_logger = ActivityLogger(infra.activity_repo, infra.audit_logger)
        login_limiter = LoginLimiter(
            max_attempts=self.config.login_max_attempts,
            lockout_minutes=self.config.login_lockout_minutes,
        )

        return {
            "command_gate": gate,
            "credentials": credentials,
            "activity_logger": activity_logger,
            "login_limiter": login_limiter,
            "sync_orchestrator": SyncOrchestrator(
                ThresholdStore(infra.threshold_repo),
                live.device_relay,
                live.broadcast_bus,
                activity_logger,
                gate,
            ),
            "auth_manager": UserAuthManager(
                users=infra.user_repo,
                password_requests=infra.password_request_repo,
                credentials=credentials,
                activity=activity_logger,
                gate=gate,
                limiter=login_limiter,
                presence=live.presence,
                audit_logger=infra.audit_logger,
            ),
            "admin_service": AdminService(
                users=infra.user_repo,
                password_requests=infra.password_request_repo,
                alerts=infra.alert_repo,
                activity=activity_logger,
                gate=gate,
                presence=live.presence,
                bus=live.broadcast_bus,
                audit_logger=infra.audit_logger,
            ),
            "settings_service": SettingsService(
                users=infra.user_repo,
                activity=activity_logger,
                gate=gate,
                presence=live.presence,
            ),
            "telemetry_service": TelemetryIngestService(
                telemetry=infra.telemetry_repo,
                alerts=infra.alert_repo,
                thresholds=infra.threshold_repo,
                bus=live.broadcast_bus,
            ),
        }

    def build(self) -> dict[str, Any]:
        infra = self.build_infrastructure()
        live = self.build_live(infra)
        services = self.build_services(infra, live)
        return {
            **vars(infra),
            **vars(live),
            **services,
            "config": self.config,
            "scheduler": UnifiedScheduler(),
        }
