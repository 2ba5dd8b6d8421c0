"""
Service Organization
====================
Services are organized by their lifecycle and instantiation pattern:

**application/**
  Request-facing services managed by ServiceContainer. One instance per
  application: AuthManager, AdminService, SettingsService, TelemetryIngest.

**top level**
  The live core shared by those services: the broadcast bus, the presence
  registry, the device relay client, the threshold store and the sync
  orchestrator, plus the container that wires them together.
"""

from .broadcast_bus import SocketIOBroadcastBus
from .device_relay import DeviceRelayClient
from .presence_registry import PresenceRegistry
from .sync_orchestrator import SyncOrchestrator
from .threshold_store import ThresholdStore

__all__ = [
    "DeviceRelayClient",
    "PresenceRegistry",
    "SocketIOBroadcastBus",
    "SyncOrchestrator",
    "ThresholdStore",
]
