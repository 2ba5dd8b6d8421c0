"""
Enums Module
============

This module provides enumeration types for the greenhouse hub.
Enums ensure type safety and consistency across the codebase.
"""

from app.enums.common import (
    AccountStatus,
    ActivityAction,
    OperationClass,
    RequestStatus,
    Role,
    TargetAction,
    Theme,
)
from app.enums.device import Actuator, AlertLevel, AlertSource
from app.enums.events import LiveTopic

__all__ = [
    "AccountStatus",
    "ActivityAction",
    "Actuator",
    "AlertLevel",
    "AlertSource",
    "LiveTopic",
    "OperationClass",
    "RequestStatus",
    "Role",
    "TargetAction",
    "Theme",
]
