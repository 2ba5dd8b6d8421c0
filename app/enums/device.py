"""
Device-related Enumerations
============================

Actuators the edge controller accepts manual commands for, and the alert
vocabulary it reports with.
"""

from enum import Enum


class Actuator(str, Enum):
    """Whitelisted actuators for manual control."""

    PUMP_WATER = "pump_water"
    PUMP_NUTRIENT = "pump_nutrient"
    FAN_EXHAUST = "fan_exhaust"
    PELTIER = "peltier"
    FAN_PELTIER_HOT = "fan_peltier_hot"
    FAN_PELTIER_COLD = "fan_peltier_cold"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def names(cls) -> list[str]:
        return [member.value for member in cls]


class AlertLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def is_urgent(self) -> bool:
        """ERROR and CRITICAL alerts are pushed to live viewers immediately."""
        return self in (AlertLevel.ERROR, AlertLevel.CRITICAL)

    def __str__(self) -> str:
        return self.value


class AlertSource(str, Enum):
    PI = "pi"
    ARDUINO = "arduino"
    BACKEND = "backend"

    def __str__(self) -> str:
        return self.value
