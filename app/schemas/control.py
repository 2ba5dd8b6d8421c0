"""
Operator Control Schemas
========================

Threshold updates and manual actuator commands.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from app.enums import Actuator

PWM_MIN = 0
PWM_MAX = 255

FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


def clamp_pwm(value: Any) -> int:
    """Coerce *value* to an integer duty cycle and clamp it into [0, 255]."""
    if isinstance(value, bool):
        raise ValueError("pwm must be a number")
    try:
        duty = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValueError("pwm must be a number") from None
    return max(PWM_MIN, min(PWM_MAX, duty))


class ThresholdUpdate(BaseModel):
    """Partial threshold update; unknown keys are ignored, omitted keys stay untouched."""

    model_config = ConfigDict(extra="ignore")

    soil1: Optional[FiniteFloat] = None
    soil2: Optional[FiniteFloat] = None
    temp_high: Optional[FiniteFloat] = None
    temp_low: Optional[FiniteFloat] = None
    hum_high: Optional[FiniteFloat] = None
    hum_low: Optional[FiniteFloat] = None
    npk_n: Optional[FiniteFloat] = None
    npk_p: Optional[FiniteFloat] = None
    npk_k: Optional[FiniteFloat] = None

    @field_validator("*", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("threshold values must be numbers")
        return value

    def changed(self) -> dict[str, float]:
        return {key: value for key, value in self.model_dump(exclude_unset=True).items() if value is not None}


class ManualCommand(BaseModel):
    """A single actuator command relayed to the edge controller."""

    actuator: Actuator
    state: StrictBool
    pwm: Optional[int] = None

    @field_validator("pwm", mode="before")
    @classmethod
    def _clamp_pwm(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return clamp_pwm(value)

    def to_relay_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"actuator": self.actuator.value, "state": self.state}
        if self.pwm is not None:
            body["pwm"] = self.pwm
        return body
