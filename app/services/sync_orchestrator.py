"""
Sync Orchestrator
=================

Runs operator control actions end to end: authorize, persist, relay to the
edge controller, then notify live clients.

Threshold updates
-----------------
1. The command gate must allow a ``write`` for the caller.
2. Durable phase, under the store lock: merge the changed fields, persist
   them. A persistence failure here aborts the whole operation with nothing
   relayed or published. The ``threshold_changed`` activity is recorded
   best-effort once the values are stored.
3. Relay phase, outside the lock: push only the changed fields. On success
   ``last_synced_at`` is stamped; on failure the durable values stand, the
   caller gets a warning and ``last_synced_at`` stays as it was.
4. ``threshold_update`` is published in both cases.

Actuator commands and resume-auto are relay-only: nothing is stored about
actuator state, a relay failure is returned to the caller, and the live
event is published only after the controller accepted the command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

import pydantic

from app.domain.exceptions import PersistenceError, RelayError, ValidationError
from app.domain.greenhouse_thresholds import ThresholdSet
from app.domain.identity import Identity
from app.enums import Actuator, ActivityAction, LiveTopic, OperationClass
from app.schemas.control import ManualCommand, ThresholdUpdate
from app.utils.time import iso_now

if TYPE_CHECKING:
    from app.security.command_gate import CommandGate
    from app.services.application.activity_logger import ActivityLogger
    from app.services.protocols import BroadcastBus, DeviceRelay
    from app.services.threshold_store import ThresholdStore

logger = logging.getLogger(__name__)


@dataclass
class ThresholdSyncResult:
    thresholds: ThresholdSet
    changed: dict[str, float]
    relayed: bool
    kind: str | None = None
    warning: str | None = None

    def sync_block(self) -> dict[str, Any]:
        block: dict[str, Any] = {"relayed": self.relayed}
        if not self.relayed:
            block["kind"] = self.kind
            block["warning"] = self.warning
        return block


@dataclass
class CommandResult:
    actuator: str
    state: bool
    pwm: int | None
    timestamp: str
    device_response: dict[str, Any] = field(default_factory=dict)


def _payload_error(exc: "pydantic.ValidationError", fallback: str) -> ValidationError:
    errors = exc.errors(include_url=False, include_context=False)
    message = fallback
    for error in errors:
        if error.get("loc") and error["loc"][0] == "actuator":
            message = f"Invalid actuator. Valid options: {', '.join(Actuator.names())}"
            break
        if error.get("loc") and error["loc"][0] == "state":
            message = "State must be a boolean"
            break
        if error.get("loc") and error["loc"][0] == "pwm":
            message = "pwm must be a number"
            break
    return ValidationError(message, detail={"errors": errors})


class SyncOrchestrator:
    def __init__(
        self,
        store: "ThresholdStore",
        relay: "DeviceRelay",
        bus: "BroadcastBus",
        activity: "ActivityLogger",
        gate: "CommandGate",
    ) -> None:
        self._store = store
        self._relay = relay
        self._bus = bus
        self._activity = activity
        self._gate = gate

    # ------------------------------------------------------------------ #
    # Thresholds
    # ------------------------------------------------------------------ #
    def current_thresholds(self) -> ThresholdSet:
        return self._store.current()

    def update_thresholds(self, identity: Identity, updates: Mapping[str, Any]) -> ThresholdSyncResult:
        self._gate.authorize(identity, OperationClass.WRITE)

        if not isinstance(updates, Mapping):
            raise ValidationError("Threshold update must be a JSON object")
        try:
            changed = ThresholdUpdate.model_validate(dict(updates)).changed()
        except pydantic.ValidationError as exc:
            raise _payload_error(exc, "Threshold values must be numbers") from None
        if not changed:
            raise ValidationError("No valid threshold values provided")

        updated = self._store.apply(changed, updated_by=identity.id)
        self._activity.record_best_effort(identity, ActivityAction.THRESHOLD_CHANGED, {"changes": changed})

        result = ThresholdSyncResult(thresholds=updated, changed=changed, relayed=False)
        try:
            self._relay.push_thresholds(changed)
        except RelayError as exc:
            logger.warning("Thresholds saved but not relayed (%s): %s", exc.kind, exc)
            result.kind = exc.kind
            result.warning = "Thresholds saved but could not be sent to the greenhouse controller"
        else:
            result.relayed = True
            try:
                result.thresholds = self._store.mark_synced(iso_now())
            except PersistenceError as exc:
                logger.warning("Relay succeeded but sync time not stored: %s", exc)

        self._bus.publish(LiveTopic.THRESHOLD_UPDATE.value, {**changed, "updatedBy": identity.username})
        return result

    # ------------------------------------------------------------------ #
    # Actuators
    # ------------------------------------------------------------------ #
    def send_manual_command(self, identity: Identity, payload: Mapping[str, Any]) -> CommandResult:
        self._gate.authorize(identity, OperationClass.WRITE)
        try:
            command = ManualCommand.model_validate(dict(payload or {}))
        except pydantic.ValidationError as exc:
            raise _payload_error(exc, "Invalid manual control command") from None

        response = self._relay.send_command(command.to_relay_body())

        self._activity.record_best_effort(identity, ActivityAction.MANUAL_CONTROL, command.to_relay_body())
        result = CommandResult(
            actuator=command.actuator.value,
            state=command.state,
            pwm=command.pwm,
            timestamp=iso_now(),
            device_response=response or {},
        )
        self._bus.publish(
            LiveTopic.MANUAL_CONTROL.value,
            {
                "actuator": result.actuator,
                "state": result.state,
                "pwm": result.pwm,
                "controlledBy": identity.username,
                "timestamp": result.timestamp,
            },
        )
        logger.info("Manual control %s=%s (pwm=%s) by %s", result.actuator, result.state, result.pwm, identity.username)
        return result

    def resume_auto(self, identity: Identity) -> dict[str, Any]:
        self._gate.authorize(identity, OperationClass.WRITE)
        response = self._relay.resume_auto()

        self._activity.record_best_effort(identity, ActivityAction.MANUAL_CONTROL, {"action": "resume_auto"})
        notice = {"resumedBy": identity.username, "timestamp": iso_now()}
        self._bus.publish(LiveTopic.AUTO_MODE_RESUMED.value, notice)
        logger.info("Automatic mode resumed by %s", identity.username)
        return {**notice, "deviceResponse": response or {}}
