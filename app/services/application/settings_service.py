from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from app.domain.exceptions import ConflictError, NotFoundError
from app.domain.identity import Identity
from app.enums import ActivityAction, OperationClass
from app.schemas.accounts import ThemeChange, UsernameChange

if TYPE_CHECKING:
    from app.security.command_gate import CommandGate
    from app.services.application.activity_logger import ActivityLogger
    from app.services.presence_registry import PresenceRegistry
    from infrastructure.database.repositories.users import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class SettingsService:
    """
    Per-account preferences: display name and UI theme.

    Changing the username is a write; changing the theme is read-class so a
    restricted (view-only) account can still pick its own theme.
    """

    users: "UserRepository"
    activity: "ActivityLogger"
    gate: "CommandGate"
    presence: "PresenceRegistry | None" = None

    def _fresh(self, identity: Identity) -> Identity:
        current = self.users.get(identity.id)
        if current is None:
            raise NotFoundError("User not found")
        return current

    def get_settings(self, identity: Identity) -> dict[str, Any]:
        current = self._fresh(identity)
        return {
            "username": current.username,
            "email": current.email,
            "theme": current.theme.value,
            "role": current.role.value,
            "status": current.status.value,
        }

    def change_username(self, identity: Identity, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.gate.authorize(identity, OperationClass.WRITE)
        new_username = UsernameChange.model_validate(dict(payload or {})).new_username
        current = self._fresh(identity)

        if self.users.username_taken(new_username, exclude_id=current.id):
            raise ConflictError("Username already taken")
        self.users.update(current.id, username=new_username)

        updated = self._fresh(current)
        if self.presence is not None:
            self.presence.update_identity(updated)
        self.activity.record_best_effort(
            updated,
            ActivityAction.USERNAME_CHANGED,
            {"oldUsername": current.username, "newUsername": new_username},
        )
        logger.info("User %s renamed %s -> %s", current.id, current.username, new_username)
        return {"username": updated.username}

    def change_theme(self, identity: Identity, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.gate.authorize(identity, OperationClass.READ)
        theme = ThemeChange.model_validate(dict(payload or {})).theme
        self.users.update(identity.id, theme=theme.value)
        return {"theme": theme.value}
