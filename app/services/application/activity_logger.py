"""Activity logging service for operator and admin actions.

Records go to the append-only ActivityLog table (swept after the retention
window) and are mirrored as JSON lines to the audit log.
"""

from __future__ import annotations

import logging
from typing import Any

from app.domain.exceptions import PersistenceError
from app.domain.identity import Identity
from app.enums import ActivityAction
from app.utils.time import iso_ago, iso_now
from infrastructure.database.repositories.activity_log import ActivityRepository
from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Service for writing and reading the activity trail."""

    def __init__(self, repo: ActivityRepository, audit_logger: AuditLogger | None = None) -> None:
        self._repo = repo
        self._audit = audit_logger

    def record(
        self,
        actor: Identity | None,
        action: ActivityAction,
        details: dict[str, Any] | None = None,
        *,
        ip_address: str | None = None,
    ) -> int:
        """Append an activity record; raises PersistenceError when the store fails.

        Args:
            actor: Account performing the action (``None`` for anonymous)
            action: One of the closed ActivityAction values
            details: Action-specific payload, stored as JSON
            ip_address: Client address, when known

        Returns:
            int: The id of the stored record
        """
        record_id = self._repo.insert(
            {
                "user_id": actor.id if actor else None,
                "username": actor.username if actor else None,
                "action": ActivityAction(action).value,
                "details": details,
                "ip_address": ip_address,
                "timestamp": iso_now(),
            }
        )
        if self._audit is not None:
            self._audit.log_event(
                actor=actor.username if actor else "anonymous",
                action=ActivityAction(action).value,
                resource="activity",
                outcome="success",
                **(details or {}),
            )
        return record_id

    def record_best_effort(
        self,
        actor: Identity | None,
        action: ActivityAction,
        details: dict[str, Any] | None = None,
        *,
        ip_address: str | None = None,
    ) -> int | None:
        """Like :meth:`record`, but a store failure is logged instead of raised."""
        try:
            return self.record(actor, action, details, ip_address=ip_address)
        except PersistenceError as exc:
            logger.warning("Activity '%s' not recorded: %s", action, exc)
            return None

    def last_24_hours(self) -> list[dict[str, Any]]:
        return self._repo.since(iso_ago(hours=24))

    def purge_older_than(self, days: int) -> int:
        return self._repo.purge_before(iso_ago(days=days))
