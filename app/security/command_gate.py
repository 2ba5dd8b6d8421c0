"""
Command Gate
============

Role and status authorization for every inbound operation. The gate only
decides; it never mutates anything.

Rules, in priority order:

1. a restricted account may only run ``read`` operations;
2. ``admin_action`` needs role admin or head_admin;
3. ``head_admin_action`` needs role head_admin exactly;
4. target rules for admin actions on another account:
   * head_admin can never be deleted, banned, restricted or demoted,
     by anyone, including itself;
   * administrators (admin or head_admin) cannot be banned or restricted;
   * only head_admin may delete or demote an admin;
   * promote and demote are head_admin actions.
"""

from __future__ import annotations

import logging

from app.domain.exceptions import Forbidden
from app.domain.identity import Identity
from app.enums import OperationClass, Role, TargetAction

logger = logging.getLogger(__name__)

_HEAD_ADMIN_PROTECTED = frozenset(
    {TargetAction.DELETE, TargetAction.BAN, TargetAction.RESTRICT, TargetAction.DEMOTE}
)
_ADMIN_PROTECTED = frozenset({TargetAction.BAN, TargetAction.RESTRICT})
_HEAD_ADMIN_ONLY_ON_ADMINS = frozenset({TargetAction.DELETE, TargetAction.DEMOTE})
_HEAD_ADMIN_ACTIONS = frozenset({TargetAction.PROMOTE, TargetAction.DEMOTE})


class CommandGate:
    """Stateless authorizer shared by routes, socket handlers and services."""

    def authorize(self, actor: Identity, operation: OperationClass) -> None:
        if actor.restricted and operation is not OperationClass.READ:
            raise Forbidden("Your account is restricted to view-only access")

        if operation in (OperationClass.ADMIN_ACTION, OperationClass.HEAD_ADMIN_ACTION) and not actor.is_admin:
            raise Forbidden("Admin privileges required")

        if operation is OperationClass.HEAD_ADMIN_ACTION and not actor.is_head_admin:
            raise Forbidden("Head admin privileges required")

    def authorize_target(self, actor: Identity, action: TargetAction, target: Identity) -> None:
        """Authorize an admin action against *target*, raising :class:`Forbidden`."""
        operation = OperationClass.HEAD_ADMIN_ACTION if action in _HEAD_ADMIN_ACTIONS else OperationClass.ADMIN_ACTION
        self.authorize(actor, operation)

        if target.role is Role.HEAD_ADMIN and action in _HEAD_ADMIN_PROTECTED:
            logger.warning("%s attempted to %s head admin %s", actor.username, action, target.username)
            raise Forbidden(f"Cannot {action} head admin")

        if target.is_admin and action in _ADMIN_PROTECTED:
            raise Forbidden(f"Cannot {action} administrators")

        if target.role is Role.ADMIN and action in _HEAD_ADMIN_ONLY_ON_ADMINS and not actor.is_head_admin:
            raise Forbidden(f"Only head admin can {action} other admins")

    def allows(self, actor: Identity, operation: OperationClass) -> bool:
        try:
            self.authorize(actor, operation)
        except Forbidden:
            return False
        return True
