"""
Admin Service
=============
Account moderation, password-reset review, alert acknowledgement and the
activity trail, all behind the command gate's target rules.

Live side effects: banning or deleting an account that is online sends one
``force_disconnect`` notice to its current connection and then drops that
connection; promote / demote refresh the presence registry's cached role.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from app.domain.exceptions import NotFoundError, ValidationError
from app.domain.identity import Identity
from app.enums import AccountStatus, ActivityAction, LiveTopic, OperationClass, RequestStatus, Role, TargetAction
from app.schemas.accounts import ApprovePasswordReset, BanToggle, RestrictToggle
from app.services.application.auth_service import hash_password
from app.utils.time import iso_now

if TYPE_CHECKING:
    from app.security.command_gate import CommandGate
    from app.services.application.activity_logger import ActivityLogger
    from app.services.presence_registry import PresenceRegistry
    from app.services.protocols import BroadcastBus
    from infrastructure.database.repositories.alerts import AlertRepository
    from infrastructure.database.repositories.password_requests import PasswordRequestRepository
    from infrastructure.database.repositories.users import UserRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    users: "UserRepository"
    password_requests: "PasswordRequestRepository"
    alerts: "AlertRepository"
    activity: "ActivityLogger"
    gate: "CommandGate"
    presence: "PresenceRegistry"
    bus: "BroadcastBus"
    audit_logger: "AuditLogger | None" = None

    # --- helpers ---------------------------------------------------------------
    def _target(self, user_id: int) -> Identity:
        target = self.users.get(user_id)
        if target is None:
            raise NotFoundError("User not found")
        return target

    def _reload(self, user_id: int) -> Identity:
        return self._target(user_id)

    def _audit(self, actor: Identity, action: str, target: str, **metadata: Any) -> None:
        if self.audit_logger:
            self.audit_logger.log_event(
                actor=actor.username, action=action, resource="user", outcome="success", target=target, **metadata
            )

    def _with_live_flag(self, identity: Identity) -> dict[str, Any]:
        data = identity.to_safe_dict()
        data["isOnline"] = self.presence.is_online(identity.id)
        return data

    def _force_disconnect(self, target: Identity, reason: str) -> bool:
        connection = self.presence.connection_of(target.id)
        if connection is not None:
            self.bus.publish_to(connection, LiveTopic.FORCE_DISCONNECT.value, {"reason": reason})
            # Dropping the connection runs the bus teardown listeners, which mark it offline.
            self.bus.disconnect(connection)
            self.presence.mark_offline(target.id, connection)

        # Older sessions of the same account get no notice, only the teardown.
        older = [sid for sid in self.bus.connections_for(target.id) if sid != connection]
        for sid in older:
            self.bus.disconnect(sid)

        if connection is None and not older:
            return False
        logger.info("Force-disconnected %s (%s): %s", target.username, [connection, *older], reason)
        return True

    # --- users -----------------------------------------------------------------
    def list_users(self, actor: Identity) -> list[dict[str, Any]]:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        return [self._with_live_flag(user) for user in self.users.list_all()]

    def online_users(self, actor: Identity) -> list[dict[str, Any]]:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        online = self.presence.online_ids()
        live = [user for user in self.users.list_all() if user.id in online]
        live.sort(key=lambda user: user.last_login or "", reverse=True)
        return [
            {
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "role": user.role.value,
                "isOnline": True,
                "lastLogin": user.last_login,
            }
            for user in live
        ]

    def delete_user(self, actor: Identity, user_id: int, *, ip_address: str | None = None) -> Identity:
        target = self._target(user_id)
        self.gate.authorize_target(actor, TargetAction.DELETE, target)

        self._force_disconnect(target, "Your account has been deleted")
        self.users.delete(target.id)
        self.activity.record_best_effort(
            actor, ActivityAction.USER_DELETED, {"deletedUser": target.username}, ip_address=ip_address
        )
        self._audit(actor, "delete_user", target.username)
        return target

    def set_banned(
        self, actor: Identity, user_id: int, payload: Mapping[str, Any], *, ip_address: str | None = None
    ) -> Identity:
        banned = BanToggle.model_validate(dict(payload or {})).banned
        target = self._target(user_id)
        self.gate.authorize_target(actor, TargetAction.BAN, target)

        status = AccountStatus.BANNED if banned else AccountStatus.ACTIVE
        self.users.update(target.id, status=status.value)
        self.activity.record_best_effort(
            actor,
            ActivityAction.USER_BANNED,
            {"targetUser": target.username, "banned": banned},
            ip_address=ip_address,
        )
        self._audit(actor, "ban_user" if banned else "unban_user", target.username)
        if banned:
            self._force_disconnect(target, "Your account has been banned")
        return self._reload(target.id)

    def set_restricted(self, actor: Identity, user_id: int, payload: Mapping[str, Any]) -> Identity:
        restricted = RestrictToggle.model_validate(dict(payload or {})).restricted
        target = self._target(user_id)
        self.gate.authorize_target(actor, TargetAction.RESTRICT, target)

        status = AccountStatus.RESTRICTED if restricted else AccountStatus.ACTIVE
        self.users.update(target.id, status=status.value)
        self._audit(actor, "restrict_user" if restricted else "unrestrict_user", target.username)
        return self._reload(target.id)

    def promote(self, actor: Identity, user_id: int, *, ip_address: str | None = None) -> Identity:
        target = self._target(user_id)
        self.gate.authorize_target(actor, TargetAction.PROMOTE, target)
        if target.role is Role.ADMIN:
            raise ValidationError("User is already an admin")
        if target.role is Role.HEAD_ADMIN:
            raise ValidationError("User is already head admin")

        self.users.update(target.id, role=Role.ADMIN.value)
        updated = self._reload(target.id)
        self.presence.update_identity(updated)
        self.activity.record_best_effort(
            actor,
            ActivityAction.USER_PROMOTED,
            {"promotedUser": target.username, "newRole": Role.ADMIN.value},
            ip_address=ip_address,
        )
        self._audit(actor, "promote_user", target.username)
        return updated

    def demote(self, actor: Identity, user_id: int, *, ip_address: str | None = None) -> Identity:
        target = self._target(user_id)
        self.gate.authorize_target(actor, TargetAction.DEMOTE, target)
        if target.role is Role.USER:
            raise ValidationError("User is already a regular user")

        self.users.update(target.id, role=Role.USER.value)
        updated = self._reload(target.id)
        self.presence.update_identity(updated)
        self.activity.record_best_effort(
            actor,
            ActivityAction.USER_DEMOTED,
            {"demotedUser": target.username, "newRole": Role.USER.value},
            ip_address=ip_address,
        )
        self._audit(actor, "demote_user", target.username)
        return updated

    # --- activity --------------------------------------------------------------
    def activity_last_24_hours(self, actor: Identity) -> list[dict[str, Any]]:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        return self.activity.last_24_hours()

    # --- forgot-password review ------------------------------------------------
    def pending_password_requests(self, actor: Identity) -> list[dict[str, Any]]:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        return [_password_request_dict(row) for row in self.password_requests.pending()]

    def _pending_request(self, request_id: int) -> dict[str, Any]:
        request = self.password_requests.get(request_id)
        if request is None:
            raise NotFoundError("Request not found")
        if request["status"] != RequestStatus.PENDING.value:
            raise ValidationError("Request already resolved")
        return request

    def approve_password_request(
        self, actor: Identity, request_id: int, payload: Mapping[str, Any], *, ip_address: str | None = None
    ) -> None:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        new_password = ApprovePasswordReset.model_validate(dict(payload or {})).new_password
        request = self._pending_request(request_id)
        owner = self._target(request["user_id"])

        self.users.update(owner.id, password_hash=hash_password(new_password))
        self.password_requests.resolve(
            request_id, status=RequestStatus.APPROVED.value, approved_by=actor.id, resolved_at=iso_now()
        )
        self.activity.record_best_effort(
            actor, ActivityAction.FORGOT_PASSWORD_APPROVED, {"forUser": owner.username}, ip_address=ip_address
        )
        self._audit(actor, "approve_password_reset", owner.username)

    def reject_password_request(self, actor: Identity, request_id: int, *, ip_address: str | None = None) -> None:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        request = self._pending_request(request_id)
        self.password_requests.resolve(
            request_id, status=RequestStatus.REJECTED.value, approved_by=actor.id, resolved_at=iso_now()
        )
        self.activity.record_best_effort(
            actor, ActivityAction.FORGOT_PASSWORD_REJECTED, {"requestId": request_id}, ip_address=ip_address
        )
        self._audit(actor, "reject_password_reset", request.get("username") or str(request["user_id"]))

    # --- alerts ----------------------------------------------------------------
    def list_alerts(self, actor: Identity, limit: int = 100) -> list[dict[str, Any]]:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        return self.alerts.newest(limit)

    def acknowledge_alert(self, actor: Identity, alert_id: int) -> None:
        self.gate.authorize(actor, OperationClass.ADMIN_ACTION)
        if self.alerts.get(alert_id) is None:
            raise NotFoundError("Alert not found")
        self.alerts.acknowledge(alert_id, actor.id)


def _password_request_dict(row: Mapping[str, Any]) -> dict[str, Any]:
    matches = row.get("remembered_password_matches")
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "username": row.get("username"),
        "email": row.get("email"),
        "message": row.get("message") or "",
        "rememberedPasswordMatches": None if matches is None else bool(matches),
        "status": row["status"],
        "createdAt": row["created_at"],
    }
