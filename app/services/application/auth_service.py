"""
User Authentication Service
===========================
Registration, login and password management with bcrypt hashing, signed
bearer credentials and audit logging.

Forgotten passwords are not reset by e-mail: the account holder files a
request that an administrator approves (setting a new password) or rejects.
A password the requester still remembers is only checked against the
current hash at submit time; the hub stores whether it matched, never the
password itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import bcrypt

from app.domain.exceptions import AccountBanned, ConflictError, Unauthenticated
from app.domain.identity import Identity
from app.enums import ActivityAction, OperationClass
from app.schemas.accounts import ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, RegisterRequest
from app.utils.time import iso_now

if TYPE_CHECKING:
    from app.security.command_gate import CommandGate
    from app.security.credentials import CredentialVerifier
    from app.security.login_limiter import LoginLimiter
    from app.services.application.activity_logger import ActivityLogger
    from app.services.presence_registry import PresenceRegistry
    from infrastructure.database.repositories.password_requests import PasswordRequestRepository
    from infrastructure.database.repositories.users import UserRepository
    from infrastructure.logging.audit import AuditLogger

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_ACK = "If that account exists, an administrator will review your request."


def hash_password(password: str) -> str:
    """Hash the provided password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(stored_hash: str, provided_password: str) -> bool:
    """Validate a plaintext password against the stored hash."""
    try:
        return bcrypt.checkpw(provided_password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


@dataclass
class AuthSession:
    token: str
    user: Identity

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "user": self.user.to_safe_dict()}


@dataclass
class UserAuthManager:
    users: "UserRepository"
    password_requests: "PasswordRequestRepository"
    credentials: "CredentialVerifier"
    activity: "ActivityLogger"
    gate: "CommandGate"
    limiter: "LoginLimiter"
    presence: "PresenceRegistry | None" = None
    audit_logger: "AuditLogger | None" = None

    def _audit(self, actor: str, action: str, outcome: str, **metadata: Any) -> None:
        if self.audit_logger:
            self.audit_logger.log_event(actor=actor, action=action, resource="user", outcome=outcome, **metadata)

    # ------------------------------------------------------------------ #
    # Registration / login
    # ------------------------------------------------------------------ #
    def register(self, payload: Mapping[str, Any], *, ip_address: str | None = None) -> AuthSession:
        request = RegisterRequest.model_validate(dict(payload or {}))
        try:
            identity = self.users.create(request.username, request.email, hash_password(request.password))
        except ConflictError:
            self._audit(request.username, "register", "conflict")
            raise

        logger.info("User '%s' registered as %s", identity.username, identity.role)
        self._audit(identity.username, "register", "success", role=identity.role.value)
        self.activity.record_best_effort(
            identity,
            ActivityAction.USER_CREATED,
            {"username": identity.username, "role": identity.role.value},
            ip_address=ip_address,
        )
        return AuthSession(token=self.credentials.issue(identity), user=identity)

    def login(self, payload: Mapping[str, Any], *, ip_address: str | None = None) -> AuthSession:
        request = LoginRequest.model_validate(dict(payload or {}))
        limiter_key = ip_address or "unknown"

        locked_for = self.limiter.seconds_locked(limiter_key)
        if locked_for:
            self._audit(request.username, "login", "locked", ip=ip_address)
            raise Unauthenticated(
                "Too many failed login attempts. Try again later.",
                detail={"retryAfterSeconds": locked_for},
            )

        found = self.users.find_for_login(request.username)
        if found is None or not check_password(found[1], request.password):
            self.limiter.record_failure(limiter_key)
            logger.warning("Authentication failed for '%s'", request.username)
            self._audit(request.username, "login", "denied", ip=ip_address)
            raise Unauthenticated("Invalid credentials")

        identity, _ = found
        if identity.banned:
            self._audit(identity.username, "login", "banned", ip=ip_address)
            raise AccountBanned("Your account has been banned. Contact an administrator.")

        self.limiter.record_success(limiter_key)
        last_login = iso_now()
        self.users.update(identity.id, last_login=last_login)
        identity = self.users.get(identity.id) or identity

        logger.info("User '%s' authenticated successfully.", identity.username)
        self._audit(identity.username, "login", "success", ip=ip_address)
        self.activity.record_best_effort(identity, ActivityAction.LOGIN, {"role": identity.role.value}, ip_address=ip_address)
        return AuthSession(token=self.credentials.issue(identity), user=identity)

    def logout(self, identity: Identity, *, ip_address: str | None = None) -> None:
        if self.presence is not None:
            self.presence.mark_offline(identity.id)
        self.activity.record_best_effort(identity, ActivityAction.LOGOUT, ip_address=ip_address)
        self._audit(identity.username, "logout", "success")

    def me(self, identity: Identity) -> dict[str, Any]:
        return identity.to_safe_dict()

    # ------------------------------------------------------------------ #
    # Passwords
    # ------------------------------------------------------------------ #
    def change_password(self, identity: Identity, payload: Mapping[str, Any]) -> None:
        self.gate.authorize(identity, OperationClass.WRITE)
        request = ChangePasswordRequest.model_validate(dict(payload or {}))

        found = self.users.get_with_hash(identity.id)
        if found is None or not check_password(found[1], request.current_password):
            self._audit(identity.username, "change_password", "denied")
            raise Unauthenticated("Current password is incorrect")

        self.users.update(identity.id, password_hash=hash_password(request.new_password))
        self.activity.record_best_effort(identity, ActivityAction.PASSWORD_CHANGED)
        self._audit(identity.username, "change_password", "success")

    def forgot_password(self, payload: Mapping[str, Any]) -> str:
        """File a reset request for an administrator; the reply never reveals whether the account exists."""
        request = ForgotPasswordRequest.model_validate(dict(payload or {}))
        found = self.users.find_for_login(request.username)
        if found is None:
            logger.info("Forgot-password request for unknown account '%s'", request.username)
            return FORGOT_PASSWORD_ACK

        identity, stored_hash = found
        if self.password_requests.has_pending(identity.id):
            raise ConflictError("A password reset request is already pending for this account")

        matches = None
        if request.remembered_password:
            matches = check_password(stored_hash, request.remembered_password)

        self.password_requests.create(
            user_id=identity.id,
            username=identity.username,
            email=identity.email,
            message=request.message or "",
            remembered_password_matches=matches,
            created_at=iso_now(),
        )
        self._audit(identity.username, "forgot_password", "requested")
        return FORGOT_PASSWORD_ACK
