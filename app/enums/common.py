"""
Common Enumerations
====================

Account, authorization and audit enums shared by the security layer,
the services and the persistence repositories.
"""

from enum import Enum


class Role(str, Enum):
    """Account roles, lowest to highest privilege."""

    USER = "user"
    ADMIN = "admin"
    HEAD_ADMIN = "head_admin"

    def __str__(self) -> str:
        return self.value


class AccountStatus(str, Enum):
    """
    Account status.
    RESTRICTED accounts may only perform read-class operations.
    """

    ACTIVE = "active"
    BANNED = "banned"
    RESTRICTED = "restricted"

    def __str__(self) -> str:
        return self.value


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"

    def __str__(self) -> str:
        return self.value


class OperationClass(str, Enum):
    """Authorization class of an inbound operation, checked by the command gate."""

    READ = "read"
    WRITE = "write"
    ADMIN_ACTION = "admin_action"
    HEAD_ADMIN_ACTION = "head_admin_action"

    def __str__(self) -> str:
        return self.value


class TargetAction(str, Enum):
    """Admin actions that act on another account."""

    DELETE = "delete"
    BAN = "ban"
    RESTRICT = "restrict"
    PROMOTE = "promote"
    DEMOTE = "demote"

    def __str__(self) -> str:
        return self.value


class ActivityAction(str, Enum):
    """Closed set of audit actions stored in the activity log."""

    LOGIN = "login"
    LOGOUT = "logout"
    THRESHOLD_CHANGED = "threshold_changed"
    MANUAL_CONTROL = "manual_control"
    USER_CREATED = "user_created"
    USER_DELETED = "user_deleted"
    USER_BANNED = "user_banned"
    USER_PROMOTED = "user_promoted"
    USER_DEMOTED = "user_demoted"
    PASSWORD_CHANGED = "password_changed"
    FORGOT_PASSWORD_APPROVED = "forgot_password_approved"
    FORGOT_PASSWORD_REJECTED = "forgot_password_rejected"
    USERNAME_CHANGED = "username_changed"

    def __str__(self) -> str:
        return self.value


class RequestStatus(str, Enum):
    """Lifecycle of a forgot-password request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value
