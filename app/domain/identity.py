"""
Identity Entity
===============
The account behind a bearer credential, as resolved by the credential
verifier and consumed by the command gate and the presence registry.

Online state lives in the presence registry; ``is_online`` here is the
durable, best-effort mirror and may be transiently stale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from app.enums import AccountStatus, Role, Theme


@dataclass(frozen=True)
class Identity:
    id: int
    username: str
    role: Role
    status: AccountStatus
    email: str = ""
    theme: Theme = Theme.LIGHT
    is_online: bool = False
    last_login: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Identity":
        return cls(
            id=int(row["id"]),
            username=row["username"],
            role=Role(row["role"]),
            status=AccountStatus(row["status"]),
            email=row["email"] or "",
            theme=Theme(row["theme"] or Theme.LIGHT.value),
            is_online=bool(row["is_online"]),
            last_login=row["last_login"],
            created_at=row["created_at"],
        )

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.HEAD_ADMIN)

    @property
    def is_head_admin(self) -> bool:
        return self.role is Role.HEAD_ADMIN

    @property
    def restricted(self) -> bool:
        """Derived flag: restricted accounts are read-only."""
        return self.status is AccountStatus.RESTRICTED

    @property
    def banned(self) -> bool:
        return self.status is AccountStatus.BANNED

    def to_safe_dict(self) -> dict[str, Any]:
        """Public representation; never carries credential material."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "theme": self.theme.value,
            "isOnline": self.is_online,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
        }
