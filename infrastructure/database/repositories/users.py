from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.domain.identity import Identity
from infrastructure.database.ops.users import UserOperations


@dataclass(frozen=True)
class UserRepository:
    """Repository facade for account records."""

    _backend: UserOperations

    def create(self, username: str, email: str, password_hash: str) -> Identity:
        return Identity.from_row(self._backend.create_user(username, email, password_hash))

    def get(self, user_id: int) -> Identity | None:
        row = self._backend.get_user_by_id(user_id)
        return Identity.from_row(row) if row else None

    def get_with_hash(self, user_id: int) -> tuple[Identity, str] | None:
        row = self._backend.get_user_by_id(user_id)
        return (Identity.from_row(row), row["password_hash"]) if row else None

    def find_for_login(self, login: str) -> tuple[Identity, str] | None:
        """Return the account matching a username or email, plus its password hash."""
        row = self._backend.get_user_by_login(login)
        return (Identity.from_row(row), row["password_hash"]) if row else None

    def list_all(self) -> list[Identity]:
        return [Identity.from_row(row) for row in self._backend.list_users()]

    def username_taken(self, username: str, *, exclude_id: int | None = None) -> bool:
        return self._backend.username_taken(username, exclude_id=exclude_id)

    def update(self, user_id: int, **fields: Any) -> bool:
        return self._backend.update_user(user_id, **fields)

    def set_presence(self, user_id: int, online: bool, socket_id: str | None) -> None:
        self._backend.set_presence(user_id, online, socket_id)

    def clear_presence(self) -> int:
        return self._backend.clear_presence()

    def delete(self, user_id: int) -> bool:
        return self._backend.delete_user(user_id)
