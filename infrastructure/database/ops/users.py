from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from app.domain.exceptions import ConflictError
from app.utils.time import iso_now
from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)

_MUTABLE_COLUMNS = frozenset(
    {"username", "email", "password_hash", "role", "status", "theme", "last_login", "is_online", "socket_id"}
)


class UserOperations:
    """Database operations for the Users table."""

    @persistence_guard("create_user")
    def create_user(self, username: str, email: str, password_hash: str) -> Dict[str, Any]:
        """Insert an account; the very first account is created as head_admin.

        The role is decided inside the INSERT so two concurrent first
        registrations cannot both become head_admin.
        """
        now = iso_now()
        try:
            with self.connection() as db:
                cur = db.execute(
                    """
                    INSERT INTO Users (username, email, password_hash, role, status, theme, created_at, updated_at)
                    SELECT ?, ?, ?,
                           CASE WHEN (SELECT COUNT(*) FROM Users) = 0 THEN 'head_admin' ELSE 'user' END,
                           'active', 'light', ?, ?
                    """,
                    (username, email, password_hash, now, now),
                )
                user_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            logger.debug("create_user conflict for %s: %s", username, exc)
            raise ConflictError("User with this email or username already exists") from None
        return self.get_user_by_id(user_id)  # type: ignore[return-value]

    @persistence_guard("get_user_by_id")
    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute("SELECT * FROM Users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    @persistence_guard("get_user_by_login")
    def get_user_by_login(self, login: str) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute(
            "SELECT * FROM Users WHERE username = ? OR email = ?",
            (login, login.lower()),
        ).fetchone()
        return dict(row) if row else None

    @persistence_guard("list_users")
    def list_users(self) -> List[Dict[str, Any]]:
        rows = self.get_db().execute("SELECT * FROM Users ORDER BY created_at DESC, id DESC").fetchall()
        return [dict(r) for r in rows]

    @persistence_guard("username_taken")
    def username_taken(self, username: str, *, exclude_id: int | None = None) -> bool:
        row = self.get_db().execute(
            "SELECT 1 FROM Users WHERE username = ? AND id != ?",
            (username, exclude_id if exclude_id is not None else -1),
        ).fetchone()
        return row is not None

    @persistence_guard("update_user")
    def update_user(self, user_id: int, **fields: Any) -> bool:
        unknown = set(fields) - _MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown user columns: {sorted(unknown)}")
        if not fields:
            return False
        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = [*fields.values(), iso_now(), user_id]
        try:
            with self.connection() as db:
                cur = db.execute(f"UPDATE Users SET {assignments}, updated_at = ? WHERE id = ?", params)
        except sqlite3.IntegrityError as exc:
            logger.debug("update_user conflict for %s: %s", user_id, exc)
            raise ConflictError("Username already taken") from None
        return cur.rowcount > 0

    @persistence_guard("set_presence")
    def set_presence(self, user_id: int, online: bool, socket_id: str | None) -> None:
        with self.connection() as db:
            db.execute(
                "UPDATE Users SET is_online = ?, socket_id = ? WHERE id = ?",
                (1 if online else 0, socket_id, user_id),
            )

    @persistence_guard("clear_presence")
    def clear_presence(self) -> int:
        """Reset every durable online flag; live presence is rebuilt from connections."""
        with self.connection() as db:
            cur = db.execute("UPDATE Users SET is_online = 0, socket_id = NULL WHERE is_online = 1")
        return cur.rowcount

    @persistence_guard("delete_user")
    def delete_user(self, user_id: int) -> bool:
        with self.connection() as db:
            cur = db.execute("DELETE FROM Users WHERE id = ?", (user_id,))
        return cur.rowcount > 0
