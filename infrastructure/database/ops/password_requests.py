from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)


class PasswordRequestOperations:
    """Database operations for PasswordResetRequests."""

    @persistence_guard("create_password_request")
    def create_password_request(
        self,
        *,
        user_id: int,
        username: str,
        email: str,
        message: str,
        remembered_password_matches: bool | None,
        created_at: str,
    ) -> int:
        matches = None if remembered_password_matches is None else int(remembered_password_matches)
        with self.connection() as db:
            cur = db.execute(
                """
                INSERT INTO PasswordResetRequests (
                    user_id, username, email, message, remembered_password_matches, status, created_at
                ) VALUES (?, ?, ?, ?, ?, 'pending', ?)
                """,
                (user_id, username, email, message, matches, created_at),
            )
        return int(cur.lastrowid)

    @persistence_guard("has_pending_password_request")
    def has_pending_password_request(self, user_id: int) -> bool:
        row = self.get_db().execute(
            "SELECT 1 FROM PasswordResetRequests WHERE user_id = ? AND status = 'pending'", (user_id,)
        ).fetchone()
        return row is not None

    @persistence_guard("list_pending_password_requests")
    def list_pending_password_requests(self) -> List[Dict[str, Any]]:
        rows = self.get_db().execute(
            "SELECT * FROM PasswordResetRequests WHERE status = 'pending' ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [dict(r) for r in rows]

    @persistence_guard("get_password_request")
    def get_password_request(self, request_id: int) -> Optional[Dict[str, Any]]:
        row = self.get_db().execute("SELECT * FROM PasswordResetRequests WHERE id = ?", (request_id,)).fetchone()
        return dict(row) if row else None

    @persistence_guard("resolve_password_request")
    def resolve_password_request(self, request_id: int, *, status: str, approved_by: int, resolved_at: str) -> bool:
        with self.connection() as db:
            cur = db.execute(
                "UPDATE PasswordResetRequests SET status = ?, approved_by = ?, resolved_at = ? WHERE id = ?",
                (status, approved_by, resolved_at, request_id),
            )
        return cur.rowcount > 0
