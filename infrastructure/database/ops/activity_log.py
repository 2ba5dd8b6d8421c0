from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from infrastructure.database.decorators import persistence_guard

logger = logging.getLogger(__name__)


class ActivityOperations:
    """Database operations for the append-only ActivityLog table."""

    @persistence_guard("insert_activity")
    def insert_activity(self, activity: Mapping[str, Any]) -> int:
        details = activity.get("details")
        with self.connection() as db:
            cur = db.execute(
                """
                INSERT INTO ActivityLog (user_id, username, action, details, ip_address, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    activity.get("user_id"),
                    activity.get("username"),
                    activity["action"],
                    json.dumps(details) if details is not None else None,
                    activity.get("ip_address"),
                    activity["timestamp"],
                ),
            )
        return int(cur.lastrowid)

    @persistence_guard("get_activity_since")
    def get_activity_since(self, since_iso: str) -> List[Dict[str, Any]]:
        rows = self.get_db().execute(
            """
            SELECT a.*, u.role AS user_role
            FROM ActivityLog a LEFT JOIN Users u ON u.id = a.user_id
            WHERE a.timestamp >= ?
            ORDER BY a.timestamp DESC, a.id DESC
            """,
            (since_iso,),
        ).fetchall()
        results = []
        for r in rows:
            row = dict(r)
            row["details"] = json.loads(row["details"]) if row.get("details") else None
            results.append(row)
        return results

    @persistence_guard("purge_activity")
    def purge_activity_before(self, cutoff_iso: str) -> int:
        with self.connection() as db:
            cur = db.execute("DELETE FROM ActivityLog WHERE timestamp < ?", (cutoff_iso,))
        return cur.rowcount
