from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from infrastructure.database.ops.activity_log import ActivityOperations


@dataclass(frozen=True)
class ActivityRepository:
    _backend: ActivityOperations

    def insert(self, activity: Mapping[str, Any]) -> int:
        return self._backend.insert_activity(activity)

    def since(self, since_iso: str) -> list[dict[str, Any]]:
        return self._backend.get_activity_since(since_iso)

    def purge_before(self, cutoff_iso: str) -> int:
        return self._backend.purge_activity_before(cutoff_iso)
