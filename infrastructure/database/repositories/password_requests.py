from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from infrastructure.database.ops.password_requests import PasswordRequestOperations


@dataclass(frozen=True)
class PasswordRequestRepository:
    _backend: PasswordRequestOperations

    def create(self, **fields: Any) -> int:
        return self._backend.create_password_request(**fields)

    def has_pending(self, user_id: int) -> bool:
        return self._backend.has_pending_password_request(user_id)

    def pending(self) -> list[dict[str, Any]]:
        return self._backend.list_pending_password_requests()

    def get(self, request_id: int) -> dict[str, Any] | None:
        return self._backend.get_password_request(request_id)

    def resolve(self, request_id: int, *, status: str, approved_by: int, resolved_at: str) -> bool:
        return self._backend.resolve_password_request(
            request_id, status=status, approved_by=approved_by, resolved_at=resolved_at
        )
