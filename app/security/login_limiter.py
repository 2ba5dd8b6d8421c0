"""
Login Rate Limiter
==================

In-memory brute-force protection for ``POST /auth/login``, keyed by client
address. After ``max_attempts`` consecutive failures the key is locked for
``lockout_minutes``; a successful login clears the counter.

State lives only for the lifetime of the process.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass
class _Failures:
    count: int = 0
    locked_until: float = 0.0


class LoginLimiter:
    """Thread-safe, in-memory login rate limiter."""

    def __init__(self, max_attempts: int = 5, lockout_minutes: int = 15) -> None:
        self._max_attempts = max(1, max_attempts)
        self._lockout_seconds = max(1, lockout_minutes) * 60
        self._failures: dict[str, _Failures] = {}
        self._lock = Lock()

    def seconds_locked(self, key: str) -> int:
        """Remaining lockout for *key* in whole seconds, ``0`` when not locked."""
        with self._lock:
            entry = self._failures.get(key)
            if entry is None or not entry.locked_until:
                return 0
            remaining = entry.locked_until - time.monotonic()
            if remaining <= 0:
                del self._failures[key]
                return 0
            return int(remaining) + 1

    def record_failure(self, key: str) -> bool:
        """Count a failed attempt; return True when this failure locks *key*."""
        with self._lock:
            entry = self._failures.setdefault(key, _Failures())
            entry.count += 1
            if entry.count < self._max_attempts:
                return False
            entry.locked_until = time.monotonic() + self._lockout_seconds
            logger.warning("Login locked for %s after %d failures", key, entry.count)
            return True

    def record_success(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)
