"""
Threshold Store
===============
Holds the one ThresholdSet in memory, loaded from the durable store at
startup. Writers take ``lock`` for the whole read-modify-write so that
concurrent partial updates never lose each other's fields; the cached copy
is replaced only after the database write succeeds.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Mapping

from app.domain.greenhouse_thresholds import ThresholdSet
from app.utils.time import iso_now
from infrastructure.database.repositories.thresholds import ThresholdRepository

logger = logging.getLogger(__name__)


class ThresholdStore:
    def __init__(self, repo: ThresholdRepository) -> None:
        self._repo = repo
        self.lock = threading.RLock()
        with self.lock:
            self._current = repo.load()
        logger.debug("Threshold set loaded: %s", self._current.values())

    def current(self) -> ThresholdSet:
        with self.lock:
            return self._current

    def apply(self, changed: Mapping[str, float], *, updated_by: int | None) -> ThresholdSet:
        """Merge *changed* into the set, persist it and return the new snapshot."""
        with self.lock:
            updated = self._current.with_changes(changed, last_updated_by=updated_by, updated_at=iso_now())
            self._repo.save(updated)
            self._current = updated
            return updated

    def mark_synced(self, synced_at: str | None = None) -> ThresholdSet:
        synced_at = synced_at or iso_now()
        with self.lock:
            self._repo.stamp_synced(synced_at)
            self._current = replace(self._current, last_synced_at=synced_at)
            return self._current
