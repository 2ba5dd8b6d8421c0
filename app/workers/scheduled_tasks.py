"""
Scheduled Tasks: background maintenance run by the UnifiedScheduler.

- maintenance.retention_sweep: drop activity records and system alerts that
  are past their retention window

Usage:
    from app.workers.scheduled_tasks import configure_scheduler

    configure_scheduler(container.scheduler, container)
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

from app.domain.exceptions import PersistenceError
from app.utils.time import iso_ago

if TYPE_CHECKING:
    from app.services.container import ServiceContainer
    from app.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)

RETENTION_SWEEP_TASK = "maintenance.retention_sweep"


def retention_sweep_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Delete ActivityLog rows and SystemAlerts older than their retention windows.

    Each table is swept independently; a failure on one is reported in the
    result and does not stop the other.
    """
    config = container.config
    results: dict[str, Any] = {"activity_removed": 0, "alerts_removed": 0, "errors": []}

    try:
        results["activity_removed"] = container.activity_logger.purge_older_than(config.activity_retention_days)
    except PersistenceError as exc:
        logger.error("Activity retention sweep failed: %s", exc)
        results["errors"].append(f"activity: {exc}")

    try:
        results["alerts_removed"] = container.alert_repo.purge_before(iso_ago(days=config.alert_retention_days))
    except PersistenceError as exc:
        logger.error("Alert retention sweep failed: %s", exc)
        results["errors"].append(f"alerts: {exc}")

    logger.info(
        "Retention sweep removed %d activity records and %d alerts",
        results["activity_removed"],
        results["alerts_removed"],
    )
    return results


def register_all_tasks(scheduler: "UnifiedScheduler", container: "ServiceContainer") -> None:
    """Register every task, bound to *container*."""

    def bind(task_fn):
        @wraps(task_fn)
        def bound_task():
            return task_fn(container)

        return bound_task

    scheduler.register_task(RETENTION_SWEEP_TASK, bind(retention_sweep_task))


def schedule_default_jobs(scheduler: "UnifiedScheduler", container: "ServiceContainer") -> None:
    scheduler.schedule_interval(
        RETENTION_SWEEP_TASK,
        container.config.retention_sweep_interval_seconds,
        job_id="retention_sweep",
        start_immediately=True,
    )


def configure_scheduler(
    scheduler: "UnifiedScheduler",
    container: "ServiceContainer",
    *,
    reset_jobs: bool = True,
    start: bool = True,
) -> None:
    """Register tasks, apply default schedules, and optionally start the scheduler."""
    if reset_jobs:
        scheduler.clear_jobs()

    register_all_tasks(scheduler, container)
    schedule_default_jobs(scheduler, container)

    if start:
        scheduler.start()
