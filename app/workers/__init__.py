"""
Workers module for background maintenance.

- unified_scheduler: interval scheduler with a bounded worker pool
- scheduled_tasks: task definitions (maintenance.*)
"""

__all__ = [
    "UnifiedScheduler",
    "configure_scheduler",
    "register_all_tasks",
    "schedule_default_jobs",
]

from app.workers.scheduled_tasks import configure_scheduler, register_all_tasks, schedule_default_jobs
from app.workers.unified_scheduler import UnifiedScheduler
