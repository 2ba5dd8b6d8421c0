"""
Background scheduler for the hub's periodic maintenance.

Design:
- One daemon loop thread that wakes every ``check_interval_seconds``
- A bounded worker pool executes due jobs, so a slow job never stalls the loop
- Interval jobs advance from their *scheduled* time (fixed-rate), not from
  when they finished
- Tasks are registered by name and scheduled by name; ``run_now`` runs a
  task synchronously on the caller's thread
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Result of a job execution."""

    job_id: str
    success: bool
    started_at: datetime
    completed_at: datetime
    result: Any = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


@dataclass
class ScheduledJob:
    job_id: str
    task_name: str
    interval_seconds: int
    enabled: bool = True
    args: tuple = field(default_factory=tuple)
    kwargs: dict[str, Any] = field(default_factory=dict)

    next_run: datetime | None = None
    last_run: datetime | None = None
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_error: str | None = None

    @property
    def namespace(self) -> str:
        return self.task_name.split(".")[0] if "." in self.task_name else "default"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (for API responses)."""
        return {
            "job_id": self.job_id,
            "task_name": self.task_name,
            "namespace": self.namespace,
            "enabled": self.enabled,
            "interval_seconds": self.interval_seconds,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


class UnifiedScheduler:
    """
    Interval scheduler for the hub's maintenance jobs.

    Heap entries are ``(run_at_ts, seq, job_id)``. Entries are never removed
    in place; an entry whose job was removed, disabled or rescheduled is
    skipped when popped.
    """

    def __init__(
        self,
        check_interval_seconds: float = 1.0,
        max_history: int = 200,
        max_workers: int = 2,
    ) -> None:
        self._check_interval = float(check_interval_seconds)
        self._max_history = int(max_history)
        self._max_workers = int(max_workers)

        self._jobs: dict[str, ScheduledJob] = {}
        self._tasks: dict[str, Callable[..., Any]] = {}
        self._job_heap: list[tuple[float, int, str]] = []
        self._heap_seq = 0
        self._history: list[JobResult] = []

        self._running = False
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None
        self._job_lock = threading.RLock()
        self._executor: ThreadPoolExecutor | None = None

    # ==================== Task Registration ====================

    def register_task(self, name: str, func: Callable[..., Any]) -> None:
        self._tasks[name] = func
        logger.debug("Registered task: %s", name)

    def clear_jobs(self) -> None:
        """Remove all scheduled jobs and pending heap entries."""
        with self._job_lock:
            self._jobs.clear()
            self._job_heap.clear()
            self._heap_seq = 0

    def _push_heap(self, job: ScheduledJob) -> None:
        if job.next_run is None:
            return
        self._heap_seq += 1
        heapq.heappush(self._job_heap, (job.next_run.timestamp(), self._heap_seq, job.job_id))

    # ==================== Job Scheduling ====================

    def schedule_interval(
        self,
        task_name: str,
        interval_seconds: int,
        *,
        job_id: str | None = None,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
        start_immediately: bool = False,
    ) -> ScheduledJob:
        """Schedule a registered task to run every *interval_seconds*."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        job_id = job_id or task_name
        now = datetime.now()
        job = ScheduledJob(
            job_id=job_id,
            task_name=task_name,
            interval_seconds=int(interval_seconds),
            args=args,
            kwargs=kwargs or {},
            next_run=now if start_immediately else now + timedelta(seconds=int(interval_seconds)),
        )
        with self._job_lock:
            self._jobs[job_id] = job
            self._push_heap(job)
        logger.info("Scheduled interval job: %s (every %ss)", job_id, interval_seconds)
        return job

    def remove_job(self, job_id: str) -> bool:
        with self._job_lock:
            return self._jobs.pop(job_id, None) is not None

    def run_now(
        self,
        task_name: str,
        *,
        args: tuple = (),
        kwargs: dict[str, Any] | None = None,
    ) -> JobResult | None:
        """Run a task immediately (synchronously)."""
        func = self._tasks.get(task_name)
        if func is None:
            logger.error("Task not found: %s", task_name)
            return None

        started_at = datetime.now()
        try:
            result = func(*args, **(kwargs or {}))
        except Exception as exc:
            logger.error("Immediate run of %s failed: %s", task_name, exc, exc_info=True)
            job_result = JobResult(task_name, False, started_at, datetime.now(), error=str(exc))
        else:
            job_result = JobResult(task_name, True, started_at, datetime.now(), result=result)
        self._record_history(job_result)
        return job_result

    def get_jobs(self) -> list[ScheduledJob]:
        with self._job_lock:
            return list(self._jobs.values())

    def get_history(self, limit: int = 50) -> list[JobResult]:
        with self._job_lock:
            return list(self._history[-limit:])

    # ==================== Scheduler Control ====================

    def start(self) -> None:
        """Start the scheduler background thread."""
        if self._running:
            logger.warning("Scheduler already running")
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="SchedulerJob")
        self._running = True
        self._wake.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="UnifiedScheduler")
        self._thread.start()
        logger.info("Scheduler started")

    def shutdown(self, wait: bool = True, timeout: float = 5.0) -> None:
        if not self._running:
            return
        self._running = False
        self._wake.set()
        if wait and self._thread:
            self._thread.join(timeout=timeout)
        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def _run_loop(self) -> None:
        logger.debug("Scheduler loop started")
        while self._running:
            try:
                self._process_due_jobs()
            except Exception as exc:
                logger.error("Error in scheduler loop: %s", exc, exc_info=True)
            self._wake.wait(self._check_interval)
        logger.debug("Scheduler loop ended")

    # ==================== Core Scheduling Logic ====================

    def _process_due_jobs(self) -> None:
        now_ts = time.time()
        with self._job_lock:
            while self._job_heap:
                run_at_ts, _seq, job_id = self._job_heap[0]
                if run_at_ts > now_ts:
                    break
                heapq.heappop(self._job_heap)

                job = self._jobs.get(job_id)
                if not job or not job.enabled or not job.next_run:
                    continue
                if abs(job.next_run.timestamp() - run_at_ts) > 1e-6:
                    continue

                scheduled_for = job.next_run
                job.next_run = scheduled_for + timedelta(seconds=job.interval_seconds)
                self._push_heap(job)

                if self._executor is None:
                    logger.warning("Executor unavailable; skipping job execution")
                    continue
                self._executor.submit(self._execute_job, job_id, scheduled_for)

    def _execute_job(self, job_id: str, scheduled_for: datetime) -> None:
        with self._job_lock:
            job = self._jobs.get(job_id)
        if not job or not job.enabled:
            return

        started_at = datetime.now()
        try:
            func = self._tasks.get(job.task_name)
            if func is None:
                raise ValueError(f"Task function not found: {job.task_name}")
            result = func(*job.args, **job.kwargs)
        except Exception as exc:
            with self._job_lock:
                job.last_run = started_at
                job.run_count += 1
                job.failure_count += 1
                job.last_error = str(exc)
            self._record_history(JobResult(job.job_id, False, started_at, datetime.now(), error=str(exc)))
            logger.error("Job %s failed: %s", job.job_id, exc, exc_info=True)
            return

        with self._job_lock:
            job.last_run = started_at
            job.run_count += 1
            job.success_count += 1
            job.last_error = None
        job_result = JobResult(job.job_id, True, started_at, datetime.now(), result=result)
        self._record_history(job_result)
        logger.debug(
            "Job %s completed in %.2fs (scheduled_for=%s)",
            job.job_id,
            job_result.duration_seconds,
            scheduled_for.isoformat(),
        )

    def _record_history(self, result: JobResult) -> None:
        with self._job_lock:
            self._history.append(result)
            if len(self._history) > self._max_history:
                del self._history[: len(self._history) - self._max_history]
