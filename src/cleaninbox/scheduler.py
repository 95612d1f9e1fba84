"""Named recurring jobs on top of APScheduler.

Every job runs once immediately and then every ``interval_ms``. Outcomes are
reported to listeners as JobEvent objects:

    scheduler = Scheduler()
    scheduler.add_listener(lambda event: print(event.kind, event.job_id))
    scheduler.add_job("nightly-clean", run_clean, 24 * 3600 * 1000)

Overlapping runs of the same job are not prevented beyond
JOB_MAX_INSTANCES: a task slower than its interval will run concurrently
with itself. Removing a job only cancels future runs; an in-flight run
completes and still reports its outcome. There is no locking between jobs.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from .constants import JOB_MAX_INSTANCES, SCHEDULER_WORKERS
from .errors import JobConflictError, JobNotFoundError, ValidationError
from .log import get_logger
from .models import JobEvent, JobEventKind

logger = get_logger(__name__)

JobListener = Callable[[JobEvent], None]


def _run_task(task: Callable) -> object:
    """Run a task in a scheduler thread, bridging coroutines with asyncio.run."""
    result = task()
    if inspect.isawaitable(result):

        async def _await():
            return await result

        return asyncio.run(_await())
    return result


class Scheduler:
    """Registry of named interval jobs."""

    def __init__(self, max_workers: int = SCHEDULER_WORKERS) -> None:
        self._scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers)},
            timezone="UTC",
        )
        self._scheduler.add_listener(self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
        self._jobs: set[str] = set()
        self._listeners: list[tuple[JobListener, frozenset[JobEventKind] | None]] = []
        self._lock = threading.Lock()

    # --- notifications ---

    def add_listener(
        self,
        callback: JobListener,
        kinds: Iterable[JobEventKind] | None = None,
    ) -> None:
        """Register *callback* for job events, optionally only for some kinds."""
        self._listeners.append((callback, frozenset(kinds) if kinds else None))

    def remove_listener(self, callback: JobListener) -> None:
        self._listeners = [(cb, k) for cb, k in self._listeners if cb != callback]

    def _emit(self, event: JobEvent) -> None:
        for callback, kinds in list(self._listeners):
            if kinds is not None and event.kind not in kinds:
                continue
            try:
                callback(event)
            except Exception as exc:  # noqa: BLE001
                logger.error("job_listener_failed", job_id=event.job_id, error=str(exc))

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.exception is not None:
            logger.warning("job_failed", job_id=event.job_id, error=str(event.exception))
            self._emit(JobEvent(JobEventKind.FAILED, event.job_id, event.exception))
        else:
            logger.info("job_succeeded", job_id=event.job_id)
            self._emit(JobEvent(JobEventKind.SUCCEEDED, event.job_id))

    # --- jobs ---

    def add_job(self, job_id: str, task: Callable, interval_ms: int) -> None:
        """Run *task* now and then every *interval_ms* milliseconds.

        Raises:
            JobConflictError: if *job_id* is already scheduled.
            ValidationError: if *interval_ms* is not positive.
        """
        if interval_ms <= 0:
            raise ValidationError(f"Interval must be positive, got {interval_ms}.")

        with self._lock:
            if job_id in self._jobs:
                raise JobConflictError(job_id)
            if not self._scheduler.running:
                self._scheduler.start()
            self._scheduler.add_job(
                _run_task,
                "interval",
                args=[task],
                seconds=interval_ms / 1000,
                id=job_id,
                name=job_id,
                next_run_time=datetime.now(timezone.utc),
                max_instances=JOB_MAX_INSTANCES,
                coalesce=False,
                misfire_grace_time=None,
            )
            self._jobs.add(job_id)

        logger.info("job_added", job_id=job_id, interval_ms=interval_ms)

    def remove_job(self, job_id: str) -> None:
        """Cancel future runs of *job_id*.

        Raises:
            JobNotFoundError: if *job_id* is not scheduled.
        """
        with self._lock:
            if job_id not in self._jobs:
                raise JobNotFoundError(job_id)
            self._scheduler.remove_job(job_id)
            self._jobs.discard(job_id)

        logger.info("job_removed", job_id=job_id)
        self._emit(JobEvent(JobEventKind.REMOVED, job_id))

    def stop_all(self) -> None:
        """Cancel every job and empty the registry."""
        with self._lock:
            removed = sorted(self._jobs)
            for job_id in removed:
                self._scheduler.remove_job(job_id)
            self._jobs.clear()

        for job_id in removed:
            logger.info("job_removed", job_id=job_id)
            self._emit(JobEvent(JobEventKind.REMOVED, job_id))

    def list_jobs(self) -> list[str]:
        with self._lock:
            return list(self._jobs)

    def shutdown(self, wait: bool = False) -> None:
        """Stop all jobs and the underlying scheduler thread."""
        self.stop_all()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    # --- context manager ---

    def __enter__(self) -> Scheduler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.shutdown()
