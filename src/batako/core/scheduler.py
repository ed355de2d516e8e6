"""Scheduler for recurring weekly jobs.

Jobs fire on a fixed weekday and wall-clock time in a named timezone.
A single daemon thread sleeps on a stop event until the earliest job is
due, runs every due job, and reschedules it. A job that raises is logged
and keeps its place in the schedule.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from datetime import time as time_of_day
from enum import Enum
from typing import TYPE_CHECKING, Any

import pytz

from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "Job",
    "JobStatus",
    "Scheduler",
    "WeeklyTrigger",
    "create_scheduler",
]

# Upper bound on a single sleep so a job added while the loop waits is seen.
DEFAULT_MAX_WAIT = 60.0


@dataclass(frozen=True)
class WeeklyTrigger:
    """Fire once a week at ``weekday`` ``hour``:``minute`` local time.

    ``weekday`` follows ``datetime.weekday()``: Monday is 0, Sunday is 6.
    """

    weekday: int
    hour: int
    minute: int
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be in 0..6, got: {self.weekday}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be in 0..23, got: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be in 0..59, got: {self.minute}")
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {self.timezone}") from exc

    def next_fire_after(self, instant: datetime) -> datetime:
        """Next firing strictly after ``instant``.

        Naive instants are read as wall-clock time in the trigger's timezone.

        Example:
            >>> trigger = WeeklyTrigger(weekday=2, hour=17, minute=16)
            >>> trigger.next_fire_after(datetime(2024, 3, 13, 17, 16, tzinfo=UTC)).date()
            datetime.date(2024, 3, 20)
        """
        tz = pytz.timezone(self.timezone)
        if instant.tzinfo is None:
            instant = tz.localize(instant)

        local = instant.astimezone(tz)
        days_ahead = (self.weekday - local.weekday()) % 7
        fire_date = local.date() + timedelta(days=days_ahead)
        candidate = tz.localize(datetime.combine(fire_date, time_of_day(self.hour, self.minute)))

        if candidate <= instant:
            candidate = tz.localize(
                datetime.combine(fire_date + timedelta(days=7), time_of_day(self.hour, self.minute))
            )

        return candidate

    def describe(self) -> str:
        day = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")[self.weekday]
        return f"{day} {self.hour:02d}:{self.minute:02d} {self.timezone}"


class JobStatus(Enum):
    """Status of scheduled job."""

    PENDING = "pending"
    RUNNING = "running"
    CANCELLED = "cancelled"


@dataclass
class Job:
    """Scheduled job container."""

    job_id: str
    name: str
    trigger: WeeklyTrigger
    callable: Callable[[], Any]
    status: JobStatus = JobStatus.PENDING
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    run_count: int = 0
    error_count: int = 0
    last_error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_due(self, now: datetime) -> bool:
        if self.status is not JobStatus.PENDING or self.next_run_at is None:
            return False
        return now >= self.next_run_at


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Scheduler:
    """Weekly job scheduler backed by one daemon thread.

    Example:
        >>> scheduler = Scheduler()
        >>> job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), run_payroll)
        >>> scheduler.start()
        >>> # ... later ...
        >>> scheduler.stop()
    """

    def __init__(
        self,
        logger: Any = None,
        *,
        clock: Callable[[], datetime] | None = None,
        max_wait: float = DEFAULT_MAX_WAIT,
    ) -> None:
        """Initialize scheduler.

        Parameters
        ----------
        logger
            Optional loguru logger; defaults to the ``scheduler`` component
        clock
            Callable returning the current aware datetime
        max_wait
            Longest single sleep of the loop, in seconds
        """
        self._jobs: dict[str, Job] = {}
        self._logger = logger or get_logger("scheduler")
        self._clock = clock or _utc_now
        self._max_wait = max_wait
        self._running = False
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def schedule_weekly(
        self,
        name: str,
        trigger: WeeklyTrigger,
        callable: Callable[[], Any],
        *,
        job_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Schedule ``callable`` to run on ``trigger``.

        Scheduling with an existing ``job_id`` replaces that job.

        Returns
        -------
        str
            Job ID for managing the job
        """
        job_id = job_id or str(uuid.uuid4())
        job = Job(
            job_id=job_id,
            name=name,
            trigger=trigger,
            callable=callable,
            metadata=metadata or {},
        )
        job.next_run_at = trigger.next_fire_after(self._clock())

        with self._lock:
            self._jobs[job_id] = job

        self._logger.info(
            "Job scheduled: {name}",
            name=name,
            job_id=job_id,
            trigger=trigger.describe(),
            next_run_at=job.next_run_at.isoformat(),
        )
        return job_id

    def cancel(self, job_id: str) -> bool:
        """Cancel a job; returns False when the ID is unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return False
            job.status = JobStatus.CANCELLED
            job.next_run_at = None

        self._logger.info("Job cancelled: {name}", name=job.name, job_id=job_id)
        return True

    def now(self) -> datetime:
        """Current time according to the scheduler clock."""
        return self._clock()

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def list_jobs(self, status: JobStatus | None = None) -> list[Job]:
        with self._lock:
            jobs = list(self._jobs.values())

        if status:
            jobs = [j for j in jobs if j.status == status]

        return jobs

    def next_due_at(self) -> datetime | None:
        """Earliest ``next_run_at`` among pending jobs."""
        with self._lock:
            times = [
                j.next_run_at for j in self._jobs.values() if j.status is JobStatus.PENDING and j.next_run_at
            ]
        return min(times) if times else None

    def run_pending(self, now: datetime | None = None) -> int:
        """Run every job that is due at ``now``.

        Returns
        -------
        int
            Number of jobs executed
        """
        now = now or self._clock()
        with self._lock:
            due = [job for job in self._jobs.values() if job.is_due(now)]

        for job in due:
            self._execute_job(job, now)

        return len(due)

    def start(self) -> None:
        """Start scheduler thread.

        Raises
        ------
        RuntimeError
            If a loop whose ``stop()`` timed out is still running a job
        """
        if self._running:
            return
        if self._thread is not None:
            if self._thread.is_alive():
                raise RuntimeError("Previous scheduler loop is still finishing a job")
            self._thread = None

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="batako-scheduler", daemon=True)
        self._thread.start()
        self._logger.info("Scheduler started", jobs=len(self._jobs))

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to exit and wait for the thread.

        A job already executing runs to completion before the join returns.
        """
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                # Handle kept so start() cannot run a second loop beside it
                self._logger.warning("Scheduler stop timed out; loop still finishing a job", timeout=timeout)
                return
            self._thread = None

        self._logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    def _seconds_until_next(self) -> float:
        next_at = self.next_due_at()
        if next_at is None:
            return self._max_wait
        delay = (next_at - self._clock()).total_seconds()
        return max(0.0, min(delay, self._max_wait))

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_pending()
            except Exception as exc:
                self._logger.error("Scheduler tick error", error=str(exc), error_type=type(exc).__name__)

            self._stop_event.wait(timeout=self._seconds_until_next())

    def _execute_job(self, job: Job, now: datetime) -> None:
        job.status = JobStatus.RUNNING
        started = self._clock()

        try:
            job.callable()
        except Exception as exc:
            job.error_count += 1
            job.last_error = str(exc)
            self._logger.error(
                "Job failed: {name}",
                name=job.name,
                job_id=job.job_id,
                error=str(exc),
                error_type=type(exc).__name__,
                error_count=job.error_count,
            )
        else:
            job.run_count += 1
            job.last_error = None
            duration_ms = (self._clock() - started).total_seconds() * 1000
            self._logger.info(
                "Job executed: {name}",
                name=job.name,
                job_id=job.job_id,
                duration_ms=duration_ms,
                run_count=job.run_count,
            )
        finally:
            job.last_run_at = now
            with self._lock:
                if job.status is JobStatus.RUNNING:
                    job.status = JobStatus.PENDING
                    job.next_run_at = job.trigger.next_fire_after(now)

    def __enter__(self) -> Scheduler:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


def create_scheduler(logger: Any = None, *, clock: Callable[[], datetime] | None = None) -> Scheduler:
    """Factory function to create scheduler."""
    return Scheduler(logger=logger, clock=clock)
