"""Weekly pay pipeline.

On each firing the pipeline takes the latest Monday-to-Sunday week that has
fully ended, sums production inside it, multiplies by the per-unit pay rate
and stores one pay record for that week. A week that already has a record
is left untouched and the stored record is returned instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..core.errors import ConflictError
from ..core.scheduler import Scheduler, WeeklyTrigger, create_scheduler
from ..core.time import get_current_time, get_default_timezone
from ..observability.loguru_config import get_logger, timing_context
from ..rollups.time_windows import compute_completed_week_window
from ..storage.models import PeriodPayRecord

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..storage.production import ProductionStore
    from ..storage.salary import SalaryStore

__all__ = [
    "SalaryPipeline",
    "SalaryPipelineConfig",
    "create_salary_pipeline",
]

JOB_ID = "weekly-salary"

log = get_logger("scheduler")


@dataclass
class SalaryPipelineConfig:
    """Configuration for the weekly pay pipeline."""

    pay_rate: float = 450.0
    weekday: int = 2
    hour: int = 17
    minute: int = 16
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls, settings: Settings) -> SalaryPipelineConfig:
        pay_time = settings.pay_time_of_day
        return cls(
            pay_rate=settings.pay_rate,
            weekday=settings.pay_weekday_index,
            hour=pay_time.hour,
            minute=pay_time.minute,
            timezone=settings.default_timezone,
        )

    def trigger(self) -> WeeklyTrigger:
        return WeeklyTrigger(weekday=self.weekday, hour=self.hour, minute=self.minute, timezone=self.timezone)


class SalaryPipeline:
    """Computes and stores weekly pay, either on demand or on a schedule.

    Example:
        >>> pipeline = create_salary_pipeline(storage.production, storage.salary)
        >>> record = pipeline.generate_weekly_salary()
        >>> pipeline.start()  # fire every configured weekday
        >>> pipeline.stop()
    """

    def __init__(
        self,
        production: ProductionStore,
        salary: SalaryStore,
        config: SalaryPipelineConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.production = production
        self.salary = salary
        self.config = config or SalaryPipelineConfig()
        self.scheduler = scheduler or create_scheduler()

    def generate_weekly_salary(self, today: datetime | None = None) -> PeriodPayRecord:
        """Store the pay record for the last week completed by ``today``.

        Parameters
        ----------
        today
            Reference instant; defaults to now in the default timezone

        Returns
        -------
        PeriodPayRecord
            The new record, or the one already stored for that week
        """
        today = today or get_current_time()
        if today.tzinfo is not None:
            today = today.astimezone(get_default_timezone())
        window = compute_completed_week_window(today)

        existing = self.salary.get_for_period(window)
        if existing is not None:
            log.info(
                "Pay record already exists for week",
                record_id=existing.id,
                period_start=window.start.isoformat(),
            )
            return existing

        with timing_context("salary.generate", component="scheduler", period_start=window.start.isoformat()) as ctx:
            total = self.production.get_total_production(window.start, window.end)
            record = PeriodPayRecord(
                period_start=window.start,
                period_end=window.end,
                total_production=total,
                computed_pay=total * self.config.pay_rate,
            )
            try:
                record = self.salary.add_salary(record)
            except ConflictError:
                # Another firing stored the week between the check and the insert.
                stored = self.salary.get_for_period(window)
                if stored is None:
                    raise
                log.info("Pay record stored concurrently", record_id=stored.id)
                return stored
            ctx["total_production"] = total
            ctx["computed_pay"] = record.computed_pay

        return record

    def _fire(self) -> PeriodPayRecord:
        return self.generate_weekly_salary(self.scheduler.now())

    def schedule(self) -> str:
        """Register the weekly firing with the scheduler without starting it."""
        return self.scheduler.schedule_weekly(
            "weekly salary",
            self.config.trigger(),
            self._fire,
            job_id=JOB_ID,
            metadata={"pay_rate": self.config.pay_rate},
        )

    def start(self) -> str:
        """Schedule the weekly firing and start the scheduler thread."""
        job_id = self.schedule()
        self.scheduler.start()
        return job_id

    def stop(self, timeout: float | None = None) -> None:
        """Suppress future firings; a firing in progress completes first."""
        self.scheduler.stop(timeout=timeout)

    def __enter__(self) -> SalaryPipeline:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


def create_salary_pipeline(
    production: ProductionStore,
    salary: SalaryStore,
    *,
    settings: Settings | None = None,
    scheduler: Scheduler | None = None,
) -> SalaryPipeline:
    """Factory function to create the weekly pay pipeline."""
    config = SalaryPipelineConfig.from_settings(settings) if settings else SalaryPipelineConfig()
    return SalaryPipeline(production, salary, config, scheduler=scheduler)
