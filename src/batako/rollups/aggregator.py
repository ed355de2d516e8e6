"""Composite dashboard snapshot over one window.

Fan-out/fan-in: one worker thread per summary kind, each writing only its
own slot. The orchestrator waits for every branch to finish (no
cancellation of siblings), then either raises the first collected error or
returns the fully populated snapshot. Partial snapshots are never returned.
"""

from __future__ import annotations

import queue
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..core.time import get_current_time
from ..observability.loguru_config import get_logger, timing_context
from ..storage.models import (
    CementSummary,
    ProductionSummary,
    SalarySummary,
    SandSummary,
    TransactionSummary,
)
from .time_windows import PeriodWindow, compute_month_window

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ..storage.dashboard import DashboardStore

__all__ = [
    "DashboardSnapshot",
    "SnapshotAggregator",
    "create_snapshot_aggregator",
]

log = get_logger("aggregator")


@dataclass(frozen=True)
class DashboardSnapshot:
    """All dashboard summaries computed over the same window."""

    window: PeriodWindow
    cement_summary: CementSummary
    sand_summary: SandSummary
    production_summary: ProductionSummary
    transaction_summary: TransactionSummary
    salary_summary: SalarySummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window.to_dict(),
            "cement_summary": self.cement_summary.to_dict(),
            "sand_summary": self.sand_summary.to_dict(),
            "production_summary": self.production_summary.to_dict(),
            "transaction_summary": self.transaction_summary.to_dict(),
            "salary_summary": self.salary_summary.to_dict(),
        }


class SnapshotAggregator:
    """Runs independent aggregate reads concurrently against one window.

    Parameters
    ----------
    branches
        Mapping of slot name to a callable taking the window and returning
        that slot's value. Names must be unique; each branch owns its slot.

    Example:
        >>> aggregator = create_snapshot_aggregator(storage.dashboard)
        >>> snapshot = aggregator.build_snapshot(compute_window("month"))
    """

    def __init__(self, branches: Mapping[str, Callable[[PeriodWindow], Any]]) -> None:
        if not branches:
            raise ValueError("At least one branch is required")
        self._branches = dict(branches)

    @property
    def branch_names(self) -> list[str]:
        return list(self._branches)

    def collect(self, window: PeriodWindow) -> dict[str, Any]:
        """Run every branch and join on all of them.

        Returns
        -------
        dict[str, Any]
            One value per branch name

        Raises
        ------
        Exception
            The first error any branch raised, unchanged
        """
        slots: dict[str, Any] = {}
        errors: queue.Queue[BaseException] = queue.Queue(maxsize=len(self._branches))

        def run_branch(name: str, branch: Callable[[PeriodWindow], Any]) -> None:
            try:
                slots[name] = branch(window)
            except Exception as exc:
                log.warning("Snapshot branch failed", branch=name, error=str(exc), error_type=type(exc).__name__)
                errors.put_nowait(exc)

        with ThreadPoolExecutor(max_workers=len(self._branches), thread_name_prefix="snapshot") as executor:
            futures = [executor.submit(run_branch, name, branch) for name, branch in self._branches.items()]
            wait(futures)

        if not errors.empty():
            raise errors.get_nowait()

        return slots

    def build_snapshot(self, window: PeriodWindow) -> DashboardSnapshot:
        """Build the full dashboard snapshot for ``window``."""
        with timing_context("snapshot.build", component="aggregator", unit=window.unit) as ctx:
            slots = self.collect(window)
            ctx["branches"] = len(slots)

        log.info("Snapshot built", start=window.start.isoformat(), end=window.end.isoformat())
        return DashboardSnapshot(window=window, **slots)

    def build_monthly(self, month_offset: int = 0, now: datetime | None = None) -> DashboardSnapshot:
        """Snapshot for the month ``month_offset`` months from now."""
        window = compute_month_window(now or get_current_time(), month_offset)
        return self.build_snapshot(window)


def create_snapshot_aggregator(dashboard: DashboardStore) -> SnapshotAggregator:
    """Factory wiring the five dashboard summaries as branches."""
    return SnapshotAggregator(
        {
            "cement_summary": dashboard.get_cement_summary,
            "sand_summary": dashboard.get_sand_summary,
            "production_summary": dashboard.get_production_summary,
            "transaction_summary": dashboard.get_transaction_summary,
            "salary_summary": dashboard.get_salary_summary,
        }
    )
