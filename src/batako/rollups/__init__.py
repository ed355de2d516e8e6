"""Time-windowed reporting: period windows and composite snapshots."""

from .aggregator import DashboardSnapshot, SnapshotAggregator, create_snapshot_aggregator
from .time_windows import (
    PeriodWindow,
    TimeWindow,
    compute_completed_week_window,
    compute_day_window,
    compute_month_window,
    compute_week_window,
    compute_window,
    month_offset_for,
    normalize_month_offset,
    week_offset_for_page,
)

__all__ = [
    "DashboardSnapshot",
    "PeriodWindow",
    "SnapshotAggregator",
    "TimeWindow",
    "compute_completed_week_window",
    "compute_day_window",
    "compute_month_window",
    "compute_week_window",
    "compute_window",
    "create_snapshot_aggregator",
    "month_offset_for",
    "normalize_month_offset",
    "week_offset_for_page",
]
