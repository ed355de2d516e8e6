"""Period window calculations (day, week, month).

Turns a relative period selector ("this month", "3 months ago", "last week")
into an absolute, inclusive ``[start, end]`` pair. Boundaries are built as
local wall-clock times and localized one at a time, so DST transitions inside
a week or month never shift the end boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, tzinfo
from typing import Any, Literal

import pytz

from ..core.errors import ValidationError
from ..core.time import get_current_time

__all__ = [
    "MONTH_LOOKBACK",
    "PeriodWindow",
    "TimeWindow",
    "WINDOW_UNITS",
    "compute_completed_week_window",
    "compute_day_window",
    "compute_month_window",
    "compute_week_window",
    "compute_window",
    "month_offset_for",
    "normalize_month_offset",
    "week_offset_for_page",
]

TimeWindow = Literal["day", "week", "month"]

WINDOW_UNITS: tuple[str, ...] = ("day", "week", "month")

# Month selectors roll over a 12-month range: 6 back, the rest forward.
MONTH_LOOKBACK = 6

_END_OF_DAY = timedelta(hours=23, minutes=59, seconds=59, microseconds=999999)


@dataclass(frozen=True)
class PeriodWindow:
    """Absolute window a period selector resolves to.

    Attributes
    ----------
    unit : str
        "day", "week" or "month"
    start : datetime
        First included instant
    end : datetime
        Last included instant (inclusive)
    """

    unit: str
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


def normalize_month_offset(offset: int) -> int:
    """Fold offsets older than the lookback into the forward half of the year."""
    if offset < -MONTH_LOOKBACK:
        return offset + 12
    return offset


def month_offset_for(target_month: int, now: datetime | None = None) -> int:
    """Translate a month-of-year number (1-12) into a signed month offset.

    Raises
    ------
    ValidationError
        If ``target_month`` is not an integer in 1..12
    """
    if isinstance(target_month, bool) or not isinstance(target_month, int):
        raise ValidationError(f"Month must be an integer, got: {target_month!r}")
    if not 1 <= target_month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got: {target_month}")

    now = now or get_current_time()
    return normalize_month_offset(target_month - now.month)


def week_offset_for_page(page: int) -> int:
    """Page 1 is the current week, page N is N-1 weeks back."""
    if page < 1:
        page = 1
    return -(page - 1)


def _resolve_tz(timezone_str: str | None) -> tzinfo | None:
    if timezone_str is None:
        return None
    try:
        return pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError as exc:
        raise ValidationError(f"Unknown timezone: {timezone_str}") from exc


def _local_now(now: datetime, tz: tzinfo | None) -> datetime:
    if tz is not None and now.tzinfo is not None:
        return now.astimezone(tz)
    return now


def _attach(naive: datetime, tz: tzinfo | None, reference: tzinfo | None) -> datetime:
    """Give a naive wall-clock boundary the timezone of the request."""
    target = tz or reference
    if target is None:
        return naive
    if hasattr(target, "localize"):
        # pytz zones must localize, replace() would pick the LMT offset
        return target.localize(naive)
    return naive.replace(tzinfo=target)


def compute_day_window(
    now: datetime,
    offset: int = 0,
    timezone_str: str | None = None,
) -> PeriodWindow:
    """Window for the calendar day containing ``now``, shifted by ``offset`` days.

    Spans ``00:00:00.000000`` through ``23:59:59.999999``.
    """
    tz = _resolve_tz(timezone_str)
    local_now = _local_now(now, tz)

    day = local_now.date() + timedelta(days=offset)
    start = datetime.combine(day, time())
    end = start + _END_OF_DAY

    return PeriodWindow(
        unit="day",
        start=_attach(start, tz, local_now.tzinfo),
        end=_attach(end, tz, local_now.tzinfo),
    )


def compute_week_window(
    now: datetime,
    offset: int = 0,
    timezone_str: str | None = None,
) -> PeriodWindow:
    """Window for the Monday-to-Sunday week ``offset`` weeks from ``now``'s week.

    Negative offsets look back. Sunday counts as day 7 of its week, so the
    Monday anchor is always at or before ``now``.

    Examples
    --------
    >>> w = compute_week_window(datetime(2024, 3, 15))
    >>> w.start, w.end
    (datetime.datetime(2024, 3, 11, 0, 0), datetime.datetime(2024, 3, 17, 23, 59, 59, 999999))
    """
    tz = _resolve_tz(timezone_str)
    local_now = _local_now(now, tz)

    # isoweekday(): Monday=1 .. Sunday=7
    monday = local_now.date() - timedelta(days=local_now.isoweekday() - 1)
    monday += timedelta(weeks=offset)

    start = datetime.combine(monday, time())
    end = datetime.combine(monday + timedelta(days=6), time()) + _END_OF_DAY

    return PeriodWindow(
        unit="week",
        start=_attach(start, tz, local_now.tzinfo),
        end=_attach(end, tz, local_now.tzinfo),
    )


def compute_completed_week_window(
    now: datetime,
    timezone_str: str | None = None,
) -> PeriodWindow:
    """Latest Monday-to-Sunday week whose end is at or before ``now``.

    That is ``now``'s own week only once its Sunday has fully ended,
    otherwise the week before it.
    """
    local_now = _local_now(now, _resolve_tz(timezone_str))
    current = compute_week_window(now, 0, timezone_str)
    if current.end.replace(tzinfo=None) <= local_now.replace(tzinfo=None):
        return current
    return compute_week_window(now, -1, timezone_str)


def compute_month_window(
    now: datetime,
    offset: int = 0,
    timezone_str: str | None = None,
) -> PeriodWindow:
    """Window for the calendar month ``offset`` months from ``now``'s month.

    Offsets below ``-MONTH_LOOKBACK`` are first folded forward by 12. The
    last day is derived as "first day of the following month minus one day"
    so month lengths and leap years need no lookup table. The window ends
    at ``23:59:59`` of that day.
    """
    tz = _resolve_tz(timezone_str)
    local_now = _local_now(now, tz)

    offset = normalize_month_offset(offset)
    years, month_index = divmod(local_now.month - 1 + offset, 12)
    year = local_now.year + years
    month = month_index + 1

    start = datetime(year, month, 1)
    first_of_next = (start + timedelta(days=32)).replace(day=1)
    last_day = first_of_next - timedelta(days=1)
    end = last_day.replace(hour=23, minute=59, second=59)

    return PeriodWindow(
        unit="month",
        start=_attach(start, tz, local_now.tzinfo),
        end=_attach(end, tz, local_now.tzinfo),
    )


def compute_window(
    unit: TimeWindow,
    now: datetime | None = None,
    offset: int = 0,
    timezone_str: str | None = None,
) -> PeriodWindow:
    """Compute the window for any unit.

    Parameters
    ----------
    unit
        "day", "week" or "month"
    now
        Reference instant (default: current time in the default timezone)
    offset
        Signed number of units from ``now``'s unit; negative looks back
    timezone_str
        Optional IANA zone the calendar is evaluated in

    Raises
    ------
    ValidationError
        If ``unit`` is not a known window unit
    """
    if now is None:
        now = get_current_time()

    if unit == "day":
        return compute_day_window(now, offset, timezone_str)
    elif unit == "week":
        return compute_week_window(now, offset, timezone_str)
    elif unit == "month":
        return compute_month_window(now, offset, timezone_str)
    else:
        raise ValidationError(f"Unknown window unit: {unit}")
