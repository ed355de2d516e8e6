"""Time and timezone utilities.

- One configured default timezone drives "now" and every reporting window
- Timestamps are persisted as ISO-8601 wall-clock text in that timezone,
  microsecond precision, so string comparison matches instant order
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

__all__ = [
    "TimeConfig",
    "from_db_timestamp",
    "get_current_time",
    "get_default_timezone",
    "set_default_timezone",
    "to_db_timestamp",
]


class TimeConfig:
    """Global time configuration."""

    _default_timezone = "UTC"

    @classmethod
    def get_default_timezone_name(cls) -> str:
        return cls._default_timezone

    @classmethod
    def set_default_timezone_name(cls, timezone_name: str) -> None:
        """Set default timezone.

        Raises
        ------
        ValueError
            If timezone is not a valid IANA name
        """
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone: {timezone_name}") from exc

        cls._default_timezone = timezone_name


def get_default_timezone() -> ZoneInfo:
    """Get default timezone object."""
    return ZoneInfo(TimeConfig.get_default_timezone_name())


def set_default_timezone(timezone_name: str) -> None:
    TimeConfig.set_default_timezone_name(timezone_name)


def get_current_time(tz: ZoneInfo | str | None = None) -> datetime:
    """Get current time in specified timezone.

    Parameters
    ----------
    tz
        Timezone (ZoneInfo, timezone name string, or None for default)

    Returns
    -------
    datetime
        Current time, timezone-aware
    """
    if tz is None:
        tz = get_default_timezone()
    elif isinstance(tz, str):
        tz = ZoneInfo(tz)

    return datetime.now(tz)


def to_db_timestamp(value: datetime) -> str:
    """Encode a datetime for storage.

    Aware values are converted to the default timezone first; naive values
    are taken as already being wall-clock time in it.
    """
    if value.tzinfo is not None:
        value = value.astimezone(get_default_timezone()).replace(tzinfo=None)
    return value.isoformat(sep=" ", timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    """Decode a stored timestamp into an aware datetime in the default timezone."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_default_timezone())
    return parsed
