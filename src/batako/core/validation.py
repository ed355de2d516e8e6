"""Field checks applied before anything is written to the store."""

from __future__ import annotations

from datetime import datetime

from .errors import ValidationError
from .time import get_current_time, get_default_timezone

__all__ = [
    "require_not_future",
    "require_positive",
    "require_text",
]


def require_positive(name: str, value: float) -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{name} must be greater than 0")


def require_text(name: str, value: str | None) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{name} is required")


def require_not_future(name: str, value: datetime, now: datetime | None = None) -> None:
    """Reject dates after ``now``.

    Naive values are compared as wall-clock time in the default timezone.
    """
    now = now or get_current_time()
    if value.tzinfo is None:
        now = now.replace(tzinfo=None)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=get_default_timezone())
    if value > now:
        raise ValidationError(f"{name} cannot be in the future")
