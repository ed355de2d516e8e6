"""Weekly pay records."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, time
from typing import TYPE_CHECKING

from ..core.time import from_db_timestamp, get_current_time, to_db_timestamp
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import compute_month_window
from .database import db_now
from .models import PeriodPayRecord

if TYPE_CHECKING:
    from ..rollups.time_windows import PeriodWindow
    from .database import Database

__all__ = ["SalaryStore"]

log = get_logger("store")

_COLUMNS = "id, start_date, end_date, total_production, salary, created_at, updated_at"


def _row_to_record(row: sqlite3.Row) -> PeriodPayRecord:
    return PeriodPayRecord(
        id=row["id"],
        period_start=from_db_timestamp(row["start_date"]),
        period_end=from_db_timestamp(row["end_date"]),
        total_production=row["total_production"],
        computed_pay=row["salary"],
        created_at=from_db_timestamp(row["created_at"]),
        updated_at=from_db_timestamp(row["updated_at"]),
    )


class SalaryStore:
    """Pay records, one per completed Monday-to-Sunday period.

    ``employee_salary`` is unique on ``(start_date, end_date)``, so a period
    can be recorded only once.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def add_salary(self, record: PeriodPayRecord) -> PeriodPayRecord:
        """Insert a pay record.

        Raises
        ------
        ConflictError
            If the period already has a record
        """
        record_id = str(uuid.uuid4())
        now = db_now()

        with self.db.connection() as conn:
            conn.execute(
                f"""
                INSERT INTO employee_salary ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record_id,
                    to_db_timestamp(record.period_start),
                    to_db_timestamp(record.period_end),
                    record.total_production,
                    record.computed_pay,
                    now,
                    now,
                ),
            )

        record.id = record_id
        record.created_at = record.updated_at = from_db_timestamp(now)
        log.info(
            "Pay record added",
            record_id=record.id,
            period_start=record.period_start.isoformat(),
            period_end=record.period_end.isoformat(),
            computed_pay=record.computed_pay,
        )
        return record

    def get_for_period(self, window: PeriodWindow) -> PeriodPayRecord | None:
        """Record stored for exactly this window, if any."""
        with self.db.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM employee_salary WHERE start_date = ? AND end_date = ?",
                (to_db_timestamp(window.start), to_db_timestamp(window.end)),
            ).fetchone()
        return _row_to_record(row) if row is not None else None

    def get_weekly(self, day: datetime | None = None) -> PeriodPayRecord | None:
        """Record whose period contains the calendar day of ``day``.

        Returns None when no period covering that day has been recorded.
        """
        day = day or get_current_time()
        start_of_day = datetime.combine(day.date(), time(), tzinfo=day.tzinfo)

        with self.db.connection() as conn:
            row = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM employee_salary
                WHERE ? BETWEEN start_date AND end_date
                ORDER BY start_date DESC
                LIMIT 1
                """,
                (to_db_timestamp(start_of_day),),
            ).fetchone()
        return _row_to_record(row) if row is not None else None

    def list_overlapping(self, window: PeriodWindow) -> list[PeriodPayRecord]:
        """Records whose ``[start_date, end_date]`` overlaps ``window``."""
        with self.db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM employee_salary
                WHERE start_date <= ? AND end_date >= ?
                ORDER BY start_date ASC
                """,
                (to_db_timestamp(window.end), to_db_timestamp(window.start)),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def get_monthly(self, month_offset: int = 0, now: datetime | None = None) -> list[PeriodPayRecord]:
        return self.list_overlapping(compute_month_window(now or get_current_time(), month_offset))
