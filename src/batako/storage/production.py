"""Production runs and production totals."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.errors import NotFoundError
from ..core.time import from_db_timestamp, get_current_time, to_db_timestamp
from ..core.validation import require_not_future, require_positive
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import compute_month_window, compute_week_window
from .database import db_now
from .models import Production

if TYPE_CHECKING:
    import sqlite3
    from datetime import datetime

    from ..rollups.time_windows import PeriodWindow
    from .database import Database

__all__ = ["ProductionStore"]

log = get_logger("store")

_COLUMNS = "id, quantity, cement_used, sand_used, production_date, created_at, updated_at"


def _row_to_production(row: sqlite3.Row) -> Production:
    return Production(
        id=row["id"],
        quantity=row["quantity"],
        cement_used=row["cement_used"],
        sand_used=row["sand_used"],
        production_date=from_db_timestamp(row["production_date"]),
        created_at=from_db_timestamp(row["created_at"]),
        updated_at=from_db_timestamp(row["updated_at"]),
    )


class ProductionStore:
    """Production runs. The pay job reads weekly totals from here."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, production: Production) -> Production:
        require_positive("Quantity", production.quantity)
        require_not_future("Production date", production.production_date)

        now = db_now()
        with self.db.connection() as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO productions ({_COLUMNS})
                VALUES (NULL, ?, ?, ?, ?, ?, ?)
                """,
                (
                    production.quantity,
                    production.cement_used,
                    production.sand_used,
                    to_db_timestamp(production.production_date),
                    now,
                    now,
                ),
            )
            production.id = cursor.lastrowid

        production.created_at = production.updated_at = from_db_timestamp(now)
        log.debug("Production recorded", production_id=production.id, quantity=production.quantity)
        return production

    def get_by_id(self, production_id: int) -> Production:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM productions WHERE id = ?", (production_id,)).fetchone()

        if row is None:
            raise NotFoundError("Production")
        return _row_to_production(row)

    def get_all(self, limit: int = 20, offset: int = 0) -> list[Production]:
        with self.db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM productions
                ORDER BY production_date DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
        return [_row_to_production(row) for row in rows]

    def update(self, production: Production) -> Production:
        require_positive("Quantity", production.quantity)
        require_not_future("Production date", production.production_date)

        now = db_now()
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE productions
                SET quantity = ?, cement_used = ?, sand_used = ?, production_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    production.quantity,
                    production.cement_used,
                    production.sand_used,
                    to_db_timestamp(production.production_date),
                    now,
                    production.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Production")
            row = conn.execute("SELECT created_at FROM productions WHERE id = ?", (production.id,)).fetchone()

        production.created_at = from_db_timestamp(row["created_at"])
        production.updated_at = from_db_timestamp(now)
        return production

    def delete(self, production_id: int) -> None:
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM productions WHERE id = ?", (production_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Production")

    def list_in_window(self, window: PeriodWindow) -> list[Production]:
        with self.db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM productions
                WHERE production_date BETWEEN ? AND ?
                ORDER BY production_date DESC
                """,
                (to_db_timestamp(window.start), to_db_timestamp(window.end)),
            ).fetchall()
        return [_row_to_production(row) for row in rows]

    def get_monthly(self, month_offset: int = 0, now: datetime | None = None) -> list[Production]:
        return self.list_in_window(compute_month_window(now or get_current_time(), month_offset))

    def get_weekly(self, week_offset: int = 0, now: datetime | None = None) -> list[Production]:
        return self.list_in_window(compute_week_window(now or get_current_time(), week_offset))

    def get_total_production(self, start: datetime, end: datetime) -> int:
        """Sum of produced units with ``production_date`` in ``[start, end]``; 0 when none."""
        with self.db.connection() as conn:
            row = conn.execute(
                """
                SELECT COALESCE(SUM(quantity), 0) AS total_production
                FROM productions
                WHERE production_date BETWEEN ? AND ?
                """,
                (to_db_timestamp(start), to_db_timestamp(end)),
            ).fetchone()
        return int(row["total_production"])
