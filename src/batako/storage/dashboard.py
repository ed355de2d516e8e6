"""Scalar summaries feeding the dashboard snapshot.

Each reader runs one aggregate query over a window and always returns a
summary: sums over no rows come back as zero, never as None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.time import to_db_timestamp
from .models import CementSummary, ProductionSummary, SalarySummary, SandSummary, TransactionSummary

if TYPE_CHECKING:
    from ..rollups.time_windows import PeriodWindow
    from .database import Database

__all__ = ["DashboardStore"]


class DashboardStore:
    """One method per summary kind, each safe to call from its own thread."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _read_row(self, query: str, window: PeriodWindow):
        with self.db.connection() as conn:
            return conn.execute(query, (to_db_timestamp(window.start), to_db_timestamp(window.end))).fetchone()

    def get_cement_summary(self, window: PeriodWindow) -> CementSummary:
        row = self._read_row(
            """
            SELECT
                COUNT(*) AS total_stock,
                COALESCE(SUM(quantity), 0) AS total_quantity,
                COALESCE(SUM(quantity * price_per_bag), 0) AS total_price
            FROM cement_stocks
            WHERE purchase_date BETWEEN ? AND ?
            """,
            window,
        )
        return CementSummary(
            total_stock=int(row["total_stock"]),
            total_quantity=int(row["total_quantity"]),
            total_price=float(row["total_price"]),
        )

    def get_sand_summary(self, window: PeriodWindow) -> SandSummary:
        row = self._read_row(
            """
            SELECT
                COUNT(*) AS total_purchase,
                COALESCE(SUM(quantity), 0) AS total_quantity,
                COALESCE(SUM(quantity * price_per_truck), 0) AS total_price
            FROM sand_purchases
            WHERE purchase_date BETWEEN ? AND ?
            """,
            window,
        )
        return SandSummary(
            total_purchase=int(row["total_purchase"]),
            total_quantity=int(row["total_quantity"]),
            total_price=float(row["total_price"]),
        )

    def get_production_summary(self, window: PeriodWindow) -> ProductionSummary:
        row = self._read_row(
            """
            SELECT COALESCE(SUM(quantity), 0) AS total_production
            FROM productions
            WHERE production_date BETWEEN ? AND ?
            """,
            window,
        )
        return ProductionSummary(total_production=int(row["total_production"]))

    def get_transaction_summary(self, window: PeriodWindow) -> TransactionSummary:
        row = self._read_row(
            """
            SELECT
                COALESCE(SUM(quantity), 0) AS total_transaction,
                COALESCE(SUM(total_price), 0) AS total_income
            FROM transactions
            WHERE purchase_date BETWEEN ? AND ?
            """,
            window,
        )
        return TransactionSummary(
            total_transaction=int(row["total_transaction"]),
            total_income=float(row["total_income"]),
        )

    def get_salary_summary(self, window: PeriodWindow) -> SalarySummary:
        # Pay belongs to the window containing the calendar day its period ends on
        row = self._read_row(
            """
            SELECT COALESCE(SUM(salary), 0) AS total_salary
            FROM employee_salary
            WHERE date(end_date) BETWEEN date(?) AND date(?)
            """,
            window,
        )
        return SalarySummary(total_salary=float(row["total_salary"]))
