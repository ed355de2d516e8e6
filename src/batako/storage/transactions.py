"""Sales transactions."""

from __future__ import annotations

import math
import uuid
from typing import TYPE_CHECKING

from ..core.errors import NotFoundError
from ..core.time import from_db_timestamp, get_current_time, to_db_timestamp
from ..core.validation import require_not_future, require_positive, require_text
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import compute_day_window, compute_month_window, compute_week_window
from .database import db_now
from .models import Page, Transaction

if TYPE_CHECKING:
    import sqlite3
    from datetime import datetime

    from ..rollups.time_windows import PeriodWindow
    from .database import Database

__all__ = ["DEFAULT_UNIT_PRICE", "TransactionStore"]

DEFAULT_UNIT_PRICE = 1600.0

log = get_logger("store")

_COLUMNS = "id, customer, address, quantity, total_price, purchase_date, created_at, updated_at"


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=row["id"],
        customer=row["customer"],
        address=row["address"],
        quantity=row["quantity"],
        total_price=row["total_price"],
        purchase_date=from_db_timestamp(row["purchase_date"]),
        created_at=from_db_timestamp(row["created_at"]),
        updated_at=from_db_timestamp(row["updated_at"]),
    )


class TransactionStore:
    """Sales; ``total_price`` is always ``quantity * unit_price``.

    Parameters
    ----------
    db
        Database handle
    unit_price
        Sale price of one unit
    """

    def __init__(self, db: Database, unit_price: float = DEFAULT_UNIT_PRICE) -> None:
        self.db = db
        self.unit_price = unit_price

    def _validate(self, transaction: Transaction) -> None:
        require_text("Customer", transaction.customer)
        require_positive("Quantity", transaction.quantity)
        require_not_future("Purchase date", transaction.purchase_date)

    def create(self, transaction: Transaction) -> Transaction:
        self._validate(transaction)

        transaction_id = str(uuid.uuid4())
        total_price = transaction.quantity * self.unit_price
        now = db_now()

        with self.db.connection() as conn:
            conn.execute(
                f"""
                INSERT INTO transactions ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction_id,
                    transaction.customer,
                    transaction.address,
                    transaction.quantity,
                    total_price,
                    to_db_timestamp(transaction.purchase_date),
                    now,
                    now,
                ),
            )

        transaction.id = transaction_id
        transaction.total_price = total_price
        transaction.created_at = transaction.updated_at = from_db_timestamp(now)
        log.info("Transaction recorded", transaction_id=transaction.id, quantity=transaction.quantity)
        return transaction

    def get_by_id(self, transaction_id: str) -> Transaction:
        with self.db.connection() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM transactions WHERE id = ?", (transaction_id,)).fetchone()

        if row is None:
            raise NotFoundError("Transaction")
        return _row_to_transaction(row)

    def update(self, transaction: Transaction) -> Transaction:
        self._validate(transaction)

        total_price = transaction.quantity * self.unit_price
        now = db_now()

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE transactions
                SET customer = ?, address = ?, quantity = ?, total_price = ?, purchase_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    transaction.customer,
                    transaction.address,
                    transaction.quantity,
                    total_price,
                    to_db_timestamp(transaction.purchase_date),
                    now,
                    transaction.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Transaction")
            row = conn.execute("SELECT created_at FROM transactions WHERE id = ?", (transaction.id,)).fetchone()

        transaction.total_price = total_price
        transaction.created_at = from_db_timestamp(row["created_at"])
        transaction.updated_at = from_db_timestamp(now)
        return transaction

    def delete(self, transaction_id: str) -> None:
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Transaction")

    def get_all(self, page: int = 1, page_size: int = 20) -> Page:
        """Newest-first listing of all transactions."""
        page = max(page, 1)
        page_size = max(page_size, 1)

        with self.db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS}, COUNT(*) OVER () AS total_count
                FROM transactions
                ORDER BY purchase_date DESC
                LIMIT ? OFFSET ?
                """,
                (page_size, (page - 1) * page_size),
            ).fetchall()
            if rows:
                total = int(rows[0]["total_count"])
            else:
                total = int(conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0])

        items = [_row_to_transaction(row) for row in rows]
        return Page(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    def list_in_window(self, window: PeriodWindow) -> list[Transaction]:
        with self.db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM transactions
                WHERE purchase_date BETWEEN ? AND ?
                ORDER BY purchase_date DESC
                """,
                (to_db_timestamp(window.start), to_db_timestamp(window.end)),
            ).fetchall()
        return [_row_to_transaction(row) for row in rows]

    def get_daily(self, day_offset: int = 0, now: datetime | None = None) -> list[Transaction]:
        return self.list_in_window(compute_day_window(now or get_current_time(), day_offset))

    def get_weekly(self, week_offset: int = 0, now: datetime | None = None) -> list[Transaction]:
        return self.list_in_window(compute_week_window(now or get_current_time(), week_offset))

    def get_monthly(self, month_offset: int = 0, now: datetime | None = None) -> list[Transaction]:
        return self.list_in_window(compute_month_window(now or get_current_time(), month_offset))

    def get_total_weeks(self) -> int:
        """Number of distinct Monday-started weeks that contain a transaction."""
        with self.db.connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(DISTINCT date(purchase_date, '-' || ((CAST(strftime('%w', purchase_date) AS INTEGER) + 6) % 7) || ' days'))
                FROM transactions
                """
            ).fetchone()
        return int(row[0])
