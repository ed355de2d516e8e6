"""Raw-material stock: cement purchases and sand purchases."""

from __future__ import annotations

import sqlite3
import uuid
from typing import TYPE_CHECKING

from ..core.errors import NotFoundError
from ..core.time import from_db_timestamp, get_current_time, to_db_timestamp
from ..core.validation import require_not_future, require_positive, require_text
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import compute_month_window
from .database import db_now
from .models import CementStock, CementType, CementTypeGroup, GroupedAggregate, SandPurchase

if TYPE_CHECKING:
    from datetime import datetime

    from ..rollups.time_windows import PeriodWindow
    from .database import Database

__all__ = ["CementStockStore", "SandPurchaseStore"]

log = get_logger("store")


def _lookup_type_id(conn: sqlite3.Connection, table: str, label: str, name: str) -> int:
    row = conn.execute(f"SELECT id FROM {table} WHERE name = ?", (name,)).fetchone()
    if row is None:
        raise NotFoundError(f"{label} with name: {name}")
    return int(row["id"])


def _validate_purchase(quantity: int, price: float, price_label: str, purchase_date: datetime) -> None:
    require_positive("Quantity", quantity)
    require_positive(price_label, price)
    require_not_future("Purchase date", purchase_date)


class CementStockStore:
    """Cement purchases grouped by cement type."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def check_type(self, name: str) -> int:
        """Resolve a cement type name to its id.

        Raises
        ------
        NotFoundError
            If no cement type has that name
        """
        with self.db.connection() as conn:
            return _lookup_type_id(conn, "cement_types", "Cement type", name)

    def create(self, stock: CementStock) -> CementStock:
        """Insert a purchase; type lookup and insert share one transaction."""
        require_text("Cement type name", stock.cement_type.name)
        _validate_purchase(stock.quantity, stock.price_per_bag, "Price per bag", stock.purchase_date)

        stock_id = str(uuid.uuid4())
        now = db_now()

        with self.db.transaction() as conn:
            type_id = _lookup_type_id(conn, "cement_types", "Cement type", stock.cement_type.name)
            conn.execute(
                """
                INSERT INTO cement_stocks
                    (id, cement_type_id, quantity, price_per_bag, purchase_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stock_id,
                    type_id,
                    stock.quantity,
                    stock.price_per_bag,
                    to_db_timestamp(stock.purchase_date),
                    now,
                    now,
                ),
            )

        stock.id = stock_id
        stock.cement_type.id = type_id
        stock.created_at = stock.updated_at = from_db_timestamp(now)
        log.info("Cement stock added", stock_id=stock.id, cement_type=stock.cement_type.name)
        return stock

    def update(self, stock: CementStock) -> CementStock:
        """Update a purchase in place.

        Raises
        ------
        NotFoundError
            If the stock id or the cement type does not exist
        """
        require_text("Cement type name", stock.cement_type.name)
        _validate_purchase(stock.quantity, stock.price_per_bag, "Price per bag", stock.purchase_date)

        now = db_now()
        with self.db.transaction() as conn:
            type_id = _lookup_type_id(conn, "cement_types", "Cement type", stock.cement_type.name)
            cursor = conn.execute(
                """
                UPDATE cement_stocks
                SET cement_type_id = ?, quantity = ?, price_per_bag = ?, purchase_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    type_id,
                    stock.quantity,
                    stock.price_per_bag,
                    to_db_timestamp(stock.purchase_date),
                    now,
                    stock.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Cement stock")
            row = conn.execute("SELECT created_at FROM cement_stocks WHERE id = ?", (stock.id,)).fetchone()

        stock.cement_type.id = type_id
        stock.created_at = from_db_timestamp(row["created_at"])
        stock.updated_at = from_db_timestamp(now)
        return stock

    def delete(self, stock_id: str) -> None:
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM cement_stocks WHERE id = ?", (stock_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Cement stock")

    def get_by_type(
        self,
        type_name: str,
        month_offset: int = 0,
        now: datetime | None = None,
    ) -> list[CementStock]:
        """Purchases of one cement type within a month window, newest first."""
        window = compute_month_window(now or get_current_time(), month_offset)

        with self.db.connection() as conn:
            rows = conn.execute(
                """
                SELECT cs.id, ct.id AS type_id, ct.name AS type_name, cs.quantity, cs.price_per_bag,
                       cs.purchase_date, cs.created_at, cs.updated_at
                FROM cement_stocks cs
                JOIN cement_types ct ON cs.cement_type_id = ct.id
                WHERE ct.name = ? AND cs.purchase_date BETWEEN ? AND ?
                ORDER BY cs.purchase_date DESC
                """,
                (type_name, to_db_timestamp(window.start), to_db_timestamp(window.end)),
            ).fetchall()

        return [
            CementStock(
                id=row["id"],
                cement_type=CementType(id=row["type_id"], name=row["type_name"]),
                quantity=row["quantity"],
                price_per_bag=row["price_per_bag"],
                purchase_date=from_db_timestamp(row["purchase_date"]),
                created_at=from_db_timestamp(row["created_at"]),
                updated_at=from_db_timestamp(row["updated_at"]),
            )
            for row in rows
        ]

    def get_all_monthly(self, month_offset: int = 0, now: datetime | None = None) -> GroupedAggregate:
        """Per-type totals for a month window plus totals across types."""
        window = compute_month_window(now or get_current_time(), month_offset)
        return self.read_grouped(window)

    def read_grouped(self, window: PeriodWindow) -> GroupedAggregate:
        """Grouped aggregate: one row per cement type purchased in ``window``."""
        with self.db.connection() as conn:
            rows = conn.execute(
                """
                SELECT
                    ct.id AS type_id,
                    ct.name AS type_name,
                    SUM(cs.quantity) AS total_quantity,
                    SUM(cs.quantity * cs.price_per_bag) AS total_price,
                    AVG(cs.price_per_bag) AS avg_price_per_bag,
                    MIN(cs.purchase_date) AS first_purchase_date,
                    MAX(cs.purchase_date) AS last_purchase_date
                FROM cement_stocks cs
                JOIN cement_types ct ON cs.cement_type_id = ct.id
                WHERE cs.purchase_date BETWEEN ? AND ?
                GROUP BY ct.id, ct.name
                ORDER BY ct.name ASC
                """,
                (to_db_timestamp(window.start), to_db_timestamp(window.end)),
            ).fetchall()

        result = GroupedAggregate(window=window)
        for row in rows:
            group = CementTypeGroup(
                cement_type=CementType(id=row["type_id"], name=row["type_name"]),
                total_quantity=int(row["total_quantity"]),
                total_price=float(row["total_price"]),
                avg_price_per_bag=float(row["avg_price_per_bag"]),
                first_purchase_date=from_db_timestamp(row["first_purchase_date"]),
                last_purchase_date=from_db_timestamp(row["last_purchase_date"]),
            )
            result.groups.append(group)
            result.type_count += 1
            result.total_quantity += group.total_quantity
            result.total_price += group.total_price

        return result


class SandPurchaseStore:
    """Sand purchases, priced per truck."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, purchase: SandPurchase) -> SandPurchase:
        require_text("Sand type", purchase.sand_type)
        _validate_purchase(purchase.quantity, purchase.price_per_truck, "Price per truck", purchase.purchase_date)

        purchase_id = str(uuid.uuid4())
        now = db_now()

        with self.db.transaction() as conn:
            sand_type_id = _lookup_type_id(conn, "sand_types", "Sand type", purchase.sand_type)
            conn.execute(
                """
                INSERT INTO sand_purchases
                    (id, sand_type_id, quantity, price_per_truck, purchase_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    purchase_id,
                    sand_type_id,
                    purchase.quantity,
                    purchase.price_per_truck,
                    to_db_timestamp(purchase.purchase_date),
                    now,
                    now,
                ),
            )

        purchase.id = purchase_id
        purchase.created_at = purchase.updated_at = from_db_timestamp(now)
        log.info("Sand purchase added", purchase_id=purchase.id, sand_type=purchase.sand_type)
        return purchase

    def update(self, purchase: SandPurchase) -> SandPurchase:
        require_text("Sand type", purchase.sand_type)
        _validate_purchase(purchase.quantity, purchase.price_per_truck, "Price per truck", purchase.purchase_date)

        now = db_now()
        with self.db.transaction() as conn:
            sand_type_id = _lookup_type_id(conn, "sand_types", "Sand type", purchase.sand_type)
            cursor = conn.execute(
                """
                UPDATE sand_purchases
                SET sand_type_id = ?, quantity = ?, price_per_truck = ?, purchase_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    sand_type_id,
                    purchase.quantity,
                    purchase.price_per_truck,
                    to_db_timestamp(purchase.purchase_date),
                    now,
                    purchase.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Sand purchase")
            row = conn.execute("SELECT created_at FROM sand_purchases WHERE id = ?", (purchase.id,)).fetchone()

        purchase.created_at = from_db_timestamp(row["created_at"])
        purchase.updated_at = from_db_timestamp(now)
        return purchase
