"""All stores behind one handle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .dashboard import DashboardStore
from .production import ProductionStore
from .salary import SalaryStore
from .stock import CementStockStore, SandPurchaseStore
from .transactions import DEFAULT_UNIT_PRICE, TransactionStore

if TYPE_CHECKING:
    from .database import Database

__all__ = ["Storage", "create_storage"]


@dataclass
class Storage:
    db: Database
    cement: CementStockStore
    sand: SandPurchaseStore
    production: ProductionStore
    transactions: TransactionStore
    salary: SalaryStore
    dashboard: DashboardStore


def create_storage(db: Database, *, unit_price: float = DEFAULT_UNIT_PRICE) -> Storage:
    """Factory function wiring every store to one database."""
    return Storage(
        db=db,
        cement=CementStockStore(db),
        sand=SandPurchaseStore(db),
        production=ProductionStore(db),
        transactions=TransactionStore(db, unit_price=unit_price),
        salary=SalaryStore(db),
        dashboard=DashboardStore(db),
    )
