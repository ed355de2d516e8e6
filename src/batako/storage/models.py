"""Domain records persisted by the stores.

Plain dataclasses; ``to_dict()`` renders datetimes as ISO-8601 strings for
JSON output.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..rollups.time_windows import PeriodWindow

__all__ = [
    "CementStock",
    "CementSummary",
    "CementType",
    "CementTypeGroup",
    "GroupedAggregate",
    "Page",
    "PeriodPayRecord",
    "Production",
    "ProductionSummary",
    "SalarySummary",
    "SandPurchase",
    "SandSummary",
    "Transaction",
    "TransactionSummary",
]


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


class _Record:
    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))  # type: ignore[call-overload]


@dataclass
class CementType(_Record):
    name: str
    id: int | None = None


@dataclass
class CementStock(_Record):
    """One cement purchase."""

    cement_type: CementType
    quantity: int
    price_per_bag: float
    purchase_date: datetime
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_price(self) -> float:
        return self.quantity * self.price_per_bag

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["total_price"] = self.total_price
        return data


@dataclass
class CementTypeGroup(_Record):
    """Per-type totals over a window.

    ``total_price`` is the sum of ``quantity * price_per_bag`` of the
    underlying purchases, not ``avg_price_per_bag * total_quantity``.
    """

    cement_type: CementType
    total_quantity: int
    total_price: float
    avg_price_per_bag: float
    first_purchase_date: datetime
    last_purchase_date: datetime


@dataclass
class GroupedAggregate(_Record):
    """Grouped aggregate read with its row-derived totals."""

    window: PeriodWindow
    groups: list[CementTypeGroup] = field(default_factory=list)
    type_count: int = 0
    total_quantity: int = 0
    total_price: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window.to_dict(),
            "groups": [group.to_dict() for group in self.groups],
            "type_count": self.type_count,
            "total_quantity": self.total_quantity,
            "total_price": self.total_price,
        }


@dataclass
class SandPurchase(_Record):
    sand_type: str
    quantity: int
    price_per_truck: float
    purchase_date: datetime
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Production(_Record):
    """One production run; ``quantity`` is the number of units made."""

    quantity: int
    production_date: datetime
    cement_used: float = 0.0
    sand_used: float = 0.0
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Transaction(_Record):
    """One sale. ``total_price`` is set by the store from the unit price."""

    customer: str
    quantity: int
    purchase_date: datetime
    address: str = ""
    total_price: float = 0.0
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PeriodPayRecord(_Record):
    """Pay computed for one completed work-period (Monday to Sunday).

    Created only by the weekly pay job and never updated afterwards.
    """

    period_start: datetime
    period_end: datetime
    total_production: int
    computed_pay: float
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Page(_Record):
    """One page of a paginated listing."""

    items: list[Any]
    total: int
    page: int
    page_size: int
    total_pages: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


# Dashboard summaries: scalar aggregates, zero when nothing matched


@dataclass(frozen=True)
class CementSummary(_Record):
    total_stock: int = 0
    total_quantity: int = 0
    total_price: float = 0.0


@dataclass(frozen=True)
class SandSummary(_Record):
    total_purchase: int = 0
    total_quantity: int = 0
    total_price: float = 0.0


@dataclass(frozen=True)
class ProductionSummary(_Record):
    total_production: int = 0


@dataclass(frozen=True)
class TransactionSummary(_Record):
    total_transaction: int = 0
    total_income: float = 0.0


@dataclass(frozen=True)
class SalarySummary(_Record):
    total_salary: float = 0.0
