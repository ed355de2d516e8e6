"""Tests for the sqlite-backed stores."""

from datetime import UTC, datetime, timedelta

import pytest

from batako.core.errors import ConflictError, NotFoundError, ValidationError
from batako.rollups.time_windows import compute_month_window, compute_week_window
from batako.storage import seed_reference_data
from batako.storage.models import (
    CementStock,
    CementType,
    PeriodPayRecord,
    Production,
    SandPurchase,
    Transaction,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)


def at(day, hour=9):
    return datetime(2024, 3, day, hour, 0, tzinfo=UTC)


def add_cement(storage, name, quantity, price, when):
    return storage.cement.create(
        CementStock(cement_type=CementType(name=name), quantity=quantity, price_per_bag=price, purchase_date=when)
    )


class TestSeed:
    def test_seed_is_idempotent(self, db):
        first = seed_reference_data(db)
        second = seed_reference_data(db)

        assert first == {"cement_types": 5, "sand_types": 2}
        assert second == {"cement_types": 0, "sand_types": 0}


class TestCementStockStore:
    def test_create_resolves_type(self, storage):
        stock = add_cement(storage, "Conch", 10, 52000, at(5))

        assert stock.id is not None
        assert stock.cement_type.id == storage.cement.check_type("Conch")
        assert stock.created_at is not None
        assert stock.total_price == 520000

    def test_unknown_type_writes_nothing(self, storage):
        with pytest.raises(NotFoundError, match="Cement type with name: Holcim"):
            add_cement(storage, "Holcim", 10, 52000, at(5))

        assert storage.cement.get_all_monthly(0, NOW).type_count == 0

    @pytest.mark.parametrize(
        ("quantity", "price", "when", "message"),
        [
            (0, 52000, at(5), "Quantity must be greater than 0"),
            (10, -1, at(5), "Price per bag must be greater than 0"),
            (10, 52000, datetime.now(UTC) + timedelta(days=2), "cannot be in the future"),
        ],
    )
    def test_validation(self, storage, quantity, price, when, message):
        with pytest.raises(ValidationError, match=message):
            add_cement(storage, "Conch", quantity, price, when)

    def test_update_and_delete(self, storage):
        stock = add_cement(storage, "Conch", 10, 52000, at(5))
        created_at = stock.created_at

        stock.quantity = 12
        stock.cement_type = CementType(name="Padang")
        updated = storage.cement.update(stock)

        assert updated.created_at == created_at
        assert [s.quantity for s in storage.cement.get_by_type("Padang", 0, NOW)] == [12]
        assert storage.cement.get_by_type("Conch", 0, NOW) == []

        storage.cement.delete(stock.id)
        with pytest.raises(NotFoundError):
            storage.cement.delete(stock.id)

    def test_update_missing(self, storage):
        stock = CementStock(
            id="missing", cement_type=CementType(name="Conch"), quantity=1, price_per_bag=1, purchase_date=at(5)
        )

        with pytest.raises(NotFoundError, match="Cement stock not found"):
            storage.cement.update(stock)

    def test_get_by_type_newest_first_within_month(self, storage):
        add_cement(storage, "Conch", 1, 50000, at(2))
        add_cement(storage, "Conch", 2, 51000, at(20))
        add_cement(storage, "Conch", 3, 52000, datetime(2024, 2, 28, tzinfo=UTC))

        stocks = storage.cement.get_by_type("Conch", 0, NOW)

        assert [s.quantity for s in stocks] == [2, 1]

    def test_grouped_aggregate(self, storage):
        add_cement(storage, "Conch", 10, 50000, at(1))
        add_cement(storage, "Conch", 30, 54000, at(10))
        add_cement(storage, "Tiga Roda", 5, 60000, at(12))
        add_cement(storage, "Tiga Roda", 7, 60000, datetime(2024, 4, 1, tzinfo=UTC))

        grouped = storage.cement.get_all_monthly(0, NOW)

        assert [g.cement_type.name for g in grouped.groups] == ["Conch", "Tiga Roda"]
        conch = grouped.groups[0]
        assert conch.total_quantity == 40
        assert conch.total_price == 10 * 50000 + 30 * 54000
        assert conch.avg_price_per_bag == 52000
        assert conch.first_purchase_date == at(1)
        assert conch.last_purchase_date == at(10)
        assert grouped.type_count == 2
        assert grouped.total_quantity == 45
        assert grouped.total_price == sum(g.total_price for g in grouped.groups)

    def test_grouped_aggregate_empty_window(self, storage):
        grouped = storage.cement.get_all_monthly(-1, NOW)

        assert grouped.groups == []
        assert grouped.total_price == 0.0
        assert grouped.window.start == datetime(2024, 2, 1, tzinfo=UTC)


class TestSandPurchaseStore:
    def test_create_and_update(self, storage):
        purchase = storage.sand.create(
            SandPurchase(sand_type="Putih", quantity=2, price_per_truck=1_200_000, purchase_date=at(4))
        )

        purchase.quantity = 3
        updated = storage.sand.update(purchase)

        assert updated.updated_at >= updated.created_at

    def test_unknown_sand_type(self, storage):
        with pytest.raises(NotFoundError, match="Sand type with name: Hitam"):
            storage.sand.create(SandPurchase(sand_type="Hitam", quantity=1, price_per_truck=1, purchase_date=at(4)))


class TestProductionStore:
    def test_crud(self, storage):
        production = storage.production.create(Production(quantity=40, production_date=at(11), cement_used=2))

        assert isinstance(production.id, int)
        assert storage.production.get_by_id(production.id).quantity == 40

        production.quantity = 45
        storage.production.update(production)
        assert storage.production.get_by_id(production.id).quantity == 45

        storage.production.delete(production.id)
        with pytest.raises(NotFoundError, match="Production not found"):
            storage.production.get_by_id(production.id)

    def test_total_production_in_window(self, storage):
        for day, quantity in [(10, 5), (11, 40), (15, 50), (17, 30), (18, 99)]:
            storage.production.create(Production(quantity=quantity, production_date=at(day)))

        week = compute_week_window(NOW, 0)

        # Sunday 2024-03-10 belongs to the previous week, Monday 18th to the next
        assert storage.production.get_total_production(week.start, week.end) == 120
        assert [p.quantity for p in storage.production.get_weekly(0, NOW)] == [30, 50, 40]

    def test_total_production_empty_is_zero(self, storage):
        month = compute_month_window(NOW, 0)

        assert storage.production.get_total_production(month.start, month.end) == 0

    def test_get_all_paginates(self, storage):
        for day in range(1, 6):
            storage.production.create(Production(quantity=day, production_date=at(day)))

        page = storage.production.get_all(limit=2, offset=1)

        assert [p.quantity for p in page] == [4, 3]


class TestTransactionStore:
    def test_total_price_from_unit_price(self, storage):
        transaction = storage.transactions.create(Transaction(customer="Budi", quantity=100, purchase_date=at(8)))

        assert transaction.total_price == 160000
        assert storage.transactions.get_by_id(transaction.id).total_price == 160000

        transaction.quantity = 10
        storage.transactions.update(transaction)
        assert storage.transactions.get_by_id(transaction.id).total_price == 16000

    def test_customer_required(self, storage):
        with pytest.raises(ValidationError, match="Customer is required"):
            storage.transactions.create(Transaction(customer=" ", quantity=1, purchase_date=at(8)))

    def test_windows(self, storage):
        for day in (1, 14, 15, 15):
            storage.transactions.create(Transaction(customer="Sari", quantity=1, purchase_date=at(day)))

        assert len(storage.transactions.get_daily(0, NOW)) == 2
        assert len(storage.transactions.get_weekly(0, NOW)) == 3
        assert len(storage.transactions.get_monthly(0, NOW)) == 4
        assert storage.transactions.get_monthly(-1, NOW) == []

    def test_total_weeks(self, storage):
        # Sunday 10th and Monday 11th fall in different weeks
        for day in (4, 10, 11, 12):
            storage.transactions.create(Transaction(customer="Sari", quantity=1, purchase_date=at(day)))

        assert storage.transactions.get_total_weeks() == 2

    def test_get_all_page(self, storage):
        for day in range(1, 6):
            storage.transactions.create(Transaction(customer=f"c{day}", quantity=day, purchase_date=at(day)))

        page = storage.transactions.get_all(page=2, page_size=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert [t.customer for t in page.items] == ["c3", "c2"]

    def test_last_page_reports_requested_size(self, storage):
        for day in range(1, 6):
            storage.transactions.create(Transaction(customer=f"c{day}", quantity=day, purchase_date=at(day)))

        page = storage.transactions.get_all(page=3, page_size=2)

        assert [t.customer for t in page.items] == ["c1"]
        assert page.page_size == 2
        assert page.page == 3

    def test_get_all_beyond_last_page(self, storage):
        storage.transactions.create(Transaction(customer="Sari", quantity=1, purchase_date=at(1)))

        page = storage.transactions.get_all(page=9, page_size=20)

        assert page.items == []
        assert page.total == 1


class TestSalaryStore:
    def record_for(self, now):
        week = compute_week_window(now, 0)
        return PeriodPayRecord(period_start=week.start, period_end=week.end, total_production=10, computed_pay=4500)

    def test_add_and_get_for_period(self, storage):
        stored = storage.salary.add_salary(self.record_for(NOW))

        found = storage.salary.get_for_period(compute_week_window(NOW, 0))

        assert found.id == stored.id
        assert found.period_start == datetime(2024, 3, 11, tzinfo=UTC)
        assert found.computed_pay == 4500

    def test_duplicate_period_conflicts(self, storage):
        storage.salary.add_salary(self.record_for(NOW))

        with pytest.raises(ConflictError):
            storage.salary.add_salary(self.record_for(NOW))

    def test_get_weekly_contains_day(self, storage):
        storage.salary.add_salary(self.record_for(NOW))

        assert storage.salary.get_weekly(at(17, hour=23)) is not None
        assert storage.salary.get_weekly(at(18)) is None

    def test_monthly_overlap(self, storage):
        # Week of Feb 26 - Mar 3 overlaps both February and March
        storage.salary.add_salary(self.record_for(datetime(2024, 2, 28, tzinfo=UTC)))
        storage.salary.add_salary(self.record_for(NOW))

        march = storage.salary.get_monthly(0, NOW)
        february = storage.salary.get_monthly(-1, NOW)

        assert [r.period_start.day for r in march] == [26, 11]
        assert [r.period_start.day for r in february] == [26]
