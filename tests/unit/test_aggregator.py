"""Tests for the concurrent dashboard snapshot aggregator."""

import threading
from datetime import UTC, datetime

import pytest

from batako.core.errors import StoreError
from batako.rollups.aggregator import DashboardSnapshot, SnapshotAggregator, create_snapshot_aggregator
from batako.rollups.time_windows import compute_month_window
from batako.storage.models import (
    CementSummary,
    ProductionSummary,
    SalarySummary,
    SandSummary,
    TransactionSummary,
)

WINDOW = compute_month_window(datetime(2024, 3, 15, tzinfo=UTC), 0)


class FakeDashboard:
    """Dashboard reader recording calls; one branch can be made to fail."""

    def __init__(self, fail: str | None = None, error: Exception | None = None):
        self.fail = fail
        self.error = error or StoreError("Query timed out after 5.0s")
        self.calls: list[tuple[str, object]] = []
        self._lock = threading.Lock()

    def _read(self, name, window, value):
        with self._lock:
            self.calls.append((name, window))
        if name == self.fail:
            raise self.error
        return value

    def get_cement_summary(self, window):
        return self._read("cement", window, CementSummary(total_stock=2, total_quantity=40, total_price=2_080_000))

    def get_sand_summary(self, window):
        return self._read("sand", window, SandSummary(total_purchase=1, total_quantity=2, total_price=2_400_000))

    def get_production_summary(self, window):
        return self._read("production", window, ProductionSummary(total_production=120))

    def get_transaction_summary(self, window):
        return self._read("transaction", window, TransactionSummary(total_transaction=100, total_income=160_000))

    def get_salary_summary(self, window):
        return self._read("salary", window, SalarySummary(total_salary=54_000))


def test_snapshot_fully_populated():
    dashboard = FakeDashboard()

    snapshot = create_snapshot_aggregator(dashboard).build_snapshot(WINDOW)

    assert isinstance(snapshot, DashboardSnapshot)
    assert snapshot.window == WINDOW
    assert snapshot.production_summary.total_production == 120
    assert snapshot.salary_summary.total_salary == 54_000
    assert snapshot.transaction_summary.total_income == 160_000
    assert len(dashboard.calls) == 5


def test_every_branch_sees_the_same_window():
    dashboard = FakeDashboard()

    create_snapshot_aggregator(dashboard).build_snapshot(WINDOW)

    assert {window for _, window in dashboard.calls} == {WINDOW}


@pytest.mark.parametrize("failing", ["cement", "sand", "production", "transaction", "salary"])
def test_one_failing_branch_fails_whole_snapshot(failing):
    error = StoreError(f"{failing} read failed")
    dashboard = FakeDashboard(fail=failing, error=error)

    with pytest.raises(StoreError) as excinfo:
        create_snapshot_aggregator(dashboard).build_snapshot(WINDOW)

    # The original error object surfaces unchanged
    assert excinfo.value is error
    # Siblings were not cancelled: all five branches ran to completion
    assert sorted(name for name, _ in dashboard.calls) == ["cement", "production", "salary", "sand", "transaction"]


def test_waits_for_slow_siblings_before_raising():
    finished = threading.Event()

    def slow(window):
        finished.wait(timeout=0.2)
        finished.set()
        return "slow"

    def broken(window):
        raise StoreError("boom")

    aggregator = SnapshotAggregator({"slow": slow, "broken": broken})

    with pytest.raises(StoreError, match="boom"):
        aggregator.collect(WINDOW)

    assert finished.is_set()


def test_branches_run_concurrently():
    barrier = threading.Barrier(3, timeout=5.0)

    def branch(window):
        # Deadlocks (and times out) unless all three run at once
        barrier.wait()
        return window.unit

    aggregator = SnapshotAggregator({"a": branch, "b": branch, "c": branch})

    assert aggregator.collect(WINDOW) == {"a": "month", "b": "month", "c": "month"}


def test_first_collected_error_wins():
    second_may_fail = threading.Event()

    def early(window):
        raise StoreError("early")

    def late(window):
        second_may_fail.wait(timeout=0.5)
        raise StoreError("late")

    def gate(window):
        # Let "late" fail only after "early" had time to be collected
        threading.Timer(0.1, second_may_fail.set).start()
        return None

    aggregator = SnapshotAggregator({"early": early, "late": late, "gate": gate})

    with pytest.raises(StoreError, match="early"):
        aggregator.collect(WINDOW)


def test_requires_branches():
    with pytest.raises(ValueError):
        SnapshotAggregator({})


def test_build_monthly_uses_month_window():
    dashboard = FakeDashboard()
    aggregator = create_snapshot_aggregator(dashboard)

    snapshot = aggregator.build_monthly(-1, datetime(2024, 3, 15, tzinfo=UTC))

    assert snapshot.window.start == datetime(2024, 2, 1, tzinfo=UTC)
    assert snapshot.window.end == datetime(2024, 2, 29, 23, 59, 59, tzinfo=UTC)


def test_to_dict():
    snapshot = create_snapshot_aggregator(FakeDashboard()).build_snapshot(WINDOW)

    data = snapshot.to_dict()

    assert data["window"]["start"] == "2024-03-01T00:00:00+00:00"
    assert data["production_summary"] == {"total_production": 120}
    assert data["cement_summary"]["total_quantity"] == 40
    assert set(data) == {
        "window",
        "cement_summary",
        "sand_summary",
        "production_summary",
        "transaction_summary",
        "salary_summary",
    }
