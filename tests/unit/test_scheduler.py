"""Tests for the weekly job scheduler."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from batako.core.scheduler import Job, JobStatus, Scheduler, WeeklyTrigger, create_scheduler


class FakeClock:
    """Settable clock for driving the scheduler without sleeping."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# Wednesday 2024-03-13 12:00 UTC
WEDNESDAY_NOON = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)


class TestWeeklyTrigger:
    def test_later_same_day(self):
        trigger = WeeklyTrigger(weekday=2, hour=17, minute=16)

        assert trigger.next_fire_after(WEDNESDAY_NOON) == datetime(2024, 3, 13, 17, 16, tzinfo=UTC)

    def test_exact_fire_time_moves_to_next_week(self):
        trigger = WeeklyTrigger(weekday=2, hour=17, minute=16)
        fire = datetime(2024, 3, 13, 17, 16, tzinfo=UTC)

        assert trigger.next_fire_after(fire) == fire + timedelta(days=7)

    def test_day_already_passed_this_week(self):
        trigger = WeeklyTrigger(weekday=0, hour=9, minute=0)

        assert trigger.next_fire_after(WEDNESDAY_NOON) == datetime(2024, 3, 18, 9, 0, tzinfo=UTC)

    def test_local_timezone(self):
        trigger = WeeklyTrigger(weekday=2, hour=17, minute=16, timezone="Asia/Jakarta")

        fire = trigger.next_fire_after(WEDNESDAY_NOON)

        # 12:00 UTC is 19:00 in Jakarta, past 17:16 local
        assert fire.astimezone(UTC) == datetime(2024, 3, 20, 10, 16, tzinfo=UTC)

    def test_naive_instant_is_local_time(self):
        trigger = WeeklyTrigger(weekday=2, hour=17, minute=16, timezone="Asia/Jakarta")

        fire = trigger.next_fire_after(datetime(2024, 3, 13, 12, 0))

        assert fire.replace(tzinfo=None) == datetime(2024, 3, 13, 17, 16)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"weekday": 7, "hour": 0, "minute": 0},
            {"weekday": 0, "hour": 24, "minute": 0},
            {"weekday": 0, "hour": 0, "minute": 60},
            {"weekday": 0, "hour": 0, "minute": 0, "timezone": "Nowhere/City"},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            WeeklyTrigger(**kwargs)

    def test_describe(self):
        assert WeeklyTrigger(2, 17, 16).describe() == "wednesday 17:16 UTC"


class TestJob:
    def test_is_due(self):
        job = Job(
            job_id="j",
            name="J",
            trigger=WeeklyTrigger(2, 17, 16),
            callable=lambda: None,
            next_run_at=WEDNESDAY_NOON,
        )

        assert job.is_due(WEDNESDAY_NOON) is True
        assert job.is_due(WEDNESDAY_NOON - timedelta(seconds=1)) is False

    def test_cancelled_never_due(self):
        job = Job(
            job_id="j",
            name="J",
            trigger=WeeklyTrigger(2, 17, 16),
            callable=lambda: None,
            status=JobStatus.CANCELLED,
            next_run_at=WEDNESDAY_NOON,
        )

        assert job.is_due(WEDNESDAY_NOON) is False


class TestScheduler:
    def test_schedule_weekly_sets_next_run(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)

        job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: None, job_id="pay")

        job = scheduler.get_job(job_id)
        assert job_id == "pay"
        assert job.next_run_at == datetime(2024, 3, 13, 17, 16, tzinfo=UTC)
        assert job.status == JobStatus.PENDING

    def test_schedule_same_id_replaces(self):
        scheduler = Scheduler(clock=FakeClock(WEDNESDAY_NOON))

        scheduler.schedule_weekly("first", WeeklyTrigger(2, 17, 16), lambda: None, job_id="x")
        scheduler.schedule_weekly("second", WeeklyTrigger(3, 8, 0), lambda: None, job_id="x")

        assert len(scheduler.list_jobs()) == 1
        assert scheduler.get_job("x").name == "second"

    def test_run_pending_only_runs_due_jobs(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        calls = []
        scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: calls.append(clock()))

        assert scheduler.run_pending() == 0

        clock.advance(hours=5, minutes=16)
        assert scheduler.run_pending() == 1
        assert calls == [datetime(2024, 3, 13, 17, 16, tzinfo=UTC)]

    def test_reschedules_one_week_later(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: None)

        clock.now = datetime(2024, 3, 13, 17, 16, tzinfo=UTC)
        scheduler.run_pending()

        job = scheduler.get_job(job_id)
        assert job.run_count == 1
        assert job.last_run_at == clock.now
        assert job.next_run_at == datetime(2024, 3, 20, 17, 16, tzinfo=UTC)

    def test_failing_job_stays_scheduled(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        attempts = []

        def flaky():
            attempts.append(clock())
            if len(attempts) == 1:
                raise RuntimeError("database is locked")

        job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), flaky)

        clock.now = datetime(2024, 3, 13, 17, 16, tzinfo=UTC)
        scheduler.run_pending()

        job = scheduler.get_job(job_id)
        assert job.error_count == 1
        assert job.last_error == "database is locked"
        assert job.status == JobStatus.PENDING
        assert job.next_run_at == datetime(2024, 3, 20, 17, 16, tzinfo=UTC)

        clock.now = job.next_run_at
        scheduler.run_pending()

        assert job.run_count == 1
        assert job.last_error is None
        assert len(attempts) == 2

    def test_missed_firings_are_not_replayed(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        calls = []
        job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: calls.append(1))

        clock.advance(weeks=3)
        scheduler.run_pending()
        scheduler.run_pending()

        assert calls == [1]
        assert scheduler.get_job(job_id).next_run_at > clock.now

    def test_cancel(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        calls = []
        job_id = scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: calls.append(1))

        assert scheduler.cancel(job_id) is True
        clock.advance(days=1)
        scheduler.run_pending()

        assert calls == []
        assert scheduler.get_job(job_id).status == JobStatus.CANCELLED
        assert scheduler.cancel("missing") is False

    def test_list_jobs_filter(self):
        scheduler = Scheduler(clock=FakeClock(WEDNESDAY_NOON))
        keep = scheduler.schedule_weekly("a", WeeklyTrigger(0, 0, 0), lambda: None)
        drop = scheduler.schedule_weekly("b", WeeklyTrigger(1, 0, 0), lambda: None)
        scheduler.cancel(drop)

        pending = scheduler.list_jobs(JobStatus.PENDING)

        assert [job.job_id for job in pending] == [keep]

    def test_next_due_at(self):
        scheduler = Scheduler(clock=FakeClock(WEDNESDAY_NOON))
        assert scheduler.next_due_at() is None

        scheduler.schedule_weekly("late", WeeklyTrigger(4, 9, 0), lambda: None)
        scheduler.schedule_weekly("soon", WeeklyTrigger(2, 13, 0), lambda: None)

        assert scheduler.next_due_at() == datetime(2024, 3, 13, 13, 0, tzinfo=UTC)


class TestSchedulerThread:
    def test_start_runs_due_job_and_stop_joins(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        fired = threading.Event()
        scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), fired.set)
        clock.advance(hours=6)

        scheduler.start()
        try:
            assert fired.wait(timeout=5.0)
        finally:
            scheduler.stop(timeout=5.0)

        assert scheduler.is_running() is False

    def test_stop_wakes_sleeping_loop(self):
        scheduler = Scheduler(clock=FakeClock(WEDNESDAY_NOON), max_wait=3600)
        scheduler.schedule_weekly("pay", WeeklyTrigger(2, 17, 16), lambda: None)

        scheduler.start()
        assert scheduler.is_running() is True
        scheduler.stop(timeout=5.0)

        assert scheduler.is_running() is False
        assert scheduler._thread is None

    def test_in_flight_job_completes_before_stop_returns(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        started = threading.Event()
        release = threading.Event()
        finished = []

        def slow():
            started.set()
            release.wait(timeout=5.0)
            finished.append(True)

        scheduler.schedule_weekly("slow", WeeklyTrigger(2, 12, 30), slow)
        clock.advance(hours=1)
        scheduler.start()
        assert started.wait(timeout=5.0)

        stopper = threading.Thread(target=scheduler.stop)
        stopper.start()
        release.set()
        stopper.join(timeout=5.0)

        assert finished == [True]

    def test_restart_refused_while_timed_out_loop_is_alive(self):
        clock = FakeClock(WEDNESDAY_NOON)
        scheduler = Scheduler(clock=clock)
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5.0)

        scheduler.schedule_weekly("slow", WeeklyTrigger(2, 12, 30), slow)
        clock.advance(hours=1)
        scheduler.start()
        assert started.wait(timeout=5.0)

        scheduler.stop(timeout=0.05)
        old_thread = scheduler._thread
        try:
            assert old_thread is not None and old_thread.is_alive()
            with pytest.raises(RuntimeError, match="still finishing"):
                scheduler.start()
        finally:
            release.set()
            old_thread.join(timeout=5.0)

        scheduler.start()
        try:
            assert scheduler.is_running()
            assert scheduler._thread is not old_thread
        finally:
            scheduler.stop(timeout=5.0)

    def test_context_manager(self):
        with create_scheduler(clock=FakeClock(WEDNESDAY_NOON)) as scheduler:
            assert scheduler.is_running()

        assert not scheduler.is_running()
