"""
Unit tests for the weekly retraining schedule.
"""

import asyncio
from datetime import datetime

import pytest

from adaptive_review.ml.retraining_scheduler import RetrainingScheduler, next_run_time

SUNDAY = 6


class TestNextRunTime:
    """Tests for computing the next Sunday 03:00 UTC."""

    @pytest.mark.parametrize(
        "now,expected",
        [
            # Wednesday -> coming Sunday
            (datetime(2026, 10, 14, 10, 0), datetime(2026, 10, 18, 3, 0)),
            # Sunday before the hour -> today
            (datetime(2026, 10, 18, 2, 59), datetime(2026, 10, 18, 3, 0)),
            # Sunday exactly at the hour -> next week
            (datetime(2026, 10, 18, 3, 0), datetime(2026, 10, 25, 3, 0)),
            # Sunday after the hour -> next week
            (datetime(2026, 10, 18, 15, 30), datetime(2026, 10, 25, 3, 0)),
            # Saturday late -> tomorrow
            (datetime(2026, 10, 17, 23, 0), datetime(2026, 10, 18, 3, 0)),
        ],
    )
    def test_next_sunday(self, now, expected):
        assert next_run_time(now, SUNDAY, 3) == expected

    def test_result_always_in_future_within_a_week(self):
        now = datetime(2026, 10, 20, 8, 15)
        for weekday in range(7):
            target = next_run_time(now, weekday, 3)
            assert target > now
            assert (target - now).days < 7
            assert target.weekday() == weekday


class TestSchedulerLifecycle:
    """Tests for start/stop of the background task."""

    def test_seconds_until_next_run(self, settings, model_store):
        scheduler = RetrainingScheduler(model_store, settings=settings)
        assert scheduler.seconds_until_next_run(datetime(2026, 10, 18, 2, 0)) == 3600.0

    @pytest.mark.asyncio
    async def test_start_and_stop(self, settings, model_store):
        scheduler = RetrainingScheduler(model_store, settings=settings)

        await scheduler.start()
        assert scheduler.is_running
        assert scheduler.task is not None

        await scheduler.stop()
        assert not scheduler.is_running
        assert scheduler.task is None

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, settings, model_store):
        scheduler = RetrainingScheduler(model_store, settings=settings)
        await scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_failed_pass_logged_with_traceback_and_loop_survives(
        self, settings, model_store, log_records
    ):
        fast = settings.model_copy(
            update={"retrain_initial_delay_seconds": 0.0, "retrain_retry_seconds": 3600.0}
        )
        scheduler = RetrainingScheduler(model_store, settings=fast)

        async def failing_pass():
            raise RuntimeError("database unavailable")

        scheduler.run_once = failing_pass
        await scheduler.start()
        for _ in range(50):
            if any(r["level"].name == "ERROR" for r in log_records):
                break
            await asyncio.sleep(0)

        # Still alive, waiting out the retry delay
        assert not scheduler.task.done()
        await scheduler.stop()

        errors = [r for r in log_records if r["level"].name == "ERROR"]
        assert len(errors) == 1
        assert errors[0]["exception"] is not None
