"""
Action scheduler tests.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from pricewatch.database.models import ActionConfig, ActionType
from pricewatch.scheduler import ActionScheduler, SchedulerState


def _processor(action_type: ActionType, result=0) -> Mock:
    processor = Mock()
    processor.action_type = action_type
    processor.process_next.return_value = result
    return processor


def _config_repo(*configs: ActionConfig) -> Mock:
    repo = Mock()
    repo.find_enabled.return_value = list(configs)
    return repo


@pytest.fixture
def scheduler_factory():
    """Build schedulers and stop them after the test."""
    created = []

    def factory(*args, **kwargs):
        scheduler = ActionScheduler(*args, **kwargs)
        created.append(scheduler)
        return scheduler

    yield factory
    for scheduler in created:
        scheduler.stop()


class TestActionScheduler:
    """Test per-type dispatch."""

    def test_fires_immediately(self, scheduler_factory):
        """Should tick once right after start."""
        fired = threading.Event()
        processor = _processor(ActionType.NOTIFY_PRICE)
        processor.process_next.side_effect = lambda limit: fired.set() or 0
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.NOTIFY_PRICE, interval_minutes=60)),
            batch_limit=7,
        )

        scheduler.start()

        assert fired.wait(timeout=5)
        processor.process_next.assert_called_with(7)

    def test_repeats_at_interval(self, scheduler_factory):
        """Should keep ticking every interval."""
        ticks = []
        done = threading.Event()

        def tick(limit):
            ticks.append(limit)
            if len(ticks) >= 3:
                done.set()
            return 0

        processor = _processor(ActionType.CHECK_PRODUCT)
        processor.process_next.side_effect = tick
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.CHECK_PRODUCT, interval_minutes=0.1 / 60)),
        )

        scheduler.start()

        assert done.wait(timeout=5)

    def test_tick_errors_do_not_stop_schedule(self, scheduler_factory):
        """Should keep ticking after a processor raises."""
        calls = []
        done = threading.Event()

        def tick(limit):
            calls.append(limit)
            if len(calls) >= 2:
                done.set()
            raise RuntimeError("catalog down")

        processor = _processor(ActionType.CHECK_PRODUCT)
        processor.process_next.side_effect = tick
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.CHECK_PRODUCT, interval_minutes=0.1 / 60)),
        )

        scheduler.start()

        assert done.wait(timeout=5)

    def test_unknown_processor_skipped(self, scheduler_factory):
        """Should schedule the types it has processors for."""
        fired = threading.Event()
        processor = _processor(ActionType.ADD_PRODUCT)
        processor.process_next.side_effect = lambda limit: fired.set() or 0
        scheduler = scheduler_factory(
            [processor],
            _config_repo(
                ActionConfig(ActionType.LINK_ACCOUNTS, interval_minutes=60),
                ActionConfig(ActionType.ADD_PRODUCT, interval_minutes=60),
            ),
        )

        scheduled = scheduler.start()

        assert scheduled == [ActionType.ADD_PRODUCT]
        assert fired.wait(timeout=5)

    def test_only_enabled_configs(self, scheduler_factory):
        """Should schedule nothing when no config is enabled."""
        processor = _processor(ActionType.ADD_PRODUCT)
        scheduler = scheduler_factory([processor], _config_repo())

        assert scheduler.start() == []
        time.sleep(0.2)
        processor.process_next.assert_not_called()

    def test_ticks_of_one_type_do_not_overlap(self, scheduler_factory):
        """Should never run two ticks of a type at once."""
        running = []
        overlaps = []
        done = threading.Event()
        lock = threading.Lock()

        def tick(limit):
            with lock:
                if running:
                    overlaps.append(True)
                running.append(True)
            time.sleep(0.3)
            with lock:
                running.pop()
            done.set()
            return 0

        processor = _processor(ActionType.CHECK_PRODUCT)
        processor.process_next.side_effect = tick
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.CHECK_PRODUCT, interval_minutes=0.05 / 60)),
        )

        scheduler.start()
        assert done.wait(timeout=5)
        time.sleep(0.5)
        scheduler.stop()

        assert overlaps == []


class TestSchedulerLifecycle:
    """Test start and stop transitions."""

    def test_stop_is_idempotent(self, scheduler_factory):
        """Should allow stopping twice."""
        scheduler = scheduler_factory([], _config_repo())
        scheduler.start()

        scheduler.stop()
        scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED
        assert scheduler.wait(timeout=0) is True

    def test_cannot_restart(self, scheduler_factory):
        """Should refuse to start after stop."""
        scheduler = scheduler_factory([], _config_repo())
        scheduler.start()
        scheduler.stop()

        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_cannot_start_twice(self, scheduler_factory):
        """Should refuse a second start."""
        scheduler = scheduler_factory([], _config_repo())
        scheduler.start()

        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_stop_before_start(self, scheduler_factory):
        """Should move straight to stopped."""
        scheduler = scheduler_factory([], _config_repo())

        scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED
        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_stop_does_not_wait_for_ticks(self, scheduler_factory):
        """Should return while a tick is still running."""
        started = threading.Event()
        release = threading.Event()

        def tick(limit):
            started.set()
            release.wait(timeout=5)
            return 0

        processor = _processor(ActionType.CHECK_PRODUCT)
        processor.process_next.side_effect = tick
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.CHECK_PRODUCT, interval_minutes=60)),
        )
        scheduler.start()
        assert started.wait(timeout=5)

        begin = time.monotonic()
        scheduler.stop()
        elapsed = time.monotonic() - begin
        release.set()

        assert elapsed < 1
        assert not scheduler.is_running

    def test_drain_waits_for_running_tick(self, scheduler_factory):
        """Should block until an in-flight tick finishes."""
        started = threading.Event()
        release = threading.Event()
        finished = threading.Event()

        def tick(limit):
            started.set()
            release.wait(timeout=5)
            finished.set()
            return 0

        processor = _processor(ActionType.CHECK_PRODUCT)
        processor.process_next.side_effect = tick
        scheduler = scheduler_factory(
            [processor],
            _config_repo(ActionConfig(ActionType.CHECK_PRODUCT, interval_minutes=60)),
        )
        scheduler.start()
        assert started.wait(timeout=5)
        scheduler.stop()

        assert scheduler.drain(timeout=0.05) is False
        release.set()
        assert scheduler.drain(timeout=5) is True
        assert finished.is_set()

    def test_drain_when_idle(self, scheduler_factory):
        """Should return at once when nothing runs."""
        scheduler = scheduler_factory([], _config_repo())
        assert scheduler.drain(timeout=0) is True

    def test_wait_times_out_while_running(self, scheduler_factory):
        """Should report False while still running."""
        scheduler = scheduler_factory([], _config_repo())
        scheduler.start()

        assert scheduler.wait(timeout=0.05) is False
