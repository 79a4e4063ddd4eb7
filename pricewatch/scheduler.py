"""
Periodic dispatch of pending actions to their processors.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from pricewatch.database.models import ActionConfig, ActionType
from pricewatch.database.repository import ActionConfigRepository
from pricewatch.processors.base import ActionProcessor

logger = logging.getLogger(__name__)

# Actions taken per tick
DEFAULT_BATCH_LIMIT = 10


class SchedulerState(str, Enum):
    UNSTARTED = "UNSTARTED"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class ActionScheduler:
    """
    Runs each enabled action type on its own interval.

    Each type fires once at start and then every interval_minutes. A
    type never has two ticks running at once; fire times missed while a
    tick runs are skipped.
    """

    def __init__(
        self,
        processors: Iterable[ActionProcessor],
        config_repo: ActionConfigRepository,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
    ):
        """
        Initialize scheduler.

        Args:
            processors: One processor per action type
            config_repo: Source of per-type interval settings
            batch_limit: Maximum actions handed to a processor per tick
        """
        self.processors: dict[ActionType, ActionProcessor] = {
            p.action_type: p for p in processors
        }
        self.config_repo = config_repo
        self.batch_limit = batch_limit
        self.state = SchedulerState.UNSTARTED

        self._scheduler = BackgroundScheduler()
        self._stopped = threading.Event()
        self._lock = threading.Lock()
        self._running_ticks = 0
        self._idle = threading.Condition()

    def start(self) -> list[ActionType]:
        """
        Bind enabled configs to processors and start ticking.

        Returns:
            Action types that were scheduled

        Raises:
            RuntimeError: If the scheduler was already started
        """
        with self._lock:
            if self.state != SchedulerState.UNSTARTED:
                raise RuntimeError(f"Scheduler cannot start from state {self.state.value}")

            scheduled = []
            for config in self.config_repo.find_enabled():
                processor = self.processors.get(config.action_type)
                if processor is None:
                    logger.warning(
                        f"No processor for {config.action_type.value}, skipping"
                    )
                    continue

                self._add_job(config, processor)
                scheduled.append(config.action_type)

            self._scheduler.start()
            self.state = SchedulerState.RUNNING

        logger.info(
            f"Scheduler started for {', '.join(t.value for t in scheduled) or 'no action types'}"
        )
        return scheduled

    def stop(self) -> None:
        """Stop scheduling new ticks. Running ticks are not waited for."""
        with self._lock:
            if self.state != SchedulerState.RUNNING:
                if self.state == SchedulerState.UNSTARTED:
                    self.state = SchedulerState.STOPPED
                    self._stopped.set()
                return

            self._scheduler.shutdown(wait=False)
            self.state = SchedulerState.STOPPED
            self._stopped.set()

        logger.info("Scheduler stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stopped, True if the scheduler stopped in time."""
        return self._stopped.wait(timeout)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Block until no tick is running, True if that happened in time."""
        with self._idle:
            return self._idle.wait_for(lambda: self._running_ticks == 0, timeout)

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def _add_job(self, config: ActionConfig, processor: ActionProcessor) -> None:
        self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=config.interval_minutes * 60,
            args=[processor],
            id=config.action_type.value,
            name=f"process {config.action_type.value}",
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            f"Scheduled {config.action_type.value} every {config.interval_minutes} minutes"
        )

    def _tick(self, processor: ActionProcessor) -> None:
        action_type = processor.action_type.value
        with self._idle:
            self._running_ticks += 1
        try:
            count = processor.process_next(self.batch_limit)
            logger.info(f"Processed {count} {action_type} actions")
        except Exception:
            logger.exception(f"Error processing {action_type} actions")
        finally:
            with self._idle:
                self._running_ticks -= 1
                self._idle.notify_all()
