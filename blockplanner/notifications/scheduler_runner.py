"""Periodic notification scheduling for one user.

Runs a scheduling pass on an APScheduler interval job and, when a change feed is
attached, after block or block type changes (debounced so a burst of writes
produces a single pass).
"""

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.models.constants import (
    DEFAULT_LOOKAHEAD_MINUTES,
    SCHEDULER_DEBOUNCE_SEC,
    SCHEDULER_INTERVAL_SEC,
    SCHEDULER_MIN_TICK_INTERVAL_SEC,
)
from blockplanner.models.timeutil import utc_now
from blockplanner.notifications.queue import NotificationQueueService

logger = logging.getLogger(__name__)

WATCHED_TABLES = ("block_instances", "block_types")


class SchedulerRunner:
    """Keeps a user's notification queue filled for the lookahead window."""

    def __init__(
        self,
        user_id: str,
        session_factory,
        *,
        scheduler: Optional[BackgroundScheduler] = None,
        change_feed=None,
        interval_seconds: float = SCHEDULER_INTERVAL_SEC,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
        debounce_seconds: float = SCHEDULER_DEBOUNCE_SEC,
        min_tick_interval_seconds: float = SCHEDULER_MIN_TICK_INTERVAL_SEC,
        listen_realtime: bool = True,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.user_id = user_id
        self.session_factory = session_factory
        self.change_feed = change_feed
        self.interval_seconds = interval_seconds
        self.lookahead_minutes = lookahead_minutes
        self.debounce_seconds = debounce_seconds
        self.min_tick_interval_seconds = min_tick_interval_seconds
        self.listen_realtime = listen_realtime
        self._clock = clock
        self._monotonic = monotonic

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone="UTC")
        self.job_id = f"notification-schedule:{user_id}"
        self.debounce_job_id = f"notification-schedule-debounce:{user_id}"

        self._lock = threading.Lock()
        self._running = False
        self._last_run: Optional[float] = None
        self._started = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def started(self) -> bool:
        return self._started

    def tick(self) -> bool:
        """Run one scheduling pass.

        Returns False when skipped (a pass is already running, or the previous pass
        finished less than `min_tick_interval_seconds` ago) or when it failed.
        """
        with self._lock:
            if self._running:
                return False
            if (
                self._last_run is not None
                and self._monotonic() - self._last_run < self.min_tick_interval_seconds
            ):
                logger.debug(f"Throttled scheduling tick for user {self.user_id}")
                return False
            self._running = True

        try:
            self._schedule_window()
            return True
        except Exception as e:
            logger.exception(f"Notification scheduling tick failed for user {self.user_id}: {type(e).__name__}: {str(e)}")
            return False
        finally:
            with self._lock:
                self._running = False
                self._last_run = self._monotonic()

    def _schedule_window(self) -> None:
        now = self._clock()
        cutoff = now + timedelta(minutes=self.lookahead_minutes)
        db = self.session_factory()
        try:
            blocks = BlockInstanceRepository(db).list_starting_in(self.user_id, now, cutoff)
            meta = BlockTypeRepository(db).display_meta(self.user_id, [b.block_type_id for b in blocks])
            NotificationQueueService(db).schedule_blocks(
                self.user_id,
                blocks,
                now=now,
                lookahead_minutes=self.lookahead_minutes,
                block_type_meta=meta,
            )
        finally:
            db.close()

    def request_debounced_tick(self) -> None:
        """Schedule a pass `debounce_seconds` from now, replacing any pending request."""
        if not self._started:
            return
        self.scheduler.add_job(
            self.tick,
            DateTrigger(run_date=utc_now() + timedelta(seconds=self.debounce_seconds)),
            id=self.debounce_job_id,
            name=f"Debounced notification scheduling ({self.user_id})",
            replace_existing=True,
        )

    def _on_change(self, event) -> None:
        if event.table in WATCHED_TABLES:
            self.request_debounced_tick()

    def start(self) -> None:
        """Start the interval job (first run immediately). Calling twice is a no-op."""
        if self._started:
            return
        self._started = True
        self.scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=self.job_id,
            name=f"Notification scheduling ({self.user_id})",
            next_run_time=utc_now(),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.listen_realtime and self.change_feed is not None:
            self._unsubscribe = self.change_feed.subscribe(self.user_id, self._on_change)
        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Notification scheduler started for user {self.user_id}")

    def stop(self) -> None:
        """Remove jobs and the change subscription. A pass already running completes."""
        if not self._started:
            return
        self._started = False
        for job_id in (self.job_id, self.debounce_job_id):
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info(f"Notification scheduler stopped for user {self.user_id}")
