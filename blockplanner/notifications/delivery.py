"""Periodic delivery of due notifications for one user."""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from blockplanner.database.preferences_repository import UserPreferencesRepository
from blockplanner.models.constants import DELIVERY_INTERVAL_SEC
from blockplanner.models.timeutil import utc_now
from blockplanner.notifications.queue import NotificationQueueService
from blockplanner.notifications.sender import NotificationSender

logger = logging.getLogger(__name__)


class DeliveryRunner:
    """Sends due queue items through a `NotificationSender` and marks them sent.

    Delivery is at-least-once: if dispatching an item raises, the items sent
    before it are marked and everything from the failing item on is retried on the
    next tick.
    """

    def __init__(
        self,
        user_id: str,
        session_factory,
        sender: NotificationSender,
        *,
        scheduler: Optional[BackgroundScheduler] = None,
        interval_seconds: float = DELIVERY_INTERVAL_SEC,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.user_id = user_id
        self.session_factory = session_factory
        self.sender = sender
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone="UTC")
        self.job_id = f"notification-delivery:{user_id}"

        self._lock = threading.Lock()
        self._running = False
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def tick(self) -> int:
        """Deliver due notifications; returns how many were marked sent."""
        with self._lock:
            if self._running:
                return 0
            self._running = True

        try:
            return self._deliver_due()
        except Exception as e:
            logger.exception(f"Notification delivery tick failed for user {self.user_id}: {type(e).__name__}: {str(e)}")
            return 0
        finally:
            with self._lock:
                self._running = False

    def _deliver_due(self) -> int:
        db = self.session_factory()
        try:
            queue = NotificationQueueService(db)
            due = queue.list_due_notifications(self.user_id, now=self._clock())
            if not due:
                return 0

            preferences = UserPreferencesRepository(db).get(self.user_id)
            sound_enabled = preferences.notification_sound_enabled if preferences else True

            dispatched: List[str] = []
            for item in due:
                try:
                    self.sender.send(item, sound_enabled=sound_enabled)
                except Exception as e:
                    logger.error(
                        f"Failed to deliver notification {item.id} for user {self.user_id}: "
                        f"{type(e).__name__}: {str(e)}"
                    )
                    break
                dispatched.append(item.id)

            queue.mark_sent(dispatched, when=self._clock())
            if dispatched:
                logger.info(f"Delivered {len(dispatched)} of {len(due)} due notifications for user {self.user_id}")
            return len(dispatched)
        finally:
            db.close()

    def start(self) -> None:
        """Start the interval job (first run immediately). Calling twice is a no-op."""
        if self._started:
            return
        self._started = True
        self.scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=self.job_id,
            name=f"Notification delivery ({self.user_id})",
            next_run_time=utc_now(),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Notification delivery started for user {self.user_id}")

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        try:
            self.scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info(f"Notification delivery stopped for user {self.user_id}")
