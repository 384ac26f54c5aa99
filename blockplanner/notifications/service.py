"""Wire up the notification pipeline for one user."""

import logging
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from blockplanner.models.constants import (
    DEFAULT_LOOKAHEAD_MINUTES,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_SNOOZE_MINUTES,
    DELIVERY_INTERVAL_SEC,
    SCHEDULER_DEBOUNCE_SEC,
    SCHEDULER_INTERVAL_SEC,
    SCHEDULER_MIN_TICK_INTERVAL_SEC,
)
from blockplanner.notifications.actions import NotificationActionHandler
from blockplanner.notifications.delivery import DeliveryRunner
from blockplanner.notifications.queue import NotificationQueueService
from blockplanner.notifications.realtime import PauseNotificationWatcher, SqlAlchemyChangeFeed
from blockplanner.notifications.scheduler_runner import SchedulerRunner
from blockplanner.notifications.sender import NotificationSender
from blockplanner.notifications.surface import LoggingNotificationSurface, NotificationSurface

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_HOURS = 24


class NotificationServiceHandle:
    """Running notification pipeline. `stop()` tears everything down once."""

    def __init__(
        self,
        user_id: str,
        scheduler: BackgroundScheduler,
        scheduler_runner: SchedulerRunner,
        delivery_runner: DeliveryRunner,
        pause_watcher: Optional[PauseNotificationWatcher],
        action_handler: NotificationActionHandler,
        change_feed: Optional[SqlAlchemyChangeFeed],
        cleanup_job_id: Optional[str],
        owns_change_feed: bool,
        owns_scheduler: bool,
    ):
        self.user_id = user_id
        self.scheduler = scheduler
        self.scheduler_runner = scheduler_runner
        self.delivery_runner = delivery_runner
        self.pause_watcher = pause_watcher
        self.action_handler = action_handler
        self.change_feed = change_feed
        self.cleanup_job_id = cleanup_job_id
        self._owns_change_feed = owns_change_feed
        self._owns_scheduler = owns_scheduler
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def handle_action(self, action_id, extra=None) -> bool:
        return self.action_handler.handle(action_id, extra)

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.delivery_runner.stop()
        self.scheduler_runner.stop()
        if self.pause_watcher is not None:
            self.pause_watcher.stop()
        if self.cleanup_job_id is not None:
            try:
                self.scheduler.remove_job(self.cleanup_job_id)
            except JobLookupError:
                pass
        if self._owns_change_feed and self.change_feed is not None:
            self.change_feed.close()
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info(f"Notifications stopped for user {self.user_id}")


def _cleanup_job(user_id: str, session_factory, days_to_keep: int) -> None:
    db = session_factory()
    try:
        NotificationQueueService(db).cleanup_old_notifications(user_id, days_to_keep)
    finally:
        db.close()


def start_notifications(
    user_id: str,
    session_factory,
    surface: Optional[NotificationSurface] = None,
    *,
    change_feed: Optional[SqlAlchemyChangeFeed] = None,
    scheduler: Optional[BackgroundScheduler] = None,
    delivery_interval_seconds: float = DELIVERY_INTERVAL_SEC,
    schedule_interval_seconds: float = SCHEDULER_INTERVAL_SEC,
    lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    debounce_seconds: float = SCHEDULER_DEBOUNCE_SEC,
    min_tick_interval_seconds: float = SCHEDULER_MIN_TICK_INTERVAL_SEC,
    listen_realtime: bool = True,
    snooze_minutes: int = DEFAULT_SNOOZE_MINUTES,
    retention_days: Optional[int] = DEFAULT_RETENTION_DAYS,
) -> NotificationServiceHandle:
    """Start scheduling, delivery, pause alerts and action handling for a user.

    All periodic work shares one BackgroundScheduler. One created here is shut
    down by the returned handle on `stop()`; an injected one is left running.
    Pass `retention_days=None` to disable the daily cleanup of sent notifications.
    """
    owns_scheduler = scheduler is None
    scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone="UTC")
    owns_change_feed = False
    if listen_realtime and change_feed is None:
        change_feed = SqlAlchemyChangeFeed(session_factory)
        owns_change_feed = True

    sender = NotificationSender(surface if surface is not None else LoggingNotificationSurface())
    delivery = DeliveryRunner(
        user_id,
        session_factory,
        sender,
        scheduler=scheduler,
        interval_seconds=delivery_interval_seconds,
    )
    scheduling = SchedulerRunner(
        user_id,
        session_factory,
        scheduler=scheduler,
        change_feed=change_feed,
        interval_seconds=schedule_interval_seconds,
        lookahead_minutes=lookahead_minutes,
        debounce_seconds=debounce_seconds,
        min_tick_interval_seconds=min_tick_interval_seconds,
        listen_realtime=listen_realtime,
    )
    pause_watcher = None
    if change_feed is not None:
        pause_watcher = PauseNotificationWatcher(user_id, session_factory, change_feed)
    actions = NotificationActionHandler(user_id, session_factory, snooze_minutes=snooze_minutes)

    cleanup_job_id = None
    if retention_days is not None:
        cleanup_job_id = f"notification-cleanup:{user_id}"
        scheduler.add_job(
            _cleanup_job,
            IntervalTrigger(hours=CLEANUP_INTERVAL_HOURS),
            args=[user_id, session_factory, retention_days],
            id=cleanup_job_id,
            name=f"Notification cleanup ({user_id})",
            replace_existing=True,
        )

    delivery.start()
    scheduling.start()
    if pause_watcher is not None:
        pause_watcher.start()
    if not scheduler.running:
        scheduler.start()
    logger.info(f"Notifications started for user {user_id}")

    return NotificationServiceHandle(
        user_id=user_id,
        scheduler=scheduler,
        scheduler_runner=scheduling,
        delivery_runner=delivery,
        pause_watcher=pause_watcher,
        action_handler=actions,
        change_feed=change_feed,
        cleanup_job_id=cleanup_job_id,
        owns_change_feed=owns_change_feed,
        owns_scheduler=owns_scheduler,
    )
