"""Notification scheduling and delivery for blockplanner."""

from blockplanner.notifications.scheduler import schedule_block_notifications
from blockplanner.notifications.queue import NotificationQueueService
from blockplanner.notifications.scheduler_runner import SchedulerRunner
from blockplanner.notifications.delivery import DeliveryRunner
from blockplanner.notifications.sender import NotificationSender
from blockplanner.notifications.surface import LoggingNotificationSurface, NotificationSurface
from blockplanner.notifications.realtime import ChangeEvent, PauseNotificationWatcher, SqlAlchemyChangeFeed
from blockplanner.notifications.actions import NotificationActionHandler
from blockplanner.notifications.service import NotificationServiceHandle, start_notifications

__all__ = [
    "schedule_block_notifications",
    "NotificationQueueService",
    "SchedulerRunner",
    "DeliveryRunner",
    "NotificationSender",
    "LoggingNotificationSurface",
    "NotificationSurface",
    "ChangeEvent",
    "PauseNotificationWatcher",
    "SqlAlchemyChangeFeed",
    "NotificationActionHandler",
    "NotificationServiceHandle",
    "start_notifications",
]
