"""Data models for blockplanner."""

from blockplanner.models.block import BlockStatus, BlockType, BlockTypeCreate, BlockInstance, CalendarEvent
from blockplanner.models.preferences import UserPreferences, default_preferences
from blockplanner.models.notification import (
    NotificationType,
    BlockPayload,
    StandupPayload,
    ScheduledNotification,
    NotificationQueueItem,
    NotificationDraft,
)
from blockplanner.models.user import User

__all__ = [
    "BlockStatus",
    "BlockType",
    "BlockTypeCreate",
    "BlockInstance",
    "CalendarEvent",
    "UserPreferences",
    "default_preferences",
    "NotificationType",
    "BlockPayload",
    "StandupPayload",
    "ScheduledNotification",
    "NotificationQueueItem",
    "NotificationDraft",
    "User",
]
