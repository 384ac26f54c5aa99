"""Format queued notifications and hand them to a notification surface."""

import logging
import time
from typing import Any, Callable, Dict, Optional

from blockplanner.models.constants import (
    DEFAULT_UPCOMING_WARNING_MINUTES,
    NOTIFICATION_ACTION_TYPE_ID,
    PERMISSION_CHECK_INTERVAL_SEC,
)
from blockplanner.models.notification import NotificationQueueItem, NotificationType, dump_payload
from blockplanner.models.timeutil import isoformat_utc
from blockplanner.notifications.surface import NotificationSurface

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_NAME = "Scheduled block"

TITLES = {
    NotificationType.BLOCK_UPCOMING.value: "Block starting soon",
    NotificationType.BLOCK_START.value: "Block in progress",
    NotificationType.BLOCK_PAUSED.value: "Block paused for meeting",
    NotificationType.BLOCK_RESUMED.value: "Block resumed",
    NotificationType.STANDUP.value: "Daily standup reminder",
}


def _type_value(notification_type) -> str:
    return notification_type.value if hasattr(notification_type, "value") else str(notification_type)


def resolve_title(notification_type) -> str:
    return TITLES.get(_type_value(notification_type), "blockplanner")


def resolve_body(item: NotificationQueueItem) -> str:
    """Human-readable notification text for a queue item."""
    notification_type = _type_value(item.type)
    payload = dump_payload(item.payload) or {}

    if notification_type == NotificationType.STANDUP.value:
        standup = payload.get("time")
        if isinstance(standup, str) and standup:
            return f"Standup starts at {standup}."
        return "Time for the daily standup check-in."

    name = payload.get("block_name")
    if not isinstance(name, str) or not name:
        name = DEFAULT_BLOCK_NAME

    if notification_type == NotificationType.BLOCK_UPCOMING.value:
        minutes = payload.get("lead_minutes")
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
            minutes = DEFAULT_UPCOMING_WARNING_MINUTES
        return f"{name} begins in {minutes:g} minutes."
    if notification_type == NotificationType.BLOCK_START.value:
        return f"{name} is starting now."
    if notification_type == NotificationType.BLOCK_PAUSED.value:
        return f"{name} paused due to a meeting."
    if notification_type == NotificationType.BLOCK_RESUMED.value:
        return "Meeting ended, your block has resumed."
    return "You have a new update."


def build_extra(item: NotificationQueueItem) -> Dict[str, Any]:
    """Payload echoed back by the surface when the user acts on a notification."""
    extra: Dict[str, Any] = dict(dump_payload(item.payload) or {})
    extra.update(
        {
            "type": _type_value(item.type),
            "queue_item_id": item.id,
            "target_time": isoformat_utc(item.target_time),
            "action_type_id": NOTIFICATION_ACTION_TYPE_ID,
        }
    )
    return extra


class NotificationSender:
    """Deliver queue items through a surface, checking permission first.

    Permission is requested at most once per `permission_check_interval_seconds`;
    between requests only the current grant is consulted.
    """

    def __init__(
        self,
        surface: NotificationSurface,
        permission_check_interval_seconds: float = PERMISSION_CHECK_INTERVAL_SEC,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.surface = surface
        self.permission_check_interval_seconds = permission_check_interval_seconds
        self._monotonic = monotonic
        self._last_permission_request: Optional[float] = None

    def ensure_permission(self) -> bool:
        now = self._monotonic()
        if (
            self._last_permission_request is not None
            and now - self._last_permission_request < self.permission_check_interval_seconds
        ):
            return bool(self.surface.is_permission_granted())

        self._last_permission_request = now
        granted = bool(self.surface.is_permission_granted())
        if not granted:
            granted = bool(self.surface.request_permission())
        return granted

    def send(self, item: NotificationQueueItem, sound_enabled: bool = True) -> bool:
        """Display one queue item. Returns False when permission is denied."""
        if not self.ensure_permission():
            logger.warning(f"Notifications disabled by user; skipping {item.id}")
            return False

        self.surface.send(resolve_title(item.type), resolve_body(item), build_extra(item), sound_enabled)
        logger.debug(f"Sent notification {item.id} ({_type_value(item.type)})")
        return True
