"""Handle user actions taken on delivered notifications (start, snooze, skip)."""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.models.block import BlockStatus
from blockplanner.models.constants import DEFAULT_SNOOZE_MINUTES
from blockplanner.models.notification import NotificationDraft, NotificationType, parse_payload, payload_model_for
from blockplanner.models.timeutil import utc_now
from blockplanner.notifications.queue import NotificationQueueService

logger = logging.getLogger(__name__)

ACTION_START = "start"
ACTION_SNOOZE = "snooze"
ACTION_SKIP = "skip"

NOTIFICATION_ACTIONS = (
    {"id": ACTION_START, "title": "Start"},
    {"id": ACTION_SNOOZE, "title": "Snooze 5 min"},
    {"id": ACTION_SKIP, "title": "Skip"},
)

_NOTIFICATION_TYPES = {t.value for t in NotificationType}


def _block_instance_id(extra: Dict[str, Any]) -> Optional[str]:
    value = extra.get("block_instance_id")
    if not isinstance(value, str):
        return None
    try:
        uuid.UUID(value)
    except ValueError:
        return None
    return value


class NotificationActionHandler:
    """Apply notification actions to block instances and the queue."""

    def __init__(self, user_id: str, session_factory, snooze_minutes: int = DEFAULT_SNOOZE_MINUTES, clock=utc_now):
        self.user_id = user_id
        self.session_factory = session_factory
        self.snooze_minutes = snooze_minutes
        self._clock = clock

    def handle(self, action_id: Optional[str], extra: Optional[Dict[str, Any]] = None) -> bool:
        """Apply one action. Returns True when something changed.

        Unknown actions and malformed context are ignored; errors are logged.
        """
        if not isinstance(action_id, str) or not action_id:
            return False
        extra = extra if isinstance(extra, dict) else {}

        try:
            if action_id == ACTION_START:
                return self._start(_block_instance_id(extra))
            if action_id == ACTION_SNOOZE:
                return self._snooze(extra)
            if action_id == ACTION_SKIP:
                return self._skip(_block_instance_id(extra))
        except Exception as e:
            logger.error(f"Notification action {action_id} failed for user {self.user_id}: {type(e).__name__}: {str(e)}")
            return False

        logger.debug(f"Ignoring unknown notification action {action_id!r}")
        return False

    def _start(self, block_id: Optional[str]) -> bool:
        if block_id is None:
            return False
        db = self.session_factory()
        try:
            blocks = BlockInstanceRepository(db)
            block = blocks.get(self.user_id, block_id)
            if block is None:
                return False
            if block.status not in (BlockStatus.SCHEDULED.value, BlockStatus.PAUSED.value):
                logger.warning(f"Start ignored for block {block_id}: invalid block status {block.status}")
                return False
            blocks.update_fields(
                self.user_id,
                block_id,
                {"status": BlockStatus.IN_PROGRESS, "actual_start": self._clock()},
            )
            return True
        finally:
            db.close()

    def _snooze(self, extra: Dict[str, Any]) -> bool:
        notification_type = extra.get("type")
        if not isinstance(notification_type, str):
            logger.error("Cannot snooze: missing notification type")
            return False
        if notification_type not in _NOTIFICATION_TYPES:
            logger.warning(f"Invalid notification type for snooze: {notification_type}")
            return False

        payload_fields = payload_model_for(notification_type).model_fields
        payload = parse_payload(notification_type, {k: v for k, v in extra.items() if k in payload_fields})
        draft = NotificationDraft(
            type=notification_type,
            target_time=self._clock() + timedelta(minutes=self.snooze_minutes),
            payload=payload,
        )
        db = self.session_factory()
        try:
            NotificationQueueService(db).enqueue(self.user_id, [draft])
        finally:
            db.close()
        logger.info(f"Snoozed {notification_type} notification for user {self.user_id} by {self.snooze_minutes} minutes")
        return True

    def _skip(self, block_id: Optional[str]) -> bool:
        if block_id is None:
            return False
        db = self.session_factory()
        try:
            blocks = BlockInstanceRepository(db)
            block = blocks.get(self.user_id, block_id)
            if block is None:
                return False
            if block.status == BlockStatus.COMPLETED.value:
                logger.warning(f"Skip ignored for block {block_id}: already completed")
                return False
            blocks.update_fields(self.user_id, block_id, {"status": BlockStatus.SKIPPED})
            return True
        finally:
            db.close()
