"""Notification queue service.

Persists scheduled notifications and tracks delivery. The queue table is the only
record of what was already scheduled or sent, so every scheduling pass dedups
against it before inserting.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from blockplanner.database.errors import RepositoryError
from blockplanner.database.notification_repository import NotificationQueueRepository
from blockplanner.database.preferences_repository import UserPreferencesRepository
from blockplanner.models.block import BlockInstance
from blockplanner.models.constants import (
    DEFAULT_DUE_LIMIT,
    DEFAULT_LOOKAHEAD_MINUTES,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_UPCOMING_WARNING_MINUTES,
)
from blockplanner.models.notification import NotificationQueueItem
from blockplanner.models.timeutil import ensure_utc, to_db_time, utc_now
from blockplanner.notifications.scheduler import BlockTypeMeta, schedule_block_notifications

logger = logging.getLogger(__name__)


class NotificationQueueService:
    """Queue operations for one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = NotificationQueueRepository(db)
        self.preferences = UserPreferencesRepository(db)

    def enqueue(self, user_id: str, notifications: Sequence) -> List[NotificationQueueItem]:
        """Insert notifications (scheduled candidates or drafts) as unsent rows."""
        if not notifications:
            return []
        return self.repository.insert_many(user_id, notifications)

    def list_due_notifications(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        limit: int = DEFAULT_DUE_LIMIT,
    ) -> List[NotificationQueueItem]:
        """Unsent notifications whose target time has passed, oldest first."""
        now = ensure_utc(now) if now is not None else utc_now()
        return self.repository.list_due(user_id, now, limit)

    def mark_sent(self, ids: Sequence[str], when: Optional[datetime] = None) -> int:
        """Record delivery. Rows that already carry a sent time are left alone."""
        if not ids:
            return 0
        return self.repository.mark_sent(ids, ensure_utc(when) if when is not None else utc_now())

    def schedule_blocks(
        self,
        user_id: str,
        blocks: Sequence[BlockInstance],
        now: Optional[datetime] = None,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
        block_type_meta: Optional[BlockTypeMeta] = None,
        upcoming_warning_minutes: float = DEFAULT_UPCOMING_WARNING_MINUTES,
    ) -> List[NotificationQueueItem]:
        """Compute notifications for `blocks` and enqueue the ones not yet queued.

        A candidate is dropped when its target is at or before `now`, after
        `now + lookahead`, or when a row (sent or not) already exists for the user at
        exactly the same target time. Candidates in one batch are only checked
        against persisted rows, so same-time alerts for different blocks all land.

        Returns:
            The inserted queue items
        """
        now = ensure_utc(now) if now is not None else utc_now()
        cutoff = now + timedelta(minutes=lookahead_minutes)

        preferences = self.preferences.get(user_id)
        candidates = schedule_block_notifications(
            user_id,
            blocks,
            now=now,
            upcoming_warning_minutes=upcoming_warning_minutes,
            standup_time=preferences.standup_time if preferences else None,
            preferences=preferences,
            block_type_meta=block_type_meta,
        )

        taken = self.repository.list_target_times(user_id, now, cutoff)
        fresh = []
        for candidate in candidates:
            target = ensure_utc(candidate.target_time)
            if target <= now or target > cutoff:
                continue
            key = to_db_time(target)
            if key in taken:
                continue
            fresh.append(candidate)

        if not fresh:
            logger.debug(f"No new notifications for user {user_id} ({len(candidates)} candidates)")
            return []

        inserted = self.enqueue(user_id, fresh)
        logger.info(f"Queued {len(inserted)} notifications for user {user_id}")
        return inserted

    def cleanup_old_notifications(self, user_id: str, days_to_keep: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete sent notifications older than the retention window.

        Failures are logged and swallowed; returns the number of rows removed.
        """
        cutoff = utc_now() - timedelta(days=days_to_keep)
        try:
            deleted = self.repository.delete_sent_before(user_id, cutoff)
        except RepositoryError as e:
            logger.error(f"Failed to clean up notifications for user {user_id}: {str(e)}")
            return 0
        if deleted:
            logger.info(f"Deleted {deleted} old notifications for user {user_id}")
        return deleted
