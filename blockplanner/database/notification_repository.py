"""Repository for notification queue rows."""

import logging
from datetime import datetime
from typing import List, Sequence, Set

from sqlalchemy.orm import Session

from blockplanner.models.notification import NotificationQueueItem
from blockplanner.models.timeutil import to_db_time
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import NotificationQueueDB

logger = logging.getLogger(__name__)


class NotificationQueueRepository:
    """Persistence for the notification queue (single source of truth for sent state)."""

    def __init__(self, db: Session):
        self.db = db

    def insert_many(self, user_id: str, notifications: Sequence) -> List[NotificationQueueItem]:
        """Insert queue rows for scheduled notifications or drafts."""
        if not notifications:
            return []
        with repository_errors(self.db, f"enqueue {len(notifications)} notifications for user {user_id}", logger):
            rows = [NotificationQueueDB.from_notification(user_id, n) for n in notifications]
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
            logger.debug(f"Enqueued {len(rows)} notifications for user {user_id}")
            return [row.to_pydantic() for row in rows]

    def list_due(self, user_id: str, now: datetime, limit: int) -> List[NotificationQueueItem]:
        """Unsent rows with target_time <= now, oldest target first."""
        with repository_errors(self.db, f"list due notifications for user {user_id}", logger):
            rows = (
                self.db.query(NotificationQueueDB)
                .filter(
                    NotificationQueueDB.user_id == user_id,
                    NotificationQueueDB.sent_at.is_(None),
                    NotificationQueueDB.target_time <= to_db_time(now),
                )
                .order_by(NotificationQueueDB.target_time, NotificationQueueDB.created_at, NotificationQueueDB.id)
                .limit(limit)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def list_target_times(self, user_id: str, start: datetime, end: datetime) -> Set[datetime]:
        """Target times already queued (sent or not) in [start, end], as naive UTC."""
        with repository_errors(self.db, f"list queued target times for user {user_id}", logger):
            rows = (
                self.db.query(NotificationQueueDB.target_time)
                .filter(
                    NotificationQueueDB.user_id == user_id,
                    NotificationQueueDB.target_time >= to_db_time(start),
                    NotificationQueueDB.target_time <= to_db_time(end),
                )
                .all()
            )
            return {row[0] for row in rows}

    def list_for_user(self, user_id: str) -> List[NotificationQueueItem]:
        with repository_errors(self.db, f"list notifications for user {user_id}", logger):
            rows = (
                self.db.query(NotificationQueueDB)
                .filter(NotificationQueueDB.user_id == user_id)
                .order_by(NotificationQueueDB.target_time, NotificationQueueDB.id)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def mark_sent(self, ids: Sequence[str], when: datetime) -> int:
        """Set sent_at on unsent rows; rows already marked keep their original value."""
        if not ids:
            return 0
        with repository_errors(self.db, f"mark {len(ids)} notifications sent", logger):
            updated = (
                self.db.query(NotificationQueueDB)
                .filter(NotificationQueueDB.id.in_(list(ids)), NotificationQueueDB.sent_at.is_(None))
                .update({NotificationQueueDB.sent_at: to_db_time(when)}, synchronize_session=False)
            )
            self.db.commit()
            return int(updated)

    def delete_sent_before(self, user_id: str, cutoff: datetime) -> int:
        """Delete sent rows whose sent_at is older than cutoff."""
        with repository_errors(self.db, f"delete old notifications for user {user_id}", logger):
            deleted = (
                self.db.query(NotificationQueueDB)
                .filter(
                    NotificationQueueDB.user_id == user_id,
                    NotificationQueueDB.sent_at.isnot(None),
                    NotificationQueueDB.sent_at < to_db_time(cutoff),
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return int(deleted)
