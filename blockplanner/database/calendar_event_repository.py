"""Repository for mirrored external calendar events."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from blockplanner.models.block import CalendarEvent
from blockplanner.models.timeutil import to_db_time
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import CalendarEventDB

logger = logging.getLogger(__name__)


class CalendarEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_in_range(self, user_id: str, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Events whose range intersects [start, end) (start_time < end AND end_time > start)."""
        with repository_errors(self.db, f"list calendar events for user {user_id}", logger):
            rows = (
                self.db.query(CalendarEventDB)
                .filter(
                    CalendarEventDB.user_id == user_id,
                    CalendarEventDB.start_time < to_db_time(end),
                    CalendarEventDB.end_time > to_db_time(start),
                )
                .order_by(CalendarEventDB.start_time, CalendarEventDB.id)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def upsert(
        self,
        *,
        user_id: str,
        title: Optional[str],
        start_time: datetime,
        end_time: datetime,
        event_id: Optional[str] = None,
    ) -> CalendarEvent:
        """Insert or update one mirrored event (used by calendar import)."""
        with repository_errors(self.db, f"store calendar event for user {user_id}", logger):
            row = None
            if event_id is not None:
                row = (
                    self.db.query(CalendarEventDB)
                    .filter(CalendarEventDB.user_id == user_id, CalendarEventDB.id == event_id)
                    .first()
                )
            if row is None:
                row = CalendarEventDB(id=event_id or str(uuid.uuid4()), user_id=user_id)
                self.db.add(row)
            row.title = title
            row.start_time = to_db_time(start_time)
            row.end_time = to_db_time(end_time)
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()
