"""Repository for UserPreferences database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from blockplanner.models.preferences import UserPreferences
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import UserPreferencesDB

logger = logging.getLogger(__name__)


class UserPreferencesRepository:
    """Repository for UserPreferences database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[UserPreferences]:
        """Get the preferences row for a user, or None if never saved."""
        with repository_errors(self.db, f"load preferences for user {user_id}", logger):
            row = self.db.query(UserPreferencesDB).filter(UserPreferencesDB.user_id == user_id).first()
            return row.to_pydantic() if row else None

    def upsert(self, preferences: UserPreferences) -> UserPreferences:
        """Create or replace the preferences row for `preferences.user_id`."""
        with repository_errors(self.db, f"save preferences for user {preferences.user_id}", logger):
            row = (
                self.db.query(UserPreferencesDB)
                .filter(UserPreferencesDB.user_id == preferences.user_id)
                .first()
            )
            if row is None:
                row = UserPreferencesDB(user_id=preferences.user_id)
                self.db.add(row)
            row.notifications_enabled = preferences.notifications_enabled
            row.notification_lead_time_minutes = preferences.notification_lead_time_minutes
            row.notification_sound_enabled = preferences.notification_sound_enabled
            row.standup_time = preferences.standup_time
            row.timezone = preferences.timezone
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Saved preferences for user {preferences.user_id}")
            return row.to_pydantic()
