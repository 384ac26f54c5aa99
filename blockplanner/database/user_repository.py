"""Repository for User database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from blockplanner.models.user import User
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def create_or_update(self, user: User) -> User:
        """Create or update user (upsert).

        Args:
            user: User object to create or update

        Returns:
            Created or updated User object
        """
        user_db = self.db.query(UserDB).filter(UserDB.id == user.id).first()

        with repository_errors(self.db, f"save user {user.id}", logger):
            if user_db:
                user_db.email = user.email
                user_db.name = user.name
                user_db.updated_at = user.updated_at
            else:
                user_db = UserDB.from_pydantic(user)
                self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Saved user {user.id}: {user.email}")
            return user_db.to_pydantic()
