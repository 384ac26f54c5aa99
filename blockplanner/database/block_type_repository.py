"""Repository for BlockType database operations."""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from blockplanner.models.block import BlockType, BlockTypeCreate
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import BlockTypeDB

logger = logging.getLogger(__name__)


class BlockTypeRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, data: BlockTypeCreate, *, block_type_id: Optional[str] = None) -> BlockType:
        row = BlockTypeDB(id=block_type_id or str(uuid.uuid4()), user_id=user_id, **data.model_dump())
        with repository_errors(self.db, f"create block type for user {user_id}", logger):
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_pydantic()

    def get(self, user_id: str, block_type_id: str) -> Optional[BlockType]:
        with repository_errors(self.db, f"load block type {block_type_id}", logger):
            row = (
                self.db.query(BlockTypeDB)
                .filter(BlockTypeDB.user_id == user_id, BlockTypeDB.id == block_type_id)
                .first()
            )
            return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str) -> List[BlockType]:
        with repository_errors(self.db, f"list block types for user {user_id}", logger):
            rows = (
                self.db.query(BlockTypeDB)
                .filter(BlockTypeDB.user_id == user_id)
                .order_by(BlockTypeDB.name)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def list_recurring(self, user_id: str) -> List[BlockType]:
        """Block types with recurrence and auto-create both enabled."""
        with repository_errors(self.db, f"list recurring block types for user {user_id}", logger):
            rows = (
                self.db.query(BlockTypeDB)
                .filter(
                    BlockTypeDB.user_id == user_id,
                    BlockTypeDB.recurring_enabled.is_(True),
                    BlockTypeDB.recurring_auto_create.is_(True),
                )
                .order_by(BlockTypeDB.created_at)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def display_meta(self, user_id: str, block_type_ids: List[str]) -> Dict[str, Dict[str, str]]:
        """Map block type id -> {"name", "color"} for notification payloads."""
        if not block_type_ids:
            return {}
        with repository_errors(self.db, f"load block type metadata for user {user_id}", logger):
            rows = (
                self.db.query(BlockTypeDB.id, BlockTypeDB.name, BlockTypeDB.color)
                .filter(BlockTypeDB.user_id == user_id, BlockTypeDB.id.in_(set(block_type_ids)))
                .all()
            )
            return {row[0]: {"name": row[1], "color": row[2]} for row in rows}
