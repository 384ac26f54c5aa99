"""Repository for BlockInstance database operations."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from blockplanner.models.block import BlockInstance, BlockStatus
from blockplanner.models.timeutil import to_db_time
from blockplanner.database.errors import repository_errors
from blockplanner.database.models import BlockInstanceDB, enum_to_value

logger = logging.getLogger(__name__)

_DATETIME_FIELDS = {"planned_start", "planned_end", "actual_start", "actual_end", "paused_until"}
_UPDATABLE_FIELDS = _DATETIME_FIELDS | {"status", "pause_reason", "notes"}


class BlockInstanceRepository:
    """Repository for BlockInstance database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, block: BlockInstance) -> BlockInstance:
        """Create a new block instance."""
        with repository_errors(self.db, f"create block instance {block.id}", logger):
            block_db = BlockInstanceDB.from_pydantic(block)
            self.db.add(block_db)
            self.db.commit()
            self.db.refresh(block_db)
            logger.debug(f"Created block instance {block.id} for user {block.user_id}")
            return block_db.to_pydantic()

    def create_batch(self, blocks: List[BlockInstance]) -> List[BlockInstance]:
        """Create multiple block instances in one transaction."""
        if not blocks:
            return []
        with repository_errors(self.db, "create block instances", logger):
            blocks_db = [BlockInstanceDB.from_pydantic(block) for block in blocks]
            self.db.add_all(blocks_db)
            self.db.commit()
            for block_db in blocks_db:
                self.db.refresh(block_db)
            logger.debug(f"Created {len(blocks)} block instances")
            return [block_db.to_pydantic() for block_db in blocks_db]

    def get(self, user_id: str, block_id: str) -> Optional[BlockInstance]:
        """Get a block instance by ID (user-scoped)."""
        with repository_errors(self.db, f"load block instance {block_id}", logger):
            row = (
                self.db.query(BlockInstanceDB)
                .filter(BlockInstanceDB.user_id == user_id, BlockInstanceDB.id == block_id)
                .first()
            )
            return row.to_pydantic() if row else None

    def list_in_range(self, user_id: str, start: datetime, end: datetime) -> List[BlockInstance]:
        """Blocks whose planned range intersects [start, end).

        Coarse filter: planned_start < end AND planned_end > start.
        """
        with repository_errors(self.db, f"list block instances for user {user_id}", logger):
            rows = (
                self.db.query(BlockInstanceDB)
                .filter(
                    BlockInstanceDB.user_id == user_id,
                    BlockInstanceDB.planned_start < to_db_time(end),
                    BlockInstanceDB.planned_end > to_db_time(start),
                )
                .order_by(BlockInstanceDB.planned_start, BlockInstanceDB.id)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def list_starting_in(self, user_id: str, start: datetime, end: datetime) -> List[BlockInstance]:
        """Blocks relevant to notifications in [start, end].

        Includes blocks whose planned start falls in the window, and paused blocks
        whose resume time falls in it.
        """
        s = to_db_time(start)
        e = to_db_time(end)
        with repository_errors(self.db, f"list upcoming block instances for user {user_id}", logger):
            rows = (
                self.db.query(BlockInstanceDB)
                .filter(
                    BlockInstanceDB.user_id == user_id,
                    or_(
                        and_(BlockInstanceDB.planned_start >= s, BlockInstanceDB.planned_start <= e),
                        and_(
                            BlockInstanceDB.status == BlockStatus.PAUSED.value,
                            BlockInstanceDB.paused_until >= s,
                            BlockInstanceDB.paused_until <= e,
                        ),
                    ),
                )
                .order_by(BlockInstanceDB.planned_start, BlockInstanceDB.id)
                .all()
            )
            return [row.to_pydantic() for row in rows]

    def list_planned_starts(self, block_type_id: str, start: datetime, end: datetime) -> List[datetime]:
        """Planned starts of a block type's instances in [start, end)."""
        with repository_errors(self.db, f"list planned starts for block type {block_type_id}", logger):
            rows = (
                self.db.query(BlockInstanceDB.planned_start)
                .filter(
                    BlockInstanceDB.block_type_id == block_type_id,
                    BlockInstanceDB.planned_start >= to_db_time(start),
                    BlockInstanceDB.planned_start < to_db_time(end),
                )
                .all()
            )
            return [row[0] for row in rows]

    def update_fields(self, user_id: str, block_id: str, fields: Dict[str, Any]) -> Optional[BlockInstance]:
        """Update selected fields of a block instance (user-scoped).

        Returns None when the block does not exist for the user.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update block instance fields: {sorted(unknown)}")
        with repository_errors(self.db, f"update block instance {block_id}", logger):
            row = (
                self.db.query(BlockInstanceDB)
                .filter(BlockInstanceDB.user_id == user_id, BlockInstanceDB.id == block_id)
                .first()
            )
            if row is None:
                return None
            for name, value in fields.items():
                if name in _DATETIME_FIELDS:
                    value = to_db_time(value)
                elif name == "status":
                    value = enum_to_value(value)
                setattr(row, name, value)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated block instance {block_id}: {sorted(fields)}")
            return row.to_pydantic()
