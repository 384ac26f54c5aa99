"""Block scheduling service for blockplanner.

Creates and moves block instances. Conflicts are a normal outcome, returned as
data so callers can confirm ("create anyway") or pick a suggested time.
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.engine.conflicts import (
    ConflictDetail,
    ConflictMode,
    TimeRange,
    find_conflicts,
    suggest_alternative_slots,
)
from blockplanner.engine.intervals import Instant, InvalidRangeError, assert_valid_range, parse_instant
from blockplanner.models.block import BlockInstance, BlockStatus
from blockplanner.models.constants import (
    DEFAULT_BLOCK_DURATION_MINUTES,
    SUGGESTION_HORIZON_HOURS,
    SUGGESTION_MAX_RESULTS,
    SUGGESTION_STEP_MINUTES,
)

logger = logging.getLogger(__name__)


class BlockNotFoundError(LookupError):
    """The block instance does not exist for this user."""


class BlockTypeNotFoundError(LookupError):
    """The block type does not exist or belongs to another user."""


class ScheduleResult(BaseModel):
    """Outcome of scheduling a new block instance."""

    created: Optional[BlockInstance] = Field(None, description="Persisted block (absent when blocked by conflicts)")
    conflicts: List[ConflictDetail] = Field(default_factory=list)


class RescheduleResult(BaseModel):
    """Outcome of moving an existing block instance."""

    updated: Optional[BlockInstance] = Field(None, description="Updated block (absent when blocked by conflicts)")
    conflicts: List[ConflictDetail] = Field(default_factory=list)


class BlockSchedulingService:
    """Create and reschedule block instances with conflict checks."""

    def __init__(self, db: Session):
        self.db = db
        self.blocks = BlockInstanceRepository(db)
        self.block_types = BlockTypeRepository(db)

    def schedule_block_instance(
        self,
        user_id: str,
        block_type_id: str,
        start: Instant,
        end: Optional[Instant] = None,
        *,
        strict_conflict_check: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR,
        allow_conflicts: bool = False,
        duration_minutes_fallback: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> ScheduleResult:
        """Create a block instance unless it conflicts (and conflicts are not allowed).

        When `end` is omitted it is derived from the block type's default duration,
        falling back to `duration_minutes_fallback` and then one hour when the stored
        duration is unusable.

        Raises:
            InvalidRangeError: If the range is malformed or empty
            BlockTypeNotFoundError: If the block type is not visible to the user
            RepositoryError: If persistence fails
        """
        try:
            start_dt = parse_instant(start)
        except InvalidRangeError as e:
            raise InvalidRangeError("Invalid start time") from e
        block_type = self.block_types.get(user_id, block_type_id)
        if block_type is None:
            raise BlockTypeNotFoundError(f"Block type {block_type_id} not found")
        if end is None:
            minutes = block_type.default_duration_minutes
            if not minutes or minutes <= 0:
                minutes = duration_minutes_fallback or DEFAULT_BLOCK_DURATION_MINUTES
            end = start_dt + timedelta(minutes=minutes)
        assert_valid_range(start_dt, end)
        end_dt = parse_instant(end)

        conflicts = find_conflicts(self.db, user_id, start_dt, end_dt, strict_conflict_check)
        if conflicts and not allow_conflicts:
            logger.debug(f"Not scheduling block for user {user_id}: {len(conflicts)} conflicts")
            return ScheduleResult(conflicts=conflicts)

        block = BlockInstance(
            id=str(uuid.uuid4()),
            user_id=user_id,
            block_type_id=block_type_id,
            planned_start=start_dt,
            planned_end=end_dt,
            status=BlockStatus.SCHEDULED,
            notes=notes,
        )
        created = self.blocks.create(block)
        logger.info(f"Scheduled block {created.id} for user {user_id} ({len(conflicts)} conflicts overridden)")
        return ScheduleResult(created=created, conflicts=conflicts)

    def reschedule_block_instance(
        self,
        user_id: str,
        block_instance_id: str,
        new_start: Instant,
        new_end: Instant,
        *,
        strict_conflict_check: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR,
        allow_conflicts: bool = False,
    ) -> RescheduleResult:
        """Move a block instance, ignoring the block itself during conflict detection.

        Raises:
            InvalidRangeError: If the range is malformed or empty
            BlockNotFoundError: If the block does not belong to the user
            RepositoryError: If persistence fails
        """
        assert_valid_range(new_start, new_end)
        start_dt = parse_instant(new_start)
        end_dt = parse_instant(new_end)

        conflicts = find_conflicts(
            self.db, user_id, start_dt, end_dt, strict_conflict_check, exclude_block_id=block_instance_id
        )
        if conflicts and not allow_conflicts:
            return RescheduleResult(conflicts=conflicts)

        updated = self.blocks.update_fields(
            user_id, block_instance_id, {"planned_start": start_dt, "planned_end": end_dt}
        )
        if updated is None:
            raise BlockNotFoundError(f"Block instance {block_instance_id} not found")
        logger.info(f"Rescheduled block {block_instance_id} for user {user_id}")
        return RescheduleResult(updated=updated, conflicts=conflicts)

    def suggest_times(
        self,
        user_id: str,
        start: Instant,
        end: Instant,
        mode: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR,
        *,
        exclude_block_id: Optional[str] = None,
        step_minutes: int = SUGGESTION_STEP_MINUTES,
        max_suggestions: int = SUGGESTION_MAX_RESULTS,
        horizon_hours: int = SUGGESTION_HORIZON_HOURS,
    ) -> List[TimeRange]:
        """Suggest free windows of the same length after `start`."""
        assert_valid_range(start, end)
        start_dt = parse_instant(start)
        end_dt = parse_instant(end)
        scan_end = start_dt + timedelta(hours=horizon_hours) + (end_dt - start_dt)
        known = find_conflicts(self.db, user_id, start_dt, scan_end, mode, exclude_block_id=exclude_block_id)
        return suggest_alternative_slots(
            known,
            start_dt,
            end_dt,
            step_minutes=step_minutes,
            max_suggestions=max_suggestions,
            horizon_hours=horizon_hours,
        )
