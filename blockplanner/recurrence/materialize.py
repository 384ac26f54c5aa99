"""Materialize recurring block types into concrete block instances."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time as dtime, timedelta, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.models.block import BlockInstance, BlockStatus, BlockType
from blockplanner.models.timeutil import ensure_utc, from_db_time, utc_now

logger = logging.getLogger(__name__)


class GenerateResult(BaseModel):
    """Blocks created by one generation pass, and planned starts that already existed."""

    created: List[BlockInstance] = Field(default_factory=list)
    skipped: int = 0


def _daterange(start: date, end_exclusive: date) -> Iterable[date]:
    cur = start
    while cur < end_exclusive:
        yield cur
        cur = cur + timedelta(days=1)


def _sunday_first_weekday(d: date) -> int:
    # Python weekday: Monday=0 ... Sunday=6; block types store Sunday=0 ... Saturday=6
    return (d.weekday() + 1) % 7


def _parse_time_of_day(value: Optional[str]) -> Optional[dtime]:
    if not value:
        return None
    parts = [int(p) for p in value.split(":")]
    while len(parts) < 3:
        parts.append(0)
    return dtime(parts[0], parts[1], parts[2])


def generation_window(block_type: BlockType, start_date: datetime) -> tuple[datetime, datetime]:
    """[start of the start date's day, + weeks_in_advance weeks), in UTC."""
    day = ensure_utc(start_date).date()
    window_start = datetime.combine(day, dtime(0, 0), tzinfo=timezone.utc)
    weeks = max(block_type.recurring_weeks_in_advance or 1, 1)
    return window_start, window_start + timedelta(days=weeks * 7)


def planned_starts(block_type: BlockType, window_start: datetime, window_end: datetime, now: datetime) -> List[datetime]:
    """Planned starts on the configured weekdays inside the window, skipping past ones."""
    days = set(block_type.recurring_days_of_week or [])
    at = _parse_time_of_day(block_type.recurring_time_of_day)
    if not days or at is None:
        return []

    starts: List[datetime] = []
    for day in _daterange(window_start.date(), window_end.date()):
        if _sunday_first_weekday(day) not in days:
            continue
        start = datetime.combine(day, at, tzinfo=timezone.utc)
        if start < now:
            continue
        starts.append(start)
    return starts


def generate_recurring_blocks(
    db: Session,
    user_id: str,
    start_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> GenerateResult:
    """Create missing block instances for the user's auto-created recurring block types.

    Planned starts already present for a block type within its window are counted
    in `skipped` and left alone, so repeated runs are idempotent.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    start_date = ensure_utc(start_date) if start_date is not None else now

    block_types = BlockTypeRepository(db).list_recurring(user_id)
    blocks = BlockInstanceRepository(db)
    result = GenerateResult()

    for block_type in block_types:
        window_start, window_end = generation_window(block_type, start_date)
        starts = planned_starts(block_type, window_start, window_end, now)
        if not starts:
            continue

        existing = {from_db_time(s) for s in blocks.list_planned_starts(block_type.id, window_start, window_end)}
        to_create = [
            BlockInstance(
                id=str(uuid.uuid4()),
                user_id=user_id,
                block_type_id=block_type.id,
                planned_start=start,
                planned_end=start + timedelta(minutes=block_type.default_duration_minutes),
                status=BlockStatus.SCHEDULED,
            )
            for start in starts
            if start not in existing
        ]
        result.skipped += len(starts) - len(to_create)
        if to_create:
            result.created.extend(blocks.create_batch(to_create))

    if result.created:
        logger.info(f"Generated {len(result.created)} recurring blocks for user {user_id} ({result.skipped} skipped)")
    return result
