"""Conflict detection for proposed block windows.

Existing block instances and mirrored calendar events are candidate conflicts.
Each source is queried with a coarse range filter and every row is re-checked
with `overlaps` before it is reported.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.calendar_event_repository import CalendarEventRepository
from blockplanner.engine.intervals import Instant, overlaps, parse_instant
from blockplanner.models.constants import (
    SUGGESTION_HORIZON_HOURS,
    SUGGESTION_MAX_RESULTS,
    SUGGESTION_STEP_MINUTES,
)


class ConflictMode(str, Enum):
    """Which sources a proposed window is checked against."""
    NONE = "none"
    BLOCKS = "blocks"
    BLOCKS_AND_CALENDAR = "blocks_and_calendar"


class ConflictKind(str, Enum):
    BLOCK = "block"
    CALENDAR = "calendar"


class ConflictDetail(BaseModel):
    """An existing block or calendar event intersecting a proposed window."""

    kind: ConflictKind
    id: str
    title: Optional[str] = None
    start: datetime
    end: datetime

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class TimeRange(BaseModel):
    """A half-open [start, end) window."""

    start: datetime = Field(..., description="Inclusive start")
    end: datetime = Field(..., description="Exclusive end")


def find_conflicts(
    db: Session,
    user_id: str,
    start: Instant,
    end: Instant,
    mode: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR,
    exclude_block_id: Optional[str] = None,
) -> List[ConflictDetail]:
    """Report existing blocks (and calendar events) overlapping [start, end).

    Blocks are listed before calendar events; each group is ordered by start.
    Read-only.
    """
    mode = ConflictMode(mode)
    if mode == ConflictMode.NONE:
        return []

    s = parse_instant(start)
    e = parse_instant(end)
    conflicts: List[ConflictDetail] = []

    for block in BlockInstanceRepository(db).list_in_range(user_id, s, e):
        if exclude_block_id and block.id == exclude_block_id:
            continue
        if overlaps(block.planned_start, block.planned_end, s, e):
            conflicts.append(
                ConflictDetail(kind=ConflictKind.BLOCK, id=block.id, start=block.planned_start, end=block.planned_end)
            )

    if mode == ConflictMode.BLOCKS:
        return conflicts

    for event in CalendarEventRepository(db).list_in_range(user_id, s, e):
        if overlaps(event.start_time, event.end_time, s, e):
            conflicts.append(
                ConflictDetail(
                    kind=ConflictKind.CALENDAR,
                    id=event.id,
                    title=event.title,
                    start=event.start_time,
                    end=event.end_time,
                )
            )

    return conflicts


def suggest_alternative_slots(
    conflicts: Sequence[ConflictDetail],
    start: Instant,
    end: Instant,
    *,
    step_minutes: int = SUGGESTION_STEP_MINUTES,
    max_suggestions: int = SUGGESTION_MAX_RESULTS,
    horizon_hours: int = SUGGESTION_HORIZON_HOURS,
) -> List[TimeRange]:
    """Scan forward for same-length windows that avoid every known conflict.

    Candidates start at `start + step`, `start + 2*step`, ... up to
    `start + horizon`. The scan is bounded, so fewer than `max_suggestions`
    windows may be returned.

    Args:
        conflicts: Conflict set covering the whole horizon
        start: Requested start
        end: Requested end (defines the duration)
        step_minutes: Scan increment
        max_suggestions: Maximum windows returned
        horizon_hours: How far past the requested start to look

    Returns:
        Free windows in ascending order
    """
    s = parse_instant(start)
    e = parse_instant(end)
    duration = e - s
    step = timedelta(minutes=step_minutes)
    if step <= timedelta(0) or duration <= timedelta(0) or max_suggestions <= 0:
        return []

    horizon_end = s + timedelta(hours=horizon_hours)
    suggestions: List[TimeRange] = []
    candidate = s + step
    while candidate <= horizon_end and len(suggestions) < max_suggestions:
        candidate_end = candidate + duration
        if not any(overlaps(c.start, c.end, candidate, candidate_end) for c in conflicts):
            suggestions.append(TimeRange(start=candidate, end=candidate_end))
        candidate += step
    return suggestions
