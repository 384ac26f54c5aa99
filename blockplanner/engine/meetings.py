"""Meeting detection over mirrored calendar events.

A meeting is a calendar event. It is active while `start <= now < end`. Blocks
that a running meeting overlaps are paused until the meeting is over.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence
from pydantic import BaseModel
from sqlalchemy.orm import Session

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.calendar_event_repository import CalendarEventRepository
from blockplanner.engine.intervals import overlaps
from blockplanner.models.block import BlockInstance, BlockStatus, CalendarEvent
from blockplanner.models.timeutil import ensure_utc, utc_now

logger = logging.getLogger(__name__)

MEETING_PAUSE_REASON = "meeting"

_PAUSABLE_STATUSES = (BlockStatus.SCHEDULED.value, BlockStatus.IN_PROGRESS.value)


class ActiveMeeting(BaseModel):
    """A meeting in progress, with the first block it overlaps (if any)."""

    event: CalendarEvent
    overlapping_block: Optional[BlockInstance] = None


class MeetingOverlap(BaseModel):
    """A block and a meeting sharing time, whether or not the meeting is running."""

    event: CalendarEvent
    block: BlockInstance
    overlap_minutes: int


class MeetingDetection(BaseModel):
    active_meetings: List[ActiveMeeting]
    overlaps: List[MeetingOverlap]


def _overlaps_block(event: CalendarEvent, block: BlockInstance) -> bool:
    return overlaps(event.start_time, event.end_time, block.planned_start, block.planned_end)


def _is_active(event: CalendarEvent, now: datetime) -> bool:
    return ensure_utc(event.start_time) <= now < ensure_utc(event.end_time)


def _shared_seconds(event: CalendarEvent, block: BlockInstance) -> float:
    start = max(ensure_utc(event.start_time), ensure_utc(block.planned_start))
    end = min(ensure_utc(event.end_time), ensure_utc(block.planned_end))
    return max((end - start).total_seconds(), 0.0)


def find_overlapping_meetings(
    events: Sequence[CalendarEvent],
    blocks: Sequence[BlockInstance],
    now: Optional[datetime] = None,
) -> List[ActiveMeeting]:
    """Meetings running at `now`, each paired with the first block it overlaps."""
    now = ensure_utc(now) if now is not None else utc_now()
    active = []
    for event in events:
        if not _is_active(event, now):
            continue
        block = next((b for b in blocks if _overlaps_block(event, b)), None)
        active.append(ActiveMeeting(event=event, overlapping_block=block))
    return active


def meeting_minutes_during_block(event: CalendarEvent, block: BlockInstance) -> int:
    """Whole minutes of `block` taken up by `event` (partial minutes dropped)."""
    return int(_shared_seconds(event, block) // 60)


def detect_meetings(
    events: Sequence[CalendarEvent],
    blocks: Sequence[BlockInstance],
    now: Optional[datetime] = None,
) -> MeetingDetection:
    """Active meetings at `now`, plus every block/meeting pair that shares time.

    Overlap minutes are rounded to the nearest minute.
    """
    found = []
    for block in blocks:
        for event in events:
            if not _overlaps_block(event, block):
                continue
            minutes = int(math.floor(_shared_seconds(event, block) / 60 + 0.5))
            found.append(MeetingOverlap(event=event, block=block, overlap_minutes=minutes))
    return MeetingDetection(active_meetings=find_overlapping_meetings(events, blocks, now), overlaps=found)


def next_resume_time(block: BlockInstance, meetings: Sequence[CalendarEvent]) -> datetime:
    """When a block paused for `meetings` should pick up again.

    That is the latest end among the meetings overlapping the block, or the block's
    planned end when none of them do.
    """
    ends = [ensure_utc(m.end_time) for m in meetings if _overlaps_block(m, block)]
    if not ends:
        return ensure_utc(block.planned_end)
    return max(ends)


def pause_blocks_for_meetings(db: Session, user_id: str, now: Optional[datetime] = None) -> List[BlockInstance]:
    """Pause the user's running blocks that an active meeting overlaps.

    Only scheduled or in-progress blocks whose planned range contains `now` are
    considered. Each one is set to paused with `paused_until` from
    `next_resume_time`, which lets the notification pipeline send the paused
    alert now and the resumed alert later.

    Returns:
        The blocks that were paused

    Raises:
        RepositoryError: If reading or updating fails
    """
    now = ensure_utc(now) if now is not None else utc_now()
    instant_end = now + timedelta(microseconds=1)
    blocks = [
        b for b in BlockInstanceRepository(db).list_in_range(user_id, now, instant_end)
        if b.status in _PAUSABLE_STATUSES
    ]
    if not blocks:
        return []
    events = CalendarEventRepository(db).list_in_range(user_id, now, instant_end)
    active = [m.event for m in find_overlapping_meetings(events, blocks, now)]

    paused = []
    repository = BlockInstanceRepository(db)
    for block in blocks:
        meetings = [event for event in active if _overlaps_block(event, block)]
        if not meetings:
            continue
        resume_at = next_resume_time(block, meetings)
        updated = repository.update_fields(
            user_id,
            block.id,
            {"status": BlockStatus.PAUSED, "paused_until": resume_at, "pause_reason": MEETING_PAUSE_REASON},
        )
        if updated is not None:
            paused.append(updated)

    if paused:
        logger.info(f"Paused {len(paused)} blocks for meetings for user {user_id}")
    return paused
