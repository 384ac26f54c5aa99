"""Block scheduling engine for blockplanner."""

from blockplanner.engine.intervals import InvalidRangeError, assert_valid_range, overlaps, parse_instant
from blockplanner.engine.conflicts import (
    ConflictDetail,
    ConflictKind,
    ConflictMode,
    TimeRange,
    find_conflicts,
    suggest_alternative_slots,
)
from blockplanner.engine.meetings import (
    detect_meetings,
    find_overlapping_meetings,
    meeting_minutes_during_block,
    next_resume_time,
    pause_blocks_for_meetings,
)
from blockplanner.engine.scheduling import (
    BlockNotFoundError,
    BlockSchedulingService,
    BlockTypeNotFoundError,
    RescheduleResult,
    ScheduleResult,
)

__all__ = [
    "InvalidRangeError",
    "assert_valid_range",
    "overlaps",
    "parse_instant",
    "ConflictDetail",
    "ConflictKind",
    "ConflictMode",
    "TimeRange",
    "find_conflicts",
    "suggest_alternative_slots",
    "detect_meetings",
    "find_overlapping_meetings",
    "meeting_minutes_during_block",
    "next_resume_time",
    "pause_blocks_for_meetings",
    "BlockNotFoundError",
    "BlockSchedulingService",
    "BlockTypeNotFoundError",
    "RescheduleResult",
    "ScheduleResult",
]
