"""Pure notification scheduling.

Computes candidate notifications for a set of block instances and the user's
preferences. Nothing here touches the database or the clock beyond the `now`
argument, so identical inputs give identical output apart from generated ids.
"""

import logging
import math
import uuid
from datetime import datetime, time as dtime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from blockplanner.models.block import TIME_OF_DAY_RE, BlockInstance, BlockStatus
from blockplanner.models.constants import DEFAULT_UPCOMING_WARNING_MINUTES
from blockplanner.models.notification import (
    BlockPayload,
    NotificationPayload,
    NotificationType,
    ScheduledNotification,
    StandupPayload,
)
from blockplanner.models.preferences import UserPreferences
from blockplanner.models.timeutil import ensure_utc, isoformat_utc, utc_now

logger = logging.getLogger(__name__)

BlockTypeMeta = Mapping[str, Mapping[str, Optional[str]]]


def _notification(
    user_id: str,
    notification_type: NotificationType,
    target: datetime,
    payload: NotificationPayload,
) -> ScheduledNotification:
    return ScheduledNotification(
        id=str(uuid.uuid4()),
        user_id=user_id,
        type=notification_type,
        target_time=target,
        payload=payload,
    )


def resolve_lead_minutes(preferences: Optional[UserPreferences], default: float) -> float:
    """Lead time for the upcoming warning.

    A preference of 0 is honored. Missing, non-finite or negative values fall back
    to `default`.
    """
    candidates = []
    if preferences is not None and preferences.notification_lead_time_minutes is not None:
        candidates.append(preferences.notification_lead_time_minutes)
    candidates.append(default)
    for value in candidates:
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(minutes) and minutes >= 0:
            return minutes
    return float(DEFAULT_UPCOMING_WARNING_MINUTES)


def _parse_standup(standup_time: Optional[str]) -> Optional[dtime]:
    if not standup_time:
        return None
    if not TIME_OF_DAY_RE.match(standup_time):
        logger.debug(f"Ignoring invalid standup time {standup_time!r}")
        return None
    hours, minutes = standup_time.split(":")[:2]
    return dtime(int(hours), int(minutes))


def next_standup_time(standup_time: Optional[str], now: datetime, tz_name: str = "UTC") -> Optional[datetime]:
    """Next standup occurrence strictly after `now`.

    Today's occurrence in `tz_name` is used unless it is at or before `now`, in which
    case it rolls forward exactly one day. Returns None for a missing or invalid time.
    """
    at = _parse_standup(standup_time)
    if at is None:
        return None
    tz = ZoneInfo(tz_name or "UTC")
    local_now = ensure_utc(now).astimezone(tz)
    candidate = datetime.combine(local_now.date(), at, tzinfo=tz)
    if ensure_utc(candidate) <= ensure_utc(now):
        candidate = datetime.combine(local_now.date() + timedelta(days=1), at, tzinfo=tz)
    return ensure_utc(candidate)


def schedule_block_notifications(
    user_id: str,
    blocks: Iterable[BlockInstance],
    now: Optional[datetime] = None,
    upcoming_warning_minutes: float = DEFAULT_UPCOMING_WARNING_MINUTES,
    standup_time: Optional[str] = None,
    preferences: Optional[UserPreferences] = None,
    block_type_meta: Optional[BlockTypeMeta] = None,
) -> List[ScheduledNotification]:
    """Compute the notifications a user should receive for `blocks`.

    For every block: an upcoming warning at `start - lead`, a start alert at
    `start`, and a resume alert at `paused_until` for paused blocks. A daily
    standup reminder is added when a standup time is configured. Only targets
    strictly after `now` are emitted, and nothing at all when the user disabled
    notifications.

    Args:
        user_id: Owning user
        blocks: Block instances to consider
        now: Reference instant (defaults to the current time)
        upcoming_warning_minutes: Default lead time when preferences do not set one
        standup_time: "HH:MM" standup time (falls back to the preference)
        preferences: User preferences (None means defaults)
        block_type_meta: Block type id -> {"name", "color"} for payload display

    Returns:
        Candidate notifications in block order, standup last
    """
    if preferences is not None and not preferences.notifications_enabled:
        return []

    now = ensure_utc(now) if now is not None else utc_now()
    meta = block_type_meta or {}
    lead_minutes = resolve_lead_minutes(preferences, upcoming_warning_minutes)
    lead = timedelta(minutes=lead_minutes)
    notifications: List[ScheduledNotification] = []

    for block in blocks:
        start = ensure_utc(block.planned_start)
        block_meta: Dict = dict(meta.get(block.block_type_id) or {})
        base = {
            "block_name": block_meta.get("name"),
            "block_color": block_meta.get("color"),
            "block_type_id": block.block_type_id,
            "block_instance_id": block.id,
            "start_time": isoformat_utc(start),
        }

        upcoming_at = start - lead
        if upcoming_at > now:
            payload = BlockPayload(**base, lead_minutes=lead_minutes)
            notifications.append(_notification(user_id, NotificationType.BLOCK_UPCOMING, upcoming_at, payload))

        if start > now:
            notifications.append(_notification(user_id, NotificationType.BLOCK_START, start, BlockPayload(**base)))

        if block.status == BlockStatus.PAUSED and block.paused_until is not None:
            resume_at = ensure_utc(block.paused_until)
            if resume_at > now:
                notifications.append(
                    _notification(user_id, NotificationType.BLOCK_RESUMED, resume_at, BlockPayload(**base))
                )

    standup = standup_time
    if standup is None and preferences is not None:
        standup = preferences.standup_time
    tz_name = preferences.timezone if preferences is not None else "UTC"
    standup_at = next_standup_time(standup, now, tz_name)
    if standup_at is not None:
        notifications.append(
            _notification(user_id, NotificationType.STANDUP, standup_at, StandupPayload(time=standup[:5]))
        )

    return notifications
