"""Request/response models for the blockplanner HTTP API."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from blockplanner.engine.conflicts import ConflictDetail, ConflictMode, TimeRange
from blockplanner.models.block import BlockInstance
from blockplanner.models.notification import NotificationQueueItem


class ScheduleBlockRequest(BaseModel):
    """Request model for scheduling a block instance."""
    block_type_id: str = Field(..., description="Block type to instantiate")
    start: str = Field(..., description="Planned start, ISO-8601")
    end: Optional[str] = Field(None, description="Planned end, ISO-8601 (defaults to the type's duration)")
    conflict_mode: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR
    allow_conflicts: bool = Field(False, description="Create even if the window conflicts")
    notes: Optional[str] = None


class RescheduleBlockRequest(BaseModel):
    """Request model for moving a block instance."""
    start: str
    end: str
    conflict_mode: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR
    allow_conflicts: bool = False


class ConflictCheckRequest(BaseModel):
    start: str
    end: str
    mode: ConflictMode = ConflictMode.BLOCKS_AND_CALENDAR
    exclude_block_id: Optional[str] = None


class BlockResponse(BaseModel):
    """A created or moved block, with any conflicts that were overridden."""
    block: BlockInstance
    conflicts: List[ConflictDetail] = Field(default_factory=list)


class ConflictReport(BaseModel):
    """Conflicts for a proposed window plus free alternatives."""
    conflicts: List[ConflictDetail]
    suggestions: List[TimeRange] = Field(default_factory=list)


class GenerateRecurringRequest(BaseModel):
    start_date: Optional[datetime] = Field(None, description="First day of the generation window (default today)")


class GenerateRecurringResponse(BaseModel):
    created: List[BlockInstance]
    skipped: int


class PreferencesUpdate(BaseModel):
    """Request model for saving notification preferences."""
    notifications_enabled: bool = True
    notification_lead_time_minutes: Optional[int] = None
    notification_sound_enabled: bool = True
    standup_time: Optional[str] = None
    timezone: str = "UTC"


class ReconcileResponse(BaseModel):
    queued: int
    notifications: List[NotificationQueueItem]


class NotificationActionRequest(BaseModel):
    """Action taken on a delivered notification (extra is the notification's extra)."""
    action_id: str = Field(..., description="start, snooze or skip")
    extra: Dict[str, Any] = Field(default_factory=dict)


class NotificationActionResponse(BaseModel):
    applied: bool
