"""Block type, block instance and calendar event models for blockplanner."""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from blockplanner.models.constants import DEFAULT_BLOCK_DURATION_MINUTES, DEFAULT_RECURRING_WEEKS_IN_ADVANCE
from blockplanner.models.timeutil import ensure_utc


HEX_COLOR_RE = re.compile(r"^#([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")
TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:([0-5]\d))?$")


class BlockStatus(str, Enum):
    """Block instance status enumeration."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class BlockTypeCreate(BaseModel):
    """Input for creating a block type (reusable template for block instances)."""

    name: str = Field(..., description="Display name")
    color: str = Field(..., description="Hex color, e.g. #3366FF")
    default_duration_minutes: int = Field(DEFAULT_BLOCK_DURATION_MINUTES, description="Default block length")
    pomodoro_focus_minutes: Optional[int] = None
    pomodoro_short_break_minutes: Optional[int] = None
    pomodoro_long_break_minutes: Optional[int] = None
    pomodoro_sessions_before_long_break: Optional[int] = None
    recurring_enabled: bool = False
    recurring_days_of_week: List[int] = Field(
        default_factory=list, description="Weekdays the block recurs on (0=Sunday .. 6=Saturday)"
    )
    recurring_time_of_day: Optional[str] = Field(None, description="Local start time, HH:MM or HH:MM:SS")
    recurring_auto_create: bool = False
    recurring_weeks_in_advance: int = Field(DEFAULT_RECURRING_WEEKS_IN_ADVANCE, description="Generation horizon")

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v):
        if not v or not HEX_COLOR_RE.match(v):
            raise ValueError("color must be a hex color (e.g., #3366FF)")
        return v

    @field_validator("default_duration_minutes")
    @classmethod
    def _validate_duration(cls, v):
        if v <= 0:
            raise ValueError("default_duration_minutes must be a positive number")
        return v

    @field_validator(
        "pomodoro_focus_minutes",
        "pomodoro_short_break_minutes",
        "pomodoro_long_break_minutes",
        "pomodoro_sessions_before_long_break",
    )
    @classmethod
    def _validate_optional_positive(cls, v, info):
        if v is not None and v <= 0:
            raise ValueError(f"{info.field_name} must be positive if provided")
        return v

    @field_validator("recurring_weeks_in_advance")
    @classmethod
    def _validate_weeks(cls, v):
        if v <= 0:
            raise ValueError("recurring_weeks_in_advance must be a positive integer if provided")
        return v

    @field_validator("recurring_days_of_week")
    @classmethod
    def _validate_days(cls, v):
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("recurring_days_of_week must contain integers 0..6 (Sun..Sat)")
        # Deduplicate but preserve order
        seen = set()
        out: List[int] = []
        for day in v:
            if day not in seen:
                seen.add(day)
                out.append(day)
        return out

    @field_validator("recurring_time_of_day")
    @classmethod
    def _validate_time_of_day(cls, v):
        if v is not None and not TIME_OF_DAY_RE.match(v):
            raise ValueError("recurring_time_of_day must be HH:MM or HH:MM:SS")
        return v


class BlockType(BlockTypeCreate):
    """Persisted block type."""

    id: str = Field(..., description="Unique block type identifier")
    user_id: str = Field(..., description="Owning user")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BlockInstance(BaseModel):
    """One concrete scheduled occurrence of a block type."""

    id: str = Field(..., description="Unique block instance identifier")
    user_id: str = Field(..., description="Owning user")
    block_type_id: str = Field(..., description="Block type this instance was created from")
    planned_start: datetime = Field(..., description="Planned start instant")
    planned_end: datetime = Field(..., description="Planned end instant")
    status: BlockStatus = Field(BlockStatus.SCHEDULED, description="Lifecycle status")
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    paused_until: Optional[datetime] = Field(None, description="Only meaningful while status is paused")
    pause_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("planned_start", "planned_end", "actual_start", "actual_end", "paused_until")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v) if v is not None else None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class CalendarEvent(BaseModel):
    """External calendar event (read-only conflict source)."""

    id: str
    user_id: str
    title: Optional[str] = None
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)
