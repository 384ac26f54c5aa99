"""Notification data models for blockplanner.

Payloads are a tagged union keyed by notification type: every block_* type carries
a `BlockPayload`, the standup reminder carries a `StandupPayload`.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator

from blockplanner.models.timeutil import ensure_utc, utc_now


class NotificationType(str, Enum):
    """Notification type enumeration."""
    BLOCK_UPCOMING = "block_upcoming"
    BLOCK_START = "block_start"
    BLOCK_PAUSED = "block_paused"
    BLOCK_RESUMED = "block_resumed"
    STANDUP = "standup"


class BlockPayload(BaseModel):
    """Context for block_upcoming / block_start / block_paused / block_resumed."""

    block_name: Optional[str] = None
    block_color: Optional[str] = None
    lead_minutes: Optional[float] = None
    block_type_id: Optional[str] = None
    block_instance_id: Optional[str] = None
    start_time: Optional[str] = Field(None, description="Block planned start, ISO-8601")


class StandupPayload(BaseModel):
    """Context for the daily standup reminder."""

    time: Optional[str] = Field(None, description="Standup time, HH:MM")


NotificationPayload = Union[BlockPayload, StandupPayload]


def payload_model_for(notification_type: Union[NotificationType, str]):
    """Return the payload class used by a notification type."""
    if NotificationType(notification_type) == NotificationType.STANDUP:
        return StandupPayload
    return BlockPayload


def parse_payload(notification_type: Union[NotificationType, str], data: Optional[Dict[str, Any]]) -> NotificationPayload:
    """Hydrate a stored JSON payload into the model for its notification type."""
    model = payload_model_for(notification_type)
    return model.model_validate(data or {})


def dump_payload(payload: Optional[NotificationPayload]) -> Optional[Dict[str, Any]]:
    """Serialize a payload for JSON storage, dropping unset optional fields."""
    if payload is None:
        return None
    return payload.model_dump(exclude_none=True)


class _TypedPayloadMixin(BaseModel):
    @model_validator(mode="before")
    @classmethod
    def _hydrate_payload(cls, data):
        if isinstance(data, dict) and data.get("type") is not None:
            payload = data.get("payload")
            if payload is None or isinstance(payload, dict):
                data = {**data, "payload": parse_payload(data["type"], payload)}
        return data


class ScheduledNotification(_TypedPayloadMixin):
    """Candidate notification computed by the pure scheduler (not yet persisted)."""

    id: str = Field(..., description="Generated candidate identifier")
    user_id: str = Field(..., description="Owning user")
    type: NotificationType = Field(..., description="Notification type")
    target_time: datetime = Field(..., description="Instant the notification should fire")
    payload: NotificationPayload = Field(..., description="Type-specific payload")
    created_at: datetime = Field(default_factory=utc_now, description="Computation timestamp")

    @field_validator("target_time", "created_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class NotificationQueueItem(_TypedPayloadMixin):
    """Persisted notification queue row."""

    id: str = Field(..., description="Queue row identifier")
    user_id: str = Field(..., description="Owning user")
    type: NotificationType = Field(..., description="Notification type")
    target_time: datetime = Field(..., description="Instant the notification becomes due")
    payload: NotificationPayload = Field(..., description="Type-specific payload")
    sent_at: Optional[datetime] = Field(None, description="Set once when delivered; immutable afterwards")
    created_at: Optional[datetime] = None

    @field_validator("target_time", "sent_at", "created_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v) if v is not None else None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class NotificationDraft(_TypedPayloadMixin):
    """Notification to enqueue directly (snoozes, pause alerts)."""

    type: NotificationType
    target_time: datetime
    payload: NotificationPayload

    @field_validator("target_time")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
