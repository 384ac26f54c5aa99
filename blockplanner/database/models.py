"""SQLAlchemy database models for blockplanner."""

from datetime import datetime
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey, Index

from typing import Union, TypeVar, Type
from blockplanner.database.database import Base
from blockplanner.models.block import BlockStatus
from blockplanner.models.notification import NotificationType, dump_payload
from blockplanner.models.timeutil import from_db_time, to_db_time

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)

    # User profile
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.user import User
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class BlockTypeDB(Base):
    """Database model for a block type (template for block instances)."""

    __tablename__ = "block_types"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    color = Column(String, nullable=False)
    default_duration_minutes = Column(Integer, nullable=False, default=60)

    pomodoro_focus_minutes = Column(Integer, nullable=True)
    pomodoro_short_break_minutes = Column(Integer, nullable=True)
    pomodoro_long_break_minutes = Column(Integer, nullable=True)
    pomodoro_sessions_before_long_break = Column(Integer, nullable=True)

    # Recurrence (days stored as JSON array of ints, 0=Sunday)
    recurring_enabled = Column(Boolean, nullable=False, default=False)
    recurring_days_of_week = Column(JSON, nullable=False, default=list)
    recurring_time_of_day = Column(String, nullable=True)
    recurring_auto_create = Column(Boolean, nullable=False, default=False)
    recurring_weeks_in_advance = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.block import BlockType
        return BlockType(
            id=self.id,
            user_id=self.user_id,
            name=self.name,
            color=self.color,
            default_duration_minutes=self.default_duration_minutes,
            pomodoro_focus_minutes=self.pomodoro_focus_minutes,
            pomodoro_short_break_minutes=self.pomodoro_short_break_minutes,
            pomodoro_long_break_minutes=self.pomodoro_long_break_minutes,
            pomodoro_sessions_before_long_break=self.pomodoro_sessions_before_long_break,
            recurring_enabled=self.recurring_enabled,
            recurring_days_of_week=self.recurring_days_of_week or [],
            recurring_time_of_day=self.recurring_time_of_day,
            recurring_auto_create=self.recurring_auto_create,
            recurring_weeks_in_advance=self.recurring_weeks_in_advance,
            created_at=from_db_time(self.created_at),
            updated_at=from_db_time(self.updated_at),
        )


class BlockInstanceDB(Base):
    """Database model for BlockInstance."""

    __tablename__ = "block_instances"
    __table_args__ = (
        Index("ix_block_instances_user_planned_start", "user_id", "planned_start"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    block_type_id = Column(String, ForeignKey("block_types.id", ondelete="CASCADE"), nullable=False, index=True)

    planned_start = Column(DateTime, nullable=False)
    planned_end = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=BlockStatus.SCHEDULED.value)

    actual_start = Column(DateTime, nullable=True)
    actual_end = Column(DateTime, nullable=True)
    paused_until = Column(DateTime, nullable=True)
    pause_reason = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.block import BlockInstance
        return BlockInstance(
            id=self.id,
            user_id=self.user_id,
            block_type_id=self.block_type_id,
            planned_start=from_db_time(self.planned_start),
            planned_end=from_db_time(self.planned_end),
            status=value_to_enum(self.status, BlockStatus, BlockStatus.SCHEDULED),
            actual_start=from_db_time(self.actual_start),
            actual_end=from_db_time(self.actual_end),
            paused_until=from_db_time(self.paused_until),
            pause_reason=self.pause_reason,
            notes=self.notes,
            created_at=from_db_time(self.created_at),
            updated_at=from_db_time(self.updated_at),
        )

    @classmethod
    def from_pydantic(cls, block):
        """Create database model from Pydantic model."""
        return cls(
            id=block.id,
            user_id=block.user_id,
            block_type_id=block.block_type_id,
            planned_start=to_db_time(block.planned_start),
            planned_end=to_db_time(block.planned_end),
            status=enum_to_value(block.status),
            actual_start=to_db_time(block.actual_start),
            actual_end=to_db_time(block.actual_end),
            paused_until=to_db_time(block.paused_until),
            pause_reason=block.pause_reason,
            notes=block.notes,
        )


class CalendarEventDB(Base):
    """External calendar event mirrored for conflict detection.

    Populated by the calendar import integration; read-only to the scheduling engine.
    """

    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("ix_calendar_events_user_start", "user_id", "start_time"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.block import CalendarEvent
        return CalendarEvent(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            start_time=from_db_time(self.start_time),
            end_time=from_db_time(self.end_time),
        )


class UserPreferencesDB(Base):
    """Per-user notification preferences (one row per user)."""

    __tablename__ = "user_preferences"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    notifications_enabled = Column(Boolean, nullable=False, default=True)
    notification_lead_time_minutes = Column(Integer, nullable=True)
    notification_sound_enabled = Column(Boolean, nullable=False, default=True)
    standup_time = Column(String, nullable=True)
    timezone = Column(String, nullable=False, default="UTC")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.preferences import UserPreferences
        return UserPreferences(
            user_id=self.user_id,
            notifications_enabled=self.notifications_enabled,
            notification_lead_time_minutes=self.notification_lead_time_minutes,
            notification_sound_enabled=self.notification_sound_enabled,
            standup_time=self.standup_time,
            timezone=self.timezone or "UTC",
        )


class NotificationQueueDB(Base):
    """Persisted notification queue row.

    `sent_at` is written once on delivery and never cleared.
    """

    __tablename__ = "notification_queue"
    __table_args__ = (
        Index("ix_notification_queue_user_target", "user_id", "target_time"),
        Index("ix_notification_queue_user_sent", "user_id", "sent_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    target_time = Column(DateTime, nullable=False)
    payload = Column(JSON, nullable=True)
    sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from blockplanner.models.notification import NotificationQueueItem
        return NotificationQueueItem(
            id=self.id,
            user_id=self.user_id,
            type=value_to_enum(self.type, NotificationType, NotificationType.BLOCK_START),
            target_time=from_db_time(self.target_time),
            payload=self.payload or {},
            sent_at=from_db_time(self.sent_at),
            created_at=from_db_time(self.created_at),
        )

    @classmethod
    def from_notification(cls, user_id: str, notification):
        """Create a queue row from a scheduled notification or draft."""
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=enum_to_value(notification.type),
            target_time=to_db_time(notification.target_time),
            payload=dump_payload(notification.payload),
        )
