"""User notification preferences model for blockplanner."""

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, field_validator

from blockplanner.models.block import TIME_OF_DAY_RE


class UserPreferences(BaseModel):
    """Per-user notification preferences.

    Read fresh on every scheduling pass; never cached by the engine.
    """

    user_id: str = Field(..., description="Owning user")
    notifications_enabled: bool = Field(True, description="Master switch for all notifications")
    notification_lead_time_minutes: Optional[int] = Field(
        None, description="Minutes before block start for the upcoming warning (null = default)"
    )
    notification_sound_enabled: bool = Field(True, description="Play a sound with delivered notifications")
    standup_time: Optional[str] = Field(None, description="Daily standup reminder time, HH:MM")
    timezone: str = Field("UTC", description="IANA timezone used to place the standup in the user's day")

    @field_validator("standup_time")
    @classmethod
    def _validate_standup_time(cls, v):
        if v is None or v == "":
            return None
        if not TIME_OF_DAY_RE.match(v):
            raise ValueError("standup_time must be HH:MM")
        return v[:5]

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v


def default_preferences(user_id: str) -> UserPreferences:
    """Preferences used for users that have not saved any."""
    return UserPreferences(user_id=user_id)
