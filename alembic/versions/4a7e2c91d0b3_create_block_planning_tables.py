"""Create users, block types, block instances, calendar events, preferences and notification queue

Revision ID: 4a7e2c91d0b3
Revises:
Create Date: 2026-09-02

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a7e2c91d0b3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "block_types",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=False),
        sa.Column("default_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("pomodoro_focus_minutes", sa.Integer(), nullable=True),
        sa.Column("pomodoro_short_break_minutes", sa.Integer(), nullable=True),
        sa.Column("pomodoro_long_break_minutes", sa.Integer(), nullable=True),
        sa.Column("pomodoro_sessions_before_long_break", sa.Integer(), nullable=True),
        sa.Column("recurring_enabled", sa.Boolean(), nullable=False),
        sa.Column("recurring_days_of_week", sa.JSON(), nullable=False),
        sa.Column("recurring_time_of_day", sa.String(), nullable=True),
        sa.Column("recurring_auto_create", sa.Boolean(), nullable=False),
        sa.Column("recurring_weeks_in_advance", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_block_types_user_id", "block_types", ["user_id"])

    op.create_table(
        "block_instances",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "block_type_id", sa.String(), sa.ForeignKey("block_types.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("planned_start", sa.DateTime(), nullable=False),
        sa.Column("planned_end", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("actual_start", sa.DateTime(), nullable=True),
        sa.Column("actual_end", sa.DateTime(), nullable=True),
        sa.Column("paused_until", sa.DateTime(), nullable=True),
        sa.Column("pause_reason", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_block_instances_user_id", "block_instances", ["user_id"])
    op.create_index("ix_block_instances_block_type_id", "block_instances", ["block_type_id"])
    op.create_index("ix_block_instances_user_planned_start", "block_instances", ["user_id", "planned_start"])

    op.create_table(
        "calendar_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_calendar_events_user_id", "calendar_events", ["user_id"])
    op.create_index("ix_calendar_events_user_start", "calendar_events", ["user_id", "start_time"])

    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False),
        sa.Column("notification_lead_time_minutes", sa.Integer(), nullable=True),
        sa.Column("notification_sound_enabled", sa.Boolean(), nullable=False),
        sa.Column("standup_time", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=False, server_default="UTC"),
        *_timestamps(),
    )

    op.create_table(
        "notification_queue",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("target_time", sa.DateTime(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notification_queue_user_id", "notification_queue", ["user_id"])
    op.create_index("ix_notification_queue_user_target", "notification_queue", ["user_id", "target_time"])
    op.create_index("ix_notification_queue_user_sent", "notification_queue", ["user_id", "sent_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("notification_queue")
    op.drop_table("user_preferences")
    op.drop_table("calendar_events")
    op.drop_table("block_instances")
    op.drop_table("block_types")
    op.drop_table("users")
