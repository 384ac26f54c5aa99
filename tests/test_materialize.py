"""Tests for recurring block generation."""

import pytest
from datetime import datetime, timedelta, timezone

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.recurrence.materialize import generate_recurring_blocks, generation_window, planned_starts


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def weekday_block_type(make_block_type):
    # Monday, Wednesday, Friday at 08:00
    return make_block_type(
        name="Workout",
        default_duration_minutes=45,
        recurring_enabled=True,
        recurring_auto_create=True,
        recurring_days_of_week=[1, 3, 5],
        recurring_time_of_day="08:00",
    )


class TestPlannedStarts:
    def test_sunday_is_zero(self, make_block_type, now):
        sunday_type = make_block_type(
            recurring_enabled=True, recurring_auto_create=True, recurring_days_of_week=[0], recurring_time_of_day="10:00"
        )
        window_start, window_end = generation_window(sunday_type, now)
        assert planned_starts(sunday_type, window_start, window_end, now) == [_utc(2026, 3, 8, 10, 0)]

    def test_window_spans_weeks_in_advance(self, make_block_type, now):
        block_type = make_block_type(
            recurring_enabled=True,
            recurring_auto_create=True,
            recurring_days_of_week=[2],
            recurring_time_of_day="12:30",
            recurring_weeks_in_advance=3,
        )
        window_start, window_end = generation_window(block_type, now)
        assert window_start == _utc(2026, 3, 2)
        assert window_end == _utc(2026, 3, 23)
        assert planned_starts(block_type, window_start, window_end, now) == [
            _utc(2026, 3, 3, 12, 30),
            _utc(2026, 3, 10, 12, 30),
            _utc(2026, 3, 17, 12, 30),
        ]

    def test_missing_time_of_day_produces_nothing(self, make_block_type, now):
        block_type = make_block_type(recurring_enabled=True, recurring_auto_create=True, recurring_days_of_week=[1])
        window_start, window_end = generation_window(block_type, now)
        assert planned_starts(block_type, window_start, window_end, now) == []


class TestGenerateRecurringBlocks:
    def test_creates_future_occurrences_only(self, db_session, test_user_id, weekday_block_type, now):
        result = generate_recurring_blocks(db_session, test_user_id, now=now)
        # Monday 08:00 is already past at 09:00
        assert [b.planned_start for b in result.created] == [_utc(2026, 3, 4, 8, 0), _utc(2026, 3, 6, 8, 0)]
        assert all(b.planned_end - b.planned_start == timedelta(minutes=45) for b in result.created)
        assert all(b.status == "scheduled" for b in result.created)
        assert result.skipped == 0

    def test_repeat_run_is_idempotent(self, db_session, test_user_id, weekday_block_type, now):
        generate_recurring_blocks(db_session, test_user_id, now=now)
        second = generate_recurring_blocks(db_session, test_user_id, now=now)
        assert second.created == []
        assert second.skipped == 2
        stored = BlockInstanceRepository(db_session).list_in_range(test_user_id, now, now + timedelta(days=7))
        assert len(stored) == 2

    def test_existing_manual_block_is_kept(self, db_session, test_user_id, weekday_block_type, make_block, now):
        make_block(_utc(2026, 3, 4, 8, 0), block_type_id=weekday_block_type.id)
        result = generate_recurring_blocks(db_session, test_user_id, now=now)
        assert [b.planned_start for b in result.created] == [_utc(2026, 3, 6, 8, 0)]
        assert result.skipped == 1

    def test_non_auto_create_types_ignored(self, db_session, test_user_id, make_block_type, now):
        make_block_type(
            recurring_enabled=True, recurring_auto_create=False, recurring_days_of_week=[3], recurring_time_of_day="08:00"
        )
        result = generate_recurring_blocks(db_session, test_user_id, now=now)
        assert result.created == []

    def test_start_date_shifts_window(self, db_session, test_user_id, weekday_block_type, now):
        result = generate_recurring_blocks(db_session, test_user_id, start_date=now + timedelta(days=7), now=now)
        assert [b.planned_start.day for b in result.created] == [9, 11, 13]
