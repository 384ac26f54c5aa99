"""Tests for notification formatting and the permission-aware sender."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from blockplanner.models.notification import NotificationQueueItem
from blockplanner.notifications.sender import NotificationSender, build_extra, resolve_body, resolve_title


TARGET = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def _item(notification_type="block_start", payload=None, item_id="q-1"):
    return NotificationQueueItem(
        id=item_id,
        user_id="test-user-123",
        type=notification_type,
        target_time=TARGET,
        payload=payload or {},
    )


class TestTitlesAndBodies:
    @pytest.mark.parametrize(
        "notification_type,title",
        [
            ("block_upcoming", "Block starting soon"),
            ("block_start", "Block in progress"),
            ("block_paused", "Block paused for meeting"),
            ("block_resumed", "Block resumed"),
            ("standup", "Daily standup reminder"),
        ],
    )
    def test_titles(self, notification_type, title):
        assert resolve_title(notification_type) == title

    def test_upcoming_body(self):
        item = _item("block_upcoming", {"block_name": "Deep Work", "lead_minutes": 5})
        assert resolve_body(item) == "Deep Work begins in 5 minutes."

    def test_upcoming_body_fractional_lead(self):
        item = _item("block_upcoming", {"block_name": "Deep Work", "lead_minutes": 7.5})
        assert resolve_body(item) == "Deep Work begins in 7.5 minutes."

    def test_upcoming_body_defaults(self):
        assert resolve_body(_item("block_upcoming")) == "Scheduled block begins in 10 minutes."

    def test_start_body(self):
        assert resolve_body(_item("block_start", {"block_name": "Writing"})) == "Writing is starting now."

    def test_paused_body(self):
        assert resolve_body(_item("block_paused", {"block_name": "Writing"})) == "Writing paused due to a meeting."

    def test_resumed_body(self):
        assert resolve_body(_item("block_resumed", {"block_name": "Writing"})) == "Meeting ended, your block has resumed."

    def test_standup_body(self):
        assert resolve_body(_item("standup", {"time": "09:30"})) == "Standup starts at 09:30."
        assert resolve_body(_item("standup")) == "Time for the daily standup check-in."

    def test_extra_includes_payload_and_routing(self):
        item = _item("block_start", {"block_name": "Writing", "block_instance_id": "b-1"})
        extra = build_extra(item)
        assert extra["block_name"] == "Writing"
        assert extra["block_instance_id"] == "b-1"
        assert extra["type"] == "block_start"
        assert extra["queue_item_id"] == "q-1"
        assert extra["target_time"] == "2026-03-02T09:30:00Z"
        assert extra["action_type_id"] == "block-actions"


class TestNotificationSender:
    def _surface(self, granted=True, request_result=True):
        surface = MagicMock()
        surface.is_permission_granted.return_value = granted
        surface.request_permission.return_value = request_result
        return surface

    def test_sends_with_title_body_and_sound(self):
        surface = self._surface()
        sent = NotificationSender(surface).send(_item("block_start", {"block_name": "Writing"}), sound_enabled=False)
        assert sent is True
        title, body, extra, sound = surface.send.call_args[0]
        assert title == "Block in progress"
        assert body == "Writing is starting now."
        assert extra["queue_item_id"] == "q-1"
        assert sound is False

    def test_denied_permission_skips_send(self):
        surface = self._surface(granted=False, request_result=False)
        assert NotificationSender(surface).send(_item()) is False
        surface.send.assert_not_called()

    def test_permission_requested_once_per_interval(self):
        surface = self._surface(granted=False, request_result=False)
        clock = MagicMock(side_effect=[0.0, 10.0, 3601.0])
        sender = NotificationSender(surface, permission_check_interval_seconds=3600, monotonic=clock)
        sender.send(_item())
        sender.send(_item())
        assert surface.request_permission.call_count == 1
        sender.send(_item())
        assert surface.request_permission.call_count == 2

    def test_granted_permission_not_requested(self):
        surface = self._surface(granted=True)
        NotificationSender(surface).send(_item())
        surface.request_permission.assert_not_called()
