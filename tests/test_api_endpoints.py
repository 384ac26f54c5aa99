"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end.
"""

from datetime import timedelta
from unittest.mock import patch

from blockplanner.database.calendar_event_repository import CalendarEventRepository
from blockplanner.database.notification_repository import NotificationQueueRepository
from blockplanner.models.notification import BlockPayload, NotificationDraft, NotificationType


def _iso(dt):
    return dt.isoformat().replace("+00:00", "Z")


class TestHealth:
    def test_health(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestBlockTypeEndpoints:
    def test_create_and_list(self, test_client):
        response = test_client.post("/block-types", json={"name": "  Focus ", "color": "#abc"})
        assert response.status_code == 201
        created = response.json()
        assert created["name"] == "Focus"
        assert created["default_duration_minutes"] == 60

        listed = test_client.get("/block-types").json()
        assert [bt["id"] for bt in listed] == [created["id"]]

    def test_invalid_color_rejected(self, test_client):
        response = test_client.post("/block-types", json={"name": "Focus", "color": "blue"})
        assert response.status_code == 422

    def test_invalid_weekday_rejected(self, test_client):
        response = test_client.post(
            "/block-types", json={"name": "Focus", "color": "#3366FF", "recurring_days_of_week": [7]}
        )
        assert response.status_code == 422


class TestBlockEndpoints:
    def test_schedule_block(self, test_client, block_type, now):
        response = test_client.post(
            "/blocks",
            json={"block_type_id": block_type.id, "start": _iso(now + timedelta(hours=1))},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["block"]["status"] == "scheduled"
        assert data["block"]["block_type_id"] == block_type.id
        assert data["conflicts"] == []

    def test_conflict_returns_409_with_suggestions(self, test_client, db_session, test_user_id, block_type, now):
        CalendarEventRepository(db_session).upsert(
            user_id=test_user_id,
            title="All hands",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
        )
        response = test_client.post(
            "/blocks",
            json={
                "block_type_id": block_type.id,
                "start": _iso(now + timedelta(hours=1)),
                "end": _iso(now + timedelta(hours=2)),
            },
        )
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["conflicts"][0]["kind"] == "calendar"
        assert detail["conflicts"][0]["title"] == "All hands"
        assert len(detail["suggestions"]) == 3

    def test_allow_conflicts_creates(self, test_client, block_type, make_block, now):
        make_block(now + timedelta(hours=1))
        response = test_client.post(
            "/blocks",
            json={
                "block_type_id": block_type.id,
                "start": _iso(now + timedelta(hours=1)),
                "allow_conflicts": True,
            },
        )
        assert response.status_code == 201
        assert len(response.json()["conflicts"]) == 1

    def test_invalid_range_returns_422(self, test_client, block_type, now):
        response = test_client.post(
            "/blocks",
            json={
                "block_type_id": block_type.id,
                "start": _iso(now + timedelta(hours=2)),
                "end": _iso(now + timedelta(hours=1)),
            },
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "End time must be after start time"

    def test_unknown_block_type_returns_404(self, test_client, now):
        response = test_client.post("/blocks", json={"block_type_id": "nope", "start": _iso(now)})
        assert response.status_code == 404

    def test_list_blocks_in_range(self, test_client, make_block, now):
        inside = make_block(now + timedelta(hours=1))
        make_block(now + timedelta(hours=5))
        response = test_client.get(
            "/blocks", params={"start": _iso(now), "end": _iso(now + timedelta(hours=3))}
        )
        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == [inside.id]

    def test_reschedule(self, test_client, make_block, now):
        block = make_block(now + timedelta(hours=1))
        response = test_client.patch(
            f"/blocks/{block.id}",
            json={"start": _iso(now + timedelta(hours=3)), "end": _iso(now + timedelta(hours=4))},
        )
        assert response.status_code == 200
        assert response.json()["block"]["planned_start"].startswith("2026-03-02T12:00:00")

    def test_reschedule_conflict(self, test_client, make_block, now):
        block = make_block(now + timedelta(hours=1))
        make_block(now + timedelta(hours=3))
        response = test_client.patch(
            f"/blocks/{block.id}",
            json={"start": _iso(now + timedelta(hours=3)), "end": _iso(now + timedelta(hours=4))},
        )
        assert response.status_code == 409

    def test_reschedule_missing_block(self, test_client, now):
        response = test_client.patch(
            "/blocks/missing",
            json={"start": _iso(now), "end": _iso(now + timedelta(hours=1))},
        )
        assert response.status_code == 404

    def test_conflict_check(self, test_client, make_block, now):
        block = make_block(now + timedelta(hours=1))
        payload = {"start": _iso(now + timedelta(hours=1)), "end": _iso(now + timedelta(hours=2))}
        report = test_client.post("/blocks/conflicts", json=payload).json()
        assert [c["id"] for c in report["conflicts"]] == [block.id]
        assert report["suggestions"]

        excluded = test_client.post("/blocks/conflicts", json={**payload, "exclude_block_id": block.id}).json()
        assert excluded == {"conflicts": [], "suggestions": []}

    def test_generate_recurring(self, test_client, make_block_type, now):
        make_block_type(
            name="Standup prep",
            recurring_enabled=True,
            recurring_auto_create=True,
            recurring_days_of_week=[0, 1, 2, 3, 4, 5, 6],
            recurring_time_of_day="23:00",
        )
        with patch("blockplanner.recurrence.materialize.utc_now", return_value=now):
            response = test_client.post("/blocks/generate-recurring", json={})
        assert response.status_code == 200
        assert len(response.json()["created"]) == 7
        assert response.json()["skipped"] == 0

    def test_pause_for_meetings(self, test_client, db_session, test_user_id, make_block, now):
        block = make_block(now - timedelta(minutes=15), now + timedelta(minutes=45))
        CalendarEventRepository(db_session).upsert(
            user_id=test_user_id,
            title="Incident review",
            start_time=now - timedelta(minutes=5),
            end_time=now + timedelta(minutes=20),
        )
        with patch("blockplanner.engine.meetings.utc_now", return_value=now):
            response = test_client.post("/blocks/pause-for-meetings")
        assert response.status_code == 200
        body = response.json()
        assert [b["id"] for b in body] == [block.id]
        assert body[0]["status"] == "paused"
        assert body[0]["pause_reason"] == "meeting"


class TestPreferencesEndpoints:
    def test_defaults(self, test_client, test_user_id):
        data = test_client.get("/preferences").json()
        assert data["user_id"] == test_user_id
        assert data["notifications_enabled"] is True
        assert data["timezone"] == "UTC"

    def test_save_and_read(self, test_client):
        response = test_client.put(
            "/preferences",
            json={"notification_lead_time_minutes": 5, "standup_time": "09:30", "timezone": "Europe/Berlin"},
        )
        assert response.status_code == 200
        data = test_client.get("/preferences").json()
        assert data["notification_lead_time_minutes"] == 5
        assert data["standup_time"] == "09:30"
        assert data["timezone"] == "Europe/Berlin"

    def test_bad_timezone_rejected(self, test_client):
        response = test_client.put("/preferences", json={"timezone": "Mars/Olympus"})
        assert response.status_code == 422


class TestNotificationEndpoints:
    def test_due_notifications(self, test_client, db_session, test_user_id):
        from blockplanner.models.timeutil import utc_now

        NotificationQueueRepository(db_session).insert_many(
            test_user_id,
            [
                NotificationDraft(
                    type=NotificationType.BLOCK_START,
                    target_time=utc_now() - timedelta(minutes=1),
                    payload=BlockPayload(block_name="Deep Work"),
                )
            ],
        )
        response = test_client.get("/notifications/due")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["type"] == "block_start"
        assert data[0]["payload"]["block_name"] == "Deep Work"

    def test_reconcile_queues_upcoming_block(self, test_client, make_block):
        from blockplanner.models.timeutil import utc_now

        make_block(utc_now() + timedelta(minutes=30))
        response = test_client.post("/notifications/reconcile")
        assert response.status_code == 200
        assert response.json()["queued"] == 2

        again = test_client.post("/notifications/reconcile")
        assert again.json()["queued"] == 0

    def test_snooze_action(self, test_client, db_session, test_user_id):
        response = test_client.post(
            "/notifications/actions",
            json={"action_id": "snooze", "extra": {"type": "block_start", "block_name": "Deep Work"}},
        )
        assert response.status_code == 200
        assert response.json() == {"applied": True}
        assert len(NotificationQueueRepository(db_session).list_for_user(test_user_id)) == 1

    def test_unknown_action(self, test_client):
        response = test_client.post("/notifications/actions", json={"action_id": "dismiss"})
        assert response.json() == {"applied": False}
