"""Tests for the SQLAlchemy change feed and the pause notification watcher."""

from datetime import timedelta

import pytest

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.models import BlockInstanceDB
from blockplanner.database.notification_repository import NotificationQueueRepository
from blockplanner.models.block import BlockStatus
from blockplanner.notifications.realtime import ChangeEvent, PauseNotificationWatcher, SqlAlchemyChangeFeed


@pytest.fixture
def feed(session_factory):
    feed = SqlAlchemyChangeFeed(session_factory)
    try:
        yield feed
    finally:
        feed.close()


class TestSqlAlchemyChangeFeed:
    def test_insert_published_after_commit(self, feed, test_user_id, make_block, now):
        events = []
        feed.subscribe(test_user_id, events.append)
        block = make_block(now)
        assert [(e.table, e.operation, e.row_id) for e in events] == [("block_instances", "insert", block.id)]
        assert events[0].new_status == "scheduled"

    def test_status_update_carries_old_and_new(self, feed, db_session, test_user_id, make_block, now):
        block = make_block(now)
        events = []
        feed.subscribe(test_user_id, events.append)
        BlockInstanceRepository(db_session).update_fields(test_user_id, block.id, {"status": BlockStatus.PAUSED})
        assert len(events) == 1
        assert events[0].operation == "update"
        assert (events[0].old_status, events[0].new_status) == ("scheduled", "paused")

    def test_block_type_changes_published(self, feed, test_user_id, make_block_type):
        events = []
        feed.subscribe(test_user_id, events.append)
        block_type = make_block_type(name="Admin")
        assert [(e.table, e.block_type_id) for e in events] == [("block_types", block_type.id)]

    def test_rollback_publishes_nothing(self, feed, session_factory, test_user_id, block_type, now):
        events = []
        feed.subscribe(test_user_id, events.append)
        session = session_factory()
        try:
            session.add(
                BlockInstanceDB(
                    id="rolled-back",
                    user_id=test_user_id,
                    block_type_id=block_type.id,
                    planned_start=now.replace(tzinfo=None),
                    planned_end=(now + timedelta(hours=1)).replace(tzinfo=None),
                    status="scheduled",
                )
            )
            session.flush()
            session.rollback()
        finally:
            session.close()
        assert events == []

    def test_only_owner_notified(self, feed, make_block_type, make_block, now):
        events = []
        feed.subscribe("test-user-123", events.append)
        other_type = make_block_type(user_id="other-user")
        make_block(now, user_id="other-user", block_type_id=other_type.id)
        assert events == []

    def test_unsubscribe(self, feed, test_user_id, make_block, now):
        events = []
        unsubscribe = feed.subscribe(test_user_id, events.append)
        unsubscribe()
        make_block(now)
        assert events == []

    def test_subscriber_error_does_not_break_others(self, feed, test_user_id):
        events = []

        def _broken(change):
            raise RuntimeError("boom")

        feed.subscribe(test_user_id, _broken)
        feed.subscribe(test_user_id, events.append)
        feed.publish(ChangeEvent(table="block_types", operation="insert", row_id="t", user_id=test_user_id))
        assert len(events) == 1


class TestPauseNotificationWatcher:
    def test_pause_enqueues_immediate_notification(self, feed, session_factory, db_session, test_user_id, make_block, now):
        block = make_block(now - timedelta(minutes=30))
        watcher = PauseNotificationWatcher(test_user_id, session_factory, feed, clock=lambda: now)
        watcher.start()
        BlockInstanceRepository(db_session).update_fields(test_user_id, block.id, {"status": BlockStatus.PAUSED})

        items = NotificationQueueRepository(db_session).list_for_user(test_user_id)
        assert len(items) == 1
        assert items[0].type == "block_paused"
        assert items[0].target_time == now
        assert items[0].payload.block_name == "Deep Work"
        assert items[0].payload.block_instance_id == block.id
        watcher.stop()

    def test_already_paused_not_requeued(self, feed, session_factory, db_session, test_user_id, make_block, now):
        block = make_block(now, status=BlockStatus.PAUSED)
        watcher = PauseNotificationWatcher(test_user_id, session_factory, feed, clock=lambda: now)
        watcher.start()
        BlockInstanceRepository(db_session).update_fields(
            test_user_id, block.id, {"paused_until": now + timedelta(minutes=10)}
        )
        assert NotificationQueueRepository(db_session).list_for_user(test_user_id) == []
        watcher.stop()

    def test_other_transitions_ignored(self, feed, session_factory, db_session, test_user_id, make_block, now):
        block = make_block(now)
        watcher = PauseNotificationWatcher(test_user_id, session_factory, feed, clock=lambda: now)
        watcher.start()
        BlockInstanceRepository(db_session).update_fields(test_user_id, block.id, {"status": BlockStatus.IN_PROGRESS})
        assert NotificationQueueRepository(db_session).list_for_user(test_user_id) == []
        watcher.stop()

    def test_stopped_watcher_ignores_changes(self, feed, session_factory, db_session, test_user_id, make_block, now):
        block = make_block(now)
        watcher = PauseNotificationWatcher(test_user_id, session_factory, feed, clock=lambda: now)
        watcher.start()
        watcher.stop()
        BlockInstanceRepository(db_session).update_fields(test_user_id, block.id, {"status": BlockStatus.PAUSED})
        assert NotificationQueueRepository(db_session).list_for_user(test_user_id) == []
