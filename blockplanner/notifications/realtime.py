"""In-process change feed for block data, plus the pause notification watcher.

`SqlAlchemyChangeFeed` hooks the session events of a sessionmaker: block instance
and block type rows written in a flush are collected on the session and published
to subscribers once the transaction commits. Rolled back changes are dropped.
Writes made by other processes are not seen; the scheduler runner's interval job
covers those.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel
from sqlalchemy import event, inspect

from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.database.models import BlockInstanceDB, BlockTypeDB
from blockplanner.models.block import BlockStatus
from blockplanner.models.notification import BlockPayload, NotificationDraft, NotificationType
from blockplanner.models.timeutil import isoformat_utc, utc_now
from blockplanner.notifications.queue import NotificationQueueService

logger = logging.getLogger(__name__)

_PENDING_KEY = "blockplanner_pending_changes"

ChangeCallback = Callable[["ChangeEvent"], None]


class ChangeEvent(BaseModel):
    """A committed insert, update or delete of a watched row."""

    table: str
    operation: str
    row_id: str
    user_id: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    block_type_id: Optional[str] = None


class ChangeFeed(Protocol):
    def subscribe(self, user_id: str, callback: ChangeCallback) -> Callable[[], None]:
        """Register `callback` for the user's changes; returns an unsubscribe function."""


def _status_history(obj):
    history = inspect(obj).attrs.status.history
    old = history.deleted[0] if history.deleted else obj.status
    return old, obj.status


def _event_for(obj, operation: str) -> Optional[ChangeEvent]:
    if isinstance(obj, BlockInstanceDB):
        old_status, new_status = (None, obj.status)
        if operation == "update":
            old_status, new_status = _status_history(obj)
        elif operation == "delete":
            old_status, new_status = (obj.status, None)
        return ChangeEvent(
            table=BlockInstanceDB.__tablename__,
            operation=operation,
            row_id=obj.id,
            user_id=obj.user_id,
            old_status=old_status,
            new_status=new_status,
            block_type_id=obj.block_type_id,
        )
    if isinstance(obj, BlockTypeDB):
        return ChangeEvent(
            table=BlockTypeDB.__tablename__,
            operation=operation,
            row_id=obj.id,
            user_id=obj.user_id,
            block_type_id=obj.id,
        )
    return None


class SqlAlchemyChangeFeed:
    """Change feed backed by SQLAlchemy session events on one sessionmaker."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._lock = threading.Lock()
        event.listen(session_factory, "after_flush", self._after_flush)
        event.listen(session_factory, "after_commit", self._after_commit)
        event.listen(session_factory, "after_soft_rollback", self._after_rollback)

    def close(self) -> None:
        """Detach from the sessionmaker and drop all subscribers."""
        for name, fn in (
            ("after_flush", self._after_flush),
            ("after_commit", self._after_commit),
            ("after_soft_rollback", self._after_rollback),
        ):
            if event.contains(self.session_factory, name, fn):
                event.remove(self.session_factory, name, fn)
        with self._lock:
            self._subscribers.clear()

    def subscribe(self, user_id: str, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(user_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(user_id, None)

        return unsubscribe

    def publish(self, change: ChangeEvent) -> None:
        """Deliver one event to the user's subscribers. Subscriber errors are logged."""
        with self._lock:
            callbacks = list(self._subscribers.get(change.user_id, []))
        for callback in callbacks:
            try:
                callback(change)
            except Exception as e:
                logger.error(
                    f"Change subscriber failed for {change.table} {change.row_id}: {type(e).__name__}: {str(e)}"
                )

    def _after_flush(self, session, flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])
        for operation, objects in (("insert", session.new), ("update", session.dirty), ("delete", session.deleted)):
            for obj in objects:
                if operation == "update" and not session.is_modified(obj):
                    continue
                change = _event_for(obj, operation)
                if change is not None:
                    pending.append(change)

    def _after_commit(self, session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for change in pending:
            self.publish(change)

    def _after_rollback(self, session, previous_transaction) -> None:
        session.info.pop(_PENDING_KEY, None)


class PauseNotificationWatcher:
    """Enqueue an immediate block_paused notification when a block gets paused."""

    def __init__(self, user_id: str, session_factory, change_feed: ChangeFeed, clock=utc_now):
        self.user_id = user_id
        self.session_factory = session_factory
        self.change_feed = change_feed
        self._clock = clock
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.change_feed.subscribe(self.user_id, self.on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_change(self, change: ChangeEvent) -> None:
        if change.table != BlockInstanceDB.__tablename__ or change.operation != "update":
            return
        if change.old_status == BlockStatus.PAUSED.value or change.new_status != BlockStatus.PAUSED.value:
            return
        try:
            self._enqueue_pause(change)
        except Exception as e:
            logger.error(f"Failed to enqueue pause notification for block {change.row_id}: {type(e).__name__}: {str(e)}")

    def _enqueue_pause(self, change: ChangeEvent) -> None:
        db = self.session_factory()
        try:
            block = BlockInstanceRepository(db).get(self.user_id, change.row_id)
            if block is None:
                return
            meta = BlockTypeRepository(db).display_meta(self.user_id, [block.block_type_id])
            block_meta = meta.get(block.block_type_id, {})
            payload = BlockPayload(
                block_name=block_meta.get("name"),
                block_color=block_meta.get("color"),
                block_type_id=block.block_type_id,
                block_instance_id=block.id,
                start_time=isoformat_utc(block.planned_start),
            )
            draft = NotificationDraft(type=NotificationType.BLOCK_PAUSED, target_time=self._clock(), payload=payload)
            NotificationQueueService(db).enqueue(self.user_id, [draft])
            logger.info(f"Queued pause notification for block {block.id}")
        finally:
            db.close()
