"""Notification worker: runs scheduling and delivery for configured users.

Usage:
    NOTIFICATION_USER_IDS=user-1,user-2 python -m blockplanner.worker
"""

import logging
import os
import signal
import sys
import threading
from typing import List

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv

from blockplanner.database.database import SessionLocal, init_db
from blockplanner.models.constants import (
    DEFAULT_LOOKAHEAD_MINUTES,
    DEFAULT_SNOOZE_MINUTES,
    DELIVERY_INTERVAL_SEC,
    SCHEDULER_DEBOUNCE_SEC,
    SCHEDULER_INTERVAL_SEC,
    SCHEDULER_MIN_TICK_INTERVAL_SEC,
)
from blockplanner.notifications.realtime import SqlAlchemyChangeFeed
from blockplanner.notifications.service import NotificationServiceHandle, start_notifications

load_dotenv()

logger = logging.getLogger(__name__)


def _user_ids() -> List[str]:
    raw = os.getenv("NOTIFICATION_USER_IDS", "")
    return [u.strip() for u in raw.split(",") if u.strip()]


def main() -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    user_ids = _user_ids()
    if not user_ids:
        logger.error("NOTIFICATION_USER_IDS is empty; nothing to run")
        return 1

    init_db()

    scheduler = BackgroundScheduler(timezone="UTC")
    change_feed = SqlAlchemyChangeFeed(SessionLocal)
    handles: List[NotificationServiceHandle] = []
    for user_id in user_ids:
        handles.append(
            start_notifications(
                user_id,
                SessionLocal,
                change_feed=change_feed,
                scheduler=scheduler,
                delivery_interval_seconds=float(os.getenv("NOTIFICATION_DELIVERY_INTERVAL_SEC", DELIVERY_INTERVAL_SEC)),
                schedule_interval_seconds=float(os.getenv("NOTIFICATION_SCHEDULE_INTERVAL_SEC", SCHEDULER_INTERVAL_SEC)),
                lookahead_minutes=int(os.getenv("NOTIFICATION_LOOKAHEAD_MINUTES", DEFAULT_LOOKAHEAD_MINUTES)),
                debounce_seconds=float(os.getenv("NOTIFICATION_DEBOUNCE_SEC", SCHEDULER_DEBOUNCE_SEC)),
                min_tick_interval_seconds=float(
                    os.getenv("NOTIFICATION_MIN_TICK_INTERVAL_SEC", SCHEDULER_MIN_TICK_INTERVAL_SEC)
                ),
                snooze_minutes=int(os.getenv("NOTIFICATION_SNOOZE_MINUTES", DEFAULT_SNOOZE_MINUTES)),
            )
        )
    logger.info(f"Notification worker running for {len(handles)} user(s)")

    stop_event = threading.Event()

    def _request_stop(signum, frame):
        stop_event.set()

    signal.signal(signal.SIGTERM, _request_stop)
    signal.signal(signal.SIGINT, _request_stop)
    stop_event.wait()

    for handle in handles:
        handle.stop()
    change_feed.close()
    scheduler.shutdown(wait=False)
    logger.info("Notification worker stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
