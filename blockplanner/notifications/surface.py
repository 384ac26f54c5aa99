"""Notification surface port.

The surface is whatever actually shows a notification to the user (an OS
notification center, a push gateway, ...). Only the logging surface ships here.
"""

import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger("blockplanner.notifications")


class NotificationSurface(Protocol):
    """Port for displaying notifications to a user."""

    def is_permission_granted(self) -> bool:
        """Whether the user currently allows notifications."""

    def request_permission(self) -> bool:
        """Ask the user for permission; returns True when granted."""

    def send(self, title: str, body: str, extra: Dict[str, Any], sound: bool) -> None:
        """Display a notification. `extra` is echoed back with action events."""


class LoggingNotificationSurface:
    """Surface that writes notifications to the `blockplanner.notifications` logger."""

    def is_permission_granted(self) -> bool:
        return True

    def request_permission(self) -> bool:
        return True

    def send(self, title: str, body: str, extra: Dict[str, Any], sound: bool) -> None:
        logger.info(f"[{extra.get('type')}] {title}: {body} (sound={'on' if sound else 'off'})")
