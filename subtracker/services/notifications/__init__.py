"""Notification dispatch package."""

from subtracker.services.notifications.dispatcher import (
    MockNotificationDispatcher,
    NotificationDispatcher,
    NotificationError,
)

__all__ = [
    "MockNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationError",
]
