"""
Notification Dispatch

The system only decides WHICH payments deserve a reminder. Delivering the
message is the dispatcher's job, behind this interface.

No real delivery channel is wired up yet. MockNotificationDispatcher logs
each message and keeps a record of every attempt, which is also what the
test suite inspects.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

import structlog

from subtracker.models.subscription import (
    DeliveryStatus,
    NotificationChannel,
    SentNotification,
)


class NotificationError(Exception):
    """Base exception for notification delivery."""
    pass


class NotificationDispatcher(ABC):
    """Delivers a rendered message to a user over one channel."""

    @abstractmethod
    async def send(
        self,
        owner_id: str,
        message: str,
        channel: NotificationChannel = NotificationChannel.EMAIL,
    ) -> bool:
        """
        Deliver a message.

        Returns:
            True if the message was accepted for delivery, False otherwise.
        """
        pass


class MockNotificationDispatcher(NotificationDispatcher):
    """
    Logs messages instead of delivering them.

    Args:
        failing_channels: Channels that report failure, to exercise the
            failure path without a real provider.
    """

    def __init__(self, failing_channels: Optional[Iterable[NotificationChannel]] = None):
        self._failing = set(failing_channels or ())
        self._logger = structlog.get_logger(__name__)
        self.sent: list[SentNotification] = []

    async def send(
        self,
        owner_id: str,
        message: str,
        channel: NotificationChannel = NotificationChannel.EMAIL,
    ) -> bool:
        if channel in self._failing:
            error = f"{channel.value} delivery is unavailable"
            self.sent.append(SentNotification(
                owner_id=owner_id,
                channel=channel,
                message=message,
                status=DeliveryStatus.FAILED,
                error=error,
            ))
            self._logger.warning(
                "notification_failed",
                owner_id=owner_id,
                channel=channel.value,
                error=error,
            )
            return False

        self.sent.append(SentNotification(
            owner_id=owner_id,
            channel=channel,
            message=message,
            status=DeliveryStatus.SENT,
        ))
        self._logger.info(
            "notification_sent",
            owner_id=owner_id,
            channel=channel.value,
            message=message,
        )
        return True
