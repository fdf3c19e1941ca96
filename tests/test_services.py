"""Tests for the notification dispatcher, audit logger and settings."""

import asyncio
import pytest

from subtracker.audit import AuditLogger, create_correlation_id
from subtracker.config import AppSettings, AuthSettings
from subtracker.models.audit import AuditEventBuilder, AuditEventType
from subtracker.models.subscription import DeliveryStatus, NotificationChannel
from subtracker.services.notifications import MockNotificationDispatcher
from subtracker.services.storage import InMemoryAuditStorage


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise RuntimeError("disk full")

    async def get_recent_events(self, owner_id, limit=100):
        raise RuntimeError("disk full")


class TestMockNotificationDispatcher:
    """Tests for the logging dispatcher."""

    def test_records_sent_messages(self):
        """Test that each delivery attempt is recorded."""
        dispatcher = MockNotificationDispatcher()
        delivered = asyncio.run(dispatcher.send("user-1", "hello", NotificationChannel.PUSH))
        assert delivered is True
        [sent] = dispatcher.sent
        assert sent.status == DeliveryStatus.SENT
        assert sent.channel == NotificationChannel.PUSH
        assert sent.message == "hello"

    def test_failing_channel(self):
        """Test that configured failing channels report failure."""
        dispatcher = MockNotificationDispatcher(failing_channels=[NotificationChannel.EMAIL])
        assert asyncio.run(dispatcher.send("user-1", "hello")) is False
        assert dispatcher.sent[0].status == DeliveryStatus.FAILED
        assert dispatcher.sent[0].error


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_persists_events(self):
        """Test that events reach the audit storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        asyncio.run(logger.log_subscription_created("user-1", "sub-1", "Netflix", correlation_id))
        asyncio.run(logger.log_error("ValueError", "boom", owner_id="user-1"))

        assert [e.event_type for e in storage.events] == [
            AuditEventType.SUBSCRIPTION_CREATED,
            AuditEventType.SYSTEM_ERROR,
        ]
        assert storage.events[0].correlation_id == correlation_id

    def test_storage_failure_is_not_raised(self):
        """Test that a broken audit store does not break the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.session_changed("user-1", signed_in=True)
        assert asyncio.run(logger.log(event)) is False

    def test_local_only(self):
        """Test that logging without storage succeeds."""
        event = AuditEventBuilder.session_changed("user-1", signed_in=False)
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_recent_activity(self):
        """Test that the activity list is the owner's own events."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        asyncio.run(logger.log_subscription_deleted("user-1", "sub-1"))
        asyncio.run(logger.log_subscription_deleted("user-2", "sub-2"))

        [event] = asyncio.run(logger.recent_activity("user-1"))
        assert event.entity_id == "sub-1"
        assert asyncio.run(AuditLogger().recent_activity("user-1")) == []

    def test_recent_activity_read_failure(self):
        """Test that an unreadable audit store shows no activity instead of failing."""
        logger = AuditLogger(FailingAuditStorage())
        assert asyncio.run(logger.recent_activity("user-1")) == []


class TestSettings:
    """Tests for configuration defaults and bounds."""

    def test_app_defaults(self, monkeypatch):
        """Test the defaults used when nothing is configured."""
        for name in ("UPCOMING_WINDOW_DAYS", "STORAGE_BACKEND", "ROLL_FORWARD_STALE_DATES"):
            monkeypatch.delenv(name, raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.upcoming_window_days == 7
        assert settings.storage_backend == "memory"
        assert settings.roll_forward_stale_dates is False

    def test_window_bounds(self, monkeypatch):
        """Test that the lookahead window must be 1..30 days."""
        monkeypatch.setenv("UPCOMING_WINDOW_DAYS", "0")
        with pytest.raises(ValueError):
            AppSettings(_env_file=None)

    def test_unknown_backend(self, monkeypatch):
        """Test that only known storage backends are accepted."""
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            AppSettings(_env_file=None)

    def test_auth_from_env(self, monkeypatch):
        """Test that auth settings read the AUTH_ prefix."""
        monkeypatch.setenv("AUTH_ENABLED", "true")
        monkeypatch.setenv("AUTH_DEV_USER_ID", "dev-42")
        settings = AuthSettings()
        assert settings.enabled is True
        assert settings.dev_user_id == "dev-42"
