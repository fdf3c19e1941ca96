"""
In-Memory Storage Implementation

Used by the test suite and as the default backend when no external
storage is configured. Data lives for the lifetime of the process.
"""

from typing import Optional
from uuid import uuid4

from subtracker.models.audit import AuditEvent
from subtracker.models.subscription import (
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    Subscription,
    SubscriptionDraft,
    SubscriptionPatch,
)
from subtracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    NotificationPreferenceStorageInterface,
    SubscriptionStorageInterface,
    check_owner,
)


class InMemorySubscriptionStorage(SubscriptionStorageInterface):
    """Dict-backed subscription storage, keyed by subscription id."""

    def __init__(self):
        self._records: dict[str, Subscription] = {}

    def _get_owned(self, owner_id: str, subscription_id: str) -> Subscription:
        subscription = self._records.get(subscription_id)
        if subscription is None:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        check_owner(subscription.owner_id, owner_id, "subscription", subscription_id)
        return subscription

    async def add_subscription(
        self,
        owner_id: str,
        draft: SubscriptionDraft,
    ) -> Subscription:
        subscription = draft.to_subscription(str(uuid4()), owner_id)
        self._records[subscription.id] = subscription
        return subscription

    async def get_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> Subscription:
        return self._get_owned(owner_id, subscription_id)

    async def list_subscriptions(self, owner_id: str) -> list[Subscription]:
        return [s for s in self._records.values() if s.owner_id == owner_id]

    async def update_subscription(
        self,
        owner_id: str,
        subscription_id: str,
        patch: SubscriptionPatch,
    ) -> Subscription:
        updated = patch.apply_to(self._get_owned(owner_id, subscription_id))
        self._records[subscription_id] = updated
        return updated

    async def delete_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> None:
        self._get_owned(owner_id, subscription_id)
        del self._records[subscription_id]


class InMemoryPreferenceStorage(NotificationPreferenceStorageInterface):
    """Dict-backed notification preference storage."""

    def __init__(self):
        self._records: dict[str, NotificationPreference] = {}

    def _get_owned(self, owner_id: str, preference_id: str) -> NotificationPreference:
        preference = self._records.get(preference_id)
        if preference is None:
            raise NotFoundError(f"Notification preference not found: {preference_id}")
        check_owner(preference.owner_id, owner_id, "notification preference", preference_id)
        return preference

    async def add_preference(
        self,
        owner_id: str,
        channel: NotificationChannel,
        days_in_advance: int = 3,
        enabled: bool = True,
        telegram_chat_id: Optional[str] = None,
    ) -> NotificationPreference:
        for existing in self._records.values():
            if existing.owner_id == owner_id and existing.channel == channel:
                raise DuplicateError(
                    f"A {channel.value} notification preference already exists"
                )
        preference = NotificationPreference(
            id=str(uuid4()),
            owner_id=owner_id,
            channel=channel,
            days_in_advance=days_in_advance,
            enabled=enabled,
            telegram_chat_id=telegram_chat_id,
        )
        self._records[preference.id] = preference
        return preference

    async def list_preferences(self, owner_id: str) -> list[NotificationPreference]:
        return [p for p in self._records.values() if p.owner_id == owner_id]

    async def update_preference(
        self,
        owner_id: str,
        preference_id: str,
        patch: NotificationPreferencePatch,
    ) -> NotificationPreference:
        updated = patch.apply_to(self._get_owned(owner_id, preference_id))
        self._records[preference_id] = updated
        return updated

    async def delete_preference(self, owner_id: str, preference_id: str) -> None:
        self._get_owned(owner_id, preference_id)
        del self._records[preference_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        owner_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.owner_id == owner_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
