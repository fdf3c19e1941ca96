"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

CRITICAL: Every operation is scoped by owner id. Implementations must
refuse to read, change or delete a record that belongs to another owner.
"""

from abc import ABC, abstractmethod
from typing import Optional

from subtracker.models.audit import AuditEvent
from subtracker.models.subscription import (
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    Subscription,
    SubscriptionDraft,
    SubscriptionPatch,
)


class SubscriptionStorageInterface(ABC):
    """
    Abstract interface for subscription storage operations.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def add_subscription(
        self,
        owner_id: str,
        draft: SubscriptionDraft,
    ) -> Subscription:
        """
        Persist a new subscription.

        The implementation assigns the id and stamps `owner_id` and
        `created_at`.

        Returns:
            The stored subscription

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> Subscription:
        """
        Retrieve one subscription.

        Raises:
            NotFoundError: If no such subscription exists
            PermissionDeniedError: If it belongs to another owner
        """
        pass

    @abstractmethod
    async def list_subscriptions(self, owner_id: str) -> list[Subscription]:
        """
        List every subscription owned by `owner_id`.

        Returns:
            Subscriptions in creation order
        """
        pass

    @abstractmethod
    async def update_subscription(
        self,
        owner_id: str,
        subscription_id: str,
        patch: SubscriptionPatch,
    ) -> Subscription:
        """
        Apply a partial update.

        Returns:
            The updated subscription

        Raises:
            NotFoundError: If no such subscription exists
            PermissionDeniedError: If it belongs to another owner
        """
        pass

    @abstractmethod
    async def delete_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> None:
        """
        Permanently delete a subscription. There is no undo.

        Raises:
            NotFoundError: If no such subscription exists
            PermissionDeniedError: If it belongs to another owner
        """
        pass


class NotificationPreferenceStorageInterface(ABC):
    """Abstract interface for per-channel reminder preferences."""

    @abstractmethod
    async def add_preference(
        self,
        owner_id: str,
        channel: NotificationChannel,
        days_in_advance: int = 3,
        enabled: bool = True,
        telegram_chat_id: Optional[str] = None,
    ) -> NotificationPreference:
        """
        Create a preference for a channel.

        Raises:
            DuplicateError: If the owner already has one for this channel
        """
        pass

    @abstractmethod
    async def list_preferences(self, owner_id: str) -> list[NotificationPreference]:
        pass

    @abstractmethod
    async def update_preference(
        self,
        owner_id: str,
        preference_id: str,
        patch: NotificationPreferencePatch,
    ) -> NotificationPreference:
        """
        Raises:
            NotFoundError: If no such preference exists
            PermissionDeniedError: If it belongs to another owner
        """
        pass

    @abstractmethod
    async def delete_preference(self, owner_id: str, preference_id: str) -> None:
        """
        Raises:
            NotFoundError: If no such preference exists
            PermissionDeniedError: If it belongs to another owner
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        owner_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events for one owner.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class PermissionDeniedError(StorageError):
    """The acting owner does not own the requested entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def check_owner(record_owner: str, owner_id: str, entity: str, entity_id: str) -> None:
    """Raise PermissionDeniedError unless the record belongs to `owner_id`."""
    if record_owner != owner_id:
        raise PermissionDeniedError(
            f"You do not have permission to access this {entity} ({entity_id})"
        )
