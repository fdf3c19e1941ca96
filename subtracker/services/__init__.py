"""Services package."""

from subtracker.services.notifications import (
    MockNotificationDispatcher,
    NotificationDispatcher,
    NotificationError,
)
from subtracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPreferenceStorage,
    GoogleSheetsSubscriptionStorage,
    InMemoryAuditStorage,
    InMemoryPreferenceStorage,
    InMemorySubscriptionStorage,
    NotFoundError,
    NotificationPreferenceStorageInterface,
    PermissionDeniedError,
    StorageError,
    SubscriptionStorageInterface,
)

__all__ = [
    # Notification services
    "MockNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPreferenceStorage",
    "GoogleSheetsSubscriptionStorage",
    "InMemoryAuditStorage",
    "InMemoryPreferenceStorage",
    "InMemorySubscriptionStorage",
    "NotFoundError",
    "NotificationPreferenceStorageInterface",
    "PermissionDeniedError",
    "StorageError",
    "SubscriptionStorageInterface",
]
