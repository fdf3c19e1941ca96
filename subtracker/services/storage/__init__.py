"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests and
unconfigured deployments.
"""

from subtracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    NotificationPreferenceStorageInterface,
    PermissionDeniedError,
    StorageError,
    SubscriptionStorageInterface,
)
from subtracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPreferenceStorage,
    GoogleSheetsSubscriptionStorage,
)
from subtracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryPreferenceStorage,
    InMemorySubscriptionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "NotificationPreferenceStorageInterface",
    "SubscriptionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPreferenceStorage",
    "GoogleSheetsSubscriptionStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryPreferenceStorage",
    "InMemorySubscriptionStorage",
]
