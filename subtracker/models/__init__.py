"""
Data Models Package

This package contains all Pydantic models used in the Subscription Tracker.
All data flowing through the system must conform to these schemas.
"""

from subtracker.models.subscription import (
    SUGGESTED_CATEGORIES,
    BillingCycle,
    DeliveryStatus,
    ExportArtifact,
    ExportFormat,
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    ReminderOutcome,
    SentNotification,
    SessionContext,
    SpendingSummary,
    Subscription,
    SubscriptionDraft,
    SubscriptionPatch,
    Theme,
    UpcomingPayment,
    UpcomingReport,
    UserProfile,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from subtracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Subscription models
    "SUGGESTED_CATEGORIES",
    "BillingCycle",
    "DeliveryStatus",
    "ExportArtifact",
    "ExportFormat",
    "NotificationChannel",
    "NotificationPreference",
    "NotificationPreferencePatch",
    "ReminderOutcome",
    "SentNotification",
    "SessionContext",
    "SpendingSummary",
    "Subscription",
    "SubscriptionDraft",
    "SubscriptionPatch",
    "Theme",
    "UpcomingPayment",
    "UpcomingReport",
    "UserProfile",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
