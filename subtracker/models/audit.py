"""
Audit Models for Subscription Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all operations
2. Debugging information when things go wrong
3. A per-user history of changes to their data

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from subtracker.models.subscription import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Subscription lifecycle
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_DELETED = "subscription_deleted"
    SUBSCRIPTION_VALIDATION_FAILED = "subscription_validation_failed"

    # Notification preferences
    PREFERENCE_CREATED = "preference_created"
    PREFERENCE_UPDATED = "preference_updated"
    PREFERENCE_DELETED = "preference_deleted"

    # Computed views
    SCHEDULE_RECORD_SKIPPED = "schedule_record_skipped"
    EXPORT_GENERATED = "export_generated"

    # Reminders
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"

    # Session
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who acted
    owner_id: Optional[str] = Field(
        default=None,
        description="Owner the event belongs to"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'subscription', 'preference', 'export')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one reminder run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.subscription_created(owner_id, subscription_id, name)
        event = AuditEventBuilder.export_generated(owner_id, "csv", 12, filename)
    """

    @staticmethod
    def subscription_created(
        owner_id: str,
        subscription_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_CREATED,
            owner_id=owner_id,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Subscription added: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def subscription_updated(
        owner_id: str,
        subscription_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_UPDATED,
            owner_id=owner_id,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=f"Subscription updated ({len(changed_fields)} fields changed)",
            details={
                "changed_fields": changed_fields,
                "cycle_changed": "cycle" in changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def subscription_deleted(
        owner_id: str,
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_DELETED,
            owner_id=owner_id,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description="Subscription deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        owner_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="subscription",
            correlation_id=correlation_id,
            description=f"Subscription form rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def preference_changed(
        event_type: AuditEventType,
        owner_id: str,
        preference_id: str,
        channel: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type="preference",
            entity_id=preference_id,
            correlation_id=correlation_id,
            description=f"Notification preference {verb}: {channel}",
            details={"channel": channel},
            is_user_action=True,
        )

    @staticmethod
    def schedule_record_skipped(
        owner_id: Optional[str],
        subscription_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULE_RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description="Subscription excluded from payment schedule",
            error_message=reason,
        )

    @staticmethod
    def export_generated(
        owner_id: str,
        export_format: str,
        record_count: int,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            owner_id=owner_id,
            entity_type="export",
            entity_id=filename,
            correlation_id=correlation_id,
            description=f"Exported {record_count} subscriptions as {export_format}",
            details={
                "format": export_format,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def notification_result(
        owner_id: str,
        subscription_id: str,
        channel: str,
        delivered: bool,
        error_message: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.NOTIFICATION_SENT
                if delivered
                else AuditEventType.NOTIFICATION_FAILED
            ),
            severity=AuditSeverity.INFO if delivered else AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type="subscription",
            entity_id=subscription_id,
            correlation_id=correlation_id,
            description=(
                f"Reminder {'sent' if delivered else 'failed'} via {channel}"
            ),
            details={"channel": channel},
            error_message=error_message,
        )

    @staticmethod
    def session_changed(
        owner_id: str,
        signed_in: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.USER_SIGNED_IN
                if signed_in
                else AuditEventType.USER_SIGNED_OUT
            ),
            owner_id=owner_id,
            entity_type="user",
            entity_id=owner_id,
            description="User signed in" if signed_in else "User signed out",
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
