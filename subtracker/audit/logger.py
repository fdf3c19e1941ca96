"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see history of their interactions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from subtracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from subtracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_activity(self, owner_id: str, limit: int = 20) -> list[AuditEvent]:
        """
        The owner's latest audit events, newest first.

        Returns an empty list when there is no storage or it cannot be read;
        activity history never breaks the page showing it.
        """
        if not self._storage:
            return []
        try:
            return await self._storage.get_recent_events(owner_id, limit=limit)
        except Exception as e:
            self._logger.error("audit_read_failed", error=str(e), owner_id=owner_id)
            return []

    async def log_subscription_created(
        self,
        owner_id: str,
        subscription_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.subscription_created(
            owner_id=owner_id,
            subscription_id=subscription_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_subscription_updated(
        self,
        owner_id: str,
        subscription_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.subscription_updated(
            owner_id=owner_id,
            subscription_id=subscription_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_subscription_deleted(
        self,
        owner_id: str,
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.subscription_deleted(
            owner_id=owner_id,
            subscription_id=subscription_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        owner_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected add/edit form."""
        await self.log(AuditEventBuilder.validation_failed(
            owner_id=owner_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_preference_changed(
        self,
        event_type: AuditEventType,
        owner_id: str,
        preference_id: str,
        channel: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.preference_changed(
            event_type=event_type,
            owner_id=owner_id,
            preference_id=preference_id,
            channel=channel,
            correlation_id=correlation_id,
        ))

    async def log_schedule_skipped(
        self,
        owner_id: Optional[str],
        subscription_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record left out of a payment schedule view."""
        await self.log(AuditEventBuilder.schedule_record_skipped(
            owner_id=owner_id,
            subscription_id=subscription_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_export_generated(
        self,
        owner_id: str,
        export_format: str,
        record_count: int,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.export_generated(
            owner_id=owner_id,
            export_format=export_format,
            record_count=record_count,
            filename=filename,
            correlation_id=correlation_id,
        ))

    async def log_notification_result(
        self,
        owner_id: str,
        subscription_id: str,
        channel: str,
        delivered: bool,
        error_message: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.notification_result(
            owner_id=owner_id,
            subscription_id=subscription_id,
            channel=channel,
            delivered=delivered,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_session(self, owner_id: str, signed_in: bool) -> None:
        await self.log(AuditEventBuilder.session_changed(owner_id, signed_in))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            owner_id=owner_id,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        owner_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            owner_id=owner_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a reminder run).
    Pass it through all subsequent operations.
    """
    return uuid4()
