"""
Main Orchestrator for Subscription Tracker

This module ties together all the components and defines the
end-to-end flows used by the front end:
1. Subscriptions (form → validate → save → audit)
2. Dashboard (list → normalize → aggregate → upcoming window)
3. Export (list → encode → download)
4. Notification preferences (add / update / delete per channel)
5. Reminders (preferences → upcoming window → dispatch → audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every flow takes a SessionContext; the owner id comes from it, never
  from the caller's input
- No record reaches storage without passing form validation
- Every step is audited

The core (normalization, aggregation, scheduling, export) stays pure.
Everything with side effects happens here.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from subtracker.audit import AuditLogger, create_correlation_id
from subtracker.config import get_settings
from subtracker.core import (
    find_upcoming,
    next_payment_dates,
    summarize_spending,
)
from subtracker.export import encode
from subtracker.models.audit import AuditEventType
from subtracker.models.subscription import (
    ExportArtifact,
    ExportFormat,
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    ReminderOutcome,
    SessionContext,
    SpendingSummary,
    Subscription,
    SubscriptionPatch,
    UpcomingPayment,
    UpcomingReport,
    ValidationResult,
)
from subtracker.services.notifications import (
    MockNotificationDispatcher,
    NotificationDispatcher,
    NotificationError,
)
from subtracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPreferenceStorage,
    GoogleSheetsSubscriptionStorage,
    InMemoryAuditStorage,
    InMemoryPreferenceStorage,
    InMemorySubscriptionStorage,
    NotificationPreferenceStorageInterface,
    StorageError,
    SubscriptionStorageInterface,
)
from subtracker.services.storage import ConnectionError as StorageConnectionError
from subtracker.validation import SubscriptionValidator


logger = structlog.get_logger(__name__)


def _current_form(subscription: Subscription) -> dict[str, Any]:
    return subscription.model_dump(include={
        "name", "price", "cycle", "category", "payment_date", "notes",
    })


async def _audit_failure(
    audit_logger: Optional[AuditLogger],
    session: SessionContext,
    error: StorageError,
    correlation_id: Optional[UUID] = None,
) -> None:
    """Record a storage failure; the caller re-raises it."""
    if not audit_logger:
        return
    if isinstance(error, StorageConnectionError):
        await audit_logger.log_external_service_error(
            service="google_sheets",
            error_message=str(error),
            owner_id=session.owner_id,
            correlation_id=correlation_id,
        )
    else:
        await audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            owner_id=session.owner_id,
            correlation_id=correlation_id,
        )


class SubscriptionFlow:
    """
    Orchestrates creating, editing and removing subscriptions.

    Flow:
    1. Validate → Two-stage form validation
    2. Save → Persist through the storage interface (owner stamped here)
    3. Audit → Record what changed

    Invalid input is returned to the form, never saved.
    """

    def __init__(
        self,
        storage: SubscriptionStorageInterface,
        validator: Optional[SubscriptionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or SubscriptionValidator()
        self._audit_logger = audit_logger

    def describe_validation(self, result: ValidationResult) -> str:
        return self._validator.get_user_friendly_summary(result)

    async def list_subscriptions(self, session: SessionContext) -> list[Subscription]:
        return await self._storage.list_subscriptions(session.owner_id)

    async def get_subscription(
        self,
        session: SessionContext,
        subscription_id: str,
    ) -> Subscription:
        return await self._storage.get_subscription(session.owner_id, subscription_id)

    async def create_subscription(
        self,
        session: SessionContext,
        form: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Subscription], ValidationResult]:
        """
        Validate form input and save it as a new subscription.

        Returns:
            (subscription, validation_result)

        `subscription` is None when validation failed.
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(form)
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    owner_id=session.owner_id,
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            return None, result

        draft = self._validator.to_draft(form)
        try:
            subscription = await self._storage.add_subscription(session.owner_id, draft)
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_subscription_created(
                owner_id=session.owner_id,
                subscription_id=subscription.id,
                name=subscription.name,
                correlation_id=correlation_id,
            )

        return subscription, result

    async def update_subscription(
        self,
        session: SessionContext,
        subscription_id: str,
        patch: SubscriptionPatch,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Subscription], ValidationResult]:
        """
        Apply a partial edit.

        The merged record is validated as a whole before it is saved.
        An edit that changes nothing is not written.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            current = await self._storage.get_subscription(session.owner_id, subscription_id)
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e, correlation_id)
            raise
        result = self._validator.validate_patch(patch, _current_form(current))
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    owner_id=session.owner_id,
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            return None, result

        changed = patch.changed_fields(current)
        if not changed:
            return current, result

        try:
            updated = await self._storage.update_subscription(
                session.owner_id, subscription_id, patch
            )
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_subscription_updated(
                owner_id=session.owner_id,
                subscription_id=subscription_id,
                changed_fields=changed,
                correlation_id=correlation_id,
            )

        return updated, result

    async def delete_subscription(
        self,
        session: SessionContext,
        subscription_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        try:
            await self._storage.delete_subscription(session.owner_id, subscription_id)
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_subscription_deleted(
                owner_id=session.owner_id,
                subscription_id=subscription_id,
                correlation_id=correlation_id,
            )

    async def payment_schedule(
        self,
        session: SessionContext,
        subscription_id: str,
        count: Optional[int] = None,
    ) -> list[date]:
        """
        Next `count` payment dates of one subscription, starting at its anchor.

        Raises:
            InvalidDate: if the stored payment date is missing or unreadable
        """
        subscription = await self.get_subscription(session, subscription_id)
        count = count or get_settings().app.schedule_preview_count
        anchor = subscription.payment_date or subscription.unparsed_payment_date
        return next_payment_dates(anchor, subscription.cycle, count)


class DashboardFlow:
    """
    Builds the dashboard: spending summary plus upcoming payments.

    Records the scheduler had to skip are shown as warnings and audited.
    They never fail the page.
    """

    def __init__(
        self,
        storage: SubscriptionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    async def build(
        self,
        session: SessionContext,
        today: Optional[date] = None,
        window_days: Optional[int] = None,
    ) -> tuple[SpendingSummary, UpcomingReport]:
        """
        Returns:
            (spending_summary, upcoming_report)
        """
        today = today or date.today()
        subscriptions = await self._storage.list_subscriptions(session.owner_id)

        summary = summarize_spending(subscriptions, owner_id=session.owner_id)
        report = find_upcoming(
            subscriptions,
            today,
            window_days or self._settings.upcoming_window_days,
            owner_id=session.owner_id,
            roll_forward=self._settings.roll_forward_stale_dates,
        )

        if self._audit_logger and report.skipped_ids:
            correlation_id = create_correlation_id()
            for subscription_id, reason in zip(report.skipped_ids, report.warnings):
                await self._audit_logger.log_schedule_skipped(
                    owner_id=session.owner_id,
                    subscription_id=subscription_id,
                    reason=reason,
                    correlation_id=correlation_id,
                )

        return summary, report


class ExportFlow:
    """Encodes the signed-in user's subscriptions for download."""

    def __init__(
        self,
        storage: SubscriptionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def export(
        self,
        session: SessionContext,
        export_format: Union[ExportFormat, str],
        today: Optional[date] = None,
    ) -> ExportArtifact:
        subscriptions = await self._storage.list_subscriptions(session.owner_id)
        artifact = encode(
            subscriptions,
            export_format,
            today=today,
            owner_id=session.owner_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_export_generated(
                owner_id=session.owner_id,
                export_format=ExportFormat(export_format).value,
                record_count=artifact.record_count,
                filename=artifact.filename,
            )

        return artifact


class PreferenceFlow:
    """Manages per-channel reminder preferences."""

    def __init__(
        self,
        storage: NotificationPreferenceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _audit(
        self,
        event_type: AuditEventType,
        session: SessionContext,
        preference: NotificationPreference,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_preference_changed(
                event_type=event_type,
                owner_id=session.owner_id,
                preference_id=preference.id,
                channel=preference.channel.value,
            )

    async def list_preferences(self, session: SessionContext) -> list[NotificationPreference]:
        return await self._storage.list_preferences(session.owner_id)

    async def add_preference(
        self,
        session: SessionContext,
        channel: Union[NotificationChannel, str],
        days_in_advance: int = 3,
        enabled: bool = True,
        telegram_chat_id: Optional[str] = None,
    ) -> NotificationPreference:
        """
        Raises:
            DuplicateError: if the user already has a preference for the channel
        """
        try:
            preference = await self._storage.add_preference(
                session.owner_id,
                NotificationChannel(channel),
                days_in_advance=days_in_advance,
                enabled=enabled,
                telegram_chat_id=telegram_chat_id,
            )
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e)
            raise
        await self._audit(AuditEventType.PREFERENCE_CREATED, session, preference)
        return preference

    async def update_preference(
        self,
        session: SessionContext,
        preference_id: str,
        patch: NotificationPreferencePatch,
    ) -> NotificationPreference:
        try:
            preference = await self._storage.update_preference(
                session.owner_id, preference_id, patch
            )
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e)
            raise
        await self._audit(AuditEventType.PREFERENCE_UPDATED, session, preference)
        return preference

    async def delete_preference(
        self,
        session: SessionContext,
        preference: NotificationPreference,
    ) -> None:
        try:
            await self._storage.delete_preference(session.owner_id, preference.id)
        except StorageError as e:
            await _audit_failure(self._audit_logger, session, e)
            raise
        await self._audit(AuditEventType.PREFERENCE_DELETED, session, preference)


def render_reminder_message(
    payment: UpcomingPayment,
    currency_symbol: str = "$",
) -> str:
    """One-line reminder text for an upcoming payment."""
    if payment.days_until == 0:
        when = "today"
    elif payment.days_until == 1:
        when = "tomorrow"
    else:
        when = f"in {payment.days_until} days"

    subscription = payment.subscription
    return (
        f"Reminder: {subscription.name} ({currency_symbol}{subscription.price:,.2f}) "
        f"is due {when}, on {payment.due_date.isoformat()}"
    )


class ReminderFlow:
    """
    Sends payment reminders for one user.

    Flow:
    1. Load enabled preferences
    2. Per preference, find payments within its days_in_advance window
    3. Render and dispatch one message per payment
    4. Audit every delivery, successful or not

    A failed delivery is recorded and the run carries on.
    """

    def __init__(
        self,
        subscription_storage: SubscriptionStorageInterface,
        preference_storage: NotificationPreferenceStorageInterface,
        dispatcher: NotificationDispatcher,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._subscriptions = subscription_storage
        self._preferences = preference_storage
        self._dispatcher = dispatcher
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    async def run(
        self,
        session: SessionContext,
        today: Optional[date] = None,
    ) -> list[ReminderOutcome]:
        correlation_id = create_correlation_id()
        today = today or date.today()
        owner_id = session.owner_id

        preferences = [
            p for p in await self._preferences.list_preferences(owner_id) if p.enabled
        ]
        if not preferences:
            return []

        subscriptions = await self._subscriptions.list_subscriptions(owner_id)
        outcomes = []

        for preference in preferences:
            report = find_upcoming(
                subscriptions,
                today,
                preference.days_in_advance,
                owner_id=owner_id,
                roll_forward=self._settings.roll_forward_stale_dates,
            )
            for payment in report.payments:
                message = render_reminder_message(payment, self._settings.currency_symbol)
                error = None
                try:
                    delivered = await self._dispatcher.send(
                        owner_id, message, channel=preference.channel
                    )
                except NotificationError as e:
                    delivered = False
                    error = str(e)
                    logger.warning(
                        "reminder_dispatch_failed",
                        owner_id=owner_id,
                        channel=preference.channel.value,
                        error=error,
                    )

                if self._audit_logger:
                    await self._audit_logger.log_notification_result(
                        owner_id=owner_id,
                        subscription_id=payment.subscription.id,
                        channel=preference.channel.value,
                        delivered=delivered,
                        error_message=error,
                        correlation_id=correlation_id,
                    )

                outcomes.append(ReminderOutcome(
                    subscription_id=payment.subscription.id,
                    channel=preference.channel,
                    due_date=payment.due_date,
                    message=message,
                    delivered=delivered,
                    error=error,
                ))

        return outcomes


@dataclass
class AppComponents:
    """Everything the front end needs, wired to one storage backend."""

    subscriptions: SubscriptionFlow
    dashboard: DashboardFlow
    exports: ExportFlow
    preferences: PreferenceFlow
    reminders: ReminderFlow
    audit_logger: AuditLogger
    backend: str


def create_app_components(
    storage_backend: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        storage_backend: "memory" or "google_sheets". Defaults to the
                        STORAGE_BACKEND setting.
        dispatcher: Notification dispatcher. Defaults to the mock one.

    If Google Sheets is requested but cannot be set up, the app falls back
    to in-memory storage and logs a warning.
    """
    backend = storage_backend or get_settings().app.storage_backend

    subscription_storage: SubscriptionStorageInterface
    preference_storage: NotificationPreferenceStorageInterface

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            subscription_storage = GoogleSheetsSubscriptionStorage(sheets_client)
            preference_storage = GoogleSheetsPreferenceStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", backend=backend, error=str(e))
            backend = "memory"

    if backend != "google_sheets":
        subscription_storage = InMemorySubscriptionStorage()
        preference_storage = InMemoryPreferenceStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    return AppComponents(
        subscriptions=SubscriptionFlow(subscription_storage, audit_logger=audit_logger),
        dashboard=DashboardFlow(subscription_storage, audit_logger=audit_logger),
        exports=ExportFlow(subscription_storage, audit_logger=audit_logger),
        preferences=PreferenceFlow(preference_storage, audit_logger=audit_logger),
        reminders=ReminderFlow(
            subscription_storage,
            preference_storage,
            dispatcher or MockNotificationDispatcher(),
            audit_logger=audit_logger,
        ),
        audit_logger=audit_logger,
        backend=backend,
    )
