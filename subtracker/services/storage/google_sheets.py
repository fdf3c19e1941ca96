"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter by owner in Python)

The implementation follows the abstract interface, so we can swap
to another document store later without changing business logic.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from subtracker.config import get_settings
from subtracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from subtracker.models.subscription import (
    BillingCycle,
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    Subscription,
    SubscriptionDraft,
    SubscriptionPatch,
)
from subtracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    NotificationPreferenceStorageInterface,
    StorageError,
    SubscriptionStorageInterface,
    check_owner,
)

logger = structlog.get_logger(__name__)


# Column mappings for Subscriptions sheet
SUBSCRIPTION_COLUMNS = [
    "id",
    "owner_id",
    "name",
    "price",
    "cycle",
    "category",
    "payment_date",
    "notes",
    "created_at",
]

# Column mappings for NotificationPreferences sheet
PREFERENCE_COLUMNS = [
    "id",
    "owner_id",
    "channel",
    "days_in_advance",
    "enabled",
    "telegram_chat_id",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _find_row(sheet: gspread.Worksheet, record_id: str) -> tuple[int, list]:
    """
    Locate a record by id.

    Returns:
        (1-based sheet row number, row values)

    Raises:
        NotFoundError: if no row has this id
    """
    all_rows = sheet.get_all_values()
    for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
        if row and row[0] == record_id:
            return idx, row
    raise NotFoundError(f"Record not found: {record_id}")


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
def _write_row(sheet: gspread.Worksheet, idx: int, values: list) -> None:
    """Rewrite a whole row in one call, stored as typed (never as formulas)."""
    sheet.update(
        range_name=f"A{idx}",
        values=[values],
        value_input_option="RAW",
    )


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_subscriptions_sheet(self) -> gspread.Worksheet:
        """Get or create the Subscriptions worksheet."""
        return self._get_or_create_sheet(
            self._settings.subscriptions_sheet_name, SUBSCRIPTION_COLUMNS, 1000
        )

    def get_preferences_sheet(self) -> gspread.Worksheet:
        """Get or create the NotificationPreferences worksheet."""
        return self._get_or_create_sheet(
            self._settings.preferences_sheet_name, PREFERENCE_COLUMNS, 200
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000
        )


class GoogleSheetsSubscriptionStorage(SubscriptionStorageInterface):
    """
    Google Sheets implementation of subscription storage.

    One subscription per row. All owners share the sheet; every operation
    filters or checks on the owner_id column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _subscription_to_row(self, subscription: Subscription) -> list:
        """Convert a Subscription to a spreadsheet row."""
        return [
            subscription.id,
            subscription.owner_id,
            subscription.name,
            format(subscription.price, "f"),
            subscription.cycle.value,
            subscription.category,
            subscription.payment_date_text,
            subscription.notes or "",
            subscription.created_at.isoformat(),
        ]

    def _row_to_subscription(self, row: list) -> Subscription:
        """
        Convert a spreadsheet row to a Subscription.

        An unreadable payment date does not reject the row: the record is
        loaded without a date and keeps the cell text, so it still counts
        toward spending and exports and the scheduler can report it.
        """
        subscription = Subscription(
            id=_safe_get(row, 0),
            owner_id=_safe_get(row, 1),
            name=_safe_get(row, 2),
            price=Decimal(_safe_get(row, 3, "0")),
            cycle=BillingCycle(_safe_get(row, 4)),
            category=_safe_get(row, 5),
            payment_date=_safe_get(row, 6) or None,
            notes=_safe_get(row, 7) or None,
            created_at=datetime.fromisoformat(_safe_get(row, 8)),
        )
        if subscription.unparsed_payment_date:
            logger.warning(
                "subscription_payment_date_unreadable",
                subscription_id=subscription.id,
                value=subscription.unparsed_payment_date,
            )
        return subscription

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def add_subscription(
        self,
        owner_id: str,
        draft: SubscriptionDraft,
    ) -> Subscription:
        """Append a new subscription row."""
        subscription = draft.to_subscription(str(uuid4()), owner_id)
        try:
            sheet = self._client.get_subscriptions_sheet()
            sheet.append_row(
                self._subscription_to_row(subscription),
                value_input_option="RAW",
            )
            return subscription
        except Exception as e:
            raise StorageError(f"Failed to save subscription: {e}")

    async def get_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> Subscription:
        """Retrieve a subscription by id, checking ownership."""
        try:
            sheet = self._client.get_subscriptions_sheet()
            _, row = _find_row(sheet, subscription_id)
        except NotFoundError:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        except Exception as e:
            raise StorageError(f"Failed to get subscription: {e}")

        check_owner(_safe_get(row, 1), owner_id, "subscription", subscription_id)
        return self._row_to_subscription(row)

    async def list_subscriptions(self, owner_id: str) -> list[Subscription]:
        """List the owner's subscriptions in sheet order."""
        try:
            sheet = self._client.get_subscriptions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list subscriptions: {e}")

        subscriptions = []
        for row in all_rows:
            if not row or not row[0] or _safe_get(row, 1) != owner_id:
                continue
            try:
                subscriptions.append(self._row_to_subscription(row))
            except (ValueError, ArithmeticError) as e:
                # Malformed rows are hand edits in the sheet; keep the rest usable.
                logger.warning(
                    "subscription_row_skipped",
                    subscription_id=row[0],
                    error=str(e),
                )
        return subscriptions

    async def update_subscription(
        self,
        owner_id: str,
        subscription_id: str,
        patch: SubscriptionPatch,
    ) -> Subscription:
        """Rewrite the subscription's row with the patch applied."""
        try:
            sheet = self._client.get_subscriptions_sheet()
            idx, row = _find_row(sheet, subscription_id)
        except NotFoundError:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        except Exception as e:
            raise StorageError(f"Failed to update subscription: {e}")

        check_owner(_safe_get(row, 1), owner_id, "subscription", subscription_id)
        updated = patch.apply_to(self._row_to_subscription(row))

        try:
            _write_row(sheet, idx, self._subscription_to_row(updated))
        except Exception as e:
            raise StorageError(f"Failed to update subscription: {e}")
        return updated

    async def delete_subscription(
        self,
        owner_id: str,
        subscription_id: str,
    ) -> None:
        """Delete the subscription's row."""
        try:
            sheet = self._client.get_subscriptions_sheet()
            idx, row = _find_row(sheet, subscription_id)
        except NotFoundError:
            raise NotFoundError(f"Subscription not found: {subscription_id}")
        except Exception as e:
            raise StorageError(f"Failed to delete subscription: {e}")

        check_owner(_safe_get(row, 1), owner_id, "subscription", subscription_id)
        try:
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete subscription: {e}")


class GoogleSheetsPreferenceStorage(NotificationPreferenceStorageInterface):
    """Google Sheets implementation of notification preference storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _preference_to_row(self, preference: NotificationPreference) -> list:
        return [
            preference.id,
            preference.owner_id,
            preference.channel.value,
            str(preference.days_in_advance),
            str(preference.enabled),
            preference.telegram_chat_id or "",
            preference.created_at.isoformat(),
            preference.updated_at.isoformat() if preference.updated_at else "",
        ]

    def _row_to_preference(self, row: list) -> NotificationPreference:
        return NotificationPreference(
            id=_safe_get(row, 0),
            owner_id=_safe_get(row, 1),
            channel=NotificationChannel(_safe_get(row, 2)),
            days_in_advance=int(_safe_get(row, 3, "3")),
            enabled=_safe_get(row, 4).lower() == "true",
            telegram_chat_id=_safe_get(row, 5) or None,
            created_at=datetime.fromisoformat(_safe_get(row, 6)),
            updated_at=datetime.fromisoformat(_safe_get(row, 7)) if _safe_get(row, 7) else None,
        )

    async def list_preferences(self, owner_id: str) -> list[NotificationPreference]:
        try:
            sheet = self._client.get_preferences_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list notification preferences: {e}")

        preferences = []
        for row in all_rows:
            if not row or not row[0] or _safe_get(row, 1) != owner_id:
                continue
            try:
                preferences.append(self._row_to_preference(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning(
                    "preference_row_skipped",
                    preference_id=row[0],
                    error=str(e),
                )
        return preferences

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, preference: NotificationPreference) -> None:
        try:
            sheet = self._client.get_preferences_sheet()
            sheet.append_row(
                self._preference_to_row(preference),
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to save notification preference: {e}")

    async def add_preference(
        self,
        owner_id: str,
        channel: NotificationChannel,
        days_in_advance: int = 3,
        enabled: bool = True,
        telegram_chat_id: Optional[str] = None,
    ) -> NotificationPreference:
        existing = await self.list_preferences(owner_id)
        if any(p.channel == channel for p in existing):
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
        await self._append(preference)
        return preference

    async def update_preference(
        self,
        owner_id: str,
        preference_id: str,
        patch: NotificationPreferencePatch,
    ) -> NotificationPreference:
        try:
            sheet = self._client.get_preferences_sheet()
            idx, row = _find_row(sheet, preference_id)
        except NotFoundError:
            raise NotFoundError(f"Notification preference not found: {preference_id}")
        except Exception as e:
            raise StorageError(f"Failed to update notification preference: {e}")

        check_owner(_safe_get(row, 1), owner_id, "notification preference", preference_id)
        updated = patch.apply_to(self._row_to_preference(row))

        try:
            _write_row(sheet, idx, self._preference_to_row(updated))
        except Exception as e:
            raise StorageError(f"Failed to update notification preference: {e}")
        return updated

    async def delete_preference(self, owner_id: str, preference_id: str) -> None:
        try:
            sheet = self._client.get_preferences_sheet()
            idx, row = _find_row(sheet, preference_id)
        except NotFoundError:
            raise NotFoundError(f"Notification preference not found: {preference_id}")
        except Exception as e:
            raise StorageError(f"Failed to delete notification preference: {e}")

        check_owner(_safe_get(row, 1), owner_id, "notification preference", preference_id)
        try:
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete notification preference: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            owner_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_append_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ArithmeticError):
                continue
        return events

    async def get_recent_events(
        self,
        owner_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get an owner's recent events, newest first."""
        try:
            events = [e for e in self._load_events() if e.owner_id == owner_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
