"""
Core Data Models for Subscription Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and export
4. Keep identity fields immutable once assigned

DESIGN DECISION: Records are frozen. A change to a subscription always
produces a new, fully re-validated record (see SubscriptionPatch.apply_to).
Derived values such as the monthly-equivalent cost are never stored here.

Field names are snake_case in Python and camelCase on the wire
(`paymentDate`, `ownerId`, `createdAt`) so exported files keep the
interchange names.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

_DATE = TypeAdapter(date)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# Shared config: camelCase aliases, constructible by field name too.
_RECORD_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillingCycle(str, Enum):
    """
    Billing frequency of a subscription.

    The cycle decides how the price is normalized to a monthly figure
    and how future payment dates are projected.
    """
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class NotificationChannel(str, Enum):
    """Channels a payment reminder can be delivered through."""
    EMAIL = "email"
    PUSH = "push"
    TELEGRAM = "telegram"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class ExportFormat(str, Enum):
    """Supported export formats."""
    CSV = "csv"
    JSON = "json"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


# Offered in the add form. Categories stay free text; this is only a hint.
SUGGESTED_CATEGORIES = (
    "Entertainment",
    "Productivity",
    "Utilities",
    "Health & Fitness",
    "Education",
    "Food & Drink",
    "Shopping",
    "Other",
)


# =============================================================================
# SUBSCRIPTION MODELS
# =============================================================================

class SubscriptionDraft(BaseModel):
    """
    The user-editable part of a subscription, as submitted by the add form.

    Identity (`id`, `owner_id`, `created_at`) is not part of a draft.
    The persistence layer assigns it when the draft is saved.
    """
    model_config = _RECORD_CONFIG

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name, e.g. Netflix"
    )
    price: Decimal = Field(
        ...,
        ge=0,
        description="Price per billing cycle"
    )
    cycle: BillingCycle = Field(
        default=BillingCycle.MONTHLY,
        description="Billing frequency"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text grouping label"
    )
    payment_date: date = Field(
        ...,
        description="Anchor date of the next (or last known) payment"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )

    def to_subscription(
        self,
        subscription_id: str,
        owner_id: str,
        created_at: Optional[datetime] = None,
    ) -> "Subscription":
        """Stamp identity onto this draft."""
        return Subscription(
            id=subscription_id,
            owner_id=owner_id,
            created_at=created_at or utc_now(),
            **self.model_dump(),
        )


class Subscription(SubscriptionDraft):
    """
    A persisted subscription.

    CRITICAL: `owner_id` scopes every read and write. A record is only
    visible to, and only mutable by, the user that owns it.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the persistence layer"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the owning user"
    )
    created_at: datetime = Field(
        ...,
        description="Creation timestamp, never mutated"
    )
    # A stored record can carry a date a hand edit broke. It stays in
    # spending totals and exports. Schedule views skip it with a warning.
    payment_date: Optional[date] = Field(
        default=None,
        description="Anchor date; None when the stored value is missing or unreadable"
    )
    unparsed_payment_date: Optional[str] = Field(
        default=None,
        exclude=True,
        description="Stored payment date text that is not a valid date"
    )

    @model_validator(mode='before')
    @classmethod
    def keep_unreadable_payment_date(cls, data):
        """Move date text that does not parse into unparsed_payment_date."""
        if not isinstance(data, dict):
            return data
        for key in ("payment_date", "paymentDate"):
            value = data.get(key)
            if not isinstance(value, str):
                continue
            text = value.strip()
            try:
                data = {**data, key: _DATE.validate_python(text)}
            except ValidationError:
                data = {**data, key: None}
                if text:
                    data["unparsed_payment_date"] = text
        return data

    @property
    def payment_date_text(self) -> str:
        """ISO date, or the stored text when it is not a valid date."""
        if self.payment_date is not None:
            return self.payment_date.isoformat()
        return self.unparsed_payment_date or ""


class SubscriptionPatch(BaseModel):
    """
    A partial update to a subscription.

    Only the mutable fields exist here, and all of them are optional.
    Fields left unset are not touched. Identity fields cannot be patched;
    passing them is a validation error.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    name: Optional[str] = None
    price: Optional[Decimal] = None
    cycle: Optional[BillingCycle] = None
    category: Optional[str] = None
    payment_date: Optional[date] = None
    notes: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set

    def apply_to(self, subscription: Subscription) -> Subscription:
        """
        Return a new subscription with this patch applied.

        The merged record is validated from scratch, so a cycle change
        re-derives the whole record rather than patching one field.
        """
        if self.is_empty:
            return subscription

        data = subscription.model_dump()
        data.update(self.model_dump(exclude_unset=True))
        if data.get("payment_date") is None:
            data["unparsed_payment_date"] = subscription.unparsed_payment_date
        return Subscription.model_validate(data)

    def changed_fields(self, subscription: Subscription) -> list[str]:
        """Names of the fields whose value this patch actually changes."""
        return [
            name
            for name, value in self.model_dump(exclude_unset=True).items()
            if getattr(subscription, name) != value
        ]


# =============================================================================
# NOTIFICATION PREFERENCE MODELS
# =============================================================================

class NotificationPreference(BaseModel):
    """
    Per-user, per-channel reminder setting.

    A user may hold several preferences, but at most one per channel.
    """
    model_config = _RECORD_CONFIG

    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    channel: NotificationChannel
    days_in_advance: int = Field(
        default=3,
        ge=1,
        le=30,
        description="How many days before a payment to send the reminder"
    )
    enabled: bool = True
    telegram_chat_id: Optional[str] = Field(
        default=None,
        max_length=64,
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class NotificationPreferencePatch(BaseModel):
    """Partial update to a notification preference. The channel is fixed."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    days_in_advance: Optional[int] = Field(default=None, ge=1, le=30)
    enabled: Optional[bool] = None
    telegram_chat_id: Optional[str] = None

    def apply_to(self, preference: NotificationPreference) -> NotificationPreference:
        data = preference.model_dump()
        data.update(self.model_dump(exclude_unset=True))
        data["updated_at"] = utc_now()
        return NotificationPreference.model_validate(data)


class SentNotification(BaseModel):
    """One delivery attempt made by a notification dispatcher."""

    owner_id: str
    channel: NotificationChannel
    message: str
    status: DeliveryStatus
    sent_at: datetime = Field(default_factory=utc_now)
    error: Optional[str] = None


# =============================================================================
# SESSION MODELS
# =============================================================================

class UserProfile(BaseModel):
    """
    The signed-in user as reported by the authentication provider.

    Only `uid` matters to the rest of the system; it becomes `owner_id`.
    """
    model_config = _RECORD_CONFIG

    uid: str = Field(..., min_length=1)
    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None


class SessionContext(BaseModel):
    """
    Everything a flow needs to know about who is acting.

    Built once when the user signs in and passed explicitly to each flow.
    There is no module-level "current user".
    """
    model_config = ConfigDict(frozen=True)

    user: UserProfile
    theme: Theme = Theme.LIGHT

    @property
    def owner_id(self) -> str:
        return self.user.uid


# =============================================================================
# COMPUTED VIEW MODELS
# =============================================================================

class SpendingSummary(BaseModel):
    """Aggregate monthly spend for the dashboard."""

    total_monthly: Decimal
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    subscription_count: int = Field(ge=0)

    @property
    def yearly_projection(self) -> Decimal:
        return self.total_monthly * 12


class UpcomingPayment(BaseModel):
    """A payment that falls inside the lookahead window."""

    subscription: Subscription
    due_date: date
    days_until: int = Field(ge=0)


class UpcomingReport(BaseModel):
    """
    Result of an upcoming-payments scan.

    Records that could not be scheduled are listed in `warnings`
    instead of failing the whole report.
    """

    reference_date: date
    window_days: int = Field(ge=1)
    payments: list[UpcomingPayment] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped_ids: list[str] = Field(default_factory=list)


class ExportArtifact(BaseModel):
    """Encoded export plus what the UI needs to offer it as a download."""

    content: bytes
    filename: str
    media_type: str
    record_count: int = Field(ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating form input before it reaches the core."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


class ReminderOutcome(BaseModel):
    """What happened to one reminder during a reminder run."""

    subscription_id: str
    channel: NotificationChannel
    due_date: date
    message: str
    delivered: bool
    error: Optional[str] = None
