"""
Tests for Subscription Tracker models

Test strategy:
1. Unit tests for individual components (models, core, validators)
2. Integration tests for flows (in-memory storage, mock dispatcher)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from subtracker.models.subscription import (
    BillingCycle,
    NotificationChannel,
    NotificationPreference,
    NotificationPreferencePatch,
    SessionContext,
    SpendingSummary,
    SubscriptionDraft,
    SubscriptionPatch,
    UserProfile,
    ValidationIssue,
    ValidationResult,
)
from subtracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestSubscriptionModels:
    """Tests for subscription-related Pydantic models."""

    def test_draft_creation(self):
        """Test SubscriptionDraft model creation with the default cycle."""
        draft = SubscriptionDraft(
            name="Spotify",
            price=Decimal("10.99"),
            category="Entertainment",
            payment_date=date(2024, 3, 1),
        )
        assert draft.name == "Spotify"
        assert draft.cycle == BillingCycle.MONTHLY
        assert draft.notes is None

    def test_draft_rejects_negative_price(self):
        """Test that negative prices are rejected."""
        with pytest.raises(ValueError):
            SubscriptionDraft(
                name="Test",
                price=Decimal("-1"),
                category="Other",
                payment_date=date(2024, 3, 1),
            )

    def test_draft_rejects_unknown_cycle(self):
        """Test that the cycle is a closed enumeration."""
        with pytest.raises(ValueError):
            SubscriptionDraft(
                name="Test",
                price=Decimal("1"),
                cycle="biweekly",
                category="Other",
                payment_date=date(2024, 3, 1),
            )

    def test_to_subscription_stamps_identity(self):
        """Test that identity is added when a draft is saved."""
        draft = SubscriptionDraft(
            name="Gym",
            price=Decimal("30"),
            category="Health & Fitness",
            payment_date=date(2024, 3, 1),
        )
        subscription = draft.to_subscription("abc", "user-1")
        assert subscription.id == "abc"
        assert subscription.owner_id == "user-1"
        assert subscription.created_at.tzinfo is not None
        assert subscription.price == Decimal("30")

    def test_subscription_is_frozen(self, make_subscription):
        """Test that persisted records cannot be mutated in place."""
        subscription = make_subscription()
        with pytest.raises(ValidationError):
            subscription.price = Decimal("1")

    def test_camel_case_aliases(self, make_subscription):
        """Test that the interchange names are used when dumping by alias."""
        data = make_subscription().model_dump(by_alias=True)
        assert "paymentDate" in data
        assert "ownerId" in data
        assert "createdAt" in data

    def test_subscription_accepts_aliases(self, make_subscription):
        """Test that records can be built from interchange names."""
        original = make_subscription()
        rebuilt = type(original).model_validate(original.model_dump(by_alias=True))
        assert rebuilt == original

    def test_stored_record_keeps_unreadable_date(self, make_subscription):
        """Test that a persisted record loads with its bad date text set aside."""
        subscription = make_subscription(payment_date=" 31/01/2024 ")
        assert subscription.payment_date is None
        assert subscription.unparsed_payment_date == "31/01/2024"
        assert "unparsed_payment_date" not in subscription.model_dump()

    def test_draft_still_requires_valid_date(self):
        """Test that new input cannot carry an unreadable date."""
        with pytest.raises(ValidationError):
            SubscriptionDraft(
                name="Gym",
                price=Decimal("30"),
                category="Health",
                payment_date="31/01/2024",
            )

    def test_patch_carries_unreadable_date(self, make_subscription):
        """Test that editing other fields keeps the stored date text until it is fixed."""
        broken = make_subscription(payment_date="31/01/2024")
        repriced = SubscriptionPatch(price=Decimal("35")).apply_to(broken)
        assert repriced.unparsed_payment_date == "31/01/2024"

        fixed = SubscriptionPatch(payment_date=date(2024, 1, 31)).apply_to(broken)
        assert fixed.payment_date == date(2024, 1, 31)
        assert fixed.unparsed_payment_date is None


class TestSubscriptionPatch:
    """Tests for partial updates."""

    def test_patch_rejects_identity_fields(self):
        """Test that id, owner and creation time cannot be patched."""
        for field in ("id", "owner_id", "created_at"):
            with pytest.raises(ValidationError):
                SubscriptionPatch(**{field: "x"})

    def test_empty_patch_returns_same_record(self, make_subscription):
        """Test that an empty patch is a no-op."""
        subscription = make_subscription()
        patch = SubscriptionPatch()
        assert patch.is_empty
        assert patch.apply_to(subscription) is subscription

    def test_apply_keeps_identity(self, make_subscription):
        """Test that applying a patch keeps id, owner and created_at."""
        subscription = make_subscription()
        updated = SubscriptionPatch(cycle=BillingCycle.YEARLY, price=Decimal("99")).apply_to(subscription)
        assert updated.id == subscription.id
        assert updated.owner_id == subscription.owner_id
        assert updated.created_at == subscription.created_at
        assert updated.cycle == BillingCycle.YEARLY
        assert updated.price == Decimal("99")
        assert updated.name == subscription.name

    def test_apply_revalidates(self, make_subscription):
        """Test that the merged record is validated from scratch."""
        with pytest.raises(ValidationError):
            SubscriptionPatch(price=Decimal("-5")).apply_to(make_subscription())

    def test_changed_fields(self, make_subscription):
        """Test that only fields whose value differs are reported."""
        subscription = make_subscription()
        patch = SubscriptionPatch(name=subscription.name, category="Utilities")
        assert patch.changed_fields(subscription) == ["category"]


class TestNotificationPreference:
    """Tests for notification preference models."""

    def test_days_in_advance_bounds(self):
        """Test that days_in_advance must be between 1 and 30."""
        for days in (0, 31):
            with pytest.raises(ValidationError):
                NotificationPreference(
                    id="p1",
                    owner_id="user-1",
                    channel=NotificationChannel.EMAIL,
                    days_in_advance=days,
                )

    def test_patch_sets_updated_at(self):
        """Test that a preference patch stamps updated_at."""
        preference = NotificationPreference(
            id="p1",
            owner_id="user-1",
            channel=NotificationChannel.PUSH,
        )
        assert preference.updated_at is None

        updated = NotificationPreferencePatch(enabled=False).apply_to(preference)
        assert updated.enabled is False
        assert updated.channel == NotificationChannel.PUSH
        assert updated.updated_at is not None


class TestSessionModels:
    """Tests for the session context."""

    def test_owner_id_comes_from_user(self):
        """Test that the owner id is the signed-in user's uid."""
        session = SessionContext(user=UserProfile(uid="abc"))
        assert session.owner_id == "abc"

    def test_empty_uid_rejected(self):
        """Test that a profile needs a uid."""
        with pytest.raises(ValidationError):
            UserProfile(uid="")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_CREATED,
            description="Subscription added",
        )
        assert event.event_type == AuditEventType.SUBSCRIPTION_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo == timezone.utc

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            owner_id="user-1",
            description="Exported",
            details={"format": "csv", "record_count": 3},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "export_generated"
        assert log_dict["owner_id"] == "user-1"
        assert log_dict["details"]["format"] == "csv"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_DELETED,
            owner_id="user-1",
            description="Subscription deleted",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "subscription_deleted"  # event_type
        assert row[4] == "user-1"  # owner_id
        assert row[11] == "True"  # is_user_action

    def test_builder_subscription_updated(self):
        """Test AuditEventBuilder.subscription_updated flags cycle changes."""
        correlation_id = uuid4()
        event = AuditEventBuilder.subscription_updated(
            owner_id="user-1",
            subscription_id="sub-1",
            changed_fields=["cycle", "price"],
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.SUBSCRIPTION_UPDATED
        assert event.entity_id == "sub-1"
        assert event.correlation_id == correlation_id
        assert event.details["cycle_changed"] is True
        assert event.is_user_action is True

    def test_builder_notification_result(self):
        """Test that failed deliveries are recorded as warnings."""
        sent = AuditEventBuilder.notification_result("user-1", "sub-1", "email", True)
        failed = AuditEventBuilder.notification_result(
            "user-1", "sub-1", "push", False, error_message="offline"
        )
        assert sent.event_type == AuditEventType.NOTIFICATION_SENT
        assert sent.severity == AuditSeverity.INFO
        assert failed.event_type == AuditEventType.NOTIFICATION_FAILED
        assert failed.severity == AuditSeverity.WARNING
        assert failed.error_message == "offline"

    def test_builder_preference_changed(self):
        """Test the description names the action and the channel."""
        event = AuditEventBuilder.preference_changed(
            event_type=AuditEventType.PREFERENCE_DELETED,
            owner_id="user-1",
            preference_id="p1",
            channel="telegram",
        )
        assert event.description == "Notification preference deleted: telegram"
        assert event.entity_type == "preference"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="price",
                    issue_type="missing",
                    message="Price is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="payment_date",
                    issue_type="suspicious_date",
                    message="Date in the past",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Date in the past"]


class TestSpendingSummary:
    """Tests for computed view models."""

    def test_yearly_projection(self):
        """Test that the yearly projection is twelve months of spend."""
        summary = SpendingSummary(total_monthly=Decimal("10.99"), subscription_count=2)
        assert summary.yearly_projection == Decimal("131.88")


class TestBillingCycles:
    """Tests for billing cycle enum."""

    def test_all_cycles_exist(self):
        """Test that expected cycles exist."""
        for cycle in ["weekly", "monthly", "quarterly", "yearly"]:
            assert BillingCycle(cycle) is not None

    def test_cycle_values(self):
        """Test cycle string values."""
        assert BillingCycle.WEEKLY.value == "weekly"
        assert BillingCycle.QUARTERLY.value == "quarterly"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
