"""Tests for payment date projection and the upcoming-payments window."""

import pytest
from datetime import date, datetime

from subtracker.core import (
    InvalidDate,
    OwnershipViolation,
    coerce_date,
    find_upcoming,
    is_upcoming,
    next_payment_dates,
    next_payment_on_or_after,
)
from subtracker.models.subscription import BillingCycle


class TestNextPaymentDates:
    """Tests for next_payment_dates."""

    def test_month_end_clamps_without_drift(self):
        """Test Jan 31 monthly: Feb clamps, March goes back to the 31st."""
        assert next_payment_dates(date(2024, 1, 31), "monthly", 3) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
        ]

    def test_non_leap_february(self):
        """Test that Jan 31 + 1 month is Feb 28 outside leap years."""
        assert next_payment_dates(date(2023, 1, 31), "monthly", 2)[1] == date(2023, 2, 28)

    def test_weekly(self):
        """Test that weekly adds seven days per step."""
        assert next_payment_dates(date(2024, 1, 1), BillingCycle.WEEKLY, 3) == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
        ]

    def test_quarterly(self):
        """Test that quarterly is three calendar months per step."""
        assert next_payment_dates(date(2024, 11, 30), "quarterly", 3) == [
            date(2024, 11, 30),
            date(2025, 2, 28),
            date(2025, 5, 30),
        ]

    def test_yearly_from_leap_day(self):
        """Test that Feb 29 clamps to Feb 28 and returns in the next leap year."""
        assert next_payment_dates(date(2024, 2, 29), "yearly", 5) == [
            date(2024, 2, 29),
            date(2025, 2, 28),
            date(2026, 2, 28),
            date(2027, 2, 28),
            date(2028, 2, 29),
        ]

    def test_first_element_is_anchor(self):
        """Test that the anchor is always element 0, for every cycle."""
        anchor = date(2024, 5, 17)
        for cycle in BillingCycle:
            assert next_payment_dates(anchor, cycle, 1) == [anchor]

    def test_string_anchor(self):
        """Test that ISO strings are accepted as anchors."""
        assert next_payment_dates("2024-01-15", "monthly", 2) == [
            date(2024, 1, 15),
            date(2024, 2, 15),
        ]

    def test_count_must_be_positive(self):
        """Test that count 0 or below is rejected."""
        for count in (0, -1):
            with pytest.raises(ValueError):
                next_payment_dates(date(2024, 1, 1), "monthly", count)

    def test_invalid_anchor(self):
        """Test that a malformed anchor raises InvalidDate."""
        for anchor in ("2024-02-30", "not a date", None):
            with pytest.raises(InvalidDate):
                next_payment_dates(anchor, "monthly", 3)


class TestNextPaymentOnOrAfter:
    """Tests for rolling a stale anchor forward."""

    def test_future_anchor_unchanged(self):
        """Test that an anchor on or after the reference is returned as is."""
        assert next_payment_on_or_after(date(2024, 3, 1), "monthly", date(2024, 2, 1)) == date(2024, 3, 1)
        assert next_payment_on_or_after(date(2024, 3, 1), "monthly", date(2024, 3, 1)) == date(2024, 3, 1)

    def test_monthly_month_end(self):
        """Test that rolling forward keeps the month-end anchor."""
        assert next_payment_on_or_after(date(2024, 1, 31), "monthly", date(2024, 3, 15)) == date(2024, 3, 31)

    def test_weekly(self):
        """Test weekly roll-forward."""
        assert next_payment_on_or_after(date(2024, 1, 1), "weekly", date(2024, 1, 10)) == date(2024, 1, 15)
        assert next_payment_on_or_after(date(2024, 1, 1), "weekly", date(2024, 1, 8)) == date(2024, 1, 8)

    def test_quarterly_lands_on_reference(self):
        """Test that a payment due on the reference day is returned."""
        assert next_payment_on_or_after(date(2023, 1, 15), "quarterly", date(2024, 1, 15)) == date(2024, 1, 15)

    def test_yearly(self):
        """Test yearly roll-forward."""
        assert next_payment_on_or_after(date(2020, 6, 1), "yearly", date(2024, 6, 2)) == date(2025, 6, 1)


class TestIsUpcoming:
    """Tests for the inclusive lookahead window."""

    def test_window_boundaries(self):
        """Test that both ends of the window are inclusive."""
        today = date(2024, 1, 10)
        assert is_upcoming(date(2024, 1, 10), today, 7) is True
        assert is_upcoming(date(2024, 1, 17), today, 7) is True
        assert is_upcoming(date(2024, 1, 18), today, 7) is False
        assert is_upcoming(date(2024, 1, 9), today, 7) is False

    def test_window_must_be_positive(self):
        """Test that a zero window is rejected."""
        with pytest.raises(ValueError):
            is_upcoming(date(2024, 1, 10), date(2024, 1, 10), 0)

    def test_datetime_reference(self):
        """Test that the time of day is ignored."""
        assert is_upcoming(date(2024, 1, 10), datetime(2024, 1, 10, 23, 59), 1) is True

    def test_coerce_date(self):
        """Test accepted date representations."""
        assert coerce_date("2024-01-10") == date(2024, 1, 10)
        assert coerce_date(datetime(2024, 1, 10, 8, 30)) == date(2024, 1, 10)


class TestFindUpcoming:
    """Tests for the upcoming-payments report."""

    def test_sorted_by_due_date(self, make_subscription):
        """Test that payments inside the window come back soonest first."""
        today = date(2024, 1, 10)
        subscriptions = [
            make_subscription(id="late", payment_date=date(2024, 1, 16)),
            make_subscription(id="outside", payment_date=date(2024, 1, 30)),
            make_subscription(id="today", payment_date=date(2024, 1, 10)),
            make_subscription(id="past", payment_date=date(2024, 1, 2)),
        ]
        report = find_upcoming(subscriptions, today, 7)
        assert [p.subscription.id for p in report.payments] == ["today", "late"]
        assert [p.days_until for p in report.payments] == [0, 6]
        assert report.warnings == []

    def test_stale_anchor_without_roll_forward(self, make_subscription):
        """Test that a past anchor is not projected by default."""
        subscriptions = [make_subscription(payment_date=date(2023, 12, 12))]
        report = find_upcoming(subscriptions, date(2024, 1, 10), 7)
        assert report.payments == []

    def test_stale_anchor_with_roll_forward(self, make_subscription):
        """Test that roll_forward projects a past anchor into the window."""
        subscriptions = [make_subscription(payment_date=date(2023, 12, 12))]
        report = find_upcoming(subscriptions, date(2024, 1, 10), 7, roll_forward=True)
        assert len(report.payments) == 1
        assert report.payments[0].due_date == date(2024, 1, 12)
        assert report.payments[0].days_until == 2

    def test_missing_date_is_skipped_with_warning(self, make_subscription):
        """Test that one bad record does not abort the scan."""
        good = make_subscription(id="good", payment_date=date(2024, 1, 12))
        bad = make_subscription(id="bad").model_copy(update={"payment_date": None})
        report = find_upcoming([bad, good], date(2024, 1, 10), 7)
        assert [p.subscription.id for p in report.payments] == ["good"]
        assert report.skipped_ids == ["bad"]
        assert len(report.warnings) == 1
        assert "bad" in report.warnings[0]

    def test_foreign_record_raises(self, make_subscription):
        """Test that owner-scoped scans refuse other owners' records."""
        subscriptions = [make_subscription(owner_id="user-2")]
        with pytest.raises(OwnershipViolation):
            find_upcoming(subscriptions, date(2024, 1, 10), 7, owner_id="user-1")

    def test_report_metadata(self):
        """Test that the report echoes its inputs."""
        report = find_upcoming([], date(2024, 1, 10), 14)
        assert report.reference_date == date(2024, 1, 10)
        assert report.window_days == 14
        assert report.payments == []
