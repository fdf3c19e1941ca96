"""Shared fixtures for the Subscription Tracker test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count

import pytest

from subtracker.models.subscription import (
    BillingCycle,
    SessionContext,
    Subscription,
    UserProfile,
)


@pytest.fixture
def make_subscription():
    """Factory for persisted subscriptions with sensible defaults."""
    ids = count(1)

    def _make(**overrides) -> Subscription:
        data = {
            "id": f"sub-{next(ids)}",
            "owner_id": "user-1",
            "name": "Netflix",
            "price": Decimal("9.99"),
            "cycle": BillingCycle.MONTHLY,
            "category": "Entertainment",
            "payment_date": date(2024, 1, 15),
            "notes": None,
            "created_at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return Subscription(**data)

    return _make


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(user=UserProfile(uid="user-1", email="one@example.com"))


@pytest.fixture
def other_session() -> SessionContext:
    return SessionContext(user=UserProfile(uid="user-2", email="two@example.com"))
