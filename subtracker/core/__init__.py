"""
Subscription core: cost normalization, aggregation and payment scheduling.

Everything in this package is pure and synchronous. It works on
in-memory records and never touches storage or the network.
"""

from subtracker.core.aggregation import (
    aggregate_by_category,
    scoped_to_owner,
    summarize_spending,
    total_monthly_spend,
)
from subtracker.core.errors import (
    InvalidCycle,
    InvalidDate,
    OwnershipViolation,
    SubscriptionError,
)
from subtracker.core.normalization import (
    WEEKS_PER_MONTH,
    coerce_cycle,
    monthly_equivalent,
    subscription_monthly_cost,
)
from subtracker.core.schedule import (
    coerce_date,
    find_upcoming,
    is_upcoming,
    next_payment_dates,
    next_payment_on_or_after,
)

__all__ = [
    "aggregate_by_category",
    "scoped_to_owner",
    "summarize_spending",
    "total_monthly_spend",
    "InvalidCycle",
    "InvalidDate",
    "OwnershipViolation",
    "SubscriptionError",
    "WEEKS_PER_MONTH",
    "coerce_cycle",
    "monthly_equivalent",
    "subscription_monthly_cost",
    "coerce_date",
    "find_upcoming",
    "is_upcoming",
    "next_payment_dates",
    "next_payment_on_or_after",
]
