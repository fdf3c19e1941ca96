"""
Aggregator

Groups monthly-equivalent costs by category and totals them for the
dashboard and charts.

Grouping is on the exact category string: "Music" and "music " are
different categories. Output dicts keep the order in which each category
first appears in the input, so charts render in a stable order.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from subtracker.core.errors import OwnershipViolation
from subtracker.core.normalization import subscription_monthly_cost
from subtracker.models.subscription import SpendingSummary, Subscription


def scoped_to_owner(
    subscriptions: Iterable[Subscription],
    owner_id: Optional[str],
) -> list[Subscription]:
    """
    Materialize the input, checking every record belongs to `owner_id`.

    With `owner_id=None` no check is made.

    Raises:
        OwnershipViolation: on the first record owned by someone else.
    """
    records = list(subscriptions)
    if owner_id is None:
        return records
    for subscription in records:
        if subscription.owner_id != owner_id:
            raise OwnershipViolation(subscription.id, owner_id)
    return records


def aggregate_by_category(
    subscriptions: Sequence[Subscription],
    owner_id: Optional[str] = None,
) -> dict[str, Decimal]:
    """
    Sum monthly-equivalent costs per category.

    Categories without subscriptions are absent rather than zero.
    """
    totals: dict[str, Decimal] = {}
    for subscription in scoped_to_owner(subscriptions, owner_id):
        monthly = subscription_monthly_cost(subscription)
        totals[subscription.category] = totals.get(subscription.category, Decimal("0")) + monthly
    return totals


def total_monthly_spend(
    subscriptions: Sequence[Subscription],
    owner_id: Optional[str] = None,
) -> Decimal:
    """Sum of every subscription's monthly-equivalent cost. Empty input is 0."""
    return sum(
        (subscription_monthly_cost(s) for s in scoped_to_owner(subscriptions, owner_id)),
        Decimal("0"),
    )


def summarize_spending(
    subscriptions: Sequence[Subscription],
    owner_id: Optional[str] = None,
) -> SpendingSummary:
    """Build the dashboard summary: total, per-category totals and count."""
    records = scoped_to_owner(subscriptions, owner_id)
    by_category = aggregate_by_category(records)
    return SpendingSummary(
        total_monthly=sum(by_category.values(), Decimal("0")),
        by_category=by_category,
        subscription_count=len(records),
    )
