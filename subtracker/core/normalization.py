"""
Normalization Engine

Converts a subscription's price and billing cycle into a monthly-equivalent
cost so that subscriptions billed on different cycles can be compared and
summed.

DESIGN DECISION: Amounts are Decimal end to end and nothing is rounded here.
Rounding happens only when a figure is displayed.

The weekly factor of 4.33 is an approximation of weeks per month. It is kept
exactly as is because existing totals depend on it.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from subtracker.core.errors import InvalidCycle
from subtracker.models.subscription import BillingCycle, Subscription

WEEKS_PER_MONTH = Decimal("4.33")

Amount = Union[Decimal, int, float, str]


def coerce_cycle(cycle: Union[BillingCycle, str]) -> BillingCycle:
    """
    Resolve a raw cycle value to a BillingCycle.

    Raises:
        InvalidCycle: for anything outside the closed enumeration.
            Matching is exact; there is no fallback.
    """
    if isinstance(cycle, BillingCycle):
        return cycle
    try:
        return BillingCycle(cycle)
    except (ValueError, TypeError):
        raise InvalidCycle(cycle) from None


def to_decimal(price: Amount) -> Decimal:
    """Convert a price to Decimal without picking up float noise."""
    if isinstance(price, Decimal):
        return price
    if isinstance(price, bool):
        raise ValueError(f"Not a price: {price!r}")
    if isinstance(price, float):
        return Decimal(str(price))
    try:
        return Decimal(price)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a price: {price!r}") from None


def monthly_equivalent(price: Amount, cycle: Union[BillingCycle, str]) -> Decimal:
    """
    Normalize a per-cycle price to a monthly figure.

        monthly    price
        yearly     price / 12
        quarterly  price / 3
        weekly     price * 4.33

    Raises:
        InvalidCycle: if the cycle is not recognized.
        ValueError: if the price is negative or not a number.
    """
    billing_cycle = coerce_cycle(cycle)
    amount = to_decimal(price)
    if amount < 0:
        raise ValueError(f"Price cannot be negative: {amount}")

    if billing_cycle == BillingCycle.MONTHLY:
        return amount
    if billing_cycle == BillingCycle.YEARLY:
        return amount / 12
    if billing_cycle == BillingCycle.QUARTERLY:
        return amount / 3
    if billing_cycle == BillingCycle.WEEKLY:
        return amount * WEEKS_PER_MONTH

    raise InvalidCycle(cycle)


def subscription_monthly_cost(subscription: Subscription) -> Decimal:
    """Monthly-equivalent cost of a subscription. Always recomputed."""
    return monthly_equivalent(subscription.price, subscription.cycle)
