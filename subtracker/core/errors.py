"""
Errors raised by the subscription core.

These signal contract violations. The core never recovers from them on
its own (no defaulting to "monthly", no clamping of bad values); callers
decide whether to surface them or exclude the offending record.
"""

from typing import Any, Optional


class SubscriptionError(Exception):
    """Base exception for the subscription core."""
    pass


class InvalidCycle(SubscriptionError, ValueError):
    """An unrecognized billing cycle reached the core."""

    def __init__(self, cycle: Any):
        self.cycle = cycle
        super().__init__(
            f"Unknown billing cycle: {cycle!r}. "
            "Expected one of: weekly, monthly, quarterly, yearly"
        )


class InvalidDate(SubscriptionError, ValueError):
    """A payment or anchor date is missing or malformed."""

    def __init__(self, value: Any, subscription_id: Optional[str] = None):
        self.value = value
        self.subscription_id = subscription_id
        if value is None:
            message = "Payment date is missing"
        else:
            message = f"Payment date is not a valid calendar date: {value!r}"
        if subscription_id:
            message = f"{message} (subscription {subscription_id})"
        super().__init__(message)


class OwnershipViolation(SubscriptionError):
    """A record owned by another user reached an owner-scoped computation."""

    def __init__(self, subscription_id: str, expected_owner: str):
        self.subscription_id = subscription_id
        self.expected_owner = expected_owner
        super().__init__(
            f"Subscription {subscription_id} does not belong to the acting user"
        )
