"""
Payment Scheduler

Projects future payment dates from a subscription's anchor date and decides
which payments fall inside a lookahead window.

Calendar arithmetic uses dateutil's relativedelta, which clamps to the last
valid day of the month: Jan 31 + 1 month is Feb 29 in a leap year and
Feb 28 otherwise. Every projected date is computed from the anchor
(anchor + i units), never from the previous projection, so a clamp in
February does not drag March back to the 29th.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence, Union

from dateutil.relativedelta import relativedelta

from subtracker.core.aggregation import scoped_to_owner
from subtracker.core.errors import InvalidDate
from subtracker.core.normalization import coerce_cycle
from subtracker.models.subscription import (
    BillingCycle,
    Subscription,
    UpcomingPayment,
    UpcomingReport,
)

# Months advanced per cycle unit for the calendar-month based cycles.
_MONTHS_PER_UNIT = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
}


def coerce_date(value: Any, subscription_id: Optional[str] = None) -> date:
    """
    Resolve a payment date to a calendar date.

    Accepts `date`, `datetime` (time of day is dropped) and ISO
    `YYYY-MM-DD` strings.

    Raises:
        InvalidDate: if the value is missing or cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidDate(value, subscription_id) from None
    raise InvalidDate(value, subscription_id)


def _advance(anchor: date, cycle: BillingCycle, steps: int) -> date:
    if cycle == BillingCycle.WEEKLY:
        return anchor + timedelta(days=7 * steps)
    if cycle == BillingCycle.YEARLY:
        return anchor + relativedelta(years=steps)
    return anchor + relativedelta(months=_MONTHS_PER_UNIT[cycle] * steps)


def next_payment_dates(
    anchor: Union[date, str],
    cycle: Union[BillingCycle, str],
    count: int,
) -> list[date]:
    """
    Project `count` payment dates starting at the anchor.

    Element 0 is the anchor itself; element i is the anchor advanced by
    i billing cycles.

    Raises:
        InvalidDate: if the anchor is missing or malformed.
        InvalidCycle: if the cycle is not recognized.
        ValueError: if count is not positive.
    """
    if count < 1:
        raise ValueError(f"count must be a positive integer, got {count}")
    start = coerce_date(anchor)
    billing_cycle = coerce_cycle(cycle)
    return [_advance(start, billing_cycle, i) for i in range(count)]


def next_payment_on_or_after(
    anchor: Union[date, str],
    cycle: Union[BillingCycle, str],
    reference: date,
) -> date:
    """
    First projected payment date that is not before `reference`.

    An anchor already on or after the reference is returned unchanged.
    """
    start = coerce_date(anchor)
    billing_cycle = coerce_cycle(cycle)
    if start >= reference:
        return start

    if billing_cycle == BillingCycle.WEEKLY:
        steps = -(-(reference - start).days // 7)
        return _advance(start, billing_cycle, steps)

    months_apart = (reference.year - start.year) * 12 + reference.month - start.month
    steps = max(0, months_apart // _MONTHS_PER_UNIT[billing_cycle] - 1)
    projected = _advance(start, billing_cycle, steps)
    while projected < reference:
        steps += 1
        projected = _advance(start, billing_cycle, steps)
    return projected


def is_upcoming(
    payment_date: Union[date, str],
    reference_now: Union[date, str],
    window_days: int,
) -> bool:
    """
    True if `reference_now <= payment_date <= reference_now + window_days`.

    Both ends are inclusive: a payment exactly `window_days` away counts.

    Raises:
        InvalidDate: if either date is missing or malformed.
        ValueError: if window_days is not positive.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be a positive integer, got {window_days}")
    due = coerce_date(payment_date)
    today = coerce_date(reference_now)
    return today <= due <= today + timedelta(days=window_days)


def find_upcoming(
    subscriptions: Sequence[Subscription],
    reference_now: date,
    window_days: int,
    owner_id: Optional[str] = None,
    roll_forward: bool = False,
) -> UpcomingReport:
    """
    Collect the payments due within the lookahead window.

    A record whose payment date is missing or malformed is left out of the
    result and reported in `warnings`; it does not abort the scan.
    With `roll_forward`, an anchor in the past is projected to its next
    occurrence before the window check.
    """
    today = coerce_date(reference_now)
    report = UpcomingReport(reference_date=today, window_days=window_days)

    for subscription in scoped_to_owner(subscriptions, owner_id):
        try:
            anchor = subscription.payment_date
            if anchor is None:
                anchor = subscription.unparsed_payment_date
            due = coerce_date(anchor, subscription.id)
            if roll_forward:
                due = next_payment_on_or_after(due, subscription.cycle, today)
        except InvalidDate as e:
            report.warnings.append(str(e))
            report.skipped_ids.append(subscription.id)
            continue

        if is_upcoming(due, today, window_days):
            report.payments.append(UpcomingPayment(
                subscription=subscription,
                due_date=due,
                days_until=(due - today).days,
            ))

    report.payments.sort(key=lambda p: p.due_date)
    return report
