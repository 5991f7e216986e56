"""Subscription period calculation for paid offers"""

from datetime import date, timedelta
from typing import Optional

from riskwatch.domain.models import SubscriptionPeriod

DEFAULT_DURATION_DAYS = 30


def compute_subscription_period(
    duration_days: Optional[int],
    latest_end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> SubscriptionPeriod:
    """
    Compute the period granted by a new subscription payment.

    Rules:
    - No previous subscription, or the latest one ended before today: start today
    - Otherwise start the day after the latest subscription ends (no gap, no overlap)
    - End date is start + duration_days (offer duration, 30 days when unset)

    Example:
        latest ends 2026-03-31, today 2026-03-15, 30 days
        -> 2026-04-01 .. 2026-05-01
    """
    if today is None:
        today = date.today()

    days = duration_days or DEFAULT_DURATION_DAYS

    if latest_end_date is None or latest_end_date < today:
        start_date = today
    else:
        start_date = latest_end_date + timedelta(days=1)

    return SubscriptionPeriod(start_date=start_date, end_date=start_date + timedelta(days=days))


def extend_subscription_period(
    current_end_date: date,
    duration_days: Optional[int],
    today: Optional[date] = None,
) -> date:
    """New end date when a payment renews an existing subscription in place"""
    return compute_subscription_period(duration_days, current_end_date, today).end_date
