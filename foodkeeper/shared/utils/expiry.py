"""
Expiry date arithmetic.

All day offsets are calendar-day differences (midnight to midnight): a food
whose expiry date is today is 0 days away, regardless of the time of day.
"""

import enum
from datetime import date, datetime, timedelta, timezone
from typing import Union

DEFAULT_EXPIRY_THRESHOLD_DAYS = 3

DateLike = Union[date, datetime]


class ExpiryStatus(str, enum.Enum):
    """Expiry classification of a food relative to today"""
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    ACTIVE = "active"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until_expiry(expiry_date: DateLike, today: DateLike | None = None) -> int:
    """
    Number of calendar days from today until the expiry date.

    Negative values are days since expiry, 0 means the food expires today.

    Args:
        expiry_date: Expiry date of the food
        today: Reference date (defaults to the current local date)

    Returns:
        int: Day offset
    """
    reference = _as_date(today) if today is not None else date.today()
    return (_as_date(expiry_date) - reference).days


def classify_expiry(
    expiry_date: DateLike,
    today: DateLike | None = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> ExpiryStatus:
    """
    Classify a food as expired, expiring soon or active.

    A food exactly `threshold_days` away is still expiring soon.

    Raises:
        ValueError: If threshold_days is negative
    """
    if threshold_days < 0:
        raise ValueError("threshold_days must be non-negative")

    days = days_until_expiry(expiry_date, today)
    if days < 0:
        return ExpiryStatus.EXPIRED
    if days <= threshold_days:
        return ExpiryStatus.EXPIRING_SOON
    return ExpiryStatus.ACTIVE


def add_days(value: DateLike, days: int) -> date:
    """Return the date `days` after `value`."""
    return _as_date(value) + timedelta(days=days)
