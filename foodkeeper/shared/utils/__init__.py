"""Shared utility helpers."""

from foodkeeper.shared.utils.expiry import (
    DEFAULT_EXPIRY_THRESHOLD_DAYS,
    ExpiryStatus,
    add_days,
    classify_expiry,
    days_until_expiry,
    utcnow,
)

__all__ = [
    "DEFAULT_EXPIRY_THRESHOLD_DAYS",
    "ExpiryStatus",
    "add_days",
    "classify_expiry",
    "days_until_expiry",
    "utcnow",
]
