"""
Unit Tests for Expiry Date Arithmetic

Tests:
- Calendar-day offsets
- Three-way classification and the inclusive threshold boundary
- Date helpers
"""

from datetime import date, datetime

import pytest

from foodkeeper.shared.utils.expiry import (
    ExpiryStatus,
    add_days,
    classify_expiry,
    days_until_expiry,
)

TODAY = date(2024, 1, 20)


class TestDaysUntilExpiry:

    def test_future_date(self):
        assert days_until_expiry(date(2024, 1, 25), TODAY) == 5

    def test_today_is_zero(self):
        assert days_until_expiry(TODAY, TODAY) == 0

    def test_past_date_is_negative(self):
        assert days_until_expiry(date(2024, 1, 18), TODAY) == -2

    def test_time_of_day_is_ignored(self):
        late = datetime(2024, 1, 20, 23, 59)
        early = datetime(2024, 1, 21, 0, 1)
        assert days_until_expiry(early, late) == 1
        assert days_until_expiry(datetime(2024, 1, 20, 0, 0), late) == 0

    def test_crosses_month_and_leap_day(self):
        assert days_until_expiry(date(2024, 3, 1), date(2024, 2, 28)) == 2


class TestClassifyExpiry:

    @pytest.mark.parametrize(
        "expiry, expected",
        [
            (date(2024, 1, 19), ExpiryStatus.EXPIRED),
            (date(2024, 1, 20), ExpiryStatus.EXPIRING_SOON),
            (date(2024, 1, 21), ExpiryStatus.EXPIRING_SOON),
            (date(2024, 1, 23), ExpiryStatus.EXPIRING_SOON),
            (date(2024, 1, 24), ExpiryStatus.ACTIVE),
        ],
    )
    def test_default_threshold(self, expiry, expected):
        assert classify_expiry(expiry, TODAY) == expected

    def test_threshold_boundary_is_inclusive(self):
        assert classify_expiry(date(2024, 1, 27), TODAY, threshold_days=7) == ExpiryStatus.EXPIRING_SOON
        assert classify_expiry(date(2024, 1, 28), TODAY, threshold_days=7) == ExpiryStatus.ACTIVE

    def test_zero_threshold_only_today_is_expiring(self):
        assert classify_expiry(TODAY, TODAY, threshold_days=0) == ExpiryStatus.EXPIRING_SOON
        assert classify_expiry(date(2024, 1, 21), TODAY, threshold_days=0) == ExpiryStatus.ACTIVE

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            classify_expiry(TODAY, TODAY, threshold_days=-1)

    def test_expired_iff_before_today(self):
        for offset in range(-5, 6):
            expiry = add_days(TODAY, offset)
            assert (classify_expiry(expiry, TODAY) == ExpiryStatus.EXPIRED) == (expiry < TODAY)


class TestHelpers:

    def test_add_days(self):
        assert add_days(TODAY, 30) == date(2024, 2, 19)
        assert add_days(datetime(2024, 1, 20, 15, 0), 1) == date(2024, 1, 21)
