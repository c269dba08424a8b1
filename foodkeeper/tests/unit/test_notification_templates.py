"""
Unit Tests for Expiry Alert Templates
"""

import pytest

from foodkeeper.api.services.notification_service import (
    expiry_alert_message,
    expiry_alert_priority,
    expiry_alert_title,
)
from foodkeeper.shared.models import NotificationPriority


class TestExpiryAlertMessage:

    @pytest.mark.parametrize(
        "days, expected",
        [
            (-3, "牛乳 expired 3 days ago"),
            (-1, "牛乳 expired 1 day ago"),
            (0, "牛乳 expires today"),
            (1, "牛乳 expires tomorrow"),
            (2, "牛乳 expires in 2 days"),
            (3, "牛乳 expires in 3 days"),
        ],
    )
    def test_message_by_day_offset(self, days, expected):
        assert expiry_alert_message("牛乳", days) == expected

    def test_titles(self):
        assert expiry_alert_title(-2) == "Food expired"
        assert expiry_alert_title(0) == "Food expires today"
        assert expiry_alert_title(1) == "Food expires tomorrow"
        assert expiry_alert_title(3) == "Food expiring soon"


class TestExpiryAlertPriority:

    @pytest.mark.parametrize("days", [-5, -1, 0, 1])
    def test_high_up_to_tomorrow(self, days):
        assert expiry_alert_priority(days) == NotificationPriority.HIGH

    @pytest.mark.parametrize("days", [2, 3, 10])
    def test_medium_after_tomorrow(self, days):
        assert expiry_alert_priority(days) == NotificationPriority.MEDIUM
