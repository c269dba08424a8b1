"""
Integration Tests for the Notification Inbox
"""

from datetime import timedelta

import pytest

from foodkeeper.api.errors import NotFoundError
from foodkeeper.api.services import notification_service
from foodkeeper.shared.models import (
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from foodkeeper.shared.utils.expiry import utcnow


def make_notification(user_id, notification_type=NotificationType.SYSTEM, **overrides):
    values = {
        "user_id": user_id,
        "type": notification_type,
        "title": "Hello",
        "message": "Welcome to FoodKeeper",
        "status": NotificationStatus.UNREAD,
        "priority": NotificationPriority.LOW,
    }
    values.update(overrides)
    return Notification(**values)


@pytest.fixture
async def inbox(session, user, other_user):
    notifications = [
        make_notification(user.id),
        make_notification(user.id, NotificationType.SHOPPING_REMINDER),
        make_notification(user.id, NotificationType.SHOPPING_REMINDER, status=NotificationStatus.READ),
        make_notification(other_user.id),
    ]
    session.add_all(notifications)
    await session.commit()
    return notifications


class TestInbox:

    async def test_list_is_scoped_to_user(self, session, user, inbox):
        notifications, total = await notification_service.list_notifications(session, user.id)

        assert total == 3
        assert all(notification.user_id == user.id for notification in notifications)

    async def test_filters(self, session, user, inbox):
        _, total = await notification_service.list_notifications(
            session, user.id, notification_type=NotificationType.SHOPPING_REMINDER
        )
        assert total == 2

        _, total = await notification_service.list_notifications(
            session, user.id, notification_status=NotificationStatus.UNREAD
        )
        assert total == 2

    async def test_pagination_keeps_total(self, session, user, inbox):
        notifications, total = await notification_service.list_notifications(session, user.id, skip=2, limit=5)

        assert total == 3
        assert len(notifications) == 1

    async def test_unread_count(self, session, user, inbox):
        assert await notification_service.unread_count(session, user.id) == 2

    async def test_stats(self, session, user, inbox):
        stats = await notification_service.notification_stats(session, user.id)

        assert stats["total"] == 3
        assert stats["unread"] == 2
        assert stats["by_type"] == [
            {"type": NotificationType.SHOPPING_REMINDER, "count": 2, "unread_count": 1},
            {"type": NotificationType.SYSTEM, "count": 1, "unread_count": 1},
        ]

    async def test_stats_for_empty_inbox(self, session, user):
        stats = await notification_service.notification_stats(session, user.id)

        assert stats == {"total": 0, "unread": 0, "by_type": []}

    async def test_mark_read(self, session, user, inbox):
        notification = await notification_service.mark_read(session, user.id, inbox[0].id)

        assert notification.status == NotificationStatus.READ
        assert notification.read_at is not None
        assert await notification_service.unread_count(session, user.id) == 1

    async def test_mark_read_of_someone_else(self, session, user, inbox):
        with pytest.raises(NotFoundError):
            await notification_service.mark_read(session, user.id, inbox[3].id)

    async def test_mark_all_read_by_type(self, session, user, inbox):
        count = await notification_service.mark_all_read(session, user.id, NotificationType.SHOPPING_REMINDER)

        assert count == 1
        assert await notification_service.unread_count(session, user.id) == 1

    async def test_mark_all_read(self, session, user, other_user, inbox):
        assert await notification_service.mark_all_read(session, user.id) == 2
        assert await notification_service.unread_count(session, user.id) == 0
        assert await notification_service.unread_count(session, other_user.id) == 1

    async def test_delete(self, session, user, inbox):
        await notification_service.delete_notification(session, user.id, inbox[0].id)

        with pytest.raises(NotFoundError):
            await notification_service.get_notification(session, user.id, inbox[0].id)


class TestPurge:

    async def test_purges_only_old_read_notifications(self, session, user):
        old = utcnow() - timedelta(days=40)
        session.add_all([
            make_notification(user.id, status=NotificationStatus.READ, created_at=old),
            make_notification(user.id, status=NotificationStatus.UNREAD, created_at=old),
            make_notification(user.id, status=NotificationStatus.READ),
        ])
        await session.commit()

        deleted = await notification_service.purge_read_notifications(session, older_than_days=30)

        assert deleted == 1
        _, total = await notification_service.list_notifications(session, user.id)
        assert total == 2
