"""
Notification service.

Generates expiry alerts for foods close to (or past) their expiry date and
manages the notification inbox.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.errors import NotFoundError
from foodkeeper.api.services.preference_service import MAX_EXPIRY_ALERT_DAYS, expiry_alert_threshold
from foodkeeper.shared.models import (
    Food,
    FoodStatus,
    Notification,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from foodkeeper.shared.utils.expiry import (
    DEFAULT_EXPIRY_THRESHOLD_DAYS,
    ExpiryStatus,
    classify_expiry,
    days_until_expiry,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


# ============================================================================
# Expiry Alert Templates
# ============================================================================

def expiry_alert_title(days: int) -> str:
    if days < 0:
        return "Food expired"
    if days == 0:
        return "Food expires today"
    if days == 1:
        return "Food expires tomorrow"
    return "Food expiring soon"


def expiry_alert_message(food_name: str, days: int) -> str:
    """
    Message for a food `days` away from expiry (negative when already expired).
    """
    if days < 0:
        ago = -days
        return f"{food_name} expired {ago} day{'s' if ago != 1 else ''} ago"
    if days == 0:
        return f"{food_name} expires today"
    if days == 1:
        return f"{food_name} expires tomorrow"
    return f"{food_name} expires in {days} days"


def expiry_alert_priority(days: int) -> NotificationPriority:
    """High priority for anything expiring tomorrow or sooner."""
    return NotificationPriority.HIGH if days <= 1 else NotificationPriority.MEDIUM


# ============================================================================
# Expiry Alert Generation
# ============================================================================

async def has_unread_expiry_alert(session: AsyncSession, user_id: int, food_id: int) -> bool:
    result = await session.execute(
        select(Notification.id).where(
            Notification.user_id == user_id,
            Notification.food_id == food_id,
            Notification.type == NotificationType.EXPIRY_ALERT,
            Notification.status == NotificationStatus.UNREAD,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _alert_if_due(
    session: AsyncSession,
    food: Food,
    today: Optional[date],
    threshold_days: int,
) -> Optional[Notification]:
    if food.status != FoodStatus.ACTIVE:
        return None

    classification = classify_expiry(food.expiry_date, today, threshold_days)
    if classification == ExpiryStatus.ACTIVE:
        return None

    if await has_unread_expiry_alert(session, food.user_id, food.id):
        return None

    days = days_until_expiry(food.expiry_date, today)
    notification = Notification(
        user_id=food.user_id,
        food_id=food.id,
        type=NotificationType.EXPIRY_ALERT,
        title=expiry_alert_title(days),
        message=expiry_alert_message(food.name, days),
        priority=expiry_alert_priority(days),
        status=NotificationStatus.UNREAD,
        action_url=f"/foods/{food.id}",
        sent_at=utcnow(),
    )
    session.add(notification)
    await session.flush()

    logger.info(f"Expiry alert for food {food.id} ({food.name}): {days} days, user {food.user_id}")

    return notification


async def check_food_expiry(
    session: AsyncSession,
    food: Food,
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Optional[Notification]:
    """
    Create an expiry alert for one food when it needs one.

    Only active foods that are expiring soon or expired get an alert, and
    never while an unread alert for the same food exists. The owner's
    preferences decide the threshold and may turn alerts off.

    Args:
        session: Database session (caller commits)
        food: Food to check
        today: Reference date
        threshold_days: Threshold for owners without preferences

    Returns:
        Optional[Notification]: The new pending notification, if any
    """
    if food.status != FoodStatus.ACTIVE:
        return None

    threshold = await expiry_alert_threshold(session, food.user_id, threshold_days)
    if threshold is None:
        return None

    return await _alert_if_due(session, food, today, threshold)


async def sweep_expiry_alerts(
    session: AsyncSession,
    user_id: Optional[int] = None,
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Tuple[int, int]:
    """
    Check every active food (of one user, or of everyone) and commit new alerts.

    A food is checked when it is inside its owner's alert window; owners with
    alerts turned off are skipped.

    Returns:
        Tuple[int, int]: (foods checked, notifications created)
    """
    reference = today or date.today()
    horizon = reference + timedelta(days=max(threshold_days, MAX_EXPIRY_ALERT_DAYS))

    query = select(Food).where(
        Food.status == FoodStatus.ACTIVE,
        Food.expiry_date <= horizon,
    )
    if user_id is not None:
        query = query.where(Food.user_id == user_id)

    result = await session.execute(query.order_by(Food.expiry_date, Food.id))

    thresholds: Dict[int, Optional[int]] = {}
    checked = created = 0
    for food in result.scalars().all():
        if food.user_id not in thresholds:
            thresholds[food.user_id] = await expiry_alert_threshold(session, food.user_id, threshold_days)
        threshold = thresholds[food.user_id]
        if threshold is None or days_until_expiry(food.expiry_date, reference) > threshold:
            continue

        checked += 1
        if await _alert_if_due(session, food, reference, threshold) is not None:
            created += 1

    await session.commit()

    logger.info(f"Expiry sweep (user={user_id}): checked {checked}, created {created}")

    return checked, created


async def delete_food_notifications(session: AsyncSession, food_id: int) -> int:
    """Delete every notification tied to a food (caller commits)."""
    result = await session.execute(
        delete(Notification).where(Notification.food_id == food_id)
    )
    return result.rowcount or 0


# ============================================================================
# Inbox
# ============================================================================

async def list_notifications(
    session: AsyncSession,
    user_id: int,
    notification_type: Optional[NotificationType] = None,
    notification_status: Optional[NotificationStatus] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[Notification], int]:
    """Newest first, with the total count for pagination."""
    conditions = [Notification.user_id == user_id]
    if notification_type is not None:
        conditions.append(Notification.type == notification_type)
    if notification_status is not None:
        conditions.append(Notification.status == notification_status)

    total = (await session.execute(
        select(func.count(Notification.id)).where(*conditions)
    )).scalar_one()

    result = await session.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def unread_count(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.status == NotificationStatus.UNREAD,
        )
    )
    return result.scalar_one()


async def notification_stats(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    """
    Totals for the inbox, and per type, ordered by count (largest first).

    Returns:
        Dict[str, Any]: {"total", "unread", "by_type": [{"type", "count", "unread_count"}]}
    """
    unread = case((Notification.status == NotificationStatus.UNREAD, 1), else_=0)
    result = await session.execute(
        select(
            Notification.type,
            func.count(Notification.id),
            func.coalesce(func.sum(unread), 0),
        )
        .where(Notification.user_id == user_id)
        .group_by(Notification.type)
    )
    by_type = [
        {"type": notification_type, "count": count, "unread_count": unread_count}
        for notification_type, count, unread_count in result.all()
    ]
    by_type.sort(key=lambda row: (-row["count"], row["type"].value))

    return {
        "total": sum(row["count"] for row in by_type),
        "unread": sum(row["unread_count"] for row in by_type),
        "by_type": by_type,
    }


async def get_notification(session: AsyncSession, user_id: int, notification_id: int) -> Notification:
    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def mark_read(session: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await get_notification(session, user_id, notification_id)

    if notification.status != NotificationStatus.READ:
        notification.status = NotificationStatus.READ
        notification.read_at = utcnow()
        await session.commit()
        await session.refresh(notification)

    return notification


async def mark_all_read(
    session: AsyncSession,
    user_id: int,
    notification_type: Optional[NotificationType] = None,
) -> int:
    """Mark every unread notification (optionally of one type) as read."""
    statement = (
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.status == NotificationStatus.UNREAD,
        )
        .values(status=NotificationStatus.READ, read_at=utcnow(), updated_at=utcnow())
    )
    if notification_type is not None:
        statement = statement.where(Notification.type == notification_type)

    result = await session.execute(statement)
    await session.commit()

    return result.rowcount or 0


async def delete_notification(session: AsyncSession, user_id: int, notification_id: int) -> None:
    notification = await get_notification(session, user_id, notification_id)
    await session.delete(notification)
    await session.commit()


async def purge_read_notifications(
    session: AsyncSession,
    older_than_days: int = DEFAULT_RETENTION_DAYS,
) -> int:
    """
    Delete read notifications older than the retention period.

    Returns:
        int: Number of deleted notifications
    """
    cutoff = utcnow() - timedelta(days=older_than_days)
    result = await session.execute(
        delete(Notification).where(
            Notification.status == NotificationStatus.READ,
            Notification.created_at < cutoff,
        )
    )
    await session.commit()

    deleted = result.rowcount or 0
    logger.info(f"Purged {deleted} read notifications older than {older_than_days} days")

    return deleted
