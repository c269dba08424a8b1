"""
Notifications Router
Notification inbox: listing, unread counts, statistics, read state and cleanup.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.dependencies import get_current_user, pagination_params
from foodkeeper.api.schemas import (
    MessageResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    UnreadCountResponse,
)
from foodkeeper.api.services import notification_service
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import Notification, NotificationStatus, NotificationType, User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
    description="Newest first, optionally filtered by type and status",
)
async def list_notifications(
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    notification_status: Optional[NotificationStatus] = Query(None, alias="status"),
    pagination: dict = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    notifications, total = await notification_service.list_notifications(
        session,
        current_user.id,
        notification_type=notification_type,
        notification_status=notification_status,
        skip=pagination["skip"],
        limit=pagination["limit"],
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        skip=pagination["skip"],
        limit=pagination["limit"],
        has_more=pagination["skip"] + len(notifications) < total,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Unread count",
)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    count = await notification_service.unread_count(session, current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.get(
    "/stats",
    response_model=NotificationStatsResponse,
    summary="Notification statistics",
    description="Total and unread counts, overall and per notification type",
)
async def get_notification_stats(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationStatsResponse:
    stats = await notification_service.notification_stats(session, current_user.id)
    return NotificationStatsResponse(**stats)


@router.post(
    "/read-all",
    response_model=MessageResponse,
    summary="Mark all as read",
    description="Mark every unread notification as read, optionally only one type",
)
async def mark_all_read(
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    count = await notification_service.mark_all_read(session, current_user.id, notification_type)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark as read",
)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Notification:
    return await notification_service.mark_read(session, current_user.id, notification_id)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await notification_service.delete_notification(session, current_user.id, notification_id)
    logger.info(f"Notification {notification_id} deleted by user {current_user.id}")
    return MessageResponse(message="Notification deleted successfully")
