"""
User Preferences Service

One preferences row per user, created with defaults on first use. The expiry
alert settings decide whether a user's foods get alerts and how many days
ahead count as expiring soon.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.errors import ValidationError
from foodkeeper.api.services.audit_service import record_audit
from foodkeeper.shared.models import UserPreferences
from foodkeeper.shared.utils.expiry import DEFAULT_EXPIRY_THRESHOLD_DAYS

logger = logging.getLogger(__name__)

MAX_EXPIRY_ALERT_DAYS = 30

_MUTABLE_FIELDS = (
    "enable_expiry_alerts", "expiry_alert_days", "enable_recipe_suggestions",
    "enable_shopping_reminders", "enable_email_notifications", "enable_push_notifications",
    "theme", "language",
)


async def find_preferences(session: AsyncSession, user_id: int) -> Optional[UserPreferences]:
    result = await session.execute(
        select(UserPreferences).where(UserPreferences.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def create_default_preferences(
    session: AsyncSession,
    user_id: int,
    expiry_alert_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> UserPreferences:
    """Add a defaults row for a new user (caller commits)."""
    preferences = UserPreferences(user_id=user_id, expiry_alert_days=expiry_alert_days)
    session.add(preferences)
    await session.flush()
    return preferences


async def get_preferences(
    session: AsyncSession,
    user_id: int,
    default_alert_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> UserPreferences:
    """Return the user's preferences, creating the defaults row if missing."""
    preferences = await find_preferences(session, user_id)
    if preferences is None:
        preferences = await create_default_preferences(session, user_id, default_alert_days)
        await session.commit()
        await session.refresh(preferences)
    return preferences


async def update_preferences(
    session: AsyncSession,
    user_id: int,
    changes: Dict[str, Any],
    default_alert_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> UserPreferences:
    """
    Partially update a user's preferences.

    Raises:
        ValidationError: expiry_alert_days outside 0..30
    """
    changes = {
        key: value for key, value in changes.items()
        if key in _MUTABLE_FIELDS and value is not None
    }

    days = changes.get("expiry_alert_days")
    if days is not None and not 0 <= days <= MAX_EXPIRY_ALERT_DAYS:
        raise ValidationError(
            "Validation failed",
            {"expiry_alert_days": [f"Must be between 0 and {MAX_EXPIRY_ALERT_DAYS}"]},
        )

    preferences = await get_preferences(session, user_id, default_alert_days)
    before = {key: _plain(getattr(preferences, key)) for key in changes}

    for key, value in changes.items():
        setattr(preferences, key, value)

    await record_audit(
        session, user_id, "update", "user_preferences", preferences.id,
        before, {key: _plain(value) for key, value in changes.items()},
    )
    await session.commit()
    await session.refresh(preferences)

    logger.info(f"Preferences updated for user {user_id}: {sorted(changes)}")

    return preferences


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


async def expiry_alert_threshold(
    session: AsyncSession,
    user_id: int,
    default_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Optional[int]:
    """
    Days ahead that count as expiring soon for this user's alerts.

    Returns:
        Optional[int]: None when the user turned expiry alerts off;
        `default_days` when the user has no preferences row
    """
    preferences = await find_preferences(session, user_id)
    if preferences is None:
        return default_days
    if not preferences.enable_expiry_alerts:
        return None
    return preferences.expiry_alert_days
