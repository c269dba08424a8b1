"""
Storage Tip Service

Looks up storage tips for foods and derives shelf-life based expiry dates.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.errors import ValidationError
from foodkeeper.shared.models import StorageLocation, StorageTip
from foodkeeper.shared.utils.expiry import add_days

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def _pick(candidates: List[StorageTip], category: Optional[str]) -> Optional[StorageTip]:
    if not candidates:
        return None
    if category:
        for tip in candidates:
            if tip.category == category:
                return tip
    return candidates[0]


async def find_storage_tip(
    session: AsyncSession,
    food_name: str,
    category: Optional[str] = None,
) -> Optional[StorageTip]:
    """
    Find the storage tip for a food name.

    Case-insensitive exact name match first, then a partial match where the
    tip name is contained in the food name or the other way round. Tips in
    the requested category are preferred, then the newest tip.

    Args:
        session: Database session
        food_name: Food name as entered by the user
        category: Optional category name to prefer

    Returns:
        Optional[StorageTip]: Best matching tip, None when nothing matches
    """
    name = food_name.strip().lower()
    if not name:
        return None

    query = (
        select(StorageTip)
        .where(StorageTip.is_active.is_(True))
        .order_by(StorageTip.created_at.desc(), StorageTip.id.desc())
    )
    result = await session.execute(query)
    tips = list(result.scalars().all())

    exact = [tip for tip in tips if tip.food_name.lower() == name]
    tip = _pick(exact, category)
    if tip is not None:
        return tip

    partial = [
        tip for tip in tips
        if tip.food_name.lower() in name or name in tip.food_name.lower()
    ]
    return _pick(partial, category)


def suggested_expiry(tip: StorageTip, purchase_date: date) -> date:
    """Expiry date implied by the tip's shelf life."""
    return add_days(purchase_date, tip.shelf_life_days)


async def adjust_expiry_for_storage(
    session: AsyncSession,
    food_name: str,
    storage_location: StorageLocation,
    purchase_date: date,
    expiry_date: date,
) -> date:
    """
    Extend an expiry date using the storage tip for the chosen location.

    When a tip exists whose storage method equals the food's storage location,
    purchase_date + shelf_life_days replaces the expiry date if it is later.
    The expiry date is never shortened.

    Returns:
        date: The (possibly extended) expiry date
    """
    tip = await find_storage_tip(session, food_name)
    if tip is None or tip.storage_method != storage_location:
        return expiry_date

    candidate = suggested_expiry(tip, purchase_date)
    if candidate > expiry_date:
        logger.info(
            f"Extending expiry of '{food_name}' from {expiry_date} to {candidate} "
            f"({tip.shelf_life_days} days in {storage_location.value})"
        )
        return candidate

    return expiry_date


async def list_tips(session: AsyncSession, category: Optional[str] = None) -> List[StorageTip]:
    """List active tips, optionally for one category."""
    query = select(StorageTip).where(StorageTip.is_active.is_(True))
    if category:
        query = query.where(StorageTip.category == category)
    result = await session.execute(query.order_by(StorageTip.category, StorageTip.food_name))
    return list(result.scalars().all())


async def search_tips(session: AsyncSession, term: str, limit: int = 20) -> List[StorageTip]:
    """
    Search tips by food name, category, storage method or tip text.

    Raises:
        ValidationError: If the term is shorter than 2 characters
    """
    term = term.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise ValidationError(
            "Search term too short",
            {"q": [f"Search term must be at least {MIN_SEARCH_LENGTH} characters"]},
        )

    needle = term.lower()
    matches = []
    for tip in await list_tips(session):
        haystack = [tip.food_name, tip.category or "", tip.storage_method.value, *tip.tips]
        if any(needle in text.lower() for text in haystack):
            matches.append(tip)
    matches.sort(key=lambda tip: tip.food_name)
    return matches[:limit]


async def storage_stats(session: AsyncSession) -> Dict[str, object]:
    """Tip counts and average shelf life per storage method."""
    result = await session.execute(
        select(
            StorageTip.storage_method,
            func.count(StorageTip.id),
            func.avg(StorageTip.shelf_life_days),
        )
        .where(StorageTip.is_active.is_(True))
        .group_by(StorageTip.storage_method)
    )

    by_method: Dict[str, int] = {}
    average: Dict[str, float] = {}
    for method, count, avg_days in result.all():
        key = method.value if isinstance(method, StorageLocation) else str(method)
        by_method[key] = count
        average[key] = round(float(avg_days or 0), 1)

    return {
        "total": sum(by_method.values()),
        "by_method": by_method,
        "average_shelf_life_days": average,
    }
