"""
Food Inventory Service

Business logic for the food inventory:
- Validation (field-keyed errors)
- Storage-based expiry extension on create and storage changes
- One-way status lifecycle (active -> consumed | expired | disposed)
- Expiry alerts after mutations, alert cleanup when food is used up
- Listing, search, statistics and ingredient names for recipe suggestions
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.errors import ConflictError, NotFoundError, ValidationError
from foodkeeper.api.services import notification_service
from foodkeeper.api.services.audit_service import record_audit
from foodkeeper.api.services.storage_service import adjust_expiry_for_storage
from foodkeeper.shared.models import Category, Food, FoodStatus, StorageLocation
from foodkeeper.shared.utils.expiry import DEFAULT_EXPIRY_THRESHOLD_DAYS

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MIN_SEARCH_LENGTH = 2

SORT_FIELDS = {
    "name": Food.name,
    "expiry_date": Food.expiry_date,
    "purchase_date": Food.purchase_date,
    "created_at": Food.created_at,
}

# Statuses that end a food's life; alerts for it are removed
USED_UP_STATUSES = (FoodStatus.CONSUMED, FoodStatus.DISPOSED)

_MUTABLE_FIELDS = (
    "name", "category_id", "purchase_date", "expiry_date", "quantity", "unit",
    "storage_location", "status", "barcode", "image_url", "notes",
)


# ============================================================================
# Helpers
# ============================================================================

def food_snapshot(food: Food) -> Dict[str, Any]:
    """JSON-safe copy of a food's columns for the audit log."""
    return {
        "name": food.name,
        "category_id": food.category_id,
        "purchase_date": food.purchase_date.isoformat() if food.purchase_date else None,
        "expiry_date": food.expiry_date.isoformat() if food.expiry_date else None,
        "quantity": food.quantity,
        "unit": food.unit,
        "storage_location": food.storage_location.value if food.storage_location else None,
        "status": food.status.value if food.status else None,
        "barcode": food.barcode,
        "notes": food.notes,
    }


def validate_food_data(data: Dict[str, Any], partial: bool = False) -> None:
    """
    Validate food fields, collecting every problem per field.

    Args:
        data: Field values (create payload, or merged values for an update)
        partial: Only check fields that are present

    Raises:
        ValidationError: With {field: [messages]}
    """
    errors: Dict[str, List[str]] = {}

    if not partial or "name" in data:
        name = data.get("name")
        if not name or not str(name).strip():
            errors["name"] = ["Food name is required"]
        elif len(name) > MAX_NAME_LENGTH:
            errors["name"] = [f"Food name must not exceed {MAX_NAME_LENGTH} characters"]

    if not partial or "quantity" in data:
        quantity = data.get("quantity")
        if quantity is None or isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            errors["quantity"] = ["Quantity must be a positive number"]

    if not partial or "unit" in data:
        unit = data.get("unit")
        if not unit or not str(unit).strip():
            errors["unit"] = ["Unit is required"]

    if not partial and data.get("category_id") is None:
        errors["category_id"] = ["Category is required"]

    purchase_date = data.get("purchase_date")
    expiry_date = data.get("expiry_date")
    if not partial and expiry_date is None:
        errors["expiry_date"] = ["Expiry date is required"]
    if purchase_date is not None and expiry_date is not None and expiry_date < purchase_date:
        errors["expiry_date"] = ["Expiry date cannot be before purchase date"]

    if errors:
        raise ValidationError("Validation failed", errors)


async def get_category(session: AsyncSession, category_id: int) -> Category:
    result = await session.execute(
        select(Category).where(Category.id == category_id, Category.is_active.is_(True))
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def list_categories(session: AsyncSession) -> List[Category]:
    result = await session.execute(
        select(Category).where(Category.is_active.is_(True)).order_by(Category.id)
    )
    return list(result.scalars().all())


async def category_food_counts(session: AsyncSession, user_id: int) -> Dict[int, int]:
    """Active food count per category id for one user."""
    result = await session.execute(
        select(Food.category_id, func.count(Food.id))
        .where(Food.user_id == user_id, Food.status == FoodStatus.ACTIVE)
        .group_by(Food.category_id)
    )
    return {category_id: count for category_id, count in result.all()}


# ============================================================================
# CRUD
# ============================================================================

async def create_food(
    session: AsyncSession,
    user_id: int,
    data: Dict[str, Any],
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Food:
    """
    Create a food item.

    Args:
        session: Database session
        user_id: Owner
        data: Food fields (purchase_date defaults to today)
        today: Reference date
        threshold_days: Expiry alert threshold

    Returns:
        Food: The created food

    Raises:
        ValidationError: Invalid fields
        NotFoundError: Unknown category
    """
    today = today or date.today()
    values = {key: value for key, value in data.items() if key in _MUTABLE_FIELDS and key != "status"}
    if values.get("purchase_date") is None:
        values["purchase_date"] = today
    if isinstance(values.get("name"), str):
        values["name"] = values["name"].strip()

    validate_food_data(values)
    await get_category(session, values["category_id"])

    storage_location = values.get("storage_location") or StorageLocation.FRIDGE
    values["storage_location"] = storage_location
    values["expiry_date"] = await adjust_expiry_for_storage(
        session,
        values["name"],
        storage_location,
        values["purchase_date"],
        values["expiry_date"],
    )

    food = Food(user_id=user_id, status=FoodStatus.ACTIVE, **values)
    session.add(food)
    await session.flush()

    await notification_service.check_food_expiry(session, food, today, threshold_days)
    await record_audit(session, user_id, "create", "food", food.id, new_values=food_snapshot(food))

    await session.commit()
    await session.refresh(food)

    logger.info(f"Food created: {food.id} ({food.name}) for user {user_id}")

    return food


async def get_food(session: AsyncSession, user_id: int, food_id: int) -> Food:
    """
    Raises:
        NotFoundError: If the food does not exist or belongs to someone else
    """
    result = await session.execute(
        select(Food).where(Food.id == food_id, Food.user_id == user_id)
    )
    food = result.scalar_one_or_none()
    if food is None:
        raise NotFoundError("Food not found")
    return food


async def list_foods(
    session: AsyncSession,
    user_id: int,
    category_ids: Optional[Sequence[int]] = None,
    storage_locations: Optional[Sequence[StorageLocation]] = None,
    status: Optional[FoodStatus] = None,
    expiry_within_days: Optional[int] = None,
    search: Optional[str] = None,
    sort_by: str = "expiry_date",
    sort_order: str = "asc",
    skip: int = 0,
    limit: int = 50,
    today: Optional[date] = None,
) -> Tuple[List[Food], int]:
    """
    List a user's foods with filters, sorting and pagination.

    expiry_within_days keeps foods expiring between today and today + N.

    Returns:
        Tuple[List[Food], int]: (page of foods, total matching)
    """
    if sort_by not in SORT_FIELDS:
        raise ValidationError(
            "Invalid sort field",
            {"sort_by": [f"Must be one of: {', '.join(SORT_FIELDS)}"]},
        )
    if sort_order not in ("asc", "desc"):
        raise ValidationError("Invalid sort order", {"sort_order": ["Must be 'asc' or 'desc'"]})

    conditions = [Food.user_id == user_id]
    if category_ids:
        conditions.append(Food.category_id.in_(list(category_ids)))
    if storage_locations:
        conditions.append(Food.storage_location.in_(list(storage_locations)))
    if status is not None:
        conditions.append(Food.status == status)
    if expiry_within_days is not None:
        reference = today or date.today()
        conditions.append(Food.expiry_date >= reference)
        conditions.append(Food.expiry_date <= reference + timedelta(days=expiry_within_days))
    if search:
        conditions.append(func.lower(Food.name).contains(search.strip().lower(), autoescape=True))

    total = (await session.execute(select(func.count(Food.id)).where(*conditions))).scalar_one()

    column = SORT_FIELDS[sort_by]
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await session.execute(
        select(Food)
        .where(*conditions)
        .order_by(ordering, Food.id)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_food(
    session: AsyncSession,
    user_id: int,
    food_id: int,
    changes: Dict[str, Any],
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Food:
    """
    Partially update a food.

    Dates are validated on the merged values. A storage location change may
    extend the expiry date. Status may only move away from active.

    Raises:
        ValidationError: Invalid fields
        NotFoundError: Unknown food or category
        ConflictError: Status change on a food that is no longer active
    """
    food = await get_food(session, user_id, food_id)
    before = food_snapshot(food)
    changes = {key: value for key, value in changes.items() if key in _MUTABLE_FIELDS}
    if isinstance(changes.get("name"), str):
        changes["name"] = changes["name"].strip()

    for key in ("name", "quantity", "unit", "category_id", "purchase_date", "expiry_date", "storage_location"):
        if key in changes and changes[key] is None:
            changes.pop(key)

    validate_food_data(changes, partial=True)
    merged_purchase = changes.get("purchase_date", food.purchase_date)
    merged_expiry = changes.get("expiry_date", food.expiry_date)
    validate_food_data({"purchase_date": merged_purchase, "expiry_date": merged_expiry}, partial=True)

    new_status = changes.pop("status", None)
    if new_status is not None and new_status != food.status and food.status != FoodStatus.ACTIVE:
        raise ConflictError(f"Cannot change status of a {food.status.value} food")

    await get_category(session, changes.get("category_id", food.category_id))

    new_location = changes.get("storage_location")
    if new_location is not None and new_location != food.storage_location:
        changes["expiry_date"] = await adjust_expiry_for_storage(
            session,
            changes.get("name", food.name),
            new_location,
            merged_purchase,
            merged_expiry,
        )

    for key, value in changes.items():
        setattr(food, key, value)

    status_changed = new_status is not None and new_status != food.status
    if status_changed:
        food.status = new_status
        if new_status in USED_UP_STATUSES:
            await notification_service.delete_food_notifications(session, food.id)

    await session.flush()

    if "expiry_date" in changes or status_changed:
        await notification_service.check_food_expiry(session, food, today, threshold_days)

    await record_audit(session, user_id, "update", "food", food.id, before, food_snapshot(food))

    await session.commit()
    await session.refresh(food)

    return food


async def delete_food(session: AsyncSession, user_id: int, food_id: int) -> None:
    """Delete a food and its notifications."""
    food = await get_food(session, user_id, food_id)
    before = food_snapshot(food)

    await notification_service.delete_food_notifications(session, food.id)
    await session.delete(food)
    await record_audit(session, user_id, "delete", "food", food_id, old_values=before)

    await session.commit()

    logger.info(f"Food deleted: {food_id} by user {user_id}")


# ============================================================================
# Status Lifecycle
# ============================================================================

async def change_status(
    session: AsyncSession,
    user_id: int,
    food_id: int,
    new_status: FoodStatus,
) -> Food:
    """
    Move an active food to a terminal status.

    Raises:
        NotFoundError: Unknown food
        ConflictError: Food is not active
    """
    food = await get_food(session, user_id, food_id)

    if food.status != FoodStatus.ACTIVE:
        raise ConflictError(f"Cannot change status of a {food.status.value} food")
    if new_status == FoodStatus.ACTIVE:
        return food

    old_status = food.status
    food.status = new_status
    if new_status in USED_UP_STATUSES:
        await notification_service.delete_food_notifications(session, food.id)

    await record_audit(
        session, user_id, new_status.value, "food", food.id,
        {"status": old_status.value}, {"status": new_status.value},
    )

    await session.commit()
    await session.refresh(food)

    logger.info(f"Food {food.id} marked {new_status.value} by user {user_id}")

    return food


async def mark_consumed(session: AsyncSession, user_id: int, food_id: int) -> Food:
    return await change_status(session, user_id, food_id, FoodStatus.CONSUMED)


async def mark_disposed(session: AsyncSession, user_id: int, food_id: int) -> Food:
    return await change_status(session, user_id, food_id, FoodStatus.DISPOSED)


async def mark_expired(session: AsyncSession, user_id: int, food_id: int) -> Food:
    return await change_status(session, user_id, food_id, FoodStatus.EXPIRED)


async def bulk_consume(session: AsyncSession, user_id: int, food_ids: Sequence[int]) -> int:
    """
    Mark several foods consumed at once.

    Raises:
        NotFoundError: If any id is unknown or belongs to another user
        ConflictError: If any of the foods is not active

    Returns:
        int: Number of foods updated
    """
    unique_ids = list(dict.fromkeys(food_ids))
    result = await session.execute(
        select(Food).where(Food.id.in_(unique_ids), Food.user_id == user_id)
    )
    foods = list(result.scalars().all())

    if len(foods) != len(unique_ids):
        raise NotFoundError("Some foods not found or do not belong to user")

    not_active = [food.id for food in foods if food.status != FoodStatus.ACTIVE]
    if not_active:
        raise ConflictError(f"Foods are no longer active: {sorted(not_active)}")

    for food in foods:
        food.status = FoodStatus.CONSUMED
        await notification_service.delete_food_notifications(session, food.id)

    await record_audit(session, user_id, "bulk_consume", "food", new_values={"count": len(foods), "ids": unique_ids})
    await session.commit()

    return len(foods)


# ============================================================================
# Queries
# ============================================================================

async def expiring_foods(
    session: AsyncSession,
    user_id: int,
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> List[Food]:
    """Active foods expiring between today and today + threshold, soonest first."""
    reference = today or date.today()
    result = await session.execute(
        select(Food)
        .where(
            Food.user_id == user_id,
            Food.status == FoodStatus.ACTIVE,
            Food.expiry_date >= reference,
            Food.expiry_date <= reference + timedelta(days=threshold_days),
        )
        .order_by(Food.expiry_date, Food.id)
    )
    return list(result.scalars().all())


async def expired_foods(session: AsyncSession, user_id: int, today: Optional[date] = None) -> List[Food]:
    """Active foods whose expiry date has passed."""
    reference = today or date.today()
    result = await session.execute(
        select(Food)
        .where(
            Food.user_id == user_id,
            Food.status == FoodStatus.ACTIVE,
            Food.expiry_date < reference,
        )
        .order_by(Food.expiry_date, Food.id)
    )
    return list(result.scalars().all())


async def food_stats(
    session: AsyncSession,
    user_id: int,
    today: Optional[date] = None,
    threshold_days: int = DEFAULT_EXPIRY_THRESHOLD_DAYS,
) -> Dict[str, Any]:
    """
    Inventory statistics.

    expiring_soon and expired count active foods by date;
    by_category and by_storage count active foods.
    """
    reference = today or date.today()

    status_rows = await session.execute(
        select(Food.status, func.count(Food.id))
        .where(Food.user_id == user_id)
        .group_by(Food.status)
    )
    by_status = {status: count for status, count in status_rows.all()}

    expiring = len(await expiring_foods(session, user_id, reference, threshold_days))
    expired = len(await expired_foods(session, user_id, reference))

    category_rows = await session.execute(
        select(Category.name, func.count(Food.id))
        .join(Category, Category.id == Food.category_id)
        .where(Food.user_id == user_id, Food.status == FoodStatus.ACTIVE)
        .group_by(Category.name)
    )
    storage_rows = await session.execute(
        select(Food.storage_location, func.count(Food.id))
        .where(Food.user_id == user_id, Food.status == FoodStatus.ACTIVE)
        .group_by(Food.storage_location)
    )

    return {
        "total": sum(by_status.values()),
        "active": by_status.get(FoodStatus.ACTIVE, 0),
        "expiring_soon": expiring,
        "expired": expired,
        "consumed": by_status.get(FoodStatus.CONSUMED, 0),
        "disposed": by_status.get(FoodStatus.DISPOSED, 0),
        "by_category": {name: count for name, count in category_rows.all()},
        "by_storage": {location.value: count for location, count in storage_rows.all()},
    }


async def search_foods(session: AsyncSession, user_id: int, term: str, limit: int = 20) -> List[Food]:
    """
    Search a user's foods by name.

    Raises:
        ValidationError: If the term is shorter than 2 characters
    """
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise ValidationError(
            "Search term too short",
            {"q": [f"Search term must be at least {MIN_SEARCH_LENGTH} characters"]},
        )

    result = await session.execute(
        select(Food)
        .where(
            Food.user_id == user_id,
            func.lower(Food.name).contains(term.lower(), autoescape=True),
        )
        .order_by(Food.status, Food.expiry_date, Food.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def active_ingredient_names(session: AsyncSession, user_id: int) -> List[str]:
    """Distinct names of active foods, soonest-expiring first."""
    result = await session.execute(
        select(Food.name, func.min(Food.expiry_date).label("first_expiry"))
        .where(Food.user_id == user_id, Food.status == FoodStatus.ACTIVE)
        .group_by(Food.name)
        .order_by("first_expiry", Food.name)
    )
    return [name for name, _ in result.all()]


async def find_by_barcode(session: AsyncSession, user_id: int, barcode: str) -> Optional[Food]:
    """Most recently added food of the user carrying this barcode."""
    result = await session.execute(
        select(Food)
        .where(Food.user_id == user_id, Food.barcode == barcode.strip())
        .order_by(Food.created_at.desc(), Food.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
