"""
Shopping List Service

Shopping lists with items, completion tracking, and generation of a list
from recipe ingredients or from foods the user has used up.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodkeeper.api.errors import NotFoundError
from foodkeeper.api.services.audit_service import record_audit
from foodkeeper.api.services.recipe_service import ensure_recipes_exist
from foodkeeper.shared.models import (
    Food,
    FoodStatus,
    RecipeIngredient,
    ShoppingList,
    ShoppingListItem,
)

logger = logging.getLogger(__name__)

DEFAULT_ITEM_UNIT = "piece"
GENERATED_FROM_INVENTORY = (FoodStatus.CONSUMED, FoodStatus.EXPIRED, FoodStatus.DISPOSED)


def _with_items():
    return select(ShoppingList).options(selectinload(ShoppingList.items))


def recompute_completed(shopping_list: ShoppingList) -> bool:
    """A list is completed when it has items and every one is purchased."""
    shopping_list.completed = bool(shopping_list.items) and all(
        item.purchased for item in shopping_list.items
    )
    return shopping_list.completed


async def _reload(session: AsyncSession, list_id: int) -> ShoppingList:
    result = await session.execute(
        _with_items()
        .where(ShoppingList.id == list_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ============================================================================
# Lists
# ============================================================================

async def list_shopping_lists(session: AsyncSession, user_id: int) -> List[ShoppingList]:
    result = await session.execute(
        _with_items()
        .where(ShoppingList.user_id == user_id)
        .order_by(ShoppingList.created_at.desc(), ShoppingList.id.desc())
    )
    return list(result.scalars().all())


async def get_shopping_list(session: AsyncSession, user_id: int, list_id: int) -> ShoppingList:
    """
    Raises:
        NotFoundError: Unknown list or owned by another user
    """
    result = await session.execute(
        _with_items().where(ShoppingList.id == list_id, ShoppingList.user_id == user_id)
    )
    shopping_list = result.scalar_one_or_none()
    if shopping_list is None:
        raise NotFoundError("Shopping list not found")
    return shopping_list


async def create_shopping_list(
    session: AsyncSession,
    user_id: int,
    name: str,
    items: Sequence[Dict[str, Any]] = (),
    notes: Optional[str] = None,
) -> ShoppingList:
    """Create a list with optional initial items."""
    shopping_list = ShoppingList(user_id=user_id, name=name.strip(), notes=notes)
    shopping_list.items = [
        ShoppingListItem(
            item_name=item["item_name"].strip(),
            quantity=item.get("quantity") or 1,
            unit=item.get("unit") or DEFAULT_ITEM_UNIT,
            estimated_price=item.get("estimated_price"),
            notes=item.get("notes"),
        )
        for item in items
    ]
    recompute_completed(shopping_list)
    session.add(shopping_list)
    await session.flush()

    await record_audit(
        session, user_id, "create", "shopping_list", shopping_list.id,
        new_values={"name": shopping_list.name, "items": len(shopping_list.items)},
    )
    await session.commit()

    logger.info(f"Shopping list {shopping_list.id} created for user {user_id} ({len(items)} items)")

    return await _reload(session, shopping_list.id)


async def delete_shopping_list(session: AsyncSession, user_id: int, list_id: int) -> None:
    shopping_list = await get_shopping_list(session, user_id, list_id)
    await session.delete(shopping_list)
    await record_audit(session, user_id, "delete", "shopping_list", list_id)
    await session.commit()


# ============================================================================
# Items
# ============================================================================

async def add_item(
    session: AsyncSession,
    user_id: int,
    list_id: int,
    item_name: str,
    quantity: float = 1,
    unit: str = DEFAULT_ITEM_UNIT,
    estimated_price: Optional[float] = None,
    notes: Optional[str] = None,
) -> ShoppingList:
    shopping_list = await get_shopping_list(session, user_id, list_id)
    shopping_list.items.append(ShoppingListItem(
        item_name=item_name.strip(),
        quantity=quantity,
        unit=unit,
        estimated_price=estimated_price,
        notes=notes,
    ))
    recompute_completed(shopping_list)
    await session.commit()

    return await _reload(session, list_id)


def _find_item(shopping_list: ShoppingList, item_id: int) -> ShoppingListItem:
    for item in shopping_list.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Shopping list item not found")


async def update_item(
    session: AsyncSession,
    user_id: int,
    list_id: int,
    item_id: int,
    changes: Dict[str, Any],
) -> ShoppingList:
    """Update purchased flag, quantity or unit of an item."""
    shopping_list = await get_shopping_list(session, user_id, list_id)
    item = _find_item(shopping_list, item_id)

    for key in ("purchased", "quantity", "unit"):
        if changes.get(key) is not None:
            setattr(item, key, changes[key])

    recompute_completed(shopping_list)
    await session.commit()

    return await _reload(session, list_id)


async def set_item_purchased(
    session: AsyncSession,
    user_id: int,
    list_id: int,
    item_id: int,
    purchased: bool = True,
) -> ShoppingList:
    return await update_item(session, user_id, list_id, item_id, {"purchased": purchased})


async def remove_item(session: AsyncSession, user_id: int, list_id: int, item_id: int) -> ShoppingList:
    shopping_list = await get_shopping_list(session, user_id, list_id)
    item = _find_item(shopping_list, item_id)

    shopping_list.items.remove(item)
    recompute_completed(shopping_list)
    await session.commit()

    return await _reload(session, list_id)


# ============================================================================
# Generation
# ============================================================================

def _matches_inventory(name: str, inventory: Sequence[str]) -> bool:
    """Case-insensitive containment either way."""
    needle = name.lower()
    return any(needle in owned or owned in needle for owned in inventory)


async def needed_item_names(
    session: AsyncSession,
    user_id: int,
    recipe_ids: Optional[Sequence[int]] = None,
) -> List[str]:
    """
    Names worth buying: ingredients of the given recipes, or (without recipes)
    foods the user has consumed, thrown away or let expire. Anything already
    in the active inventory is left out.
    """
    if recipe_ids:
        result = await session.execute(
            select(RecipeIngredient.ingredient_name)
            .where(RecipeIngredient.recipe_id.in_(list(recipe_ids)))
            .order_by(RecipeIngredient.recipe_id, RecipeIngredient.id)
        )
        candidates = list(result.scalars().all())
    else:
        result = await session.execute(
            select(Food.name)
            .where(Food.user_id == user_id, Food.status.in_(GENERATED_FROM_INVENTORY))
            .order_by(Food.updated_at.desc(), Food.id.desc())
        )
        candidates = list(result.scalars().all())

    result = await session.execute(
        select(Food.name).where(Food.user_id == user_id, Food.status == FoodStatus.ACTIVE)
    )
    inventory = [name.lower() for name in result.scalars().all()]

    needed: List[str] = []
    seen = set()
    for name in candidates:
        key = name.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        if _matches_inventory(key, inventory):
            continue
        needed.append(name.strip())

    return needed


async def generate_shopping_list(
    session: AsyncSession,
    user_id: int,
    recipe_ids: Optional[Sequence[int]] = None,
    name: Optional[str] = None,
    today: Optional[date] = None,
) -> ShoppingList:
    """
    Create a new list of the items the user needs, one piece each.

    Raises:
        NotFoundError: If a recipe id does not exist
    """
    if recipe_ids:
        await ensure_recipes_exist(session, recipe_ids)

    names = await needed_item_names(session, user_id, recipe_ids)
    list_name = name or f"Shopping list {(today or date.today()).isoformat()}"

    return await create_shopping_list(
        session,
        user_id,
        list_name,
        items=[{"item_name": item_name, "quantity": 1, "unit": DEFAULT_ITEM_UNIT} for item_name in names],
        notes="Generated from recipes" if recipe_ids else "Generated from used-up foods",
    )
