"""
MCP Tools

Tool handlers for the MCP service. Every handler takes a session, its
validated input and the reference date, calls the same services as the REST
API and returns JSON-ready data for the `{"success": true, "data": ...}`
envelope.
"""

import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.api.errors import NotFoundError
from foodkeeper.api.schemas import (
    FoodResponse,
    RecipeSuggestion,
    ShoppingListResponse,
    StorageTipResponse,
)
from foodkeeper.api.services import food_service, recipe_service, shopping_service, storage_service
from foodkeeper.api.services.notification_service import expiry_alert_priority
from foodkeeper.mcp.schemas import (
    AddFoodItemInput,
    GenerateShoppingListInput,
    GetExpiryAlertsInput,
    GetFoodInventoryInput,
    GetRecipeSuggestionsInput,
    GetStorageAdviceInput,
    ScanBarcodeInput,
    UpdateFoodStatusInput,
)
from foodkeeper.shared.models import Food, FoodStatus, User
from foodkeeper.shared.recipe_catalog import suggest_recipes
from foodkeeper.shared.utils.expiry import ExpiryStatus, classify_expiry, days_until_expiry

settings = get_settings()
logger = logging.getLogger(__name__)

DEFAULT_SHELF_LIFE_DAYS = 7
GENERIC_PRODUCT_CATEGORY = "食品"
GENERIC_STORAGE_ADVICE = "冷蔵庫で保存してください"
INVENTORY_PAGE_SIZE = 1000

USAGE_SUGGESTIONS = {
    "野菜": ["サラダに使用", "炒め物に追加", "スープの具材"],
    "肉類": ["焼いて主菜に", "カレーの具材", "炒め物に使用"],
    "乳製品": ["そのまま飲用", "シリアルと一緒に", "コーヒーに追加"],
}
DEFAULT_USAGE_SUGGESTIONS = ["冷凍保存", "他の料理に活用", "すぐに消費"]

ToolHandler = Callable[[AsyncSession, Any, date], Awaitable[Any]]


async def _require_user(session: AsyncSession, user_id: int) -> User:
    result = await session.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _category_names(session: AsyncSession) -> Dict[int, str]:
    return {category.id: category.name for category in await food_service.list_categories(session)}


def _food_data(food: Food, today: date, category_names: Dict[int, str]) -> Dict[str, Any]:
    data = FoodResponse.model_validate(food).model_dump(mode="json")
    data["category_name"] = category_names.get(food.category_id)
    data["days_until_expiry"] = days_until_expiry(food.expiry_date, today)
    data["expiry_status"] = classify_expiry(
        food.expiry_date, today, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    ).value
    return data


def usage_suggestions(category_name: Optional[str]) -> List[str]:
    return list(USAGE_SUGGESTIONS.get(category_name, DEFAULT_USAGE_SUGGESTIONS))


# ============================================================================
# Inventory
# ============================================================================

async def get_food_inventory(
    session: AsyncSession, params: GetFoodInventoryInput, today: date
) -> List[Dict[str, Any]]:
    """Foods of a user; `expiring_soon` keeps expired and expiring-soon foods."""
    await _require_user(session, params.user_id)
    foods, _ = await food_service.list_foods(
        session,
        params.user_id,
        category_ids=[params.category_id] if params.category_id is not None else None,
        status=params.status,
        limit=INVENTORY_PAGE_SIZE,
        today=today,
    )
    if params.expiring_soon:
        foods = [
            food for food in foods
            if classify_expiry(food.expiry_date, today, settings.EXPIRY_ALERT_THRESHOLD_DAYS)
            != ExpiryStatus.ACTIVE
        ]

    names = await _category_names(session)
    return [_food_data(food, today, names) for food in foods]


async def add_food_item(session: AsyncSession, params: AddFoodItemInput, today: date) -> Dict[str, Any]:
    await _require_user(session, params.user_id)
    food = await food_service.create_food(
        session,
        params.user_id,
        params.model_dump(exclude={"user_id"}),
        today=today,
        threshold_days=settings.EXPIRY_ALERT_THRESHOLD_DAYS,
    )
    return _food_data(food, today, await _category_names(session))


async def update_food_status(
    session: AsyncSession, params: UpdateFoodStatusInput, today: date
) -> Dict[str, Any]:
    food = await food_service.change_status(
        session, params.user_id, params.food_id, FoodStatus(params.status)
    )
    return _food_data(food, today, await _category_names(session))


# ============================================================================
# Recipes and Shopping
# ============================================================================

async def get_recipe_suggestions(
    session: AsyncSession, params: GetRecipeSuggestionsInput, today: date
) -> List[Dict[str, Any]]:
    limit = params.max_recipes or settings.RECIPE_SUGGESTION_LIMIT
    if params.user_id is None:
        recipes = suggest_recipes(params.ingredients or [], limit)
    else:
        await _require_user(session, params.user_id)
        _, recipes = await recipe_service.suggestions_for_user(
            session, params.user_id, params.ingredients, limit
        )
    return [RecipeSuggestion(**recipe.to_dict()).model_dump(mode="json") for recipe in recipes]


async def generate_shopping_list(
    session: AsyncSession, params: GenerateShoppingListInput, today: date
) -> Dict[str, Any]:
    await _require_user(session, params.user_id)
    shopping_list = await shopping_service.generate_shopping_list(
        session, params.user_id, recipe_ids=params.recipe_ids, name=params.name, today=today
    )
    return ShoppingListResponse.model_validate(shopping_list).model_dump(mode="json")


# ============================================================================
# Storage
# ============================================================================

async def scan_barcode(session: AsyncSession, params: ScanBarcodeInput, today: date) -> Dict[str, Any]:
    """
    Identify a barcode from the user's own inventory, otherwise describe a
    generic product. Shelf life and advice come from storage tips when one
    matches the product name.
    """
    barcode = params.barcode.strip()
    known = None
    if params.user_id is not None:
        known = await food_service.find_by_barcode(session, params.user_id, barcode)

    if known is not None:
        name = known.name
        category = (await _category_names(session)).get(known.category_id, GENERIC_PRODUCT_CATEGORY)
    else:
        name = f"商品 {barcode}"
        category = GENERIC_PRODUCT_CATEGORY

    tip = await storage_service.find_storage_tip(session, name)
    return {
        "barcode": barcode,
        "name": name,
        "category": category,
        "known": known is not None,
        "food_id": known.id if known is not None else None,
        "suggested_expiry_days": tip.shelf_life_days if tip else DEFAULT_SHELF_LIFE_DAYS,
        "storage_location": tip.storage_method.value if tip else None,
        "storage_advice": list(tip.tips) if tip else [GENERIC_STORAGE_ADVICE],
    }


async def get_storage_advice(
    session: AsyncSession, params: GetStorageAdviceInput, today: date
) -> Dict[str, Any]:
    tip = await storage_service.find_storage_tip(session, params.food_name, params.category)
    if tip is None:
        return {"food_name": params.food_name, "found": False, "tip": None, "suggested_expiry_date": None}

    return {
        "food_name": params.food_name,
        "found": True,
        "tip": StorageTipResponse.model_validate(tip).model_dump(mode="json"),
        "suggested_expiry_date": storage_service.suggested_expiry(
            tip, params.purchase_date or today
        ).isoformat(),
    }


# ============================================================================
# Alerts
# ============================================================================

async def get_expiry_alerts(
    session: AsyncSession, params: GetExpiryAlertsInput, today: date
) -> List[Dict[str, Any]]:
    """Expired and expiring active foods with urgency and usage ideas."""
    await _require_user(session, params.user_id)
    foods = await food_service.expired_foods(session, params.user_id, today)
    foods += await food_service.expiring_foods(session, params.user_id, today, params.days_ahead)

    names = await _category_names(session)
    alerts = []
    for food in foods:
        days = days_until_expiry(food.expiry_date, today)
        category_name = names.get(food.category_id)
        alerts.append({
            "id": food.id,
            "name": food.name,
            "category_name": category_name,
            "expiry_date": food.expiry_date.isoformat(),
            "days_until_expiry": days,
            "urgency": expiry_alert_priority(days).value,
            "suggestions": usage_suggestions(category_name),
        })
    return alerts


TOOLS: Dict[str, Tuple[Type[BaseModel], ToolHandler]] = {
    "get_food_inventory": (GetFoodInventoryInput, get_food_inventory),
    "add_food_item": (AddFoodItemInput, add_food_item),
    "update_food_status": (UpdateFoodStatusInput, update_food_status),
    "get_recipe_suggestions": (GetRecipeSuggestionsInput, get_recipe_suggestions),
    "generate_shopping_list": (GenerateShoppingListInput, generate_shopping_list),
    "scan_barcode": (ScanBarcodeInput, scan_barcode),
    "get_storage_advice": (GetStorageAdviceInput, get_storage_advice),
    "get_expiry_alerts": (GetExpiryAlertsInput, get_expiry_alerts),
}
