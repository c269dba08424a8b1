"""
Foods Router
Food inventory: CRUD, status lifecycle, expiry views, statistics and search.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.api.dependencies import get_current_user, get_today, pagination_params
from foodkeeper.api.middleware.rate_limit import limiter
from foodkeeper.api.schemas import (
    BulkConsumeRequest,
    ExpirySweepResponse,
    FoodCreate,
    FoodListResponse,
    FoodResponse,
    FoodStatsResponse,
    FoodUpdate,
    MessageResponse,
)
from foodkeeper.api.services import food_service
from foodkeeper.api.services.notification_service import sweep_expiry_alerts
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import Food, FoodStatus, StorageLocation, User
from foodkeeper.shared.utils.expiry import classify_expiry, days_until_expiry

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


def to_food_response(food: Food, today: date) -> FoodResponse:
    """Serialize a food with its day offset and expiry classification."""
    response = FoodResponse.model_validate(food)
    response.days_until_expiry = days_until_expiry(food.expiry_date, today)
    response.expiry_status = classify_expiry(
        food.expiry_date, today, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    )
    return response


@router.post(
    "",
    response_model=FoodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add food",
    description="Add a food item; the expiry date may be extended from storage tips",
)
async def create_food(
    payload: FoodCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    """Add food to inventory."""
    food = await food_service.create_food(
        session,
        current_user.id,
        payload.model_dump(),
        today=today,
        threshold_days=settings.EXPIRY_ALERT_THRESHOLD_DAYS,
    )
    return to_food_response(food, today)


@router.get(
    "",
    response_model=FoodListResponse,
    summary="List foods",
    description="List foods with filters, sorting and pagination",
)
async def list_foods(
    category_id: Optional[List[int]] = Query(None, description="Filter by category (repeatable)"),
    storage_location: Optional[List[StorageLocation]] = Query(None, description="Filter by storage location (repeatable)"),
    food_status: Optional[FoodStatus] = Query(None, alias="status"),
    expiry_within_days: Optional[int] = Query(None, ge=0, le=365),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("expiry_date"),
    sort_order: str = Query("asc"),
    pagination: dict = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodListResponse:
    """List the current user's foods."""
    foods, total = await food_service.list_foods(
        session,
        current_user.id,
        category_ids=category_id,
        storage_locations=storage_location,
        status=food_status,
        expiry_within_days=expiry_within_days,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=pagination["skip"],
        limit=pagination["limit"],
        today=today,
    )

    return FoodListResponse(
        items=[to_food_response(food, today) for food in foods],
        total=total,
        skip=pagination["skip"],
        limit=pagination["limit"],
        has_more=pagination["skip"] + len(foods) < total,
    )


@router.get(
    "/stats",
    response_model=FoodStatsResponse,
    summary="Inventory statistics",
)
async def get_food_stats(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodStatsResponse:
    stats = await food_service.food_stats(
        session, current_user.id, today, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    )
    return FoodStatsResponse(**stats)


@router.get(
    "/expiring",
    response_model=List[FoodResponse],
    summary="Expiring foods",
    description="Active foods expiring within the given number of days (inclusive)",
)
async def get_expiring_foods(
    days: Optional[int] = Query(None, ge=0, le=365),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> List[FoodResponse]:
    threshold = settings.EXPIRY_ALERT_THRESHOLD_DAYS if days is None else days
    foods = await food_service.expiring_foods(session, current_user.id, today, threshold)
    return [to_food_response(food, today) for food in foods]


@router.get(
    "/expired",
    response_model=List[FoodResponse],
    summary="Expired foods",
    description="Active foods whose expiry date has passed",
)
async def get_expired_foods(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> List[FoodResponse]:
    foods = await food_service.expired_foods(session, current_user.id, today)
    return [to_food_response(food, today) for food in foods]


@router.get(
    "/search",
    response_model=List[FoodResponse],
    summary="Search foods",
    description="Search foods by name (at least 2 characters)",
)
@limiter.limit(settings.RATE_LIMIT_SEARCH)
async def search_foods(
    request: Request,
    q: str = Query(..., max_length=100),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> List[FoodResponse]:
    foods = await food_service.search_foods(session, current_user.id, q, limit)
    return [to_food_response(food, today) for food in foods]


@router.get(
    "/ingredients",
    response_model=List[str],
    summary="Available ingredients",
    description="Distinct names of active foods, soonest-expiring first",
)
async def get_ingredients(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[str]:
    return await food_service.active_ingredient_names(session, current_user.id)


@router.post(
    "/check-expiry",
    response_model=ExpirySweepResponse,
    summary="Check expiry",
    description="Create expiry alerts for the current user's foods",
)
async def check_expiry(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> ExpirySweepResponse:
    checked, created = await sweep_expiry_alerts(
        session, current_user.id, today, settings.EXPIRY_ALERT_THRESHOLD_DAYS
    )
    return ExpirySweepResponse(checked=checked, created=created)


@router.post(
    "/bulk-consume",
    response_model=MessageResponse,
    summary="Consume several foods",
)
async def bulk_consume(
    payload: BulkConsumeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    count = await food_service.bulk_consume(session, current_user.id, payload.food_ids)
    return MessageResponse(message=f"{count} foods marked as consumed")


@router.get(
    "/{food_id}",
    response_model=FoodResponse,
    summary="Get food",
)
async def get_food(
    food_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    food = await food_service.get_food(session, current_user.id, food_id)
    return to_food_response(food, today)


@router.put(
    "/{food_id}",
    response_model=FoodResponse,
    summary="Update food",
    description="Partial update; status may only change while the food is active",
)
async def update_food(
    food_id: int,
    payload: FoodUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    food = await food_service.update_food(
        session,
        current_user.id,
        food_id,
        payload.model_dump(exclude_unset=True),
        today=today,
        threshold_days=settings.EXPIRY_ALERT_THRESHOLD_DAYS,
    )
    return to_food_response(food, today)


@router.delete(
    "/{food_id}",
    response_model=MessageResponse,
    summary="Delete food",
)
async def delete_food(
    food_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await food_service.delete_food(session, current_user.id, food_id)
    return MessageResponse(message="Food deleted successfully")


@router.post(
    "/{food_id}/consume",
    response_model=FoodResponse,
    summary="Mark consumed",
)
async def consume_food(
    food_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    food = await food_service.mark_consumed(session, current_user.id, food_id)
    return to_food_response(food, today)


@router.post(
    "/{food_id}/dispose",
    response_model=FoodResponse,
    summary="Mark disposed",
)
async def dispose_food(
    food_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    food = await food_service.mark_disposed(session, current_user.id, food_id)
    return to_food_response(food, today)


@router.post(
    "/{food_id}/expire",
    response_model=FoodResponse,
    summary="Mark expired",
)
async def expire_food(
    food_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> FoodResponse:
    food = await food_service.mark_expired(session, current_user.id, food_id)
    return to_food_response(food, today)
