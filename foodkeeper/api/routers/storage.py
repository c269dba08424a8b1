"""
Storage Router
Storage tips reference data and per-food storage advice.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.api.dependencies import get_today
from foodkeeper.api.middleware.rate_limit import limiter
from foodkeeper.api.schemas import StorageAdviceResponse, StorageStatsResponse, StorageTipResponse
from foodkeeper.api.services import storage_service
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import StorageTip

settings = get_settings()

router = APIRouter()


@router.get(
    "/tips",
    response_model=List[StorageTipResponse],
    summary="List storage tips",
)
async def list_tips(
    category: Optional[str] = Query(None, max_length=100),
    session: AsyncSession = Depends(get_session),
) -> List[StorageTip]:
    return await storage_service.list_tips(session, category)


@router.get(
    "/search",
    response_model=List[StorageTipResponse],
    summary="Search storage tips",
    description="Match food name, category, storage method or tip text (at least 2 characters)",
)
@limiter.limit(settings.RATE_LIMIT_SEARCH)
async def search_tips(
    request: Request,
    q: str = Query(..., max_length=100),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
) -> List[StorageTip]:
    return await storage_service.search_tips(session, q, limit)


@router.get(
    "/advice",
    response_model=StorageAdviceResponse,
    summary="Storage advice",
    description="Best storage tip for a food and the expiry date its shelf life implies",
)
async def get_advice(
    food_name: str = Query(..., min_length=1, max_length=100),
    category: Optional[str] = Query(None, max_length=100),
    purchase_date: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> StorageAdviceResponse:
    tip = await storage_service.find_storage_tip(session, food_name, category)
    if tip is None:
        return StorageAdviceResponse(food_name=food_name, found=False)

    return StorageAdviceResponse(
        food_name=food_name,
        found=True,
        tip=StorageTipResponse.model_validate(tip),
        suggested_expiry_date=storage_service.suggested_expiry(tip, purchase_date or today),
    )


@router.get(
    "/stats",
    response_model=StorageStatsResponse,
    summary="Storage tip statistics",
)
async def get_stats(session: AsyncSession = Depends(get_session)) -> StorageStatsResponse:
    return StorageStatsResponse(**await storage_service.storage_stats(session))
