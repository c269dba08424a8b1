"""
Categories Router
Read-only food category reference data.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.dependencies import get_current_user
from foodkeeper.api.schemas import CategoryResponse, CategoryWithCountResponse
from foodkeeper.api.services import food_service
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import Category, User

router = APIRouter()


@router.get(
    "",
    response_model=List[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    session: AsyncSession = Depends(get_session),
) -> List[Category]:
    return await food_service.list_categories(session)


@router.get(
    "/with-counts",
    response_model=List[CategoryWithCountResponse],
    summary="Categories with food counts",
    description="Categories with the number of active foods the current user keeps in each",
)
async def list_categories_with_counts(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[CategoryWithCountResponse]:
    categories = await food_service.list_categories(session)
    counts = await food_service.category_food_counts(session, current_user.id)
    return [
        CategoryWithCountResponse(
            **CategoryResponse.model_validate(category).model_dump(),
            food_count=counts.get(category.id, 0),
        )
        for category in categories
    ]


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Get category",
)
async def get_category(
    category_id: int,
    session: AsyncSession = Depends(get_session),
) -> Category:
    return await food_service.get_category(session, category_id)
