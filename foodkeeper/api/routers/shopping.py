"""
Shopping Router
Shopping lists and their items, including generated lists.
"""

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.dependencies import get_current_user, get_today
from foodkeeper.api.schemas import (
    MessageResponse,
    ShoppingListCreate,
    ShoppingListGenerateRequest,
    ShoppingListItemCreate,
    ShoppingListItemUpdate,
    ShoppingListResponse,
)
from foodkeeper.api.services import shopping_service
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import ShoppingList, User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=List[ShoppingListResponse],
    summary="List shopping lists",
)
async def list_shopping_lists(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[ShoppingList]:
    return await shopping_service.list_shopping_lists(session, current_user.id)


@router.post(
    "",
    response_model=ShoppingListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create shopping list",
)
async def create_shopping_list(
    payload: ShoppingListCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.create_shopping_list(
        session,
        current_user.id,
        payload.name,
        items=[item.model_dump() for item in payload.items],
        notes=payload.notes,
    )


@router.post(
    "/generate",
    response_model=ShoppingListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate shopping list",
    description=(
        "Build a list from recipe ingredients, or from consumed, disposed and "
        "expired foods when no recipes are given. Items already in stock are skipped."
    ),
)
async def generate_shopping_list(
    payload: ShoppingListGenerateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    today: date = Depends(get_today),
) -> ShoppingList:
    return await shopping_service.generate_shopping_list(
        session,
        current_user.id,
        recipe_ids=payload.recipe_ids,
        name=payload.name,
        today=today,
    )


@router.get(
    "/{list_id}",
    response_model=ShoppingListResponse,
    summary="Get shopping list",
)
async def get_shopping_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.get_shopping_list(session, current_user.id, list_id)


@router.delete(
    "/{list_id}",
    response_model=MessageResponse,
    summary="Delete shopping list",
)
async def delete_shopping_list(
    list_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await shopping_service.delete_shopping_list(session, current_user.id, list_id)
    return MessageResponse(message="Shopping list deleted successfully")


@router.post(
    "/{list_id}/items",
    response_model=ShoppingListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add item",
)
async def add_item(
    list_id: int,
    payload: ShoppingListItemCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.add_item(
        session, current_user.id, list_id, **payload.model_dump()
    )


@router.put(
    "/{list_id}/items/{item_id}",
    response_model=ShoppingListResponse,
    summary="Update item",
)
async def update_item(
    list_id: int,
    item_id: int,
    payload: ShoppingListItemUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.update_item(
        session, current_user.id, list_id, item_id, payload.model_dump(exclude_unset=True)
    )


@router.post(
    "/{list_id}/items/{item_id}/purchase",
    response_model=ShoppingListResponse,
    summary="Mark item purchased",
)
async def purchase_item(
    list_id: int,
    item_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.set_item_purchased(session, current_user.id, list_id, item_id)


@router.delete(
    "/{list_id}/items/{item_id}",
    response_model=ShoppingListResponse,
    summary="Remove item",
)
async def remove_item(
    list_id: int,
    item_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShoppingList:
    return await shopping_service.remove_item(session, current_user.id, list_id, item_id)
