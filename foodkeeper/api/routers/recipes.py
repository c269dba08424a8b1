"""
Recipes Router
Ingredient-based suggestions, catalog browsing, favorites and ratings.
"""

import logging
from typing import List, Optional, Set

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.api.config import get_settings
from foodkeeper.api.dependencies import get_current_user, pagination_params
from foodkeeper.api.middleware.rate_limit import limiter
from foodkeeper.api.schemas import (
    MessageResponse,
    RecipeListResponse,
    RecipeRatingRequest,
    RecipeResponse,
    RecipeSuggestion,
    RecipeSuggestionResponse,
)
from foodkeeper.api.services import recipe_service
from foodkeeper.shared.database import get_session
from foodkeeper.shared.models import Recipe, RecipeDifficulty, User

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


def to_recipe_response(recipe: Recipe, favorites: Set[int]) -> RecipeResponse:
    response = RecipeResponse.model_validate(recipe)
    response.is_favorite = recipe.id in favorites
    return response


@router.get(
    "/suggestions",
    response_model=RecipeSuggestionResponse,
    summary="Recipe suggestions",
    description=(
        "Suggest recipes for the given ingredients (repeat `ingredients`), "
        "or for the current user's active foods when none are given"
    ),
)
async def get_suggestions(
    ingredients: Optional[List[str]] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=20),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RecipeSuggestionResponse:
    used, recipes = await recipe_service.suggestions_for_user(
        session,
        current_user.id,
        ingredients,
        limit or settings.RECIPE_SUGGESTION_LIMIT,
    )
    return RecipeSuggestionResponse(
        ingredients=used,
        recipes=[RecipeSuggestion(**recipe.to_dict()) for recipe in recipes],
    )


@router.get(
    "",
    response_model=RecipeListResponse,
    summary="Search recipes",
    description="Search the recipe catalog by name or description, tag and difficulty",
)
@limiter.limit(settings.RATE_LIMIT_SEARCH)
async def search_recipes(
    request: Request,
    q: Optional[str] = Query(None, max_length=100),
    tag: Optional[str] = Query(None, max_length=50),
    difficulty: Optional[RecipeDifficulty] = Query(None),
    pagination: dict = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RecipeListResponse:
    recipes, total = await recipe_service.search_recipes(
        session,
        query=q,
        tag=tag,
        difficulty=difficulty,
        skip=pagination["skip"],
        limit=pagination["limit"],
    )
    favorites = await recipe_service.favorite_ids(session, current_user.id)
    return RecipeListResponse(
        items=[to_recipe_response(recipe, favorites) for recipe in recipes],
        total=total,
        skip=pagination["skip"],
        limit=pagination["limit"],
        has_more=pagination["skip"] + len(recipes) < total,
    )


@router.get(
    "/favorites",
    response_model=List[RecipeResponse],
    summary="Favorite recipes",
)
async def list_favorites(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[RecipeResponse]:
    recipes = await recipe_service.list_favorites(session, current_user.id)
    return [to_recipe_response(recipe, {recipe.id for recipe in recipes}) for recipe in recipes]


@router.get(
    "/{recipe_id}",
    response_model=RecipeResponse,
    summary="Get recipe",
)
async def get_recipe(
    recipe_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RecipeResponse:
    recipe = await recipe_service.get_recipe(session, recipe_id)
    favorites = await recipe_service.favorite_ids(session, current_user.id)
    return to_recipe_response(recipe, favorites)


@router.post(
    "/{recipe_id}/favorite",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Favorite recipe",
)
async def add_favorite(
    recipe_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RecipeResponse:
    recipe = await recipe_service.add_favorite(session, current_user.id, recipe_id)
    return to_recipe_response(recipe, {recipe.id})


@router.delete(
    "/{recipe_id}/favorite",
    response_model=MessageResponse,
    summary="Unfavorite recipe",
)
async def remove_favorite(
    recipe_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await recipe_service.remove_favorite(session, current_user.id, recipe_id)
    return MessageResponse(message="Recipe removed from favorites")


@router.post(
    "/{recipe_id}/rate",
    response_model=RecipeResponse,
    summary="Rate recipe",
    description="Rate a recipe from 1 to 5; rating again replaces the previous rating",
)
async def rate_recipe(
    recipe_id: int,
    payload: RecipeRatingRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RecipeResponse:
    recipe = await recipe_service.rate_recipe(
        session, current_user.id, recipe_id, payload.rating, payload.review
    )
    favorites = await recipe_service.favorite_ids(session, current_user.id)
    return to_recipe_response(recipe, favorites)
