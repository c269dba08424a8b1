"""
Recipe Service

Catalog browsing, favorites and ratings, plus ingredient-based suggestions.
"""

import logging
from typing import List, Optional, Sequence, Set, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from foodkeeper.api.errors import NotFoundError
from foodkeeper.api.services.food_service import active_ingredient_names
from foodkeeper.shared.models import Recipe, RecipeDifficulty, UserRecipeFavorite, UserRecipeRating
from foodkeeper.shared.recipe_catalog import CatalogRecipe, suggest_recipes

logger = logging.getLogger(__name__)


async def suggestions_for_user(
    session: AsyncSession,
    user_id: int,
    ingredients: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> Tuple[List[str], List[CatalogRecipe]]:
    """
    Suggest recipes for the given ingredients, or for the user's active foods
    when none are given.

    Returns:
        Tuple[List[str], List[CatalogRecipe]]: (ingredients used, recipes)
    """
    names = list(ingredients or [])
    if not names:
        names = await active_ingredient_names(session, user_id)

    recipes = suggest_recipes(names, limit)
    logger.debug(f"Recipe suggestions for user {user_id}: {[recipe.name for recipe in recipes]}")

    return names, recipes


# ============================================================================
# Catalog
# ============================================================================

def _with_ingredients():
    return select(Recipe).options(selectinload(Recipe.ingredients))


async def search_recipes(
    session: AsyncSession,
    query: Optional[str] = None,
    tag: Optional[str] = None,
    difficulty: Optional[RecipeDifficulty] = None,
    skip: int = 0,
    limit: int = 50,
) -> Tuple[List[Recipe], int]:
    """Search active recipes by name/description and tag."""
    recipes = _with_ingredients().where(Recipe.is_active.is_(True))
    if query:
        term = query.strip().lower()
        recipes = recipes.where(or_(
            func.lower(Recipe.name).contains(term, autoescape=True),
            func.lower(Recipe.description).contains(term, autoescape=True),
        ))
    if difficulty is not None:
        recipes = recipes.where(Recipe.difficulty == difficulty)

    result = await session.execute(recipes.order_by(Recipe.name))
    matches = list(result.scalars().all())

    # Tags are a JSON list; filter here so non-ASCII tags compare as text
    if tag:
        matches = [recipe for recipe in matches if tag in (recipe.tags or [])]

    return matches[skip:skip + limit], len(matches)


async def get_recipe(session: AsyncSession, recipe_id: int) -> Recipe:
    result = await session.execute(
        _with_ingredients().where(Recipe.id == recipe_id, Recipe.is_active.is_(True))
    )
    recipe = result.scalar_one_or_none()
    if recipe is None:
        raise NotFoundError("Recipe not found")
    return recipe


async def ensure_recipes_exist(session: AsyncSession, recipe_ids: Sequence[int]) -> None:
    """
    Raises:
        NotFoundError: Naming the ids that do not exist
    """
    wanted = set(recipe_ids)
    result = await session.execute(select(Recipe.id).where(Recipe.id.in_(wanted)))
    missing = wanted - set(result.scalars().all())
    if missing:
        raise NotFoundError(f"Recipes not found: {sorted(missing)}")


# ============================================================================
# Favorites
# ============================================================================

async def favorite_ids(session: AsyncSession, user_id: int) -> Set[int]:
    result = await session.execute(
        select(UserRecipeFavorite.recipe_id).where(UserRecipeFavorite.user_id == user_id)
    )
    return set(result.scalars().all())


async def add_favorite(session: AsyncSession, user_id: int, recipe_id: int) -> Recipe:
    """Favorite a recipe (idempotent)."""
    recipe = await get_recipe(session, recipe_id)
    if recipe_id not in await favorite_ids(session, user_id):
        session.add(UserRecipeFavorite(user_id=user_id, recipe_id=recipe_id))
        await session.commit()
    return recipe


async def remove_favorite(session: AsyncSession, user_id: int, recipe_id: int) -> None:
    result = await session.execute(
        select(UserRecipeFavorite).where(
            UserRecipeFavorite.user_id == user_id,
            UserRecipeFavorite.recipe_id == recipe_id,
        )
    )
    favorite = result.scalar_one_or_none()
    if favorite is None:
        raise NotFoundError("Recipe is not a favorite")
    await session.delete(favorite)
    await session.commit()


async def list_favorites(session: AsyncSession, user_id: int) -> List[Recipe]:
    result = await session.execute(
        _with_ingredients()
        .join(UserRecipeFavorite, UserRecipeFavorite.recipe_id == Recipe.id)
        .where(UserRecipeFavorite.user_id == user_id)
        .order_by(UserRecipeFavorite.created_at.desc(), Recipe.id)
    )
    return list(result.scalars().all())


# ============================================================================
# Ratings
# ============================================================================

async def rate_recipe(
    session: AsyncSession,
    user_id: int,
    recipe_id: int,
    rating: int,
    review: Optional[str] = None,
) -> Recipe:
    """
    Create or replace the user's rating and refresh the recipe's aggregate.
    """
    recipe = await get_recipe(session, recipe_id)

    result = await session.execute(
        select(UserRecipeRating).where(
            UserRecipeRating.user_id == user_id,
            UserRecipeRating.recipe_id == recipe_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing is None:
        session.add(UserRecipeRating(user_id=user_id, recipe_id=recipe_id, rating=rating, review=review))
    else:
        existing.rating = rating
        existing.review = review
    await session.flush()

    average, count = (await session.execute(
        select(func.avg(UserRecipeRating.rating), func.count(UserRecipeRating.id))
        .where(UserRecipeRating.recipe_id == recipe_id)
    )).one()
    recipe.rating = round(float(average), 2) if average is not None else None
    recipe.rating_count = count

    await session.commit()

    logger.info(f"User {user_id} rated recipe {recipe_id}: {rating}")

    return await get_recipe(session, recipe_id)
