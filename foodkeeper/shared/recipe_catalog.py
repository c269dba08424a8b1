"""
Recipe Catalog

Static ingredient-to-recipe lookup used for recipe suggestions:
- RECIPES_BY_INGREDIENT: recipes registered under an exact ingredient name
- COMBINATION_RECIPES: recipes that need a whole set of ingredients
- suggest_recipes(): combinations first, then per-ingredient recipes,
  de-duplicated by name and capped; a generic salad when nothing matches

Matching is exact string equality on ingredient names. No scoring.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 4
FALLBACK_RECIPE_NAME = "簡単サラダ"
FALLBACK_EXTRA_INGREDIENT = "ドレッシング"


@dataclass(frozen=True)
class CatalogRecipe:
    """A recipe from the static catalog"""
    name: str
    description: str
    ingredients: Tuple[str, ...]
    instructions: Tuple[str, ...]
    prep_time: int
    cook_time: int
    difficulty: str
    servings: int
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["ingredients"] = list(self.ingredients)
        data["instructions"] = list(self.instructions)
        data["tags"] = list(self.tags)
        return data


# ============================================================================
# Catalog
# ============================================================================

RECIPES_BY_INGREDIENT: Dict[str, List[CatalogRecipe]] = {
    "りんご": [
        CatalogRecipe(
            name="アップルパイ",
            description="りんごを使った簡単デザート",
            ingredients=("りんご", "小麦粉", "バター", "砂糖"),
            instructions=("りんごを切る", "生地を作る", "オーブンで焼く"),
            prep_time=30,
            cook_time=45,
            difficulty="medium",
            servings=4,
            tags=("デザート", "焼き菓子", "りんご"),
        ),
        CatalogRecipe(
            name="りんごサラダ",
            description="さっぱり美味しいフルーツサラダ",
            ingredients=("りんご", "レタス", "ナッツ", "ドレッシング"),
            instructions=("りんごを薄切りする", "レタスと混ぜる", "ナッツをトッピング"),
            prep_time=10,
            cook_time=0,
            difficulty="easy",
            servings=2,
            tags=("サラダ", "ヘルシー", "りんご"),
        ),
    ],
    "牛乳": [
        CatalogRecipe(
            name="ホットミルク",
            description="温かくて優しい飲み物",
            ingredients=("牛乳", "はちみつ", "シナモン"),
            instructions=("牛乳を温める", "はちみつを加える", "シナモンをトッピング"),
            prep_time=5,
            cook_time=3,
            difficulty="easy",
            servings=1,
            tags=("ドリンク", "温かい", "牛乳"),
        ),
        CatalogRecipe(
            name="ミルクプリン",
            description="なめらかで美味しいプリン",
            ingredients=("牛乳", "砂糖", "ゼラチン", "バニラエッセンス"),
            instructions=("ゼラチンを溶かす", "牛乳と砂糖を混ぜる", "冷やし固める"),
            prep_time=15,
            cook_time=0,
            difficulty="medium",
            servings=4,
            tags=("デザート", "プリン", "牛乳"),
        ),
    ],
    "なす": [
        CatalogRecipe(
            name="なすの味噌炒め",
            description="ご飯が進む定番おかず",
            ingredients=("なす", "味噌", "砂糖", "みりん", "油"),
            instructions=(
                "なすを切って油で炒める",
                "味噌、砂糖、みりんを混ぜた調味料を加える",
                "全体に絡めて完成",
            ),
            prep_time=10,
            cook_time=15,
            difficulty="easy",
            servings=2,
            tags=("和食", "おかず", "なす"),
        ),
        CatalogRecipe(
            name="なすの揚げ浸し",
            description="夏にぴったりのさっぱり料理",
            ingredients=("なす", "出汁", "醤油", "みりん", "生姜"),
            instructions=("なすを素揚げする", "つゆを作る", "揚げたなすをつゆに浸す"),
            prep_time=15,
            cook_time=10,
            difficulty="medium",
            servings=3,
            tags=("和食", "揚げ物", "なす"),
        ),
    ],
}

# Checked in registration order
COMBINATION_RECIPES: List[Tuple[FrozenSet[str], CatalogRecipe]] = [
    (
        frozenset({"りんご", "牛乳"}),
        CatalogRecipe(
            name="フルーツミルクシェイク",
            description="牛乳とりんごの栄養満点ドリンク",
            ingredients=("牛乳", "りんご", "はちみつ", "氷"),
            instructions=("りんごを切る", "材料をミキサーに入れる", "よく混ぜる", "氷を加える"),
            prep_time=5,
            cook_time=0,
            difficulty="easy",
            servings=2,
            tags=("ドリンク", "フルーツ", "ミルク"),
        ),
    ),
]


def fallback_recipe(ingredients: Sequence[str]) -> CatalogRecipe:
    """Generic salad built from whatever the caller has"""
    return CatalogRecipe(
        name=FALLBACK_RECIPE_NAME,
        description="利用可能な食材で作る簡単サラダ",
        ingredients=tuple(ingredients) + (FALLBACK_EXTRA_INGREDIENT,),
        instructions=("材料を切る", "混ぜ合わせる", "ドレッシングをかける"),
        prep_time=10,
        cook_time=0,
        difficulty="easy",
        servings=2,
        tags=("簡単", "サラダ"),
    )


def iter_catalog() -> List[CatalogRecipe]:
    """Every distinct catalog recipe (combinations first), used for seeding"""
    seen = set()
    recipes = []
    candidates = [recipe for _, recipe in COMBINATION_RECIPES]
    for group in RECIPES_BY_INGREDIENT.values():
        candidates.extend(group)
    for recipe in candidates:
        if recipe.name not in seen:
            seen.add(recipe.name)
            recipes.append(recipe)
    return recipes


def suggest_recipes(
    ingredients: Sequence[str],
    limit: Optional[int] = None,
) -> List[CatalogRecipe]:
    """
    Suggest catalog recipes for a list of ingredient names.

    Args:
        ingredients: Ingredient names, matched exactly against catalog keys
        limit: Maximum number of recipes (defaults to 4)

    Returns:
        List[CatalogRecipe]: Combination recipes first, then per-ingredient
        recipes in input order; a single fallback salad when nothing matches.

    Raises:
        ValueError: If limit is smaller than 1
    """
    if limit is None:
        limit = DEFAULT_SUGGESTION_LIMIT
    if limit < 1:
        raise ValueError("limit must be at least 1")

    available = set(ingredients)
    candidates: List[CatalogRecipe] = []

    for required, recipe in COMBINATION_RECIPES:
        if required <= available:
            candidates.append(recipe)

    for ingredient in ingredients:
        candidates.extend(RECIPES_BY_INGREDIENT.get(ingredient, []))

    seen = set()
    unique: List[CatalogRecipe] = []
    for recipe in candidates:
        if recipe.name in seen:
            continue
        seen.add(recipe.name)
        unique.append(recipe)

    suggestions = unique[:limit]
    if not suggestions:
        logger.debug(f"No catalog match for {list(ingredients)}, using fallback recipe")
        suggestions = [fallback_recipe(ingredients)]

    return suggestions
