"""
Reference Data Seeding

Seeds the database with:
- Food categories
- Storage tips (shelf life per storage method)
- Recipe catalog

Seeding is idempotent: rows are matched by name and only missing ones are added.
"""

import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.shared.models import (
    Category,
    Recipe,
    RecipeDifficulty,
    RecipeIngredient,
    RecipeSource,
    StorageLocation,
    StorageTip,
)
from foodkeeper.shared.recipe_catalog import iter_catalog

logger = logging.getLogger(__name__)


# ==============================================
# SAMPLE DATA
# ==============================================

CATEGORIES = [
    {"name": "野菜", "icon": "🥬", "color": "#4CAF50", "description": "新鮮な野菜類"},
    {"name": "果物", "icon": "🍎", "color": "#FF9800", "description": "新鮮な果物類"},
    {"name": "肉類", "icon": "🥩", "color": "#F44336", "description": "肉・鶏肉・豚肉など"},
    {"name": "魚類", "icon": "🐟", "color": "#2196F3", "description": "魚・海鮮類"},
    {"name": "乳製品", "icon": "🥛", "color": "#9C27B0", "description": "牛乳・チーズ・ヨーグルトなど"},
    {"name": "穀物", "icon": "🌾", "color": "#795548", "description": "米・パン・麺類など"},
    {"name": "調味料", "icon": "🧂", "color": "#607D8B", "description": "調味料・スパイス類"},
    {"name": "冷凍食品", "icon": "🧊", "color": "#00BCD4", "description": "冷凍保存の食品"},
    {"name": "缶詰・保存食品", "icon": "🥫", "color": "#FF5722", "description": "缶詰・レトルト食品など"},
    {"name": "飲み物", "icon": "🥤", "color": "#3F51B5", "description": "飲料・アルコール類"},
    {"name": "お菓子・デザート", "icon": "🍰", "color": "#E91E63", "description": "お菓子・スイーツ類"},
    {"name": "その他", "icon": "📦", "color": "#9E9E9E", "description": "その他の食品"},
]

_ROOM = StorageLocation.ROOM_TEMP
_FRIDGE = StorageLocation.FRIDGE
_FREEZER = StorageLocation.FREEZER

# (food_name, category, storage_method, optimal_temp, humidity_level, shelf_life_days, tips)
STORAGE_TIPS = [
    # Vegetables
    ("トマト", "野菜", _ROOM, "15-20°C", "85-90%", 7, ["直射日光を避ける", "ヘタを下にして保存", "熟したら冷蔵庫へ"]),
    ("きゅうり", "野菜", _FRIDGE, "10-13°C", "90-95%", 7, ["ビニール袋に入れて冷蔵", "水分を拭き取ってから保存", "立てて保存すると長持ち"]),
    ("キャベツ", "野菜", _FRIDGE, "0-5°C", "90-95%", 14, ["芯を取り除く", "ビニール袋に入れて冷蔵", "外側から使う"]),
    ("にんじん", "野菜", _FRIDGE, "0-5°C", "90-95%", 21, ["ビニール袋に入れて冷蔵", "立てて保存", "葉は切り落とす"]),
    ("たまねぎ", "野菜", _ROOM, "15-20°C", "65-70%", 30, ["風通しの良い場所", "ネットに入れて吊るす", "湿気を避ける"]),
    ("じゃがいも", "野菜", _ROOM, "7-10°C", "85-90%", 30, ["暗い場所で保存", "りんごと一緒に保存すると芽が出にくい", "緑色になったら食べない"]),
    # Fruits
    ("りんご", "果物", _FRIDGE, "0-4°C", "85-90%", 30, ["ビニール袋に入れて冷蔵", "他の果物を熟させる効果がある", "傷があるものは早めに消費"]),
    ("バナナ", "果物", _ROOM, "13-15°C", "85-90%", 7, ["房から外して保存", "13度以下では低温障害", "熟したら冷蔵庫へ"]),
    ("みかん", "果物", _ROOM, "5-10°C", "85-90%", 14, ["風通しの良い場所", "カビが生えたものは即座に除去", "下のものから食べる"]),
    # Meat
    ("牛肉", "肉類", _FRIDGE, "0-4°C", None, 3, ["購入日当日～翌日までに消費", "ドリップを拭き取る", "冷凍なら1ヶ月保存可能"]),
    ("豚肉", "肉類", _FRIDGE, "0-4°C", None, 2, ["購入日当日に消費推奨", "ドリップを拭き取る", "冷凍なら3週間保存可能"]),
    ("鶏肉", "肉類", _FRIDGE, "0-4°C", None, 1, ["購入日当日に消費", "ドリップを拭き取る", "冷凍なら2週間保存可能"]),
    # Fish
    ("魚", "魚類", _FRIDGE, "0-4°C", None, 1, ["購入日当日に消費", "氷の上で保存", "内臓は早めに取り除く"]),
    # Dairy
    ("牛乳", "乳製品", _FRIDGE, "4°C以下", None, 5, ["開封後は3日以内に消費", "ドアポケットではなく奥で保存", "温度変化を避ける"]),
    ("ヨーグルト", "乳製品", _FRIDGE, "4°C以下", None, 7, ["開封後は早めに消費", "清潔なスプーンを使用", "密封して保存"]),
    ("チーズ", "乳製品", _FRIDGE, "4°C以下", None, 14, ["ラップで密封", "種類によって保存期間が異なる", "カビが生えたら廃棄"]),
    # Grains
    ("米", "穀物", _ROOM, "15°C以下", "70%以下", 365, ["密閉容器で保存", "虫害を防ぐ", "冷蔵庫保存も可能"]),
    ("パン", "穀物", _ROOM, "常温", None, 3, ["直射日光を避ける", "冷凍保存可能", "電子レンジで解凍"]),
    # Frozen
    ("冷凍食品", "冷凍食品", _FREEZER, "-18°C以下", None, 90, ["解凍・再冷凍を避ける", "密封して保存", "表示されている期限を守る"]),
]

# Catalog ingredients carry no measured amounts
CATALOG_INGREDIENT_UNIT = "portion"


# ==============================================
# SEEDING
# ==============================================

async def seed_categories(session: AsyncSession) -> int:
    """Insert missing categories, return number added"""
    result = await session.execute(select(Category.name))
    existing = set(result.scalars().all())

    added = 0
    for data in CATEGORIES:
        if data["name"] in existing:
            continue
        session.add(Category(**data))
        added += 1
    return added


async def seed_storage_tips(session: AsyncSession) -> int:
    """Insert missing storage tips, return number added"""
    result = await session.execute(select(StorageTip.food_name, StorageTip.storage_method))
    existing = {(name, method) for name, method in result.all()}

    added = 0
    for food_name, category, method, temp, humidity, shelf_life, tips in STORAGE_TIPS:
        if (food_name, method) in existing:
            continue
        session.add(StorageTip(
            food_name=food_name,
            category=category,
            storage_method=method,
            optimal_temp=temp,
            humidity_level=humidity,
            shelf_life_days=shelf_life,
            tips=list(tips),
        ))
        added += 1
    return added


async def seed_recipes(session: AsyncSession) -> int:
    """Insert missing catalog recipes with their ingredients, return number added"""
    result = await session.execute(select(Recipe.name))
    existing = set(result.scalars().all())

    added = 0
    for entry in iter_catalog():
        if entry.name in existing:
            continue
        recipe = Recipe(
            name=entry.name,
            description=entry.description,
            instructions=list(entry.instructions),
            prep_time=entry.prep_time,
            cook_time=entry.cook_time,
            servings=entry.servings,
            difficulty=RecipeDifficulty(entry.difficulty),
            source=RecipeSource.AI_GENERATED,
            tags=list(entry.tags),
        )
        recipe.ingredients = [
            RecipeIngredient(ingredient_name=name, quantity=1, unit=CATALOG_INGREDIENT_UNIT)
            for name in entry.ingredients
        ]
        session.add(recipe)
        added += 1
    return added


async def seed_reference_data(session: AsyncSession) -> Dict[str, int]:
    """
    Seed categories, storage tips and recipes, then commit.

    Returns:
        Dict[str, int]: Rows added per table
    """
    try:
        counts = {
            "categories": await seed_categories(session),
            "storage_tips": await seed_storage_tips(session),
            "recipes": await seed_recipes(session),
        }
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Seeding reference data failed: {e}")
        raise

    logger.info(
        f"Reference data seeded: {counts['categories']} categories, "
        f"{counts['storage_tips']} storage tips, {counts['recipes']} recipes"
    )
    return counts
