"""Router package initialization."""

from foodkeeper.api.routers import (
    auth,
    categories,
    foods,
    notifications,
    recipes,
    shopping,
    storage,
)

__all__ = [
    "auth",
    "categories",
    "foods",
    "notifications",
    "recipes",
    "shopping",
    "storage",
]
