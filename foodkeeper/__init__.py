"""FoodKeeper: food inventory and expiry tracking."""

__version__ = "1.0.0"
