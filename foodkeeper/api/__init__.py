"""FoodKeeper REST API."""
