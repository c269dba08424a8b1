"""
Tool input schemas for the MCP service.
Each tool validates its JSON body against one of these models.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from foodkeeper.shared.models import FoodStatus, StorageLocation
from foodkeeper.shared.utils.expiry import DEFAULT_EXPIRY_THRESHOLD_DAYS


class GetFoodInventoryInput(BaseModel):
    user_id: int
    status: Optional[FoodStatus] = None
    category_id: Optional[int] = None
    expiring_soon: bool = False


class AddFoodItemInput(BaseModel):
    user_id: int
    name: str = Field(..., min_length=1, max_length=100)
    category_id: int
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)
    purchase_date: Optional[date] = None
    expiry_date: date
    storage_location: StorageLocation = StorageLocation.FRIDGE
    barcode: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)


class UpdateFoodStatusInput(BaseModel):
    user_id: int
    food_id: int
    status: Literal["consumed", "expired", "disposed"]


class GetRecipeSuggestionsInput(BaseModel):
    """Ingredients win over the user's inventory when both are given."""
    user_id: Optional[int] = None
    ingredients: Optional[List[str]] = None
    max_recipes: Optional[int] = Field(None, ge=1, le=20)


class GenerateShoppingListInput(BaseModel):
    user_id: int
    recipe_ids: Optional[List[int]] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ScanBarcodeInput(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=50)
    user_id: Optional[int] = None


class GetStorageAdviceInput(BaseModel):
    food_name: str = Field(..., min_length=1, max_length=100)
    category: Optional[str] = None
    purchase_date: Optional[date] = None


class GetExpiryAlertsInput(BaseModel):
    user_id: int
    days_ahead: int = Field(DEFAULT_EXPIRY_THRESHOLD_DAYS, ge=0, le=365)
