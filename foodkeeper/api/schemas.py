"""
Pydantic Schemas for API Request/Response Models
Type-safe data validation and serialization.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from foodkeeper.api.config import get_settings
from foodkeeper.shared.models import (
    FoodStatus,
    Language,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    RecipeDifficulty,
    RecipeSource,
    StorageLocation,
    Theme,
)
from foodkeeper.shared.utils.expiry import ExpiryStatus

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def check_password_strength(password: str) -> List[str]:
    """Return the password policy violations (empty when acceptable)."""
    settings = get_settings()
    problems = []
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    if settings.PASSWORD_REQUIRE_UPPERCASE and not any(c.isupper() for c in password):
        problems.append("Password must contain at least one uppercase letter")
    if settings.PASSWORD_REQUIRE_LOWERCASE and not any(c.islower() for c in password):
        problems.append("Password must contain at least one lowercase letter")
    if settings.PASSWORD_REQUIRE_DIGITS and not any(c.isdigit() for c in password):
        problems.append("Password must contain at least one digit")
    if settings.PASSWORD_REQUIRE_SPECIAL and not any(c in "!@#$%^&*()_+-=[]{}|;:,.<>?" for c in password):
        problems.append("Password must contain at least one special character")
    return problems


# ============================================================================
# Authentication Schemas
# ============================================================================

class RegisterRequest(BaseModel):
    """User registration request."""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username can only contain letters, numbers, hyphens, and underscores")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        problems = check_password_strength(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v


class LoginRequest(BaseModel):
    """User login request; `email` also accepts a username."""
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Token refresh request."""
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        problems = check_password_strength(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v


class DeactivateAccountRequest(BaseModel):
    """Account deactivation; the password confirms the request."""
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class UserResponse(BaseModel):
    """User profile response."""
    id: int
    username: str
    email: EmailStr
    email_verified: bool
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Preference Schemas
# ============================================================================

class PreferencesResponse(BaseModel):
    """Notification and display settings of the current user."""
    enable_expiry_alerts: bool
    expiry_alert_days: int
    enable_recipe_suggestions: bool
    enable_shopping_reminders: bool
    enable_email_notifications: bool
    enable_push_notifications: bool
    theme: Theme
    language: Language
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PreferencesUpdate(BaseModel):
    enable_expiry_alerts: Optional[bool] = None
    expiry_alert_days: Optional[int] = Field(None, ge=0, le=30)
    enable_recipe_suggestions: Optional[bool] = None
    enable_shopping_reminders: Optional[bool] = None
    enable_email_notifications: Optional[bool] = None
    enable_push_notifications: Optional[bool] = None
    theme: Optional[Theme] = None
    language: Optional[Language] = None


# ============================================================================
# Category Schemas
# ============================================================================

class CategoryResponse(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CategoryWithCountResponse(CategoryResponse):
    food_count: int = 0


# ============================================================================
# Food Schemas
# ============================================================================

class FoodCreate(BaseModel):
    """Create food request."""
    name: str = Field(..., min_length=1, max_length=100)
    category_id: int
    purchase_date: Optional[date] = None  # defaults to today
    expiry_date: date
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)
    storage_location: StorageLocation = StorageLocation.FRIDGE
    barcode: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class FoodUpdate(BaseModel):
    """Update food request (partial)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    quantity: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    storage_location: Optional[StorageLocation] = None
    status: Optional[FoodStatus] = None
    barcode: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class FoodResponse(BaseModel):
    """Food item with its expiry classification."""
    id: int
    user_id: int
    category_id: int
    name: str
    purchase_date: date
    expiry_date: date
    quantity: float
    unit: str
    storage_location: StorageLocation
    status: FoodStatus
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    days_until_expiry: Optional[int] = None
    expiry_status: Optional[ExpiryStatus] = None

    model_config = ConfigDict(from_attributes=True)


class FoodListResponse(BaseModel):
    """Paginated food list."""
    items: List[FoodResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class BulkConsumeRequest(BaseModel):
    food_ids: List[int] = Field(..., min_length=1, max_length=100)


class FoodStatsResponse(BaseModel):
    """Inventory counts for the dashboard."""
    total: int
    active: int
    expiring_soon: int
    expired: int
    consumed: int
    disposed: int
    by_category: Dict[str, int]
    by_storage: Dict[str, int]


# ============================================================================
# Notification Schemas
# ============================================================================

class NotificationResponse(BaseModel):
    """Notification response."""
    id: int
    user_id: int
    food_id: Optional[int] = None
    type: NotificationType
    title: str
    message: str
    status: NotificationStatus
    priority: NotificationPriority
    action_url: Optional[str] = None
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int


class NotificationTypeStats(BaseModel):
    type: NotificationType
    count: int
    unread_count: int


class NotificationStatsResponse(BaseModel):
    """Inbox totals, overall and per type."""
    total: int
    unread: int
    by_type: List[NotificationTypeStats]


class ExpirySweepResponse(BaseModel):
    """Result of an expiry alert sweep."""
    checked: int
    created: int


# ============================================================================
# Recipe Schemas
# ============================================================================

class RecipeSuggestion(BaseModel):
    """Catalog recipe suggested for a set of ingredients."""
    name: str
    description: str
    ingredients: List[str]
    instructions: List[str]
    prep_time: int
    cook_time: int
    difficulty: RecipeDifficulty
    servings: int
    tags: List[str] = Field(default_factory=list)


class RecipeSuggestionResponse(BaseModel):
    ingredients: List[str]
    recipes: List[RecipeSuggestion]


class RecipeIngredientResponse(BaseModel):
    id: int
    ingredient_name: str
    quantity: float
    unit: str
    optional: bool

    model_config = ConfigDict(from_attributes=True)


class RecipeResponse(BaseModel):
    """Recipe response."""
    id: int
    name: str
    description: Optional[str] = None
    instructions: List[str]
    prep_time: int
    cook_time: int
    servings: int
    difficulty: RecipeDifficulty
    source: RecipeSource
    tags: List[str]
    rating: Optional[float] = None
    rating_count: int
    ingredients: List[RecipeIngredientResponse] = Field(default_factory=list)
    is_favorite: bool = False

    model_config = ConfigDict(from_attributes=True)


class RecipeListResponse(BaseModel):
    items: List[RecipeResponse]
    total: int
    skip: int
    limit: int
    has_more: bool


class RecipeRatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# Shopping List Schemas
# ============================================================================

class ShoppingListItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=100)
    quantity: float = Field(1, gt=0)
    unit: str = Field("piece", min_length=1, max_length=20)
    estimated_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class ShoppingListItemUpdate(BaseModel):
    purchased: Optional[bool] = None
    quantity: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)


class ShoppingListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)
    items: List[ShoppingListItemCreate] = Field(default_factory=list)


class ShoppingListGenerateRequest(BaseModel):
    """Generate a list from recipe ingredients or used-up foods."""
    recipe_ids: Optional[List[int]] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class ShoppingListItemResponse(BaseModel):
    id: int
    list_id: int
    item_name: str
    quantity: float
    unit: str
    purchased: bool
    estimated_price: Optional[float] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ShoppingListResponse(BaseModel):
    id: int
    user_id: int
    name: str
    completed: bool
    notes: Optional[str] = None
    created_at: datetime
    items: List[ShoppingListItemResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Storage Tip Schemas
# ============================================================================

class StorageTipResponse(BaseModel):
    id: int
    food_name: str
    category: Optional[str] = None
    storage_method: StorageLocation
    optimal_temp: Optional[str] = None
    humidity_level: Optional[str] = None
    shelf_life_days: int
    tips: List[str]

    model_config = ConfigDict(from_attributes=True)


class StorageAdviceResponse(BaseModel):
    """Advice for one food; `tip` is None when nothing is known."""
    food_name: str
    found: bool
    tip: Optional[StorageTipResponse] = None
    suggested_expiry_date: Optional[date] = None


class StorageStatsResponse(BaseModel):
    total: int
    by_method: Dict[str, int]
    average_shelf_life_days: Dict[str, float]


# ============================================================================
# Common Response Schemas
# ============================================================================

class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    message: str
    details: Optional[Any] = None
    timestamp: datetime
