"""
SQLAlchemy models for FoodKeeper

- Integer primary keys
- Mixins for timestamps
- Enum columns stored by value
- Foreign keys with ON DELETE rules (SQLite enforces them via PRAGMA)
"""

import enum
from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Date, DateTime, Enum as SQLEnum, Float,
    ForeignKey, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from foodkeeper.shared.utils.expiry import DEFAULT_EXPIRY_THRESHOLD_DAYS, utcnow


# ============================================================================
# BASE & MIXINS
# ============================================================================

class Base(DeclarativeBase):
    """Base class for all models"""
    type_annotation_map = {
        dict: JSON,
        list: JSON,
    }


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


def _enum(enum_cls: type[enum.Enum]) -> SQLEnum:
    """Enum column that stores the member value rather than its name."""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=32,
    )


# ============================================================================
# ENUMS
# ============================================================================

class StorageLocation(str, enum.Enum):
    """Where a food is kept"""
    FRIDGE = "fridge"
    FREEZER = "freezer"
    ROOM_TEMP = "room_temp"
    OTHER = "other"


class FoodStatus(str, enum.Enum):
    """Food lifecycle; only ACTIVE may transition, every other state is terminal"""
    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    DISPOSED = "disposed"


class NotificationType(str, enum.Enum):
    """Notification categories"""
    EXPIRY_ALERT = "expiry_alert"
    RECIPE_SUGGESTION = "recipe_suggestion"
    SHOPPING_REMINDER = "shopping_reminder"
    SYSTEM = "system"


class NotificationStatus(str, enum.Enum):
    UNREAD = "unread"
    READ = "read"


class NotificationPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecipeDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class RecipeSource(str, enum.Enum):
    AI_GENERATED = "ai_generated"
    EXTERNAL_API = "external_api"
    USER_CREATED = "user_created"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class Language(str, enum.Enum):
    JA = "ja"
    EN = "en"


# ============================================================================
# USER MANAGEMENT
# ============================================================================

class User(Base, TimestampMixin):
    """User account model"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Authentication
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    # Status
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    sessions: Mapped[List["UserSession"]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("email")
    def validate_email(self, key: str, value: str) -> str:
        """Ensure email is lowercase"""
        return value.lower() if value else value

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, email={self.email})>"


class UserSession(Base):
    """Refresh token session; one row per issued refresh token"""
    __tablename__ = "user_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    refresh_token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("idx_sessions_user", "user_id"),
    )


class UserPreferences(Base, TimestampMixin):
    """Per-user notification and display settings; one row per user"""
    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # Notifications
    enable_expiry_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expiry_alert_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_EXPIRY_THRESHOLD_DAYS, nullable=False
    )
    enable_recipe_suggestions: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    enable_shopping_reminders: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    enable_email_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    enable_push_notifications: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Display
    theme: Mapped[Theme] = mapped_column(_enum(Theme), default=Theme.LIGHT, nullable=False)
    language: Mapped[Language] = mapped_column(_enum(Language), default=Language.JA, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "expiry_alert_days >= 0 AND expiry_alert_days <= 30",
            name="user_preferences_alert_days_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<UserPreferences(user_id={self.user_id}, alerts={self.enable_expiry_alerts})>"


# ============================================================================
# REFERENCE DATA
# ============================================================================

class Category(Base, TimestampMixin):
    """Food category (static reference data)"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class StorageTip(Base, TimestampMixin):
    """Recommended storage conditions and shelf life for a food"""
    __tablename__ = "storage_tips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    food_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    storage_method: Mapped[StorageLocation] = mapped_column(_enum(StorageLocation), nullable=False)
    optimal_temp: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    humidity_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    shelf_life_days: Mapped[int] = mapped_column(Integer, nullable=False)
    tips: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    source: Mapped[str] = mapped_column(String(50), default="system", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("shelf_life_days > 0", name="storage_tips_shelf_life_positive"),
    )

    def __repr__(self) -> str:
        return f"<StorageTip(food_name={self.food_name}, method={self.storage_method})>"


# ============================================================================
# FOOD INVENTORY
# ============================================================================

class Food(Base, TimestampMixin):
    """A food item in a user's inventory"""
    __tablename__ = "foods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    storage_location: Mapped[StorageLocation] = mapped_column(
        _enum(StorageLocation),
        default=StorageLocation.FRIDGE,
        nullable=False,
    )
    status: Mapped[FoodStatus] = mapped_column(_enum(FoodStatus), default=FoodStatus.ACTIVE, nullable=False)
    barcode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notifications: Mapped[List["Notification"]] = relationship(
        "Notification",
        back_populates="food",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="foods_quantity_positive"),
        Index("idx_foods_user_status", "user_id", "status"),
        Index("idx_foods_user_expiry", "user_id", "expiry_date"),
        Index("idx_foods_barcode", "barcode"),
    )

    def __repr__(self) -> str:
        return f"<Food(id={self.id}, name={self.name}, expiry={self.expiry_date}, status={self.status})>"


class Notification(Base, TimestampMixin):
    """User notification (expiry alerts and friends)"""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    food_id: Mapped[Optional[int]] = mapped_column(ForeignKey("foods.id", ondelete="CASCADE"), nullable=True)

    type: Mapped[NotificationType] = mapped_column(_enum(NotificationType), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[NotificationStatus] = mapped_column(
        _enum(NotificationStatus),
        default=NotificationStatus.UNREAD,
        nullable=False,
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        _enum(NotificationPriority),
        default=NotificationPriority.LOW,
        nullable=False,
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    food: Mapped[Optional["Food"]] = relationship("Food", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_user_status", "user_id", "status"),
        Index("idx_notifications_user_food_type", "user_id", "food_id", "type"),
    )


# ============================================================================
# RECIPES
# ============================================================================

class Recipe(Base, TimestampMixin):
    """Recipe catalog entry"""
    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    instructions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    prep_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cook_time: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    servings: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    difficulty: Mapped[RecipeDifficulty] = mapped_column(_enum(RecipeDifficulty), nullable=False)
    source: Mapped[RecipeSource] = mapped_column(_enum(RecipeSource), nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    ingredients: Mapped[List["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )

    __table_args__ = (
        CheckConstraint("prep_time >= 0", name="recipes_prep_time_check"),
        CheckConstraint("cook_time >= 0", name="recipes_cook_time_check"),
        CheckConstraint("servings > 0", name="recipes_servings_check"),
    )


class RecipeIngredient(Base, TimestampMixin):
    __tablename__ = "recipe_ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, default=1, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    optional: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredients")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="recipe_ingredients_quantity_positive"),
    )


class UserRecipeFavorite(Base):
    __tablename__ = "user_recipe_favorites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipe_id: Mapped[int] = mapped_column(ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "recipe_id", name="unique_user_recipe_favorite"),
    )


class UserRecipeRating(Base, TimestampMixin):
    __tablename__ = "user_recipe_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipe_id: Mapped[int] = mapped_column(ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "recipe_id", name="unique_user_recipe_rating"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="user_recipe_ratings_range"),
    )


# ============================================================================
# SHOPPING LISTS
# ============================================================================

class ShoppingList(Base, TimestampMixin):
    __tablename__ = "shopping_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[List["ShoppingListItem"]] = relationship(
        "ShoppingListItem",
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ShoppingListItem.id",
    )


class ShoppingListItem(Base, TimestampMixin):
    __tablename__ = "shopping_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    purchased: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    estimated_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    shopping_list: Mapped["ShoppingList"] = relationship("ShoppingList", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="shopping_list_items_quantity_positive"),
    )


# ============================================================================
# AUDIT
# ============================================================================

class AuditLog(Base):
    """Record of a user-visible mutation"""
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    old_values: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
    )
