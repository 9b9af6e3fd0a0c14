from __future__ import annotations
from typing import Optional
from datetime import datetime, timezone
from enum import Enum
import uuid

from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint, CheckConstraint


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    avatar_url: Optional[str] = None
    is_verified: bool = False
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)


class Recipe(SQLModel, table=True):
    __tablename__ = "recipes"
    __table_args__ = (
        CheckConstraint("rating_count >= 0", name="ck_recipes_rating_count"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    title: str = Field(index=True)
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_time: Optional[int] = None  # minutos
    cook_time: Optional[int] = None  # minutos
    servings: Optional[int] = None
    difficulty: Optional[Difficulty] = Field(default=None, index=True)
    type: Optional[str] = Field(default=None, index=True)  # breakfast | lunch | dinner | dessert | snack | drink
    rating: float = Field(default=0.0, index=True)
    rating_count: int = 0
    is_public: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)


class Ingredient(SQLModel, table=True):
    __tablename__ = "ingredients"

    id: str = Field(default_factory=new_id, primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", index=True)
    name: str
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    order_index: int = 0


class Instruction(SQLModel, table=True):
    __tablename__ = "instructions"

    id: str = Field(default_factory=new_id, primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", index=True)
    step: int
    instruction: str
    image_url: Optional[str] = None
    timer_minutes: Optional[int] = None


class Tag(SQLModel, table=True):
    """
    Etiqueta global. El nombre es único y sensible a mayúsculas; se crea la primera vez que
    una receta la usa y después se reutiliza.
    """
    __tablename__ = "tags"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(unique=True, index=True)
    color: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class RecipeTag(SQLModel, table=True):
    __tablename__ = "recipe_tags"

    recipe_id: str = Field(foreign_key="recipes.id", primary_key=True)
    tag_id: str = Field(foreign_key="tags.id", primary_key=True, index=True)


class Rating(SQLModel, table=True):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "recipe_id", name="uq_ratings_user_recipe"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_range"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    recipe_id: str = Field(foreign_key="recipes.id", index=True)
    rating: int
    review: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Nutrition(SQLModel, table=True):
    __tablename__ = "nutrition"

    id: str = Field(default_factory=new_id, primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", unique=True, index=True)
    calories: Optional[int] = None
    protein: Optional[float] = None  # g
    carbs: Optional[float] = None  # g
    fat: Optional[float] = None  # g
    fiber: Optional[float] = None  # g
    sugar: Optional[float] = None  # g
    sodium: Optional[float] = None  # mg
    cholesterol: Optional[float] = None  # mg


class UserFavorite(SQLModel, table=True):
    __tablename__ = "user_favorites"

    user_id: str = Field(foreign_key="users.id", primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", primary_key=True, index=True)


class Collection(SQLModel, table=True):
    __tablename__ = "collections"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_public: bool = False
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)


class CollectionRecipe(SQLModel, table=True):
    __tablename__ = "collection_recipes"

    collection_id: str = Field(foreign_key="collections.id", primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", primary_key=True, index=True)


class ShoppingList(SQLModel, table=True):
    __tablename__ = "shopping_lists"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)


class ShoppingListItem(SQLModel, table=True):
    __tablename__ = "shopping_list_items"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    shopping_list_id: str = Field(foreign_key="shopping_lists.id", index=True)
    name: str
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
