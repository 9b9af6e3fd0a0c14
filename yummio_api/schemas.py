from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Optional, Tuple
from datetime import datetime
from typing_extensions import Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from .models_db import Difficulty


class PatchModel(BaseModel):
    """
    Petición parcial: un campo ausente no se toca; un ``null`` explícito lo borra.
    ``changes()`` devuelve sólo los campos enviados.
    """
    required_fields: ClassVar[Tuple[str, ...]] = ()

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    @model_validator(mode="after")
    def _no_null_required(self):
        for name in self.required_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# === Usuarios / auth ===

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    created_at: datetime


class OwnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    avatar_url: Optional[str] = None


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=100)


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=6, max_length=100)


class LoginResponse(BaseModel):
    user: UserOut
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    message: str


class UserUpdate(PatchModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("name",)

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    avatar_url: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=100)


# === Recetas ===

class IngredientIn(BaseModel):
    name: str = Field(min_length=1)
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    order_index: Optional[int] = None


class InstructionIn(BaseModel):
    step: int = Field(ge=1)
    instruction: str = Field(min_length=1)
    image_url: Optional[str] = None
    timer_minutes: Optional[int] = Field(default=None, ge=0)


class NutritionIn(BaseModel):
    calories: Optional[int] = Field(default=None, ge=0)
    protein: Optional[float] = Field(default=None, ge=0)
    carbs: Optional[float] = Field(default=None, ge=0)
    fat: Optional[float] = Field(default=None, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)
    sugar: Optional[float] = Field(default=None, ge=0)
    sodium: Optional[float] = Field(default=None, ge=0)
    cholesterol: Optional[float] = Field(default=None, ge=0)


def _unique_steps(v: Optional[List[InstructionIn]]) -> Optional[List[InstructionIn]]:
    if v:
        steps = [i.step for i in v]
        if len(set(steps)) != len(steps):
            raise ValueError("instruction steps must be unique")
    return v


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    out: List[str] = []
    for raw in v:
        name = raw.strip()
        if name and name not in out:
            out.append(name)
    return out


class RecipeCreate(BaseModel):
    title: str = Field(min_length=2, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_time: Optional[int] = Field(default=None, ge=0)
    cook_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    difficulty: Optional[Difficulty] = None
    type: Optional[str] = None
    is_public: Optional[bool] = None
    ingredients: List[IngredientIn] = Field(default_factory=list)
    instructions: List[InstructionIn] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    nutrition: Optional[NutritionIn] = None

    @field_validator("instructions")
    @classmethod
    def _check_steps(cls, v):
        return _unique_steps(v)

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, v):
        return _clean_tags(v)


class RecipeUpdate(PatchModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("title", "ingredients", "instructions", "tags", "is_public")

    title: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_time: Optional[int] = Field(default=None, ge=0)
    cook_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    difficulty: Optional[Difficulty] = None
    type: Optional[str] = None
    is_public: Optional[bool] = None
    ingredients: Optional[List[IngredientIn]] = None
    instructions: Optional[List[InstructionIn]] = None
    tags: Optional[List[str]] = None
    nutrition: Optional[NutritionIn] = None

    @field_validator("instructions")
    @classmethod
    def _check_steps(cls, v):
        return _unique_steps(v)

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, v):
        return _clean_tags(v)


class RateRecipeRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    review: Optional[str] = None


class IngredientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    order_index: int


class InstructionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    step: int
    instruction: str
    image_url: Optional[str] = None
    timer_minutes: Optional[int] = None


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: Optional[str] = None


class NutritionOut(NutritionIn):
    model_config = ConfigDict(from_attributes=True)

    id: str


class RecipeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    servings: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    type: Optional[str] = None
    rating: float
    rating_count: int
    is_public: bool
    created_at: datetime
    updated_at: datetime
    user: Optional[OwnerOut] = None
    tags: List[TagOut] = Field(default_factory=list)
    ingredients: List[IngredientOut] = Field(default_factory=list)
    instructions: List[InstructionOut] = Field(default_factory=list)
    nutrition: Optional[NutritionOut] = None


class RecipePage(BaseModel):
    recipes: List[RecipeOut]
    total: int
    page: int
    limit: int


class FeaturedResponse(BaseModel):
    recipes: List[RecipeOut]


SortField = Literal["created_at", "rating", "title"]
SortOrder = Literal["asc", "desc"]


class RecipeQuery(BaseModel):
    """Parámetros de listado ya validados por la capa HTTP."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    search: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, v):
        return _clean_tags(v)


# === Colecciones ===

class CollectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_public: bool = False


class CollectionUpdate(PatchModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("name", "is_public")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_public: Optional[bool] = None


class AddRecipeToCollectionRequest(BaseModel):
    recipe_id: str


class CollectionOut(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_public: bool
    recipe_count: int
    created_at: datetime
    updated_at: datetime
    recipes: Optional[List[RecipeOut]] = None


class CollectionList(BaseModel):
    collections: List[CollectionOut]


# === Listas de la compra ===

class ShoppingListItemIn(BaseModel):
    name: str = Field(min_length=1)
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    order_index: Optional[int] = None


class ShoppingListCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    items: List[ShoppingListItemIn] = Field(default_factory=list)


class ShoppingListUpdate(PatchModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("name",)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class ShoppingListItemUpdate(PatchModel):
    required_fields: ClassVar[Tuple[str, ...]] = ("name", "completed", "order_index")

    name: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    completed: Optional[bool] = None
    order_index: Optional[int] = None


class ShoppingListItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    shopping_list_id: str
    name: str
    amount: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    completed: bool
    order_index: int
    created_at: datetime
    updated_at: datetime


class ShoppingListOut(BaseModel):
    id: str
    user_id: str
    name: str
    item_count: int
    completed_count: int
    created_at: datetime
    updated_at: datetime
    items: List[ShoppingListItemOut] = Field(default_factory=list)


class ShoppingListList(BaseModel):
    shopping_lists: List[ShoppingListOut]


# === Uploads ===

class UploadResponse(BaseModel):
    url: str
    filename: str
    size: int


