"""
Orquestación de recetas: visibilidad, propiedad, listados y proyección a ``RecipeOut``.

Los listados sólo cargan dueño y etiquetas; el detalle añade ingredientes, instrucciones y nutrición.
"""
from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from sqlmodel import Session

from ..db import transaction
from ..models_db import Recipe
from ..repositories.recipes import RecipeRepository
from ..repositories.users import UserRepository
from ..schemas import (
    IngredientOut, InstructionOut, NutritionOut, OwnerOut, RateRecipeRequest, RecipeCreate, RecipeOut,
    RecipePage, RecipeQuery, RecipeUpdate, TagOut,
)
from .access import ensure_owner, ensure_visible
from .composer import RecipeComposer
from .query import Scope, build_featured, build_listing

logger = logging.getLogger("yummio.recipes")

SCALAR_FIELDS = (
    "title", "description", "image_url", "prep_time", "cook_time", "servings", "difficulty", "type", "is_public",
)
CHILD_FIELDS = ("ingredients", "instructions", "tags", "nutrition")


def present_recipes(session: Session, recipes: Sequence[Recipe], detail: bool = False) -> List[RecipeOut]:
    if not recipes:
        return []
    repo = RecipeRepository(session)
    owners = UserRepository(session).by_ids(r.user_id for r in recipes)
    tags = repo.tags_for(r.id for r in recipes)

    out: List[RecipeOut] = []
    for recipe in recipes:
        owner = owners.get(recipe.user_id)
        item = RecipeOut.model_validate(recipe).model_copy(update={
            "user": OwnerOut.model_validate(owner) if owner else None,
            "tags": [TagOut.model_validate(t) for t in tags.get(recipe.id, [])],
        })
        if detail:
            nutrition = repo.nutrition_for(recipe.id)
            item = item.model_copy(update={
                "ingredients": [IngredientOut.model_validate(i) for i in repo.ingredients_for(recipe.id)],
                "instructions": [InstructionOut.model_validate(i) for i in repo.instructions_for(recipe.id)],
                "nutrition": NutritionOut.model_validate(nutrition) if nutrition else None,
            })
        out.append(item)
    return out


class RecipeService:
    def __init__(self, session: Session):
        self.session = session
        self.recipes = RecipeRepository(session)
        self.composer = RecipeComposer(session)

    def _detail(self, recipe: Recipe) -> RecipeOut:
        return present_recipes(self.session, [recipe], detail=True)[0]

    def _page(self, query: RecipeQuery, scope: Scope, user_id: Optional[str] = None) -> RecipePage:
        plan = build_listing(query, scope=scope, user_id=user_id)
        rows, total = self.recipes.run_listing(plan.page, plan.count)
        return RecipePage(
            recipes=present_recipes(self.session, rows),
            total=total,
            page=query.page,
            limit=query.limit,
        )

    # --- lecturas ---

    def get(self, recipe_id: str, requester_id: Optional[str] = None) -> RecipeOut:
        recipe = self.recipes.get(recipe_id)
        ensure_visible(recipe, requester_id, "recipe")
        return self._detail(recipe)

    def list_public(self, query: RecipeQuery) -> RecipePage:
        return self._page(query, Scope.public)

    def search(self, query: RecipeQuery) -> RecipePage:
        # misma consulta que el listado público; el término viaja en ``query.search``
        return self._page(query, Scope.public)

    def featured(self, limit: int) -> List[RecipeOut]:
        rows = self.session.exec(build_featured(limit)).all()
        return present_recipes(self.session, list(rows))

    def my_recipes(self, user_id: str, query: RecipeQuery) -> RecipePage:
        return self._page(query, Scope.owned, user_id)

    def favorites(self, user_id: str, query: RecipeQuery) -> RecipePage:
        return self._page(query, Scope.favorites, user_id)

    # --- escrituras del dueño ---

    def create(self, owner_id: str, data: RecipeCreate) -> RecipeOut:
        recipe = Recipe(
            user_id=owner_id,
            title=data.title,
            description=data.description,
            image_url=data.image_url,
            prep_time=data.prep_time,
            cook_time=data.cook_time,
            servings=data.servings,
            difficulty=data.difficulty,
            type=data.type,
            is_public=True if data.is_public is None else data.is_public,
        )
        self.composer.save(
            recipe,
            ingredients=data.ingredients,
            instructions=data.instructions,
            tags=data.tags,
            nutrition=data.nutrition,
        )
        logger.info("Recipe %s created by %s", recipe.id, owner_id)
        return self._detail(recipe)

    def replace(self, recipe_id: str, requester_id: str, data: RecipeCreate) -> RecipeOut:
        """PUT: sustituye todos los campos; lo que no venga queda vacío (salvo ``is_public``)."""
        recipe = self.recipes.get(recipe_id, for_update=True)
        ensure_owner(recipe, requester_id, "update", "recipe")

        for field in SCALAR_FIELDS:
            value = getattr(data, field)
            if field == "is_public" and value is None:
                continue
            setattr(recipe, field, value)
        self.composer.save(
            recipe,
            ingredients=data.ingredients,
            instructions=data.instructions,
            tags=data.tags,
            nutrition=data.nutrition,
            drop_nutrition=data.nutrition is None,
        )
        return self._detail(recipe)

    def patch(self, recipe_id: str, requester_id: str, data: RecipeUpdate) -> RecipeOut:
        """PATCH: sólo los campos enviados; ``null`` explícito borra el valor opcional."""
        recipe = self.recipes.get(recipe_id, for_update=True)
        ensure_owner(recipe, requester_id, "update", "recipe")

        changes = data.changes()
        for field in SCALAR_FIELDS:
            if field in changes:
                setattr(recipe, field, getattr(data, field))

        sent = {f for f in CHILD_FIELDS if f in changes}
        self.composer.save(
            recipe,
            ingredients=data.ingredients if "ingredients" in sent else None,
            instructions=data.instructions if "instructions" in sent else None,
            tags=data.tags if "tags" in sent else None,
            nutrition=data.nutrition if "nutrition" in sent else None,
            drop_nutrition="nutrition" in sent and data.nutrition is None,
        )
        return self._detail(recipe)

    def delete(self, recipe_id: str, requester_id: str) -> None:
        recipe = self.recipes.get(recipe_id, for_update=True)
        ensure_owner(recipe, requester_id, "delete", "recipe")
        with transaction(self.session):
            self.recipes.delete(recipe)
        logger.info("Recipe %s deleted by %s", recipe_id, requester_id)

    # --- cualquier usuario autenticado ---

    def favorite(self, user_id: str, recipe_id: str) -> None:
        self.recipes.get(recipe_id)
        with transaction(self.session):
            self.recipes.add_favorite(user_id, recipe_id)

    def unfavorite(self, user_id: str, recipe_id: str) -> None:
        self.recipes.get(recipe_id)
        with transaction(self.session):
            self.recipes.remove_favorite(user_id, recipe_id)

    def rate(self, user_id: str, recipe_id: str, data: RateRecipeRequest) -> RecipeOut:
        recipe = self.composer.rate(user_id, recipe_id, data.rating, data.review)
        return self._detail(recipe)
