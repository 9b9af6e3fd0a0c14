"""
Escritura de agregados multi-tabla en una única transacción.

- Receta: fila principal, etiquetas (resueltas por nombre o creadas), ingredientes e instrucciones
  (reemplazo completo), nutrición (upsert).
- Valoración: upsert por (usuario, receta) y recálculo de media/contador en la misma transacción.
- Lista de la compra: lista + items en orden de envío.

Si cualquier paso falla se deshace todo; quien llama recibe un único error clasificado.
"""
from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from sqlmodel import Session
from sqlalchemy import inspect as sa_inspect

from ..db import transaction
from ..models_db import (
    Recipe, Ingredient, Instruction, Nutrition, Rating, ShoppingList, ShoppingListItem, utcnow,
)
from ..repositories.recipes import RecipeRepository
from ..repositories.shopping_lists import ShoppingListRepository
from ..schemas import IngredientIn, InstructionIn, NutritionIn, ShoppingListItemIn


class RecipeComposer:
    def __init__(self, session: Session):
        self.session = session
        self.recipes = RecipeRepository(session)

    def save(
        self,
        recipe: Recipe,
        *,
        ingredients: Optional[Sequence[IngredientIn]] = None,
        instructions: Optional[Sequence[InstructionIn]] = None,
        tags: Optional[Sequence[str]] = None,
        nutrition: Optional[NutritionIn] = None,
        drop_nutrition: bool = False,
    ) -> Recipe:
        """
        Inserta o actualiza la receta y sus hijos. ``None`` en una colección significa "no tocar";
        una lista (aunque esté vacía) reemplaza el conjunto entero.
        """
        with transaction(self.session):
            if sa_inspect(recipe).has_identity:
                self.recipes.update(recipe)
            else:
                self.recipes.create(recipe)

            if tags is not None:
                self._replace_tags(recipe.id, tags)
            if ingredients is not None:
                self.recipes.replace_ingredients(recipe.id, [
                    Ingredient(
                        name=ing.name,
                        amount=ing.amount,
                        unit=ing.unit,
                        notes=ing.notes,
                        order_index=i if ing.order_index is None else ing.order_index,
                    )
                    for i, ing in enumerate(ingredients)
                ])
            if instructions is not None:
                self.recipes.replace_instructions(recipe.id, [
                    Instruction(
                        step=ins.step,
                        instruction=ins.instruction,
                        image_url=ins.image_url,
                        timer_minutes=ins.timer_minutes,
                    )
                    for ins in instructions
                ])
            if nutrition is not None:
                self._upsert_nutrition(recipe.id, nutrition)
            elif drop_nutrition:
                self.recipes.delete_nutrition(recipe.id)
        return recipe

    def _replace_tags(self, recipe_id: str, names: Sequence[str]) -> None:
        wanted: List[str] = []
        for name in names:
            if name not in wanted:
                wanted.append(name)
        existing = self.recipes.tags_by_name(wanted)
        tag_ids = []
        for name in wanted:
            tag = existing.get(name) or self.recipes.create_tag(name)
            tag_ids.append(tag.id)
        self.recipes.replace_tags(recipe_id, tag_ids)

    def _upsert_nutrition(self, recipe_id: str, data: NutritionIn) -> None:
        row = self.recipes.nutrition_for(recipe_id) or Nutrition(recipe_id=recipe_id)
        for field, value in data.model_dump().items():
            setattr(row, field, value)
        self.recipes.save_nutrition(row)

    def rate(self, user_id: str, recipe_id: str, value: int, review: Optional[str] = None) -> Recipe:
        """
        Upsert de la valoración del usuario y recálculo de ``rating``/``rating_count``.
        La fila de la receta se bloquea primero para que dos valoraciones concurrentes
        se serialicen y ambas entren en la media.
        """
        with transaction(self.session):
            recipe = self.recipes.get(recipe_id, for_update=True)
            rating = self.recipes.find_rating(user_id, recipe_id)
            if rating is None:
                rating = Rating(user_id=user_id, recipe_id=recipe_id, rating=value, review=review)
            else:
                rating.rating = value
                rating.review = review
                rating.updated_at = utcnow()
            self.recipes.save_rating(rating)

            avg, count = self.recipes.rating_stats(recipe_id)
            recipe.rating = avg
            recipe.rating_count = count
            self.session.add(recipe)
            self.session.flush()
        return recipe


class ShoppingListComposer:
    def __init__(self, session: Session):
        self.session = session
        self.lists = ShoppingListRepository(session)

    def create(
        self, owner_id: str, name: str, items: Sequence[ShoppingListItemIn]
    ) -> Tuple[ShoppingList, List[ShoppingListItem]]:
        with transaction(self.session):
            shopping_list = self.lists.create(ShoppingList(user_id=owner_id, name=name))
            rows = [
                self.lists.add_item(ShoppingListItem(
                    shopping_list_id=shopping_list.id,
                    name=it.name,
                    amount=it.amount,
                    unit=it.unit,
                    notes=it.notes,
                    order_index=i if it.order_index is None else it.order_index,
                ))
                for i, it in enumerate(items)
            ]
        return shopping_list, rows

    def append(self, shopping_list: ShoppingList, data: ShoppingListItemIn) -> ShoppingListItem:
        """Añade al final: sin índice explícito toma ``max(order_index) + 1``."""
        with transaction(self.session):
            order_index = data.order_index
            if order_index is None:
                order_index = self.lists.next_order_index(shopping_list.id)
            item = self.lists.add_item(ShoppingListItem(
                shopping_list_id=shopping_list.id,
                name=data.name,
                amount=data.amount,
                unit=data.unit,
                notes=data.notes,
                order_index=order_index,
            ))
            self.lists.update(shopping_list)
        return item
