from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlmodel import Session, select
from sqlalchemy import delete, func

from ..errors import NotFound
from ..models_db import (
    Recipe, Ingredient, Instruction, Tag, RecipeTag, Rating, Nutrition, UserFavorite, utcnow,
)


class RecipeRepository:
    """
    Agregado Receta: fila principal + ingredientes, instrucciones, etiquetas, nutrición,
    valoraciones y favoritos. Las escrituras sólo hacen ``flush``; confirmar es cosa del llamador.
    """

    def __init__(self, session: Session):
        self.session = session

    # --- fila principal ---

    def create(self, recipe: Recipe) -> Recipe:
        self.session.add(recipe)
        self.session.flush()
        return recipe

    def get(self, recipe_id: str, for_update: bool = False) -> Recipe:
        stmt = select(Recipe).where(Recipe.id == recipe_id, Recipe.deleted_at.is_(None))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        recipe = self.session.exec(stmt).first()
        if recipe is None:
            raise NotFound("recipe not found")
        return recipe

    def get_by_owner(self, user_id: str) -> List[Recipe]:
        return list(self.session.exec(
            select(Recipe)
            .where(Recipe.user_id == user_id, Recipe.deleted_at.is_(None))
            .order_by(Recipe.created_at.desc())
        ).all())

    def update(self, recipe: Recipe) -> Recipe:
        recipe.updated_at = utcnow()
        self.session.add(recipe)
        self.session.flush()
        return recipe

    def delete(self, recipe: Recipe) -> None:
        recipe.deleted_at = utcnow()
        self.update(recipe)

    def run_listing(self, page_stmt, count_stmt) -> Tuple[List[Recipe], int]:
        total = self.session.exec(count_stmt).one()
        rows = self.session.exec(page_stmt).all()
        return list(rows), int(total)

    # --- etiquetas ---

    def tags_by_name(self, names: Sequence[str]) -> Dict[str, Tag]:
        if not names:
            return {}
        rows = self.session.exec(select(Tag).where(Tag.name.in_(list(names)))).all()
        return {t.name: t for t in rows}

    def create_tag(self, name: str) -> Tag:
        tag = Tag(name=name)
        self.session.add(tag)
        self.session.flush()
        return tag

    def replace_tags(self, recipe_id: str, tag_ids: Sequence[str]) -> None:
        self.session.exec(delete(RecipeTag).where(RecipeTag.recipe_id == recipe_id))
        for tag_id in tag_ids:
            self.session.add(RecipeTag(recipe_id=recipe_id, tag_id=tag_id))
        self.session.flush()

    def tags_for(self, recipe_ids: Iterable[str]) -> Dict[str, List[Tag]]:
        ids = list(set(recipe_ids))
        out: Dict[str, List[Tag]] = {rid: [] for rid in ids}
        if not ids:
            return out
        rows = self.session.exec(
            select(RecipeTag.recipe_id, Tag)
            .join(Tag, Tag.id == RecipeTag.tag_id)
            .where(RecipeTag.recipe_id.in_(ids))
            .order_by(Tag.name)
        ).all()
        for recipe_id, tag in rows:
            out[recipe_id].append(tag)
        return out

    # --- ingredientes / instrucciones (reemplazo completo) ---

    def replace_ingredients(self, recipe_id: str, rows: Sequence[Ingredient]) -> None:
        self.session.exec(delete(Ingredient).where(Ingredient.recipe_id == recipe_id))
        for row in rows:
            row.recipe_id = recipe_id
            self.session.add(row)
        self.session.flush()

    def ingredients_for(self, recipe_id: str) -> List[Ingredient]:
        return list(self.session.exec(
            select(Ingredient)
            .where(Ingredient.recipe_id == recipe_id)
            .order_by(Ingredient.order_index, Ingredient.name)
        ).all())

    def replace_instructions(self, recipe_id: str, rows: Sequence[Instruction]) -> None:
        self.session.exec(delete(Instruction).where(Instruction.recipe_id == recipe_id))
        for row in rows:
            row.recipe_id = recipe_id
            self.session.add(row)
        self.session.flush()

    def instructions_for(self, recipe_id: str) -> List[Instruction]:
        return list(self.session.exec(
            select(Instruction).where(Instruction.recipe_id == recipe_id).order_by(Instruction.step)
        ).all())

    # --- nutrición ---

    def nutrition_for(self, recipe_id: str) -> Optional[Nutrition]:
        return self.session.exec(select(Nutrition).where(Nutrition.recipe_id == recipe_id)).first()

    def save_nutrition(self, nutrition: Nutrition) -> Nutrition:
        self.session.add(nutrition)
        self.session.flush()
        return nutrition

    def delete_nutrition(self, recipe_id: str) -> None:
        self.session.exec(delete(Nutrition).where(Nutrition.recipe_id == recipe_id))
        self.session.flush()

    # --- valoraciones ---

    def find_rating(self, user_id: str, recipe_id: str) -> Optional[Rating]:
        return self.session.exec(
            select(Rating).where(Rating.user_id == user_id, Rating.recipe_id == recipe_id)
        ).first()

    def save_rating(self, rating: Rating) -> Rating:
        self.session.add(rating)
        self.session.flush()
        return rating

    def rating_stats(self, recipe_id: str) -> Tuple[float, int]:
        avg, count = self.session.exec(
            select(func.avg(Rating.rating), func.count(Rating.id)).where(Rating.recipe_id == recipe_id)
        ).one()
        return float(avg or 0.0), int(count or 0)

    # --- favoritos ---

    def is_favorite(self, user_id: str, recipe_id: str) -> bool:
        return self.session.get(UserFavorite, (user_id, recipe_id)) is not None

    def add_favorite(self, user_id: str, recipe_id: str) -> None:
        if not self.is_favorite(user_id, recipe_id):
            self.session.add(UserFavorite(user_id=user_id, recipe_id=recipe_id))
            self.session.flush()

    def remove_favorite(self, user_id: str, recipe_id: str) -> None:
        self.session.exec(
            delete(UserFavorite).where(UserFavorite.user_id == user_id, UserFavorite.recipe_id == recipe_id)
        )
        self.session.flush()
