"""
Construcción de consultas de listado de recetas.

Traduce ``RecipeQuery`` (paginación, búsqueda, filtros, etiquetas, orden) + un ámbito de visibilidad
a dos sentencias: la página y el total. El total se calcula sobre el mismo filtro, antes de paginar,
y nunca incluye recetas borradas. Todos los valores viajan como parámetros enlazados; el orden sólo
admite columnas de una lista cerrada.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlmodel import select
from sqlalchemy import func, or_

from ..models_db import Recipe, RecipeTag, Tag, UserFavorite
from ..schemas import RecipeQuery

FEATURED_MIN_RATING = 4.0

SORT_COLUMNS = {
    "created_at": Recipe.created_at,
    "rating": Recipe.rating,
    "title": Recipe.title,
}


class Scope(str, Enum):
    public = "public"        # sólo recetas públicas
    owned = "owned"          # recetas del usuario (incluye privadas)
    favorites = "favorites"  # favoritas del usuario que sigue pudiendo ver


@dataclass
class ListingPlan:
    page: Any
    count: Any


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filtered(query: RecipeQuery, scope: Scope, user_id: Optional[str]):
    stmt = select(Recipe).where(Recipe.deleted_at.is_(None))

    if scope is Scope.public:
        stmt = stmt.where(Recipe.is_public == True)
    elif scope is Scope.owned:
        stmt = stmt.where(Recipe.user_id == user_id)
    elif scope is Scope.favorites:
        stmt = (
            stmt.join(UserFavorite, UserFavorite.recipe_id == Recipe.id)
            .where(UserFavorite.user_id == user_id)
            .where(or_(Recipe.is_public == True, Recipe.user_id == user_id))
        )

    if query.user_id:
        stmt = stmt.where(Recipe.user_id == query.user_id)
    if query.difficulty is not None:
        stmt = stmt.where(Recipe.difficulty == query.difficulty)
    if query.type:
        stmt = stmt.where(Recipe.type == query.type)

    search = (query.search or "").strip().lower()
    if search:
        pattern = f"%{_escape_like(search)}%"
        stmt = stmt.where(or_(
            func.lower(Recipe.title).like(pattern, escape="\\"),
            func.lower(func.coalesce(Recipe.description, "")).like(pattern, escape="\\"),
        ))

    if query.tags:
        # la receta debe tener TODAS las etiquetas pedidas
        with_all_tags = (
            select(RecipeTag.recipe_id)
            .join(Tag, Tag.id == RecipeTag.tag_id)
            .where(Tag.name.in_(query.tags))
            .group_by(RecipeTag.recipe_id)
            .having(func.count(func.distinct(Tag.name)) == len(query.tags))
        )
        stmt = stmt.where(Recipe.id.in_(with_all_tags))

    return stmt


def build_listing(query: RecipeQuery, scope: Scope = Scope.public, user_id: Optional[str] = None) -> ListingPlan:
    if scope is not Scope.public and not user_id:
        raise ValueError(f"scope {scope.value} requires a user")

    filtered = _filtered(query, scope, user_id)
    count = select(func.count()).select_from(filtered.subquery())

    column = SORT_COLUMNS[query.sort_by]
    if query.sort_order == "asc":
        order = (column.asc(), Recipe.id.asc())
    else:
        order = (column.desc(), Recipe.id.desc())

    page = (
        filtered.order_by(*order)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    )
    return ListingPlan(page=page, count=count)


def build_featured(limit: int):
    return (
        select(Recipe)
        .where(
            Recipe.deleted_at.is_(None),
            Recipe.is_public == True,
            Recipe.rating >= FEATURED_MIN_RATING,
        )
        .order_by(Recipe.rating.desc(), Recipe.rating_count.desc(), Recipe.created_at.desc())
        .limit(limit)
    )
