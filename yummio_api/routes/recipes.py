from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..db import get_session
from ..errors import ErrorResponse
from ..models_db import Difficulty
from ..schemas import (
    FeaturedResponse, MessageResponse, RateRecipeRequest, RecipeCreate, RecipeOut, RecipePage, RecipeQuery,
    RecipeUpdate, SortField, SortOrder,
)
from ..security import get_current_user, get_optional_user
from ..services.recipes import RecipeService

router = APIRouter(prefix="/recipes", tags=["recipes"])


def recipe_query(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    difficulty: Optional[Difficulty] = Query(None),
    type: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None, description="Repetible: la receta debe tener todas"),
    user_id: Optional[str] = Query(None, description="Filtra por autor"),
    sort_by: SortField = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
) -> RecipeQuery:
    return RecipeQuery(
        page=page, limit=limit, search=search, difficulty=difficulty, type=type, tags=tags or [],
        user_id=user_id, sort_by=sort_by, sort_order=sort_order,
    )


@router.get("", response_model=RecipePage, summary="Listado paginado de recetas públicas")
def list_recipes(query: RecipeQuery = Depends(recipe_query), session: Session = Depends(get_session)):
    return RecipeService(session).list_public(query)


@router.get("/search", response_model=RecipePage, summary="Búsqueda por título y descripción")
def search_recipes(
    q: str = Query(..., min_length=1, max_length=200),
    query: RecipeQuery = Depends(recipe_query),
    session: Session = Depends(get_session),
):
    return RecipeService(session).search(query.model_copy(update={"search": q}))


@router.get("/featured", response_model=FeaturedResponse, summary="Recetas destacadas (valoración ≥ 4)")
def featured_recipes(limit: int = Query(10, ge=1, le=100), session: Session = Depends(get_session)):
    return FeaturedResponse(recipes=RecipeService(session).featured(limit))


@router.get("/my-recipes", response_model=RecipePage, summary="Recetas del usuario (incluye privadas)")
def my_recipes(
    query: RecipeQuery = Depends(recipe_query),
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).my_recipes(user_id, query)


@router.get("/favorites", response_model=RecipePage, summary="Favoritas del usuario")
def favorite_recipes(
    query: RecipeQuery = Depends(recipe_query),
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).favorites(user_id, query)


@router.get(
    "/{recipe_id}",
    response_model=RecipeOut,
    summary="Detalle de receta",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_recipe(
    recipe_id: str,
    session: Session = Depends(get_session),
    user_id: Optional[str] = Depends(get_optional_user),
):
    return RecipeService(session).get(recipe_id, user_id)


@router.post(
    "",
    response_model=RecipeOut,
    status_code=201,
    summary="Crear receta con ingredientes, instrucciones, etiquetas y nutrición",
    responses={400: {"model": ErrorResponse}},
)
def create_recipe(
    data: RecipeCreate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).create(user_id, data)


@router.put(
    "/{recipe_id}",
    response_model=RecipeOut,
    summary="Reemplazar receta completa",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def replace_recipe(
    recipe_id: str,
    data: RecipeCreate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).replace(recipe_id, user_id, data)


@router.patch(
    "/{recipe_id}",
    response_model=RecipeOut,
    summary="Actualización parcial (null explícito borra el campo)",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def patch_recipe(
    recipe_id: str,
    data: RecipeUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).patch(recipe_id, user_id, data)


@router.delete(
    "/{recipe_id}",
    response_model=MessageResponse,
    summary="Borrar receta (soft-delete)",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_recipe(
    recipe_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    RecipeService(session).delete(recipe_id, user_id)
    return MessageResponse(message="Recipe deleted successfully")


@router.post(
    "/{recipe_id}/favorite",
    response_model=MessageResponse,
    summary="Marcar como favorita",
    responses={404: {"model": ErrorResponse}},
)
def favorite_recipe(
    recipe_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    RecipeService(session).favorite(user_id, recipe_id)
    return MessageResponse(message="Recipe added to favorites")


@router.delete(
    "/{recipe_id}/favorite",
    response_model=MessageResponse,
    summary="Quitar de favoritas",
    responses={404: {"model": ErrorResponse}},
)
def unfavorite_recipe(
    recipe_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    RecipeService(session).unfavorite(user_id, recipe_id)
    return MessageResponse(message="Recipe removed from favorites")


@router.post(
    "/{recipe_id}/rate",
    response_model=RecipeOut,
    summary="Valorar receta (1-5); una valoración por usuario, se sobrescribe",
    responses={404: {"model": ErrorResponse}},
)
def rate_recipe(
    recipe_id: str,
    data: RateRecipeRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return RecipeService(session).rate(user_id, recipe_id, data)
