from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..db import get_session
from ..errors import ErrorResponse
from ..schemas import (
    AddRecipeToCollectionRequest, CollectionCreate, CollectionList, CollectionOut, CollectionUpdate,
    MessageResponse,
)
from ..security import get_current_user
from ..services.collections import CollectionService

router = APIRouter(prefix="/collections", tags=["collections"])

NOT_OWNED = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("", response_model=CollectionList, summary="Colecciones del usuario")
def list_collections(session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    return CollectionList(collections=CollectionService(session).list(user_id))


@router.post("", response_model=CollectionOut, status_code=201, summary="Crear colección")
def create_collection(
    data: CollectionCreate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return CollectionService(session).create(user_id, data)


@router.get("/{collection_id}", response_model=CollectionOut, summary="Detalle con recetas", responses=NOT_OWNED)
def get_collection(
    collection_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return CollectionService(session).get(collection_id, user_id)


@router.put("/{collection_id}", response_model=CollectionOut, summary="Actualizar colección", responses=NOT_OWNED)
def update_collection(
    collection_id: str,
    data: CollectionUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return CollectionService(session).update(collection_id, user_id, data)


@router.delete("/{collection_id}", response_model=MessageResponse, summary="Borrar colección", responses=NOT_OWNED)
def delete_collection(
    collection_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    CollectionService(session).delete(collection_id, user_id)
    return MessageResponse(message="Collection deleted successfully")


@router.post(
    "/{collection_id}/recipes",
    response_model=MessageResponse,
    summary="Añadir receta a la colección",
    responses=NOT_OWNED,
)
def add_recipe_to_collection(
    collection_id: str,
    data: AddRecipeToCollectionRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    CollectionService(session).add_recipe(collection_id, user_id, data.recipe_id)
    return MessageResponse(message="Recipe added to collection")


@router.delete(
    "/{collection_id}/recipes/{recipe_id}",
    response_model=MessageResponse,
    summary="Quitar receta de la colección",
    responses=NOT_OWNED,
)
def remove_recipe_from_collection(
    collection_id: str,
    recipe_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    CollectionService(session).remove_recipe(collection_id, user_id, recipe_id)
    return MessageResponse(message="Recipe removed from collection")
