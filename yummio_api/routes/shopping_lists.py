from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..db import get_session
from ..errors import ErrorResponse
from ..schemas import (
    MessageResponse, ShoppingListCreate, ShoppingListItemIn, ShoppingListItemOut, ShoppingListItemUpdate,
    ShoppingListList, ShoppingListOut, ShoppingListUpdate,
)
from ..security import get_current_user
from ..services.shopping_lists import ShoppingListService

router = APIRouter(prefix="/shopping-lists", tags=["shopping-lists"])

NOT_OWNED = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
ITEM_ERRORS = {400: {"model": ErrorResponse}, **NOT_OWNED}


@router.get("", response_model=ShoppingListList, summary="Listas de la compra del usuario")
def list_shopping_lists(session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    return ShoppingListList(shopping_lists=ShoppingListService(session).list(user_id))


@router.post("", response_model=ShoppingListOut, status_code=201, summary="Crear lista con sus items")
def create_shopping_list(
    data: ShoppingListCreate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return ShoppingListService(session).create(user_id, data)


@router.get("/{list_id}", response_model=ShoppingListOut, summary="Detalle de lista", responses=NOT_OWNED)
def get_shopping_list(
    list_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return ShoppingListService(session).get(list_id, user_id)


@router.put("/{list_id}", response_model=ShoppingListOut, summary="Renombrar lista", responses=NOT_OWNED)
def update_shopping_list(
    list_id: str,
    data: ShoppingListUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return ShoppingListService(session).update(list_id, user_id, data)


@router.delete("/{list_id}", response_model=MessageResponse, summary="Borrar lista", responses=NOT_OWNED)
def delete_shopping_list(
    list_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    ShoppingListService(session).delete(list_id, user_id)
    return MessageResponse(message="Shopping list deleted successfully")


@router.post(
    "/{list_id}/items",
    response_model=ShoppingListItemOut,
    status_code=201,
    summary="Añadir item al final de la lista",
    responses=NOT_OWNED,
)
def add_item(
    list_id: str,
    data: ShoppingListItemIn,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return ShoppingListService(session).add_item(list_id, user_id, data)


@router.put(
    "/{list_id}/items/{item_id}",
    response_model=ShoppingListItemOut,
    summary="Actualizar item (parcial)",
    responses=ITEM_ERRORS,
)
def update_item(
    list_id: str,
    item_id: str,
    data: ShoppingListItemUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return ShoppingListService(session).update_item(list_id, item_id, user_id, data)


@router.delete(
    "/{list_id}/items/{item_id}",
    response_model=MessageResponse,
    summary="Borrar item",
    responses=ITEM_ERRORS,
)
def delete_item(
    list_id: str,
    item_id: str,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    ShoppingListService(session).delete_item(list_id, item_id, user_id)
    return MessageResponse(message="Item deleted successfully")
