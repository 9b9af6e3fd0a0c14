"""
Listas de la compra. Sólo el dueño puede leerlas o modificarlas; las operaciones sobre items
comprueban además que el item cuelga de la lista indicada en la ruta.
"""
from __future__ import annotations
from typing import List, Sequence

from sqlmodel import Session

from ..db import transaction
from ..errors import ItemNotInList
from ..models_db import ShoppingList, ShoppingListItem
from ..repositories.shopping_lists import ShoppingListRepository
from ..schemas import (
    ShoppingListCreate, ShoppingListItemIn, ShoppingListItemOut, ShoppingListItemUpdate, ShoppingListOut,
    ShoppingListUpdate,
)
from .access import ensure_owner
from .composer import ShoppingListComposer


def present_list(shopping_list: ShoppingList, items: Sequence[ShoppingListItem]) -> ShoppingListOut:
    return ShoppingListOut(
        id=shopping_list.id,
        user_id=shopping_list.user_id,
        name=shopping_list.name,
        item_count=len(items),
        completed_count=sum(1 for i in items if i.completed),
        created_at=shopping_list.created_at,
        updated_at=shopping_list.updated_at,
        items=[ShoppingListItemOut.model_validate(i) for i in items],
    )


class ShoppingListService:
    def __init__(self, session: Session):
        self.session = session
        self.lists = ShoppingListRepository(session)
        self.composer = ShoppingListComposer(session)

    def _owned(self, list_id: str, requester_id: str, action: str, for_update: bool = False) -> ShoppingList:
        shopping_list = self.lists.get(list_id, for_update=for_update)
        ensure_owner(shopping_list, requester_id, action, "shopping list")
        return shopping_list

    def _item_in(self, shopping_list: ShoppingList, item_id: str) -> ShoppingListItem:
        item = self.lists.get_item(item_id)
        if item.shopping_list_id != shopping_list.id:
            raise ItemNotInList()
        return item

    def create(self, owner_id: str, data: ShoppingListCreate) -> ShoppingListOut:
        shopping_list, items = self.composer.create(owner_id, data.name, data.items)
        return present_list(shopping_list, items)

    def get(self, list_id: str, requester_id: str) -> ShoppingListOut:
        shopping_list = self._owned(list_id, requester_id, "access")
        return present_list(shopping_list, self.lists.items(shopping_list.id))

    def list(self, owner_id: str) -> List[ShoppingListOut]:
        rows = self.lists.get_by_owner(owner_id)
        items = self.lists.items_for(r.id for r in rows)
        return [present_list(r, items.get(r.id, [])) for r in rows]

    def update(self, list_id: str, requester_id: str, data: ShoppingListUpdate) -> ShoppingListOut:
        shopping_list = self._owned(list_id, requester_id, "update", for_update=True)
        with transaction(self.session):
            for field, value in data.changes().items():
                setattr(shopping_list, field, value)
            self.lists.update(shopping_list)
        return present_list(shopping_list, self.lists.items(shopping_list.id))

    def delete(self, list_id: str, requester_id: str) -> None:
        shopping_list = self._owned(list_id, requester_id, "delete", for_update=True)
        with transaction(self.session):
            self.lists.delete(shopping_list)

    # --- items ---

    def add_item(self, list_id: str, requester_id: str, data: ShoppingListItemIn) -> ShoppingListItemOut:
        shopping_list = self._owned(list_id, requester_id, "modify", for_update=True)
        item = self.composer.append(shopping_list, data)
        return ShoppingListItemOut.model_validate(item)

    def update_item(
        self, list_id: str, item_id: str, requester_id: str, data: ShoppingListItemUpdate
    ) -> ShoppingListItemOut:
        shopping_list = self._owned(list_id, requester_id, "modify", for_update=True)
        item = self._item_in(shopping_list, item_id)
        with transaction(self.session):
            for field, value in data.changes().items():
                setattr(item, field, value)
            self.lists.update_item(item)
            self.lists.update(shopping_list)
        return ShoppingListItemOut.model_validate(item)

    def delete_item(self, list_id: str, item_id: str, requester_id: str) -> None:
        shopping_list = self._owned(list_id, requester_id, "modify", for_update=True)
        item = self._item_in(shopping_list, item_id)
        with transaction(self.session):
            self.lists.delete_item(item)
            self.lists.update(shopping_list)
