from __future__ import annotations
from typing import Dict, Iterable, List

from sqlmodel import Session, select
from sqlalchemy import delete, func

from ..errors import NotFound
from ..models_db import ShoppingList, ShoppingListItem, utcnow


class ShoppingListRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, shopping_list: ShoppingList) -> ShoppingList:
        self.session.add(shopping_list)
        self.session.flush()
        return shopping_list

    def get(self, list_id: str, for_update: bool = False) -> ShoppingList:
        stmt = select(ShoppingList).where(ShoppingList.id == list_id, ShoppingList.deleted_at.is_(None))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        shopping_list = self.session.exec(stmt).first()
        if shopping_list is None:
            raise NotFound("shopping list not found")
        return shopping_list

    def get_by_owner(self, user_id: str) -> List[ShoppingList]:
        return list(self.session.exec(
            select(ShoppingList)
            .where(ShoppingList.user_id == user_id, ShoppingList.deleted_at.is_(None))
            .order_by(ShoppingList.created_at.desc())
        ).all())

    def update(self, shopping_list: ShoppingList) -> ShoppingList:
        shopping_list.updated_at = utcnow()
        self.session.add(shopping_list)
        self.session.flush()
        return shopping_list

    def delete(self, shopping_list: ShoppingList) -> None:
        shopping_list.deleted_at = utcnow()
        self.update(shopping_list)

    # --- items ---

    def items(self, list_id: str) -> List[ShoppingListItem]:
        return self.items_for([list_id])[list_id]

    def items_for(self, list_ids: Iterable[str]) -> Dict[str, List[ShoppingListItem]]:
        ids = list(set(list_ids))
        out: Dict[str, List[ShoppingListItem]] = {lid: [] for lid in ids}
        if not ids:
            return out
        rows = self.session.exec(
            select(ShoppingListItem)
            .where(ShoppingListItem.shopping_list_id.in_(ids))
            .order_by(ShoppingListItem.order_index, ShoppingListItem.created_at)
        ).all()
        for item in rows:
            out[item.shopping_list_id].append(item)
        return out

    def next_order_index(self, list_id: str) -> int:
        current = self.session.exec(
            select(func.max(ShoppingListItem.order_index)).where(ShoppingListItem.shopping_list_id == list_id)
        ).one()
        return 0 if current is None else int(current) + 1

    def get_item(self, item_id: str) -> ShoppingListItem:
        item = self.session.get(ShoppingListItem, item_id)
        if item is None:
            raise NotFound("shopping list item not found")
        return item

    def add_item(self, item: ShoppingListItem) -> ShoppingListItem:
        self.session.add(item)
        self.session.flush()
        return item

    def update_item(self, item: ShoppingListItem) -> ShoppingListItem:
        item.updated_at = utcnow()
        self.session.add(item)
        self.session.flush()
        return item

    def delete_item(self, item: ShoppingListItem) -> None:
        self.session.exec(delete(ShoppingListItem).where(ShoppingListItem.id == item.id))
        self.session.flush()
