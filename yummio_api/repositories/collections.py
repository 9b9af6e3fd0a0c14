from __future__ import annotations
from typing import Dict, Iterable, List

from sqlmodel import Session, select
from sqlalchemy import delete, func

from ..errors import NotFound
from ..models_db import Collection, CollectionRecipe, Recipe, utcnow


class CollectionRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, collection: Collection) -> Collection:
        self.session.add(collection)
        self.session.flush()
        return collection

    def get(self, collection_id: str, for_update: bool = False) -> Collection:
        stmt = select(Collection).where(Collection.id == collection_id, Collection.deleted_at.is_(None))
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        collection = self.session.exec(stmt).first()
        if collection is None:
            raise NotFound("collection not found")
        return collection

    def get_by_owner(self, user_id: str) -> List[Collection]:
        return list(self.session.exec(
            select(Collection)
            .where(Collection.user_id == user_id, Collection.deleted_at.is_(None))
            .order_by(Collection.created_at.desc())
        ).all())

    def update(self, collection: Collection) -> Collection:
        collection.updated_at = utcnow()
        self.session.add(collection)
        self.session.flush()
        return collection

    def delete(self, collection: Collection) -> None:
        collection.deleted_at = utcnow()
        self.update(collection)

    def add_recipe(self, collection_id: str, recipe_id: str) -> None:
        if self.session.get(CollectionRecipe, (collection_id, recipe_id)) is None:
            self.session.add(CollectionRecipe(collection_id=collection_id, recipe_id=recipe_id))
            self.session.flush()

    def remove_recipe(self, collection_id: str, recipe_id: str) -> None:
        self.session.exec(
            delete(CollectionRecipe).where(
                CollectionRecipe.collection_id == collection_id,
                CollectionRecipe.recipe_id == recipe_id,
            )
        )
        self.session.flush()

    def recipes(self, collection_id: str) -> List[Recipe]:
        return list(self.session.exec(
            select(Recipe)
            .join(CollectionRecipe, CollectionRecipe.recipe_id == Recipe.id)
            .where(CollectionRecipe.collection_id == collection_id, Recipe.deleted_at.is_(None))
            .order_by(Recipe.title)
        ).all())

    def recipe_counts(self, collection_ids: Iterable[str]) -> Dict[str, int]:
        ids = list(set(collection_ids))
        counts: Dict[str, int] = {cid: 0 for cid in ids}
        if not ids:
            return counts
        rows = self.session.exec(
            select(CollectionRecipe.collection_id, func.count(CollectionRecipe.recipe_id))
            .join(Recipe, Recipe.id == CollectionRecipe.recipe_id)
            .where(CollectionRecipe.collection_id.in_(ids), Recipe.deleted_at.is_(None))
            .group_by(CollectionRecipe.collection_id)
        ).all()
        for cid, n in rows:
            counts[cid] = int(n)
        return counts
