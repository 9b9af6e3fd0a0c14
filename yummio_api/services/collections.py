from __future__ import annotations
from typing import Dict, List, Optional

from sqlmodel import Session

from ..db import transaction
from ..models_db import Collection
from ..repositories.collections import CollectionRepository
from ..repositories.recipes import RecipeRepository
from ..schemas import CollectionCreate, CollectionOut, CollectionUpdate
from .access import can_view, ensure_owner, ensure_visible
from .recipes import present_recipes


class CollectionService:
    def __init__(self, session: Session):
        self.session = session
        self.collections = CollectionRepository(session)
        self.recipes = RecipeRepository(session)

    def _present(self, collection: Collection, count: int, requester_id: Optional[str] = None,
                 detail: bool = False) -> CollectionOut:
        out = CollectionOut(
            id=collection.id,
            user_id=collection.user_id,
            name=collection.name,
            description=collection.description,
            image_url=collection.image_url,
            is_public=collection.is_public,
            recipe_count=count,
            created_at=collection.created_at,
            updated_at=collection.updated_at,
        )
        if detail:
            # una colección pública puede contener recetas privadas de su dueño
            visible = [r for r in self.collections.recipes(collection.id) if can_view(r, requester_id)]
            out.recipes = present_recipes(self.session, visible)
        return out

    def _detail(self, collection: Collection, requester_id: Optional[str]) -> CollectionOut:
        counts = self.collections.recipe_counts([collection.id])
        return self._present(collection, counts[collection.id], requester_id, detail=True)

    def create(self, owner_id: str, data: CollectionCreate) -> CollectionOut:
        with transaction(self.session):
            collection = self.collections.create(Collection(
                user_id=owner_id,
                name=data.name,
                description=data.description,
                image_url=data.image_url,
                is_public=data.is_public,
            ))
        return self._present(collection, 0)

    def get(self, collection_id: str, requester_id: Optional[str]) -> CollectionOut:
        collection = self.collections.get(collection_id)
        ensure_visible(collection, requester_id, "collection")
        return self._detail(collection, requester_id)

    def list(self, owner_id: str) -> List[CollectionOut]:
        rows = self.collections.get_by_owner(owner_id)
        counts: Dict[str, int] = self.collections.recipe_counts(c.id for c in rows)
        return [self._present(c, counts.get(c.id, 0)) for c in rows]

    def update(self, collection_id: str, requester_id: str, data: CollectionUpdate) -> CollectionOut:
        collection = self.collections.get(collection_id, for_update=True)
        ensure_owner(collection, requester_id, "update", "collection")
        with transaction(self.session):
            for field, value in data.changes().items():
                setattr(collection, field, value)
            self.collections.update(collection)
        return self._detail(collection, requester_id)

    def delete(self, collection_id: str, requester_id: str) -> None:
        collection = self.collections.get(collection_id, for_update=True)
        ensure_owner(collection, requester_id, "delete", "collection")
        with transaction(self.session):
            self.collections.delete(collection)

    def add_recipe(self, collection_id: str, requester_id: str, recipe_id: str) -> None:
        collection = self.collections.get(collection_id, for_update=True)
        ensure_owner(collection, requester_id, "modify", "collection")
        recipe = self.recipes.get(recipe_id)
        ensure_visible(recipe, requester_id, "recipe")
        with transaction(self.session):
            self.collections.add_recipe(collection.id, recipe.id)
            self.collections.update(collection)

    def remove_recipe(self, collection_id: str, requester_id: str, recipe_id: str) -> None:
        collection = self.collections.get(collection_id, for_update=True)
        ensure_owner(collection, requester_id, "modify", "collection")
        with transaction(self.session):
            self.collections.remove_recipe(collection.id, recipe_id)
            self.collections.update(collection)
