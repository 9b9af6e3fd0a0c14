from __future__ import annotations
from typing import Dict, Iterable, Optional

from sqlmodel import Session, select

from ..errors import NotFound
from ..models_db import User, utcnow


class UserRepository:
    """Acceso a la tabla ``users``. Nunca confirma: la transacción la abre quien llama."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user

    def find_active(self, user_id: str) -> Optional[User]:
        user = self.session.get(User, user_id)
        if user is None or user.deleted_at is not None:
            return None
        return user

    def get(self, user_id: str) -> User:
        user = self.find_active(user_id)
        if user is None:
            raise NotFound("user not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        ).first()

    def email_taken(self, email: str) -> bool:
        # cuenta también las filas borradas: el email sigue siendo único en la tabla
        return self.session.exec(select(User.id).where(User.email == email)).first() is not None

    def by_ids(self, user_ids: Iterable[str]) -> Dict[str, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.session.exec(select(User).where(User.id.in_(ids))).all()
        return {u.id: u for u in rows}

    def update(self, user: User) -> User:
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.flush()
        return user

    def delete(self, user: User) -> None:
        user.deleted_at = utcnow()
        self.update(user)
