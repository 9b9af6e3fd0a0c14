from __future__ import annotations

from sqlmodel import Session

from ..db import transaction
from ..errors import ValidationFailed
from ..repositories.users import UserRepository
from ..schemas import ChangePasswordRequest, UserOut, UserUpdate
from ..security import hash_password, verify_password


class UserService:
    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)

    def get_profile(self, user_id: str) -> UserOut:
        return UserOut.model_validate(self.users.get(user_id))

    def update_profile(self, user_id: str, data: UserUpdate) -> UserOut:
        user = self.users.get(user_id)
        with transaction(self.session):
            for field, value in data.changes().items():
                setattr(user, field, value)
            self.users.update(user)
        return UserOut.model_validate(user)

    def change_password(self, user_id: str, data: ChangePasswordRequest) -> None:
        user = self.users.get(user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise ValidationFailed("current password is incorrect")
        new_hash = hash_password(data.new_password)
        with transaction(self.session):
            user.password_hash = new_hash
            self.users.update(user)

    def delete_profile(self, user_id: str) -> None:
        user = self.users.get(user_id)
        with transaction(self.session):
            self.users.delete(user)
