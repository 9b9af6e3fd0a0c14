from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..db import get_session
from ..errors import ErrorResponse
from ..schemas import ChangePasswordRequest, MessageResponse, UserOut, UserUpdate
from ..security import get_current_user
from ..services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=UserOut, summary="Perfil del usuario autenticado")
def get_profile(session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    return UserService(session).get_profile(user_id)


@router.put("/profile", response_model=UserOut, summary="Actualizar nombre y/o avatar")
def update_profile(
    data: UserUpdate,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    return UserService(session).update_profile(user_id, data)


@router.delete("/profile", response_model=MessageResponse, summary="Borrar la cuenta (soft-delete)")
def delete_profile(session: Session = Depends(get_session), user_id: str = Depends(get_current_user)):
    UserService(session).delete_profile(user_id)
    return MessageResponse(message="Profile deleted successfully")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Cambiar contraseña verificando la actual",
    responses={400: {"model": ErrorResponse}},
)
def change_password(
    data: ChangePasswordRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user),
):
    UserService(session).change_password(user_id, data)
    return MessageResponse(message="Password changed successfully")
