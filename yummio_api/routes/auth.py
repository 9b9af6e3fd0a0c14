from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from ..db import get_session
from ..errors import ErrorResponse
from ..schemas import (
    ForgotPasswordRequest, LoginRequest, LoginResponse, MessageResponse, RefreshRequest, RegisterRequest,
    ResetPasswordRequest,
)
from ..services.auth import AuthService
from ..services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=201,
    summary="Registro de usuario; devuelve tokens de acceso y refresco",
    responses={409: {"model": ErrorResponse}},
)
def register(data: RegisterRequest = Body(..., examples=[
    {"name": "Ann", "email": "ann@example.com", "password": "secret1"}
]), session: Session = Depends(get_session)):
    return AuthService(session).register(data)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login con email y contraseña",
    responses={401: {"model": ErrorResponse}},
)
def login(data: LoginRequest, session: Session = Depends(get_session)):
    return AuthService(session).login(data)


@router.post(
    "/refresh",
    response_model=LoginResponse,
    summary="Canjear un refresh token por un par nuevo",
    responses={401: {"model": ErrorResponse}},
)
def refresh(data: RefreshRequest, session: Session = Depends(get_session)):
    return AuthService(session).refresh(data.refresh_token)


@router.post("/forgot-password", response_model=MessageResponse, summary="Solicitar restablecimiento de contraseña")
def forgot_password(
    data: ForgotPasswordRequest,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    AuthService(session).forgot_password(data.email, notifier)
    return MessageResponse(message="If the email exists, a password reset link has been sent")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Restablecer contraseña con un token de tipo reset",
    responses={400: {"model": ErrorResponse}},
)
def reset_password(data: ResetPasswordRequest, session: Session = Depends(get_session)):
    AuthService(session).reset_password(data.token, data.new_password)
    return MessageResponse(message="Password reset successfully")
