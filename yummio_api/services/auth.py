"""
Flujos de credenciales: registro, login, renovación y restablecimiento de contraseña.

Los fallos de login son genéricos ("invalid email or password") y forgot-password responde igual
exista o no el email.
"""
from __future__ import annotations
import logging

from sqlmodel import Session

from ..config import settings
from ..db import transaction
from ..errors import AuthenticationFailed, Conflict, ValidationFailed
from ..models_db import User
from ..repositories.users import UserRepository
from ..schemas import LoginRequest, LoginResponse, RegisterRequest, UserOut
from ..security import (
    InvalidToken, TokenKind, dummy_password_hash, hash_password, issue_token, password_fingerprint,
    validate_token, verify_password,
)
from .notifier import Notifier

logger = logging.getLogger("yummio.auth")

INVALID_CREDENTIALS = "invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)

    def _tokens(self, user: User) -> LoginResponse:
        return LoginResponse(
            user=UserOut.model_validate(user),
            access_token=issue_token(user.id, user.email, TokenKind.access),
            refresh_token=issue_token(user.id, user.email, TokenKind.refresh),
            expires_in=settings.jwt_access_expire_minutes * 60,
        )

    def register(self, data: RegisterRequest) -> LoginResponse:
        email = normalize_email(data.email)
        if self.users.email_taken(email):
            raise Conflict("user with this email already exists")
        password_hash = hash_password(data.password)
        with transaction(self.session):
            user = self.users.create(User(name=data.name.strip(), email=email, password_hash=password_hash))
        logger.info("User registered: %s", user.id)
        return self._tokens(user)

    def login(self, data: LoginRequest) -> LoginResponse:
        email = normalize_email(data.email)
        user = self.users.find_by_email(email)
        password_hash = user.password_hash if user is not None else dummy_password_hash()
        if not verify_password(data.password, password_hash) or user is None:
            logger.info("Login failed for %s", email)
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        return self._tokens(user)

    def refresh(self, refresh_token: str) -> LoginResponse:
        try:
            claims = validate_token(refresh_token)
        except InvalidToken:
            raise AuthenticationFailed("invalid refresh token")
        if claims.kind is not TokenKind.refresh:
            raise AuthenticationFailed("invalid token type")
        user = self.users.find_active(claims.subject)
        if user is None:
            raise AuthenticationFailed("invalid refresh token")
        return self._tokens(user)

    def forgot_password(self, email: str, notifier: Notifier) -> None:
        user = self.users.find_by_email(normalize_email(email))
        if user is None:
            return
        token = issue_token(
            user.id, user.email, TokenKind.reset, fingerprint=password_fingerprint(user.password_hash)
        )
        try:
            notifier.send(user.email, token)
        except Exception:
            # nunca se propaga: la respuesta no debe delatar si el email existe
            logger.exception("Notifier failed for password reset of user %s", user.id)

    def reset_password(self, token: str, new_password: str) -> None:
        try:
            claims = validate_token(token)
        except InvalidToken:
            raise ValidationFailed("invalid or expired reset token")
        if claims.kind is not TokenKind.reset:
            raise ValidationFailed("invalid token type")
        user = self.users.find_active(claims.subject)
        if user is None or claims.fingerprint != password_fingerprint(user.password_hash):
            # token ya usado o emitido antes del último cambio de contraseña
            raise ValidationFailed("invalid or expired reset token")
        password_hash = hash_password(new_password)
        with transaction(self.session):
            user.password_hash = password_hash
            self.users.update(user)
        logger.info("Password reset for user %s", user.id)
