from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional
import hashlib
import uuid

import bcrypt
import jwt
from fastapi import Depends, Header
from sqlmodel import Session

from .config import settings
from .db import get_session
from .errors import AuthenticationFailed, ValidationFailed
from .repositories.users import UserRepository

ALGO = "HS256"
REQUIRED_CLAIMS = ("sub", "email", "kind", "iat", "exp")
MAX_PASSWORD_BYTES = 72  # límite de bcrypt


# --- Contraseñas ---

def hash_password(password: str) -> str:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_cost)
    return bcrypt.hashpw(raw, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # hash corrupto o con formato desconocido
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash fijo para comparar cuando el email no existe: el login tarda lo mismo en ambos casos."""
    return hash_password(uuid.uuid4().hex)


def password_fingerprint(password_hash: str) -> str:
    # cambia con cada nueva contraseña: invalida los tokens de reset ya emitidos
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


# --- Tokens ---

class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"
    reset = "reset"


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    fingerprint: Optional[str] = None


class InvalidToken(Exception):
    """Firma, caducidad o formato inválidos. No se distingue la causa hacia fuera."""


def ttl_for(kind: TokenKind) -> timedelta:
    minutes = {
        TokenKind.access: settings.jwt_access_expire_minutes,
        TokenKind.refresh: settings.jwt_refresh_expire_minutes,
        TokenKind.reset: settings.jwt_reset_expire_minutes,
    }[kind]
    return timedelta(minutes=minutes)


def issue_token(
    user_id: str,
    email: str,
    kind: TokenKind,
    ttl: Optional[timedelta] = None,
    fingerprint: Optional[str] = None,
) -> str:
    now = datetime.now(tz=timezone.utc)
    payload: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "kind": kind.value,
        "iat": int(now.timestamp()),
        "exp": int((now + (ttl if ttl is not None else ttl_for(kind))).timestamp()),
        # jti evita tokens idénticos emitidos en el mismo segundo
        "jti": uuid.uuid4().hex,
    }
    if fingerprint is not None:
        payload["pwd"] = fingerprint
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)


def validate_token(token: str) -> TokenClaims:
    """
    Decodifica y valida un token; falla cerrado ante cualquier campo ausente o con tipo incorrecto.
    """
    try:
        data = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGO],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.InvalidTokenError as exc:
        raise InvalidToken() from exc

    if any(k not in data for k in REQUIRED_CLAIMS):
        raise InvalidToken()
    sub, email, kind = data["sub"], data["email"], data["kind"]
    if not isinstance(sub, str) or not isinstance(email, str) or not isinstance(kind, str):
        raise InvalidToken()
    try:
        uuid.UUID(sub)
        token_kind = TokenKind(kind)
        iat = datetime.fromtimestamp(int(data["iat"]), tz=timezone.utc)
        exp = datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc)
    except (ValueError, TypeError) as exc:
        raise InvalidToken() from exc
    fingerprint = data.get("pwd")
    if fingerprint is not None and not isinstance(fingerprint, str):
        raise InvalidToken()
    return TokenClaims(
        subject=sub, email=email, kind=token_kind, issued_at=iat, expires_at=exp, fingerprint=fingerprint,
    )


# --- Dependencias FastAPI ---

def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
        return parts[1].strip()
    return None


def _principal_from_header(session: Session, authorization: Optional[str]) -> Optional[str]:
    token = _extract_bearer(authorization)
    if token is None:
        if authorization:
            raise AuthenticationFailed("Invalid authorization header format")
        return None
    try:
        claims = validate_token(token)
    except InvalidToken:
        raise AuthenticationFailed("Invalid token")
    if claims.kind is not TokenKind.access:
        raise AuthenticationFailed("Invalid token")

    if UserRepository(session).find_active(claims.subject) is None:
        raise AuthenticationFailed("Invalid token")
    return claims.subject


def get_current_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    session: Session = Depends(get_session),
) -> str:
    user_id = _principal_from_header(session, authorization)
    if user_id is None:
        raise AuthenticationFailed("Authorization header required")
    return user_id


def get_optional_user(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    session: Session = Depends(get_session),
) -> Optional[str]:
    """Lecturas públicas: sin cabecera se atiende como anónimo, con cabecera inválida es 401."""
    return _principal_from_header(session, authorization)
