from __future__ import annotations
import time
from typing import Optional, Set

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..errors import ErrorResponse
from ..rate_limit_store import RateLimitStore, default_store
from ..security import InvalidToken, validate_token


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Límite por cliente con token bucket. La clave es el ``sub`` del bearer token si es válido;
    si no, la IP del cliente. El almacén se inyecta para poder compartirlo o sustituirlo en tests.
    """
    def __init__(self, app, store: Optional[RateLimitStore] = None):
        super().__init__(app)
        self.store = store or default_store()
        self.exempt: Set[str] = {"/health", "/metrics", "/docs", "/openapi.json"}

    def _identity(self, request: Request) -> str:
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            try:
                return "user:" + validate_token(auth.split(" ", 1)[1].strip()).subject
            except InvalidToken:
                pass  # token inválido: cuenta como su IP; la ruta responderá 401
        client = request.client.host if request.client else "unknown"
        return "ip:" + client

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt or request.method == "OPTIONS":
            return await call_next(request)

        if not self.store.allow(self._identity(request), time.monotonic()):
            err = ErrorResponse(code="rate_limited", detail="Rate limit exceeded")
            return JSONResponse(status_code=429, content=err.model_dump())
        return await call_next(request)
