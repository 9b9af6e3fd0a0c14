from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("yummio.errors")


class ErrorResponse(BaseModel):
    code: str = Field(examples=["bad_request"])
    detail: str = Field(examples=["Invalid input"])
    meta: dict | None = Field(default=None, examples=[{"field": "title"}])


# --- Taxonomía de errores de dominio ---

class DomainError(Exception):
    """
    Fallo clasificado. Cada subclase fija el código HTTP y el ``code`` del sobre de error;
    ``detail`` es siempre un texto legible, nunca una traza.
    """
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, detail: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.meta = meta


class ValidationFailed(DomainError):
    status_code = 400
    code = "bad_request"


class ItemNotInList(ValidationFailed):
    def __init__(self, detail: str = "item does not belong to this shopping list"):
        super().__init__(detail)


class AuthenticationFailed(DomainError):
    status_code = 401
    code = "unauthorized"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class Conflict(DomainError):
    status_code = 409
    code = "conflict"


class PayloadTooLarge(DomainError):
    status_code = 413
    code = "payload_too_large"


class UpstreamFailure(DomainError):
    status_code = 502
    code = "upstream_error"


def install_exception_handlers(app: FastAPI):
    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        payload = ErrorResponse(code=exc.code, detail=exc.detail, meta=exc.meta)
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code_map: Dict[int, str] = {
            400: "bad_request",
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            405: "method_not_allowed",
            409: "conflict",
            413: "payload_too_large",
            422: "validation_error",
            429: "rate_limited",
            500: "internal_error",
        }
        payload = ErrorResponse(code=code_map.get(exc.status_code, "error"), detail=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(), headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def persistence_exception_handler(request: Request, exc: SQLAlchemyError):
        # fallos del motor fuera de una transacción (lecturas): siempre upstream
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
        payload = ErrorResponse(code=UpstreamFailure.code, detail="persistence failure")
        return JSONResponse(status_code=UpstreamFailure.status_code, content=payload.model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        payload = ErrorResponse(code="validation_error", detail="Validation failed", meta={"errors": errors})
        return JSONResponse(status_code=422, content=payload.model_dump())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        payload = ErrorResponse(code="internal_error", detail="Internal server error")
        return JSONResponse(status_code=500, content=payload.model_dump())
