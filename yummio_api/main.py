import logging

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from prometheus_fastapi_instrumentator import Instrumentator

from .config import settings
from .db import init_db
from .routes.auth import router as auth_router
from .routes.users import router as users_router
from .routes.recipes import router as recipes_router
from .routes.collections import router as collections_router
from .routes.shopping_lists import router as shopping_lists_router
from .routes.upload import router as upload_router
from .middleware.rate_limit import RateLimitMiddleware
from .middleware.size_limit import SizeLimitMiddleware
from .rate_limit_store import default_store
from .errors import install_exception_handlers

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("yummio")

API_PREFIX = "/api/v1"

TAGS_METADATA = [
    {"name": "auth", "description": "Registro, login JWT, refresco y restablecimiento de contraseña."},
    {"name": "users", "description": "Perfil del usuario autenticado."},
    {"name": "recipes", "description": "Recetas: listados, búsqueda, destacadas, CRUD, favoritas y valoraciones."},
    {"name": "collections", "description": "Colecciones de recetas del usuario."},
    {"name": "shopping-lists", "description": "Listas de la compra y sus items."},
    {"name": "upload", "description": "Subida de imágenes."},
    {"name": "admin", "description": "Salud del servicio."},
]

app = FastAPI(
    title="Yummio API",
    version="1.0.0",
    description="Backend de Yummio: recetas, colecciones y listas de la compra.",
    default_response_class=ORJSONResponse,
    openapi_tags=TAGS_METADATA,
    contact={"name": "Equipo Yummio", "email": "dev@yummio.local"},
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.parsed_cors_origins(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.parsed_cors_methods(),
    allow_headers=settings.parsed_cors_headers(),
)

# Middlewares
rate_limit_store = default_store()
app.add_middleware(SizeLimitMiddleware)                            # 413 si Content-Length excede
app.add_middleware(RateLimitMiddleware, store=rate_limit_store)    # 429 si se agota el bucket

# Prometheus
instrumentator = Instrumentator().instrument(app)
instrumentator.expose(app, include_in_schema=False, endpoint="/metrics")

# Exception handlers
install_exception_handlers(app)


@app.on_event("startup")
def startup():
    init_db()
    logger.info("Yummio API started (env=%s)", settings.service_env)


# Routers
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(recipes_router, prefix=API_PREFIX)
app.include_router(collections_router, prefix=API_PREFIX)
app.include_router(shopping_lists_router, prefix=API_PREFIX)
app.include_router(upload_router, prefix=API_PREFIX)


@app.get("/health", tags=["admin"], summary="Healthcheck simple")
def health():
    return {"status": "ok", "service": "yummio-api", "env": settings.service_env}


# --- OpenAPI servers ---
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=TAGS_METADATA,
    )
    schema["servers"] = [{"url": settings.server_public_url, "description": f"{settings.service_env}"}]
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi  # type: ignore
