import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db.database import engine, Base, run_startup_migrations
from db import models  # noqa: F401  (registers tables on Base.metadata)
from api.home import router as home_router
from api.checkin import router as checkin_router
from api.recipes import router as recipes_router
from auth.routes import router as auth_router
from services.errors import AuthError, ConflictError, ServiceError, StorageError, ValidationError
from services.recipe_service import ensure_recipes_seeded

logging.basicConfig(
    level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings.validate_security_configuration()

# Create all tables
Base.metadata.create_all(bind=engine)
run_startup_migrations()
ensure_recipes_seeded()

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not settings.SECURITY_HEADERS_ENABLED:
        return response
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
    return response


_ERROR_STATUS: dict[type[ServiceError], int] = {
    ValidationError: 400,
    AuthError: 401,
    ConflictError: 409,
    StorageError: 503,
}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    status_code = next(
        (code for kind, code in _ERROR_STATUS.items() if isinstance(exc, kind)),
        500,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# Routers, mounted at the root and again under the configured base path
_ROUTERS = (home_router, auth_router, checkin_router, recipes_router)
_MOUNTS = [""]
if settings.normalized_base_path:
    _MOUNTS.append(settings.normalized_base_path)

for mount in _MOUNTS:
    for router in _ROUTERS:
        app.include_router(router, prefix=mount)
