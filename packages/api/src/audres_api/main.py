# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from audres_db import SessionLocal
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .admin import setup_admin
from .core.config import settings
from .routes import analytics, audit, catalog, health, public, ratings, requests
from .schemas.error import ErrorResponse
from .services.catalog import seed_default_catalog
from .services.storage import init_storage_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Start storage and seed the catalog before serving."""
    logging.basicConfig(level=settings.LOG_LEVEL)
    init_storage_service(settings)
    if settings.SEED_CATALOG:
        async with SessionLocal() as session:
            added = await seed_default_catalog(session)
        logger.info("Catalog seeded with %d new entries", added)
    yield


app = FastAPI(
    title="AUDRES API",
    description="Registrar document request portal",
    version=__version__,
    lifespan=lifespan,
)

# browser portal origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


_PROBLEM_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def _problem(
    request: Request,
    status_code: int,
    detail: str,
    errors: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an RFC 7807 body, echoing the caller's X-Request-ID when present."""
    body = ErrorResponse(
        type="about:blank",
        title=_PROBLEM_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        errors=errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _problem(request, exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters all surface as one 422."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        "Rejected %s %s: %d validation error(s)",
        request.method,
        request.url.path,
        len(errors),
    )
    return _problem(request, 422, "Request validation failed", errors=errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    response = _problem(request, 500, "An unexpected error occurred.")
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return response


for router, prefix, tag in (
    (health.router, "/health", "health"),
    (public.router, "/api/public", "public"),
    (catalog.router, "/api/catalog", "catalog"),
    (requests.router, "/api/requests", "requests"),
    (analytics.router, "/api/analytics", "analytics"),
    (ratings.router, "/api/ratings", "ratings"),
    (audit.router, "/api/audit", "audit"),
):
    app.include_router(router, prefix=prefix, tags=[tag])

# record browser for registrar heads at /admin
setup_admin(app)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Welcome to the AUDRES API"}
