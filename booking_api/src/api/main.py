from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, List
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.application.results import Result
from src.application.validation import group_pydantic_errors
from src.core.context import RequestContext
from src.core.deps import close_cache, get_request_context
from src.core.errors import AppError, ValidationError
from src.core.logging import configure_logging, correlation_id_var, tenant_id_var, user_id_var
from src.core.settings import get_app_settings
from src.db.run_migrations import main as run_alembic
from src.db.seed import seed_all
from src.schemas.common import MessageResponse, TenantEcho

# Routers
from src.api.routes.admin import router as admin_router
from src.api.routes.appointments import router as appointments_router
from src.api.routes.auth import router as auth_router
from src.api.routes.customers import router as customers_router
from src.api.routes.employees import router as employees_router
from src.api.routes.public_booking import router as public_booking_router
from src.api.routes.services import router as services_router
from src.api.routes.settings import router as settings_router
from src.api.routes.tenants import router as tenants_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe and request context echo."},
    {"name": "Auth", "description": "Login, registration, token refresh and user administration."},
    {"name": "Tenants", "description": "Business signup and tenant administration."},
    {"name": "Customers", "description": "Customers of the caller's business."},
    {"name": "Employees", "description": "Staff, their services and working hours."},
    {"name": "Services", "description": "Bookable services."},
    {"name": "Appointments", "description": "Bookings, status changes and availability."},
    {"name": "Settings", "description": "Business settings and typed views."},
    {"name": "Admin", "description": "Data retention."},
    {"name": "Public Booking", "description": "Anonymous booking page addressed by subdomain."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind correlation, tenant and user ids for logging and echo 'X-Correlation-ID'.

    The tenant header is recorded as sent; the request dependencies replace it
    with the resolved tenant once the token has been read.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    tenant = request.headers.get("X-Tenant-ID")
    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(tenant)
    token_user = user_id_var.set(None)
    request.state.correlation_id = corr
    request.state.tenant_id = tenant

    started = time.perf_counter()
    try:
        response = await call_next(request)
        logger.info(
            "%s %s -> %s in %.1f ms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
    finally:
        correlation_id_var.reset(token_corr)
        tenant_id_var.reset(token_tenant)
        user_id_var.reset(token_user)

    response.headers["X-Correlation-ID"] = corr
    return response


def _error_response(status_code: int, errors: List[str], message: str | None = None, headers: Any = None) -> JSONResponse:
    """Build the standard envelope for a failed request."""
    body = Result[None].failure(*errors, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Translate application exceptions (validation, not found, forbidden, unauthenticated)."""
    return _error_response(exc.status_code, exc.errors, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global handler for HTTPException to produce the standard envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _error_response(exc.status_code, [str(detail)], str(detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return _error_response(422, errors, "Request validation failed")


@app.exception_handler(PydanticValidationError)
async def request_model_error_handler(request: Request, exc: PydanticValidationError):
    """Commands and queries built from query parameters fail here; same shape as pipeline validation."""
    return await app_error_handler(request, ValidationError(group_pydantic_errors(exc)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _error_response(500, ["An unexpected error occurred"], "An unexpected error occurred")


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    This ensures the database schema is up to date. Seeding is opt-in via settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # Alembic's env.py drives its own event loop, so it runs off the server loop.
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)
            # Safe to continue without seed; environments may not require it.


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_cache()


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/context",
    response_model=TenantEcho,
    summary="Request Context Echo",
    description="Echoes the resolved tenant and caller to verify token, header and subdomain handling.",
    tags=["Health"],
)
async def context_echo(ctx: RequestContext = Depends(get_request_context)) -> TenantEcho:
    """Echo the tenant and caller resolved for this request."""
    return TenantEcho(tenant_id=ctx.tenant_id, user_id=ctx.user_id, roles=list(ctx.roles))


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(tenants_router)
api_v1.include_router(customers_router)
api_v1.include_router(employees_router)
api_v1.include_router(services_router)
api_v1.include_router(appointments_router)
api_v1.include_router(settings_router)
api_v1.include_router(admin_router)
api_v1.include_router(public_booking_router)

# Attach api_v1 to app
app.include_router(api_v1)
