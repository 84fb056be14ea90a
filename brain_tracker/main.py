# brain_tracker/main.py

import logging
import asyncio
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.openapi.utils import get_openapi
from contextlib import asynccontextmanager

from brain_tracker import __version__
from brain_tracker.adapters.configuration.config import settings
from brain_tracker.adapters.outbound.persistence.database import connection_manager
from brain_tracker.domain.exceptions import TrackerException

# ─── UNIQUE LOGGING CONFIGURATION ─────────────────────────────────────────────────
level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connects to the database (with retries) and starts the refresh token
    cleanup task; stops it on shutdown.
    """
    logger.info("Application starting up...")

    if settings.USE_MEMORY_STORE:
        logger.warning("Using the in-process store; data is lost on restart")
    else:
        await connection_manager.connect()

    app.state.cleanup_task = asyncio.create_task(
        periodic_cleanup(settings.REFRESH_TOKEN_CLEANUP_INTERVAL_SECONDS)
    )

    yield

    logger.info("Application shutting down...")
    app.state.cleanup_task.cancel()
    try:
        await app.state.cleanup_task
    except asyncio.CancelledError:
        pass


# Create FastAPI instance
app = FastAPI(
    title="CS BRAIN TRACKER",
    description="Authentication API for the learning-capture tracker",
    version=__version__,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


@app.exception_handler(TrackerException)
async def tracker_exception_handler(request: Request, exc: TrackerException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.internal_code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed input is a 400 here, not FastAPI's 422
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    logger.info(f"Validation error on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "code": "VALIDATION_ERROR", "errors": errors},
    )


# Middlewares (the last one added runs first)
from brain_tracker.shared.middleware import (
    AsyncExceptionMiddleware,
    AsyncRequestLoggingMiddleware,
    AsyncRateLimitingMiddleware,
    AsyncSecurityHeadersMiddleware,
    AsyncDeviceFingerprintMiddleware,
    AsyncAccessTokenMiddleware,
)

app.add_middleware(AsyncAccessTokenMiddleware)
app.add_middleware(AsyncDeviceFingerprintMiddleware)
app.add_middleware(AsyncSecurityHeadersMiddleware)
app.add_middleware(AsyncRequestLoggingMiddleware)
app.add_middleware(AsyncRateLimitingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Device-Fingerprint", "X-Request-ID"],
)
app.add_middleware(AsyncExceptionMiddleware)

# Routers
from brain_tracker.adapters.inbound.api.v1.router import api_router as api_v1_router
from brain_tracker.adapters.inbound.api.v1.endpoints import health_endpoint

app.include_router(health_endpoint.router, prefix="/health", tags=["Health"])
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def redirect_to_docs():
    return RedirectResponse(url="/docs")


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    spec = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    # Validation errors are reported as 400, drop FastAPI's 422 schemas
    for schema in ("HTTPValidationError", "ValidationError"):
        spec.get("components", {}).get("schemas", {}).pop(schema, None)

    for path in spec.get("paths", {}).values():
        for op in path.values():
            op.get("responses", {}).pop("422", None)

    spec.setdefault("components", {})["securitySchemes"] = {
        "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    }

    app.openapi_schema = spec
    return spec


app.openapi = custom_openapi


# ── REFRESH TOKEN CLEANUP TASK ────────────────────────────────────────────────
async def cleanup_refresh_tokens() -> int:
    """Deletes expired refresh token records."""
    from brain_tracker.adapters.outbound.persistence.repositories import get_refresh_token_repository

    repository = get_refresh_token_repository()
    now = datetime.now(timezone.utc)
    if settings.USE_MEMORY_STORE:
        deleted = await repository.cleanup_expired(None, now)
    else:
        from brain_tracker.adapters.outbound.persistence.database import get_db_context

        async with get_db_context() as db:
            deleted = await repository.cleanup_expired(db, now)
    logger.info(f"Cleaned up {deleted} expired refresh tokens")
    return deleted


async def periodic_cleanup(interval_seconds: int):
    """Background task to periodically clean up expired refresh tokens."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await cleanup_refresh_tokens()
        except asyncio.CancelledError:
            logger.info("Refresh token cleanup task cancelled")
            break
        except Exception as e:
            logger.exception(f"Error in cleanup_refresh_tokens: {e}")
