"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from src.api import api_router
from src.config import get_settings
from src.constants import CORS_ALLOW_HEADERS
from src.db import async_session_maker, init_db
from src.errors import RecommenderError
from src.services.feedback import embedding_worker
from src.utils.cache import cache
from src.utils.http_client import close_all_clients
from src.utils.logging import get_logger, setup_logging
from src.utils.metrics import MetricsMiddleware, metrics

settings = get_settings()
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "0.1.0"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # JSON API: never framed, no referrer leakage
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # HSTS (only in production)
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await init_db()
    logger.info("Database initialized")

    # Initialize Redis cache
    if await cache.connect():
        logger.info("Redis cache connected")
    else:
        logger.warning("Redis cache unavailable - running without caching")

    await embedding_worker.start()

    yield

    # Graceful shutdown: let queued embedding jobs finish first
    logger.info("Shutting down background tasks...")
    await embedding_worker.stop()

    await cache.close()
    logger.info("Redis cache closed")

    await close_all_clients()
    logger.info("HTTP clients closed")

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=APP_VERSION,
    lifespan=lifespan,
)

# Middleware (order matters - first added = last executed)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(MetricsMiddleware)  # Collect HTTP metrics
app.add_middleware(GZipMiddleware, minimum_size=500)  # Compress responses > 500 bytes

# Browser clients call the API directly from any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)

# Routers
app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are client errors with field-level detail."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.info(f"Validation error on {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "Invalid input data", "details": details}),
    )


@app.exception_handler(RecommenderError)
async def recommender_error_handler(request: Request, exc: RecommenderError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    if exc.status >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    content: dict = {"error": exc.message, "code": exc.code}
    details = getattr(exc, "details", None)
    if details:
        content["details"] = details
    headers = {"WWW-Authenticate": "Bearer"} if exc.status == 401 else None
    return JSONResponse(status_code=exc.status, content=content, headers=headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic server error; details stay in the server log."""
    logger.exception(f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})


# Store app start time for uptime tracking
_app_start_time = datetime.now(UTC)


@app.get("/health", include_in_schema=True, tags=["monitoring"])
async def health_check() -> JSONResponse:
    """Health check endpoint for monitoring and load balancers.

    Returns:
        JSONResponse with status, uptime, and service health checks.
    """
    from sqlalchemy import text

    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
        "version": APP_VERSION,
        "checks": {},
    }

    try:
        async with async_session_maker() as db:
            await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception:
        health_status["checks"]["database"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    try:
        await cache.ping()
        health_status["checks"]["redis"] = {"status": "healthy"}
    except Exception:
        health_status["checks"]["redis"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    health_status["checks"]["embedding_worker"] = {
        "status": "running" if embedding_worker.running else "stopped",
        "queued": embedding_worker.queue.qsize(),
    }

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/metrics", include_in_schema=True, tags=["monitoring"])
async def prometheus_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus-formatted metrics text.
    """
    return Response(
        content=metrics.format_prometheus(),
        media_type="text/plain; charset=utf-8",
    )
