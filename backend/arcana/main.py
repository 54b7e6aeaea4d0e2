"""FastAPI application entry point."""

import asyncio as _asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from arcana.api import (
    auth_router,
    cache_router,
    cards_router,
    health_router,
    posters_router,
    relationship_router,
    users_router,
)
from arcana.core.config import get_settings
from arcana.core.exceptions import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from arcana.core.logging import get_logger, setup_logging
from arcana.db.session import close_db, init_db
from arcana.services.cache import CacheService
from arcana.services.llm import get_llm_service
from arcana.services.rate_limit import RateLimitService

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Startup:
    - Initialize database connections
    - Create the cache service and rate limiter (degraded if Redis is down)
    - Pre-warm the LLM adapter to eliminate first-request latency

    Shutdown:
    - Close cache, LLM and database connections
    """
    settings = get_settings()

    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    # Initialize database with retry logic for transient connection failures
    for _attempt in range(3):
        try:
            await init_db()
            break
        except Exception as exc:
            if _attempt == 2:
                logger.error("Failed to initialize database after 3 attempts", error=str(exc))
                raise
            logger.warning(
                "Database init failed, retrying...",
                attempt=_attempt + 1,
                error=str(exc),
            )
            await _asyncio.sleep(2 ** _attempt)
    logger.info("Database initialized")

    cache_service = CacheService.from_settings(settings)
    await cache_service.connect()
    app.state.cache_service = cache_service
    app.state.rate_limit_service = RateLimitService(cache_service)

    llm_service = get_llm_service()
    llm_service.prewarm_adapters()

    yield

    # Cleanup
    logger.info("Shutting down application")

    await cache_service.disconnect()
    logger.info("Cache connections closed")

    await llm_service.close()
    logger.info("LLM adapter connections closed")

    await close_db()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Any, call_next: Any) -> Any:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not get_settings().debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Tarot mini-program API: card draws, shared relationship readings and share posters",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Register exception handlers
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    for router in (
        auth_router,
        users_router,
        cards_router,
        relationship_router,
        posters_router,
        cache_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app


# Create application instance
app = create_app()
