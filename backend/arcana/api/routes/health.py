"""Health check and monitoring endpoints."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from functools import partial
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from arcana.api.deps import Cache
from arcana.api.schemas import HealthResponse, ServiceHealth
from arcana.core.config import get_settings
from arcana.db.session import check_db_health

router = APIRouter(tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get(
    "/",
    summary="Root endpoint",
    response_description="API information and basic health status",
)
async def root() -> dict[str, Any]:
    """Root endpoint with application name, version and environment."""
    settings = get_settings()

    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": _now(),
    }


async def _timed_health_check(
    name: str,
    check_fn: Callable[[], Awaitable[bool]],
    timeout: float = 5.0,
) -> tuple[str, bool, float, str | None]:
    """Execute a health check and measure its latency with timeout.

    Returns:
        Tuple of (name, healthy, latency_ms, error_message)
    """
    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(check_fn(), timeout=timeout)
        return (name, result, (time.perf_counter() - start) * 1000, None)
    except asyncio.TimeoutError:
        return (name, False, (time.perf_counter() - start) * 1000, f"Health check timed out after {timeout}s")
    except Exception as e:
        return (name, False, (time.perf_counter() - start) * 1000, str(e))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    response_description="Detailed health status of all services",
)
async def health_check(cache: Cache) -> HealthResponse:
    """
    Comprehensive health check endpoint for monitoring.

    - **Database**: required; unhealthy makes the whole service unhealthy
    - **Cache**: optional; missing or unreachable only degrades the service

    Checks run in parallel with per-service latency.
    """
    settings = get_settings()
    services: dict[str, ServiceHealth] = {}
    overall_status = "healthy"

    tasks = [_timed_health_check("database", check_db_health)]
    if cache.is_available:
        tasks.append(_timed_health_check("cache", partial(cache.check_health, settings.cache_health_timeout)))

    for name, healthy, latency, error in await asyncio.gather(*tasks):
        if name == "database":
            details: dict[str, Any] = {"type": "postgresql"}
            if error:
                details["error"] = error
            services["database"] = ServiceHealth(
                status="healthy" if healthy else "unhealthy",
                latency_ms=round(latency, 2),
                details=details,
            )
            if not healthy:
                overall_status = "unhealthy"
        else:
            cache_details: dict[str, Any] = {"type": "redis", "provider": "upstash", **cache.stats.as_dict()}
            if error:
                cache_details["error"] = error
            services["cache"] = ServiceHealth(
                status="healthy" if healthy else "degraded",
                latency_ms=round(latency, 2),
                details=cache_details,
            )
            if not healthy and overall_status == "healthy":
                overall_status = "degraded"

    if "cache" not in services:
        services["cache"] = ServiceHealth(
            status="degraded",
            details={"type": "redis", "provider": "not configured"},
        )
        if overall_status == "healthy":
            overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        services=services,
    )


@router.get(
    "/health/live",
    summary="Liveness probe",
)
async def liveness() -> dict[str, str]:
    """Returns 200 while the process is running; no dependency checks."""
    return {"status": "ok", "timestamp": _now()}


@router.get(
    "/health/ready",
    summary="Readiness probe",
)
async def readiness() -> JSONResponse:
    """
    Returns 200 when the database answers, 503 otherwise.

    The cache is not part of readiness: requests are served without it.
    """
    name, healthy, _, error = await _timed_health_check("database", check_db_health)

    if not healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "message": error or "Database connection failed",
                "timestamp": _now(),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ready", "timestamp": _now()},
    )


@router.get(
    "/health/db",
    summary="Database health check",
)
async def database_health() -> JSONResponse:
    """Database connectivity and response time."""
    _, healthy, latency, error = await _timed_health_check("database", check_db_health)

    response_data: dict[str, Any] = {
        "service": "database",
        "type": "postgresql",
        "status": "healthy" if healthy else "unhealthy",
        "latency_ms": round(latency, 2),
        "timestamp": _now(),
    }
    if error:
        response_data["error"] = error

    status_code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=response_data)


@router.get(
    "/health/cache",
    summary="Cache health check",
)
async def cache_health(cache: Cache) -> JSONResponse:
    """
    Cache connectivity, latency and traffic counters.

    Always 200: a missing or unreachable cache is reported as degraded.
    """
    if not cache.is_available:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "service": "cache",
                "type": "redis",
                "provider": "not configured",
                "status": "degraded",
                "message": "Cache service is not configured",
                "stats": cache.stats.as_dict(),
                "timestamp": _now(),
            },
        )

    timeout = get_settings().cache_health_timeout
    _, healthy, latency, error = await _timed_health_check("cache", partial(cache.check_health, timeout))

    response_data: dict[str, Any] = {
        "service": "cache",
        "type": "redis",
        "provider": "upstash",
        "status": "healthy" if healthy else "degraded",
        "latency_ms": round(latency, 2),
        "stats": cache.stats.as_dict(),
        "timestamp": _now(),
    }
    if error:
        response_data["error"] = error

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)
