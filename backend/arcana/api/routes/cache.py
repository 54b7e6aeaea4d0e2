"""Cache observability endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from arcana.api.deps import Cache
from arcana.api.schemas import CacheFlushResponse, CacheStatsResponse
from arcana.core.config import get_settings
from arcana.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get(
    "/stats",
    response_model=CacheStatsResponse,
    summary="Cache traffic counters",
)
async def cache_stats(cache: Cache) -> CacheStatsResponse:
    """Hits, misses, writes and absorbed errors since process start."""
    return CacheStatsResponse(
        available=cache.is_available,
        key_prefix=cache.key_prefix,
        **cache.stats.as_dict(),
    )


@router.post(
    "/flush",
    response_model=CacheFlushResponse,
    summary="Delete keys in this namespace (debug only)",
    responses={404: {"description": "Not available outside debug mode"}},
)
async def flush_cache(
    cache: Cache,
    pattern: Annotated[str | None, Query(max_length=200)] = None,
) -> CacheFlushResponse:
    """Delete keys under the configured prefix matching ``pattern`` (default all)."""
    if not get_settings().debug:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    deleted = await cache.flush(pattern)
    logger.warning("Cache namespace flushed", pattern=pattern or "*", deleted_count=deleted)
    return CacheFlushResponse(pattern=pattern or "*", deleted_count=deleted)
