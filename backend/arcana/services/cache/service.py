"""Main CacheService combining all cache operations."""

from fastapi import Request

from arcana.services.cache.assets import DailyCardCacheMixin, PosterCacheMixin
from arcana.services.cache.relationship import RelationshipCacheMixin


class CacheService(RelationshipCacheMixin, PosterCacheMixin, DailyCardCacheMixin):
    """Async Redis caching service with graceful degradation.

    Combines all cache operations through multiple inheritance:
    - BaseCacheOperations: Namespaced Redis primitives and read-through helper
    - RelationshipCacheMixin: Two-party session keys
    - PosterCacheMixin: Poster image blobs
    - DailyCardCacheMixin: Per-user daily card memoization
    """

    pass


def get_cache_service(request: Request) -> CacheService:
    """FastAPI dependency returning the instance owned by the app lifespan."""
    return request.app.state.cache_service  # type: ignore[no-any-return]
