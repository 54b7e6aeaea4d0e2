"""Rate limiting on top of the cache service.

Fixed-window counters: the first INCR in a window sets the key's expiry.
Fails open when the cache is unavailable (INCR reports 0).
"""

import time

from fastapi import Request

from arcana.core.config import get_settings
from arcana.core.logging import get_logger
from arcana.services.cache import KEY_PREFIX_RATE, CacheService

logger = get_logger(__name__)


class RateLimitService:
    """Fixed-window rate limiter backed by cache counters."""

    def __init__(self, cache: CacheService) -> None:
        settings = get_settings()
        self.cache = cache
        self._enabled = settings.rate_limit_enabled
        self._window_seconds = settings.rate_limit_window_seconds
        self._session_limit = settings.rate_limit_session_requests_per_window

        if self._enabled:
            logger.info(
                "Rate limiting initialized",
                window_seconds=self._window_seconds,
                session_limit=self._session_limit,
            )
        else:
            logger.info("Rate limiting disabled")

    @property
    def is_enabled(self) -> bool:
        """Check if rate limiting is enabled."""
        return self._enabled

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    async def _check_limit(self, scope: str, identifier: str, limit: int) -> tuple[bool, int]:
        """Count this request against the current window.

        Returns:
            Tuple of (allowed, remaining_requests); remaining is -1 when unknown
        """
        if not self._enabled:
            return True, -1

        window = int(time.time()) // self._window_seconds
        key = self.cache._make_key(KEY_PREFIX_RATE, scope, identifier, window)

        count = await self.cache.incr(key)
        if count == 0:
            return True, -1
        if count == 1:
            await self.cache.expire(key, self._window_seconds * 2)

        return count <= limit, max(0, limit - count)

    async def check_session_limit(self, identifier: str) -> tuple[bool, int]:
        """Check the relationship session create/submit limit."""
        return await self._check_limit("session", identifier, self._session_limit)


def get_rate_limit_service(request: Request) -> RateLimitService:
    """FastAPI dependency returning the instance owned by the app lifespan."""
    return request.app.state.rate_limit_service  # type: ignore[no-any-return]
