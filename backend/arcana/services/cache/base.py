"""Base cache operations - namespaced Redis primitives with graceful degradation.

Every operation absorbs backend failures and returns a safe default
(``None``/``False``/``0``/``-2``/``[]``) so a cache outage degrades callers
to "always recompute" instead of failing the request. Failures are logged
and counted in :class:`CacheStats` so degraded mode stays observable.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from upstash_redis.asyncio import Redis

from arcana.core.config import Settings, get_settings
from arcana.core.logging import get_logger
from arcana.services.cache.serialization import deserialize, serialize

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """In-process counters for cache traffic."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    errors: int = 0
    fetches: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return round(self.hits / lookups, 4) if lookups else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {**asdict(self), "hit_rate": self.hit_rate}

    def reset(self) -> None:
        self.hits = self.misses = self.sets = self.errors = self.fetches = 0


def create_redis_client(settings: Settings | None = None) -> Redis | None:
    """Build the Upstash client from settings, or None when not configured."""
    settings = settings or get_settings()

    if not settings.redis_available:
        logger.info("Redis cache not configured, caching disabled")
        return None

    try:
        client = Redis(
            url=settings.upstash_redis_rest_url,
            token=settings.upstash_redis_rest_token,
        )
        logger.info("Redis cache client created")
        return client
    except Exception as e:
        logger.warning("Failed to initialize Redis cache", error=str(e))
        return None


class BaseCacheOperations:
    """Low-level Redis operations with graceful degradation."""

    def __init__(self, client: Redis | None = None, key_prefix: str | None = None) -> None:
        self._client = client
        self._prefix = key_prefix if key_prefix is not None else get_settings().cache_key_prefix
        self.stats = CacheStats()

    @classmethod
    def from_settings(cls, settings: Settings | None = None):
        """Create a service wired to the configured backend."""
        settings = settings or get_settings()
        return cls(create_redis_client(settings), settings.cache_key_prefix)

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        return self._client is not None

    @property
    def key_prefix(self) -> str:
        return self._prefix

    def build_key(self, key: str, prefix: str | None = None) -> str:
        """Namespace a logical key; an explicit prefix (even "") replaces the default."""
        return f"{self._prefix if prefix is None else prefix}{key}"

    def _make_key(self, prefix: str, *parts: str | int) -> str:
        """Create a logical key from prefix and parts."""
        return f"{prefix}:{':'.join(str(p) for p in parts)}"

    def _record_error(self, op: str, error: Exception, **fields: Any) -> None:
        self.stats.errors += 1
        logger.debug(f"Cache {op} failed", error=str(error), **fields)

    # ========== Lifecycle ==========

    async def connect(self) -> bool:
        """Verify connectivity at startup; never raises."""
        if not self.is_available:
            logger.info("Cache running in degraded mode (no backend)")
            return False

        healthy = await self.check_health()
        if healthy:
            logger.info("Redis cache connected", prefix=self._prefix)
        else:
            logger.warning("Redis cache unreachable, continuing in degraded mode")
        return healthy

    async def disconnect(self) -> None:
        """Release the backend client."""
        if self._client is None:
            return
        try:
            await self._client.close()  # type: ignore[union-attr]
            logger.info("Redis cache disconnected")
        except Exception as e:
            logger.warning("Error disconnecting Redis cache", error=str(e))

    # ========== String operations ==========

    async def get(self, key: str, *, prefix: str | None = None) -> Any:
        """Get a deserialized value; None when absent, expired or unreachable."""
        if not self.is_available:
            self.stats.misses += 1
            return None

        cache_key = self.build_key(key, prefix)
        try:
            raw = await self._client.get(cache_key)  # type: ignore[union-attr]
        except Exception as e:
            self.stats.misses += 1
            self._record_error("get", e, key=cache_key)
            return None

        if raw is None:
            self.stats.misses += 1
            logger.debug("Cache miss", key=cache_key)
            return None

        self.stats.hits += 1
        logger.debug("Cache hit", key=cache_key)
        return deserialize(raw)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        *,
        prefix: str | None = None,
    ) -> None:
        """Store a value; a positive ttl expires it, otherwise it persists."""
        if not self.is_available:
            logger.debug("Cache unavailable, skipping set", key=key)
            return

        cache_key = self.build_key(key, prefix)
        payload = serialize(value)
        try:
            if ttl and ttl > 0:
                await self._client.set(cache_key, payload, ex=ttl)  # type: ignore[union-attr]
            else:
                await self._client.set(cache_key, payload)  # type: ignore[union-attr]
            self.stats.sets += 1
            logger.debug("Cache set", key=cache_key, ttl=ttl)
        except Exception as e:
            self._record_error("set", e, key=cache_key)

    async def delete(self, key: str, *, prefix: str | None = None) -> None:
        """Delete a value from cache."""
        if not self.is_available:
            return

        cache_key = self.build_key(key, prefix)
        try:
            await self._client.delete(cache_key)  # type: ignore[union-attr]
            logger.debug("Cache deleted", key=cache_key)
        except Exception as e:
            self._record_error("delete", e, key=cache_key)

    async def exists(self, key: str, *, prefix: str | None = None) -> bool:
        if not self.is_available:
            return False

        cache_key = self.build_key(key, prefix)
        try:
            return int(await self._client.exists(cache_key)) > 0  # type: ignore[union-attr]
        except Exception as e:
            self._record_error("exists", e, key=cache_key)
            return False

    async def ttl(self, key: str, *, prefix: str | None = None) -> int:
        """Remaining seconds; -1 without expiry, -2 when absent or unreachable."""
        if not self.is_available:
            return -2

        cache_key = self.build_key(key, prefix)
        try:
            return int(await self._client.ttl(cache_key))  # type: ignore[union-attr]
        except Exception as e:
            self._record_error("ttl", e, key=cache_key)
            return -2

    async def expire(self, key: str, seconds: int, *, prefix: str | None = None) -> bool:
        if not self.is_available:
            return False

        cache_key = self.build_key(key, prefix)
        try:
            result = await self._client.expire(cache_key, seconds)  # type: ignore[union-attr]
            logger.debug("Cache TTL updated", key=cache_key, ttl=seconds)
            return bool(result)
        except Exception as e:
            self._record_error("expire", e, key=cache_key)
            return False

    # ========== Counters ==========

    async def incr(self, key: str, *, prefix: str | None = None) -> int:
        """Atomically increment; 0 signals the backend is unavailable."""
        if not self.is_available:
            return 0

        cache_key = self.build_key(key, prefix)
        try:
            return int(await self._client.incr(cache_key))  # type: ignore[union-attr]
        except Exception as e:
            self._record_error("incr", e, key=cache_key)
            return 0

    async def decr(self, key: str, *, prefix: str | None = None) -> int:
        if not self.is_available:
            return 0

        cache_key = self.build_key(key, prefix)
        try:
            return int(await self._client.decr(cache_key))  # type: ignore[union-attr]
        except Exception as e:
            self._record_error("decr", e, key=cache_key)
            return 0

    # ========== Batch operations ==========

    async def mget(self, keys: list[str], *, prefix: str | None = None) -> list[Any]:
        """Get multiple values in a single request, positionally aligned with keys."""
        if not keys:
            return []
        if not self.is_available:
            self.stats.misses += len(keys)
            return [None] * len(keys)

        cache_keys = [self.build_key(k, prefix) for k in keys]
        try:
            results = await self._client.mget(*cache_keys)  # type: ignore[union-attr]
        except Exception as e:
            self.stats.misses += len(keys)
            self._record_error("mget", e, keys=cache_keys)
            return [None] * len(keys)

        values = [deserialize(r) for r in results]
        found = sum(1 for r in results if r is not None)
        self.stats.hits += found
        self.stats.misses += len(keys) - found
        return values

    async def mset(
        self,
        mapping: dict[str, Any],
        ttl: int | None = None,
        *,
        prefix: str | None = None,
    ) -> None:
        """Set multiple values; the same TTL applies to every key."""
        if not self.is_available or not mapping:
            return

        payload = {self.build_key(k, prefix): serialize(v) for k, v in mapping.items()}
        try:
            if ttl and ttl > 0:
                pipe = self._client.pipeline()  # type: ignore[union-attr]
                for cache_key, value in payload.items():
                    pipe.set(cache_key, value, ex=ttl)
                await pipe.exec()
            else:
                await self._client.mset(payload)  # type: ignore[union-attr]
            self.stats.sets += len(payload)
            logger.debug("Multiple cache keys set", count=len(payload), ttl=ttl)
        except Exception as e:
            self._record_error("mset", e, count=len(payload))

    async def flush(self, pattern: str | None = None) -> int:
        """Delete keys under the default namespace, optionally filtered by pattern.

        Without a pattern the whole namespace is cleared; reserved for admin
        and debug paths. Uses KEYS, so keep namespaces small.
        """
        if not self.is_available:
            return 0

        match = f"{self._prefix}{pattern or '*'}"
        try:
            keys = await self._client.keys(match)  # type: ignore[union-attr]
            if not keys:
                return 0
            await self._client.delete(*keys)  # type: ignore[union-attr]
            logger.info("Flushed cache keys", pattern=match, count=len(keys))
            return len(keys)
        except Exception as e:
            self._record_error("flush", e, pattern=match)
            return 0

    # ========== Read-through helper ==========

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl: int | None = None,
        *,
        prefix: str | None = None,
    ) -> T:
        """Return the cached value or produce, store and return a fresh one.

        No locking: concurrent misses may each run the fetcher. Errors raised
        by the fetcher itself propagate to the caller.
        """
        cached = await self.get(key, prefix=prefix)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        self.stats.fetches += 1
        data = await fetcher()
        await self.set(key, data, ttl, prefix=prefix)
        return data

    # ========== Health check ==========

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Check Redis connectivity with timeout."""
        if not self.is_available:
            return False

        try:
            result = await asyncio.wait_for(
                self._client.ping(),  # type: ignore[union-attr]
                timeout=timeout,
            )
            return bool(result)
        except asyncio.TimeoutError:
            self.stats.errors += 1
            logger.error("Redis health check timed out", timeout=timeout)
            return False
        except Exception as e:
            self.stats.errors += 1
            logger.error("Redis health check failed", error=str(e))
            return False
