"""Async Redis caching service using Upstash.

Provides a namespaced, failure-tolerant key-value layer:
- String (SET/GET): JSON-serialized values with per-call TTL and prefix
- Counters (INCR/DECR): rate limits and compute-once guards
- Batch (MGET/pipelined SET): session state reads, bulk writes
- Read-through helper (get_or_fetch) for memoized computations

Every operation degrades to a safe default when the backend is unavailable.
"""

from arcana.services.cache.base import CacheStats, create_redis_client
from arcana.services.cache.constants import (
    KEY_PREFIX_DAILY_CARD,
    KEY_PREFIX_POSTER,
    KEY_PREFIX_RATE,
    KEY_PREFIX_RELATIONSHIP,
    SLOT_A,
    SLOT_B,
    SLOT_CREATOR,
    SLOT_LOCK,
    SLOT_RESULT,
    TTL_DAILY_CARD,
    TTL_POSTER,
    TTL_RELATIONSHIP_SESSION,
)
from arcana.services.cache.serialization import deserialize, serialize
from arcana.services.cache.service import CacheService, get_cache_service

__all__ = [
    # TTL constants
    "TTL_DAILY_CARD",
    "TTL_POSTER",
    "TTL_RELATIONSHIP_SESSION",
    # Key prefix constants
    "KEY_PREFIX_DAILY_CARD",
    "KEY_PREFIX_POSTER",
    "KEY_PREFIX_RATE",
    "KEY_PREFIX_RELATIONSHIP",
    # Session slots
    "SLOT_A",
    "SLOT_B",
    "SLOT_CREATOR",
    "SLOT_LOCK",
    "SLOT_RESULT",
    # Serialization
    "deserialize",
    "serialize",
    # Service
    "CacheService",
    "CacheStats",
    "create_redis_client",
    "get_cache_service",
]
