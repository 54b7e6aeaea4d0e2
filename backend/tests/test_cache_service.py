"""Tests for CacheService: key building, TTLs, degradation and batch operations."""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from arcana.services.cache import (
    KEY_PREFIX_DAILY_CARD,
    KEY_PREFIX_POSTER,
    KEY_PREFIX_RATE,
    KEY_PREFIX_RELATIONSHIP,
    TTL_DAILY_CARD,
    TTL_POSTER,
    TTL_RELATIONSHIP_SESSION,
    CacheService,
    CacheStats,
    create_redis_client,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _available_service() -> tuple[CacheService, MagicMock]:
    """Return a CacheService with a mocked Redis client."""
    client = MagicMock()
    return CacheService(client, key_prefix="tarot:"), client


def _counting_fetcher(value: Any) -> tuple[AsyncMock, Any]:
    fetcher = AsyncMock(return_value=value)
    return fetcher, value


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_no_client_when_not_configured(self, test_settings):
        assert create_redis_client(test_settings) is None

    def test_from_settings_without_credentials_is_unavailable(self, test_settings):
        svc = CacheService.from_settings(test_settings)
        assert svc.is_available is False
        assert svc.key_prefix == test_settings.cache_key_prefix

    def test_client_built_from_credentials(self, test_settings):
        settings = test_settings.model_copy(update={
            "upstash_redis_rest_url": "https://example.upstash.io",
            "upstash_redis_rest_token": "token",
        })
        with patch("arcana.services.cache.base.Redis") as redis_cls:
            client = create_redis_client(settings)
        redis_cls.assert_called_once_with(url="https://example.upstash.io", token="token")
        assert client is redis_cls.return_value


# ---------------------------------------------------------------------------
# Key generation
# ---------------------------------------------------------------------------

class TestKeyGeneration:
    def test_default_prefix_applied(self, cache_service):
        assert cache_service.build_key("k") == "test:k"

    def test_explicit_prefix_replaces_default(self, cache_service):
        assert cache_service.build_key("k", "a:") == "a:k"

    def test_empty_prefix_means_raw_key(self, cache_service):
        assert cache_service.build_key("k", "") == "k"

    def test_integer_parts(self, cache_service):
        assert cache_service._make_key("daily_card", 42, "2026-10-18") == "daily_card:42:2026-10-18"

    @pytest.mark.parametrize("prefix,parts,expected", [
        (KEY_PREFIX_RELATIONSHIP, ("rel_1", "A"), "relationship:session:rel_1:A"),
        (KEY_PREFIX_POSTER, ("abc",), "poster:abc"),
        (KEY_PREFIX_DAILY_CARD, ("user:1", "2026-10-18"), "daily_card:user:1:2026-10-18"),
        (KEY_PREFIX_RATE, ("session", "user:1", 7), "rate:session:user:1:7"),
    ])
    def test_standard_keys(self, cache_service, prefix, parts, expected):
        assert cache_service._make_key(prefix, *parts) == expected


class TestTTLConstants:
    def test_session_ttl_is_ten_minutes(self):
        assert TTL_RELATIONSHIP_SESSION == 600

    def test_poster_ttl_is_a_week(self):
        assert TTL_POSTER == 604800

    def test_daily_card_ttl_is_a_day(self):
        assert TTL_DAILY_CARD == 86400


# ---------------------------------------------------------------------------
# Behaviour against the in-memory backend
# ---------------------------------------------------------------------------

class TestStringOperations:
    async def test_set_then_get(self, cache_service):
        await cache_service.set("k", {"a": [1, 2]})
        assert await cache_service.get("k") == {"a": [1, 2]}

    async def test_missing_key_is_none(self, cache_service):
        assert await cache_service.get("absent") is None

    async def test_value_expires_after_ttl(self, cache_service, clock):
        await cache_service.set("k", "v", ttl=1)
        clock.advance(1.1)
        assert await cache_service.get("k") is None

    async def test_value_alive_before_ttl(self, cache_service, clock):
        await cache_service.set("k", "v", ttl=10)
        clock.advance(9)
        assert await cache_service.get("k") == "v"

    @pytest.mark.parametrize("ttl", [None, 0])
    async def test_no_ttl_persists(self, cache_service, clock, ttl):
        await cache_service.set("k", "v", ttl=ttl)
        clock.advance(365 * 24 * 3600)
        assert await cache_service.get("k") == "v"
        assert await cache_service.ttl("k") == -1

    async def test_delete(self, cache_service):
        await cache_service.set("k", "v")
        await cache_service.delete("k")
        assert await cache_service.get("k") is None
        assert await cache_service.exists("k") is False

    async def test_prefixes_do_not_collide(self, cache_service):
        await cache_service.set("k", "v1", prefix="a:")
        await cache_service.set("k", "v2", prefix="b:")
        assert await cache_service.get("k", prefix="a:") == "v1"
        assert await cache_service.get("k", prefix="b:") == "v2"
        assert await cache_service.get("k") is None

    async def test_values_stored_under_namespace(self, cache_service, fake_redis):
        await cache_service.set("k", {"x": 1})
        assert json.loads(fake_redis.store["test:k"]) == {"x": 1}

    async def test_ttl_and_expire(self, cache_service, clock):
        assert await cache_service.ttl("k") == -2
        await cache_service.set("k", "v", ttl=100)
        assert await cache_service.ttl("k") == 100
        assert await cache_service.expire("k", 500) is True
        clock.advance(200)
        assert await cache_service.ttl("k") == 300

    async def test_expire_missing_key(self, cache_service):
        assert await cache_service.expire("absent", 10) is False

    async def test_incr_and_decr(self, cache_service):
        assert await cache_service.incr("n") == 1
        assert await cache_service.incr("n") == 2
        assert await cache_service.decr("n") == 1


class TestBatchOperations:
    async def test_mget_aligned_with_keys(self, cache_service):
        await cache_service.set("a", 1)
        await cache_service.set("c", {"z": 3})
        assert await cache_service.mget(["a", "b", "c"]) == [1, None, {"z": 3}]

    async def test_mget_empty(self, cache_service):
        assert await cache_service.mget([]) == []

    async def test_mset_with_ttl(self, cache_service, clock):
        await cache_service.mset({"a": 1, "b": 2}, ttl=5)
        assert await cache_service.mget(["a", "b"]) == [1, 2]
        clock.advance(6)
        assert await cache_service.mget(["a", "b"]) == [None, None]

    async def test_mset_without_ttl(self, cache_service):
        await cache_service.mset({"a": 1, "b": 2})
        assert await cache_service.ttl("a") == -1

    async def test_flush_is_namespace_scoped(self, cache_service, fake_redis):
        await cache_service.set("poster:1", "x")
        await cache_service.set("poster:2", "y")
        await cache_service.set("daily_card:u", "z")
        await fake_redis.set("other:key", "keep")

        assert await cache_service.flush("poster:*") == 2
        assert await cache_service.get("daily_card:u") == "z"

        assert await cache_service.flush() == 1
        assert await fake_redis.get("other:key") == "keep"

    async def test_flush_nothing_to_delete(self, cache_service):
        assert await cache_service.flush() == 0


class TestGetOrFetch:
    async def test_fetches_once_then_memoizes(self, cache_service):
        fetcher, value = _counting_fetcher({"card": 7})

        first = await cache_service.get_or_fetch("daily", fetcher, ttl=60)
        second = await cache_service.get_or_fetch("daily", fetcher, ttl=60)

        assert first == second == value
        fetcher.assert_awaited_once()
        assert cache_service.stats.fetches == 1

    async def test_refetches_after_expiry(self, cache_service, clock):
        fetcher, _ = _counting_fetcher("v")
        await cache_service.get_or_fetch("k", fetcher, ttl=60)
        clock.advance(61)
        await cache_service.get_or_fetch("k", fetcher, ttl=60)
        assert fetcher.await_count == 2

    async def test_fetcher_error_propagates(self, cache_service):
        fetcher = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await cache_service.get_or_fetch("k", fetcher)
        assert await cache_service.get("k") is None


# ---------------------------------------------------------------------------
# Degraded mode
# ---------------------------------------------------------------------------

@pytest.fixture(params=["unavailable_cache", "failing_cache"])
def degraded_cache(request) -> CacheService:
    return request.getfixturevalue(request.param)


class TestDegradedMode:
    @pytest.mark.parametrize("method,args,expected", [
        ("get", ("k",), None),
        ("set", ("k", "v", 60), None),
        ("delete", ("k",), None),
        ("exists", ("k",), False),
        ("ttl", ("k",), -2),
        ("expire", ("k", 60), False),
        ("incr", ("k",), 0),
        ("decr", ("k",), 0),
        ("mget", (["k1", "k2"],), [None, None]),
        ("mset", ({"k1": 1}, 60), None),
        ("mset", ({"k1": 1},), None),
        ("flush", (), 0),
        ("check_health", (), False),
        ("get_poster", ("p",), None),
        ("get_session_creator", ("rel_1",), None),
    ])
    async def test_operations_return_safe_defaults(self, degraded_cache, method, args, expected):
        assert await getattr(degraded_cache, method)(*args) == expected

    async def test_get_or_fetch_always_calls_fetcher(self, degraded_cache):
        fetcher, value = _counting_fetcher([1, 2, 3])
        for _ in range(3):
            assert await degraded_cache.get_or_fetch("k", fetcher, ttl=60) == value
        assert fetcher.await_count == 3

    async def test_session_claim_fails_closed(self, degraded_cache):
        assert await degraded_cache.claim_session_computation("rel_1") is False

    async def test_connect_reports_unhealthy(self, degraded_cache):
        assert await degraded_cache.connect() is False

    async def test_errors_are_counted(self, failing_cache):
        await failing_cache.get("k")
        await failing_cache.set("k", "v")
        assert failing_cache.stats.errors == 2
        assert failing_cache.stats.misses == 1

    def test_is_available_false_without_client(self, unavailable_cache):
        assert unavailable_cache.is_available is False


# ---------------------------------------------------------------------------
# Client call shapes (mock Redis)
# ---------------------------------------------------------------------------

class TestClientCalls:
    async def test_set_with_ttl(self):
        svc, client = _available_service()
        client.set = AsyncMock()
        await svc.set("k", "v", ttl=60)
        client.set.assert_awaited_once_with("tarot:k", '"v"', ex=60)

    async def test_set_without_ttl(self):
        svc, client = _available_service()
        client.set = AsyncMock()
        await svc.set("k", {"a": 1})
        client.set.assert_awaited_once_with("tarot:k", '{"a": 1}')

    async def test_mget_single_round_trip(self):
        svc, client = _available_service()
        client.mget = AsyncMock(return_value=['"x"', None])
        assert await svc.mget(["a", "b"]) == ["x", None]
        client.mget.assert_awaited_once_with("tarot:a", "tarot:b")

    async def test_mset_with_ttl_uses_pipeline(self):
        svc, client = _available_service()
        pipe = MagicMock()
        pipe.exec = AsyncMock(return_value=[True, True])
        client.pipeline = MagicMock(return_value=pipe)

        await svc.mset({"a": 1, "b": 2}, ttl=30)

        pipe.set.assert_any_call("tarot:a", "1", ex=30)
        pipe.set.assert_any_call("tarot:b", "2", ex=30)
        pipe.exec.assert_awaited_once()

    async def test_disconnect_closes_client(self):
        svc, client = _available_service()
        client.close = AsyncMock()
        await svc.disconnect()
        client.close.assert_awaited_once()

    async def test_disconnect_swallows_errors(self):
        svc, client = _available_service()
        client.close = AsyncMock(side_effect=ConnectionError("gone"))
        await svc.disconnect()

    async def test_connect_pings(self):
        svc, client = _available_service()
        client.ping = AsyncMock(return_value="PONG")
        assert await svc.connect() is True


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

class TestStats:
    async def test_hits_and_misses(self, cache_service):
        await cache_service.set("k", "v")
        await cache_service.get("k")
        await cache_service.get("absent")
        stats = cache_service.stats.as_dict()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["sets"] == 1
        assert stats["hit_rate"] == 0.5

    def test_hit_rate_without_lookups(self):
        assert CacheStats().hit_rate == 0.0

    def test_reset(self):
        stats = CacheStats(hits=3, misses=1, sets=2, errors=1, fetches=1)
        stats.reset()
        assert stats.as_dict() == {
            "hits": 0, "misses": 0, "sets": 0, "errors": 0, "fetches": 0, "hit_rate": 0.0,
        }
