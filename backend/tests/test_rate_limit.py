"""Tests for RateLimitService: disabled, enabled, window rollover and degraded cache."""

from unittest.mock import patch

import pytest

from arcana.services.cache import CacheService
from arcana.services.rate_limit import RateLimitService

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _service(cache: CacheService, *, enabled: bool = True, limit: int = 3, window: int = 60) -> RateLimitService:
    with patch("arcana.services.rate_limit.get_settings") as m:
        s = m.return_value
        s.rate_limit_enabled = enabled
        s.rate_limit_window_seconds = window
        s.rate_limit_session_requests_per_window = limit
        return RateLimitService(cache)


# ---------------------------------------------------------------------------
# Disabled
# ---------------------------------------------------------------------------

class TestDisabled:
    @pytest.mark.asyncio
    async def test_always_allows(self, cache_service):
        svc = _service(cache_service, enabled=False, limit=1)
        for _ in range(5):
            assert await svc.check_session_limit("user:1") == (True, -1)

    @pytest.mark.asyncio
    async def test_does_not_touch_cache(self, cache_service, fake_redis):
        svc = _service(cache_service, enabled=False)
        await svc.check_session_limit("user:1")
        assert fake_redis.store == {}

    def test_is_enabled_false(self, cache_service):
        assert _service(cache_service, enabled=False).is_enabled is False


# ---------------------------------------------------------------------------
# Enabled
# ---------------------------------------------------------------------------

class TestEnabled:
    @pytest.fixture(autouse=True)
    def _frozen_window(self):
        with patch("arcana.services.rate_limit.time.time", return_value=1_000.0):
            yield

    @pytest.mark.asyncio
    async def test_counts_down_then_blocks(self, cache_service):
        svc = _service(cache_service, limit=3)
        results = [await svc.check_session_limit("user:1") for _ in range(4)]
        assert results == [(True, 2), (True, 1), (True, 0), (False, 0)]

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self, cache_service):
        svc = _service(cache_service, limit=1)
        assert (await svc.check_session_limit("user:1"))[0] is True
        assert (await svc.check_session_limit("user:2"))[0] is True
        assert (await svc.check_session_limit("user:1"))[0] is False

    @pytest.mark.asyncio
    async def test_counter_key_expires(self, cache_service, fake_redis):
        svc = _service(cache_service, window=60)
        with patch("arcana.services.rate_limit.time.time", return_value=120.0):
            await svc.check_session_limit("user:1")

        key = "test:rate:session:user:1:2"
        assert key in fake_redis.store
        assert await fake_redis.ttl(key) == 120

    @pytest.mark.asyncio
    async def test_new_window_resets_count(self, cache_service):
        svc = _service(cache_service, limit=1, window=60)
        with patch("arcana.services.rate_limit.time.time", return_value=60.0):
            assert (await svc.check_session_limit("user:1"))[0] is True
            assert (await svc.check_session_limit("user:1"))[0] is False
        with patch("arcana.services.rate_limit.time.time", return_value=120.0):
            assert (await svc.check_session_limit("user:1"))[0] is True


# ---------------------------------------------------------------------------
# Degraded cache
# ---------------------------------------------------------------------------

class TestFailOpen:
    @pytest.mark.asyncio
    async def test_unavailable_cache_allows(self, unavailable_cache):
        svc = _service(unavailable_cache, limit=1)
        for _ in range(3):
            assert await svc.check_session_limit("user:1") == (True, -1)

    @pytest.mark.asyncio
    async def test_erroring_cache_allows(self, failing_cache):
        svc = _service(failing_cache, limit=1)
        assert await svc.check_session_limit("user:1") == (True, -1)
