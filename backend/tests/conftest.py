"""Test configuration and fixtures.

Provides isolated test fixtures for:
- Database sessions with proper cleanup
- An in-memory Upstash client with a controllable clock
- HTTP client with dependency overrides
- Authenticated user fixtures
"""

import fnmatch
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from arcana.core.config import Settings
from arcana.core.security import create_user_token
from arcana.db.models import Base, User
from arcana.db.session import get_db
from arcana.main import app
from arcana.services.cache import CacheService, get_cache_service
from arcana.services.interpretation import InterpretationService, get_interpretation_service
from arcana.services.rate_limit import RateLimitService, get_rate_limit_service


# Test database URL (SQLite in-memory with shared cache for proper async behavior)
TEST_DATABASE_URL = "sqlite+aiosqlite:///file::memory:?cache=shared&uri=true"
TEST_PREFIX = "test:"


# =============================================================================
# Fake Redis
# =============================================================================

class FakeClock:
    """Manually advanced time source for expiry tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    def __init__(self, client: "FakeUpstash") -> None:
        self._client = client
        self._commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def set(self, key: str, value: str, ex: int | None = None) -> "FakePipeline":
        self._commands.append(("set", (key, value), {"ex": ex}))
        return self

    async def exec(self) -> list[Any]:
        results = []
        for name, args, kwargs in self._commands:
            results.append(await getattr(self._client, name)(*args, **kwargs))
        self._commands.clear()
        return results


class FakeUpstash:
    """In-memory stand-in for ``upstash_redis.asyncio.Redis``.

    Implements the subset of commands the cache layer issues, with
    per-key expiry evaluated against an injectable clock.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.store: dict[str, str] = {}
        self.expires_at: dict[str, float] = {}
        self.closed = False

    def _alive(self, key: str) -> bool:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.clock():
            self.store.pop(key, None)
            self.expires_at.pop(key, None)
        return key in self.store

    async def get(self, key: str) -> str | None:
        return self.store[key] if self._alive(key) else None

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex:
            self.expires_at[key] = self.clock() + ex
        else:
            self.expires_at.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.store.pop(key, None)
            self.expires_at.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._alive(key))

    async def ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        if key not in self.expires_at:
            return -1
        return int(self.expires_at[key] - self.clock())

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self.expires_at[key] = self.clock() + seconds
        return True

    async def incr(self, key: str) -> int:
        value = int(self.store[key]) + 1 if self._alive(key) else 1
        self.store[key] = str(value)
        return value

    async def decr(self, key: str) -> int:
        value = int(self.store[key]) - 1 if self._alive(key) else -1
        self.store[key] = str(value)
        return value

    async def mget(self, *keys: str) -> list[str | None]:
        return [self.store[key] if self._alive(key) else None for key in keys]

    async def mset(self, values: dict[str, str]) -> bool:
        for key, value in values.items():
            await self.set(key, value)
        return True

    async def keys(self, pattern: str) -> list[str]:
        return [key for key in list(self.store) if self._alive(key) and fnmatch.fnmatchcase(key, pattern)]

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self) -> str:
        return "PONG"

    async def close(self) -> None:
        self.closed = True


class FailingUpstash:
    """Client whose every command raises, as when Upstash is unreachable."""

    def __getattr__(self, name: str) -> Any:
        async def _fail(*args: Any, **kwargs: Any) -> Any:
            raise ConnectionError(f"{name}: connection refused")

        if name == "pipeline":
            pipe = MagicMock()
            pipe.exec = _fail
            return lambda: pipe
        return _fail


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        jwt_secret_key="test-secret-key-for-testing-only-min-32-chars",
        debug=True,
        rate_limit_enabled=False,
        upstash_redis_rest_url="",
        upstash_redis_rest_token="",
    )


# =============================================================================
# Cache Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeUpstash:
    return FakeUpstash(clock)


@pytest.fixture
def cache_service(fake_redis: FakeUpstash) -> CacheService:
    """Cache service wired to the in-memory client."""
    return CacheService(fake_redis, key_prefix=TEST_PREFIX)  # type: ignore[arg-type]


@pytest.fixture
def unavailable_cache() -> CacheService:
    """Cache service with no backend configured."""
    return CacheService(None, key_prefix=TEST_PREFIX)


@pytest.fixture
def failing_cache() -> CacheService:
    """Cache service whose backend errors on every call."""
    return CacheService(FailingUpstash(), key_prefix=TEST_PREFIX)  # type: ignore[arg-type]


@pytest.fixture
def template_interpretation() -> InterpretationService:
    """Interpretation service with no LLM provider, so readings are templated."""
    llm = MagicMock()
    llm.configured_provider = MagicMock(return_value=None)
    return InterpretationService(llm_service=llm)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with fresh schema for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session with transaction rollback."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# HTTP Client Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def client(
    test_db: AsyncSession,
    cache_service: CacheService,
    template_interpretation: InterpretationService,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client backed by the in-memory cache and SQLite."""

    async def override_get_db():
        yield test_db

    rate_limiter = RateLimitService(cache_service)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_service] = lambda: cache_service
    app.dependency_overrides[get_rate_limit_service] = lambda: rate_limiter
    app.dependency_overrides[get_interpretation_service] = lambda: template_interpretation

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Authentication Fixtures
# =============================================================================

async def _create_user(db: AsyncSession, openid: str, nickname: str) -> User:
    user = User(
        openid=openid,
        nickname=nickname,
        avatar_url=f"https://cdn.example.com/avatars/{openid}.png",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(test_db: AsyncSession) -> User:
    """Create a test user directly in the database."""
    return await _create_user(test_db, "openid-alice", "Alice")


@pytest_asyncio.fixture(scope="function")
async def second_user(test_db: AsyncSession) -> User:
    """Create a second test user for two-party tests."""
    return await _create_user(test_db, "openid-bob", "Bob")


@pytest_asyncio.fixture(scope="function")
async def third_user(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "openid-carol", "Carol")


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_user_token(user.id)}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    """Auth headers for the pre-created test user."""
    return bearer(test_user)


@pytest.fixture
def second_auth_headers(second_user: User) -> dict[str, str]:
    return bearer(second_user)


@pytest.fixture
def third_auth_headers(third_user: User) -> dict[str, str]:
    return bearer(third_user)
