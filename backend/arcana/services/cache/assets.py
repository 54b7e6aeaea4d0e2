"""Poster blob and daily card cache operations."""

from collections.abc import Awaitable, Callable
from typing import Any

from arcana.services.cache.base import BaseCacheOperations
from arcana.services.cache.constants import (
    KEY_PREFIX_DAILY_CARD,
    KEY_PREFIX_POSTER,
    TTL_DAILY_CARD,
    TTL_POSTER,
)


class PosterCacheMixin(BaseCacheOperations):
    """Short-lived image store layered on the cache backend."""

    async def set_poster(
        self,
        poster_id: str,
        base64_data: str,
        mime_type: str,
        user_id: int,
    ) -> None:
        key = self._make_key(KEY_PREFIX_POSTER, poster_id)
        await self.set(
            key,
            {"base64": base64_data, "mimeType": mime_type, "userId": user_id},
            TTL_POSTER,
        )

    async def get_poster(self, poster_id: str) -> dict[str, Any] | None:
        key = self._make_key(KEY_PREFIX_POSTER, poster_id)
        data = await self.get(key)
        if isinstance(data, dict) and isinstance(data.get("base64"), str):
            return data
        return None


class DailyCardCacheMixin(BaseCacheOperations):
    """One memoized card draw per user per day."""

    async def get_daily_card(
        self,
        user_key: str | int,
        day: str,
        draw: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        key = self._make_key(KEY_PREFIX_DAILY_CARD, user_key, day)
        return await self.get_or_fetch(key, draw, TTL_DAILY_CARD)
