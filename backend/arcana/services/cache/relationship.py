"""Relationship session keys - the rendezvous medium for two-party readings.

A session is four TTL-scoped keys sharing an id:
``relationship:session:{id}:creator|A|B|result`` plus a compute-once
``lock`` counter. There is no cross-key transaction; each key is only as
consistent as a single Redis write.
"""

from typing import Any

from arcana.services.cache.base import BaseCacheOperations
from arcana.services.cache.constants import (
    KEY_PREFIX_RELATIONSHIP,
    SLOT_A,
    SLOT_B,
    SLOT_CREATOR,
    SLOT_LOCK,
    SLOT_RESULT,
    TTL_RELATIONSHIP_SESSION,
)

SESSION_SLOTS = (SLOT_CREATOR, SLOT_A, SLOT_B, SLOT_RESULT)


class RelationshipCacheMixin(BaseCacheOperations):
    """Relationship session caching operations."""

    def session_key(self, session_id: str, slot: str) -> str:
        return self._make_key(KEY_PREFIX_RELATIONSHIP, session_id, slot)

    async def set_session_creator(
        self,
        session_id: str,
        user_id: int,
        ttl: int = TTL_RELATIONSHIP_SESSION,
    ) -> None:
        await self.set(self.session_key(session_id, SLOT_CREATOR), {"userId": user_id}, ttl)

    async def get_session_creator(self, session_id: str) -> dict[str, Any] | None:
        data = await self.get(self.session_key(session_id, SLOT_CREATOR))
        return data if isinstance(data, dict) else None

    async def get_session_slot(self, session_id: str, slot: str) -> dict[str, Any] | None:
        data = await self.get(self.session_key(session_id, slot))
        return data if isinstance(data, dict) else None

    async def set_session_slot(
        self,
        session_id: str,
        slot: str,
        submission: dict[str, Any],
        ttl: int = TTL_RELATIONSHIP_SESSION,
    ) -> None:
        await self.set(self.session_key(session_id, slot), submission, ttl)

    async def get_session_state(self, session_id: str) -> dict[str, dict[str, Any] | None]:
        """Read creator, A, B and result in one round trip."""
        values = await self.mget([self.session_key(session_id, s) for s in SESSION_SLOTS])
        return {
            slot: value if isinstance(value, dict) else None
            for slot, value in zip(SESSION_SLOTS, values)
        }

    async def set_session_result(
        self,
        session_id: str,
        result: dict[str, Any],
        ttl: int = TTL_RELATIONSHIP_SESSION,
    ) -> None:
        await self.set(self.session_key(session_id, SLOT_RESULT), result, ttl)

    async def touch_session(self, session_id: str, ttl: int = TTL_RELATIONSHIP_SESSION) -> None:
        """Restart the inactivity window on every key of the session.

        The result and guard move with the slots so a session expires as a
        whole; absent keys are skipped by EXPIRE.
        """
        for slot in (*SESSION_SLOTS, SLOT_LOCK):
            await self.expire(self.session_key(session_id, slot), ttl)

    async def claim_session_computation(
        self,
        session_id: str,
        ttl: int = TTL_RELATIONSHIP_SESSION,
    ) -> bool:
        """Return True for exactly one caller per session (first INCR wins)."""
        lock_key = self.session_key(session_id, SLOT_LOCK)
        count = await self.incr(lock_key)
        if count == 1:
            await self.expire(lock_key, ttl)
        return count == 1

    async def release_session_computation(self, session_id: str) -> None:
        await self.delete(self.session_key(session_id, SLOT_LOCK))
