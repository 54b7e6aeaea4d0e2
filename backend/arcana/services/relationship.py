"""Two-party relationship readings coordinated through TTL-scoped cache keys.

Flow per session id:

1. ``create_session`` writes ``creator`` (the only key that names the owner).
2. Each participant calls ``submit``; the slot is ``A`` when the submitter is
   the creator and ``B`` otherwise, so arrival order does not matter.
3. The submit that observes both slots filled claims the compute-once guard,
   runs the shared interpretation over A's cards followed by B's, and writes
   ``result``.
4. Clients poll until ``result`` appears. After the TTL lapses with no
   activity every key is gone and the session reads as never created.

The cache is the only store; there is no cross-key transaction, only the
atomic INCR on the guard key.
"""

import secrets
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from arcana.core.exceptions import SessionFullError, SessionNotFoundError
from arcana.core.logging import get_logger
from arcana.services.cache import (
    SLOT_A,
    SLOT_B,
    SLOT_CREATOR,
    SLOT_RESULT,
    TTL_RELATIONSHIP_SESSION,
    CacheService,
)
from arcana.services.interpretation import InterpretationService

logger = get_logger(__name__)

SESSION_ID_PREFIX = "rel_"

UserLookup = Callable[[list[int]], Awaitable[dict[int, dict[str, Any]]]]


def new_session_id() -> str:
    """Millisecond timestamp plus three random digits, e.g. ``rel_1760790000123042``."""
    return f"{SESSION_ID_PREFIX}{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def merge_cards(a: dict[str, Any], b: dict[str, Any]) -> list[dict[str, Any]]:
    return [*a.get("cards", []), *b.get("cards", [])]


def merge_questions(a: dict[str, Any], b: dict[str, Any]) -> str:
    return " / ".join(q for q in (a.get("question"), b.get("question")) if q)


@dataclass
class SessionStatus:
    """What a participant sees after submitting or polling."""

    ready: bool
    result: dict[str, Any] | None = None


class RelationshipService:
    """Create, join and complete two-party sessions."""

    def __init__(
        self,
        cache: CacheService,
        interpretation: InterpretationService,
        ttl: int = TTL_RELATIONSHIP_SESSION,
    ) -> None:
        self.cache = cache
        self.interpretation = interpretation
        self.ttl = ttl

    @staticmethod
    def slot_for(creator: dict[str, Any], user_id: int) -> str:
        return SLOT_A if creator.get("userId") == user_id else SLOT_B

    async def create_session(self, user_id: int) -> str:
        session_id = new_session_id()
        await self.cache.set_session_creator(session_id, user_id, self.ttl)
        logger.info("Relationship session created", session_id=session_id, user_id=user_id)
        return session_id

    async def get_creator(self, session_id: str) -> dict[str, Any]:
        creator = await self.cache.get_session_creator(session_id)
        if creator is None:
            raise SessionNotFoundError(session_id)
        return creator

    async def submit(
        self,
        session_id: str,
        user_id: int,
        cards: list[dict[str, Any]],
        question: str,
    ) -> SessionStatus:
        """Store the caller's selection and complete the session when both sides are in.

        Raises:
            SessionNotFoundError: the session never existed or has expired
            SessionFullError: a third participant tried to take slot B
        """
        creator = await self.get_creator(session_id)
        slot = self.slot_for(creator, user_id)

        existing = await self.cache.get_session_slot(session_id, slot)
        if existing is None:
            await self.cache.set_session_slot(
                session_id,
                slot,
                {"userId": user_id, "cards": cards, "question": question},
                self.ttl,
            )
            logger.info("Relationship submission stored", session_id=session_id, slot=slot, user_id=user_id)
        elif existing.get("userId") != user_id:
            logger.warning("Relationship session full", session_id=session_id, user_id=user_id)
            raise SessionFullError(session_id)
        else:
            logger.debug("Repeated submission ignored", session_id=session_id, slot=slot)

        await self.cache.touch_session(session_id, self.ttl)

        state = await self.cache.get_session_state(session_id)
        if state[SLOT_RESULT] is not None:
            return SessionStatus(ready=True, result=state[SLOT_RESULT])

        a, b = state[SLOT_A], state[SLOT_B]
        if a is None or b is None:
            return SessionStatus(ready=False)

        return await self._complete(session_id, a, b)

    async def _complete(
        self,
        session_id: str,
        a: dict[str, Any],
        b: dict[str, Any],
    ) -> SessionStatus:
        if not await self.cache.claim_session_computation(session_id, self.ttl):
            # Another request owns the computation; its result shows up on poll
            logger.info("Relationship computation already claimed", session_id=session_id)
            return SessionStatus(ready=False)

        try:
            reading = await self.interpretation.interpret(
                merge_cards(a, b),
                merge_questions(a, b),
                persona="relationship",
            )
        except Exception:
            await self.cache.release_session_computation(session_id)
            raise

        result = {**reading, "participants": [a.get("userId"), b.get("userId")]}
        await self.cache.set_session_result(session_id, result, self.ttl)
        logger.info("Relationship session completed", session_id=session_id, source=reading.get("source"))
        return SessionStatus(ready=True, result=result)

    async def poll(self, session_id: str) -> SessionStatus:
        """Unknown and expired sessions read as not ready rather than missing."""
        result = await self.cache.get_session_slot(session_id, SLOT_RESULT)
        return SessionStatus(ready=result is not None, result=result)

    async def detail(self, session_id: str, lookup_users: UserLookup) -> dict[str, Any]:
        """Both submissions with display identities, plus the result if any."""
        state = await self.cache.get_session_state(session_id)
        if all(state[slot] is None for slot in (SLOT_CREATOR, SLOT_A, SLOT_B)):
            raise SessionNotFoundError(session_id)

        user_ids = [
            side["userId"]
            for side in (state[SLOT_A], state[SLOT_B])
            if side is not None and isinstance(side.get("userId"), int)
        ]
        users = await lookup_users(user_ids) if user_ids else {}

        def _side(side: dict[str, Any] | None) -> dict[str, Any] | None:
            if side is None:
                return None
            return {**side, "user": users.get(side.get("userId"))}  # type: ignore[arg-type]

        return {
            "A": _side(state[SLOT_A]),
            "B": _side(state[SLOT_B]),
            "result": state[SLOT_RESULT],
        }
