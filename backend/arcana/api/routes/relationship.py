"""Two-party relationship reading endpoints."""

from fastapi import APIRouter, status

from arcana.api.deps import CurrentUser, DBSession, Relationships, SessionRateLimit
from arcana.api.schemas import (
    DisplayIdentity,
    SessionCreateResponse,
    SessionDetailResponse,
    SessionMetaResponse,
    SessionStatusResponse,
    SessionSubmitRequest,
)
from arcana.core.logging import get_logger
from arcana.services.users import get_display_identities

logger = get_logger(__name__)
router = APIRouter(prefix="/divination/relationship/session", tags=["Relationship"])


@router.post(
    "/create",
    response_model=SessionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[SessionRateLimit],
    summary="Open a relationship session",
    responses={429: {"description": "Rate limit exceeded"}},
)
async def create_session(
    current_user: CurrentUser,
    relationships: Relationships,
) -> SessionCreateResponse:
    """
    Open a session owned by the caller.

    Share the returned id with the other participant. The session lapses
    after ten minutes without a submission.
    """
    session_id = await relationships.create_session(current_user.id)
    return SessionCreateResponse(session_id=session_id, expires_in=relationships.ttl)


@router.get(
    "/{session_id}/meta",
    response_model=SessionMetaResponse,
    summary="Who opened the session",
    responses={404: {"description": "Session not found or expired"}},
)
async def session_meta(
    session_id: str,
    db: DBSession,
    relationships: Relationships,
) -> SessionMetaResponse:
    """Creator's display identity for the invitation screen."""
    creator = await relationships.get_creator(session_id)
    user_id = creator.get("userId")

    identities = await get_display_identities(db, [user_id]) if isinstance(user_id, int) else {}
    identity = identities.get(user_id) or {"userId": user_id}  # type: ignore[arg-type]
    return SessionMetaResponse(creator=DisplayIdentity.model_validate(identity))


@router.post(
    "/submit",
    response_model=SessionStatusResponse,
    dependencies=[SessionRateLimit],
    summary="Submit cards and question",
    responses={
        404: {"description": "Session not found or expired"},
        409: {"description": "Session already has two participants"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def submit(
    body: SessionSubmitRequest,
    current_user: CurrentUser,
    relationships: Relationships,
) -> SessionStatusResponse:
    """
    Store the caller's three cards and question.

    The creator always lands in slot A and the other participant in slot B,
    whatever the arrival order. The submission that completes the pair gets
    the shared reading back directly; the other side polls for it.
    """
    cards = [card.model_dump(by_alias=True, exclude_none=True) for card in body.cards]
    outcome = await relationships.submit(body.session_id, current_user.id, cards, body.question)
    return SessionStatusResponse(ready=outcome.ready, result=outcome.result)


@router.get(
    "/{session_id}",
    response_model=SessionStatusResponse,
    summary="Poll for the shared reading",
)
async def poll(
    session_id: str,
    relationships: Relationships,
) -> SessionStatusResponse:
    """Unknown or expired sessions report ``ready: false`` rather than 404."""
    outcome = await relationships.poll(session_id)
    return SessionStatusResponse(ready=outcome.ready, result=outcome.result)


@router.get(
    "/{session_id}/detail",
    response_model=SessionDetailResponse,
    summary="Both submissions and the shared reading",
    responses={404: {"description": "Session not found or expired"}},
)
async def detail(
    session_id: str,
    db: DBSession,
    relationships: Relationships,
) -> SessionDetailResponse:
    """Both sides with nickname and avatar, plus the result once computed."""

    async def lookup(user_ids: list[int]) -> dict[int, dict]:
        return await get_display_identities(db, user_ids)

    data = await relationships.detail(session_id, lookup)
    return SessionDetailResponse(**data)
