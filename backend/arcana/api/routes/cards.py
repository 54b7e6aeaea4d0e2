"""Card draw endpoints."""

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Query, Request

from arcana.api.deps import Cache, OptionalUser, client_identifier
from arcana.api.schemas import CardDrawResponse, CardSelection, DailyCardResponse
from arcana.services.cards import MAJOR_ARCANA, random_cards

router = APIRouter(prefix="/cards", tags=["Cards"])


@router.get(
    "/random",
    response_model=CardDrawResponse,
    summary="Draw random cards",
)
async def draw_random(
    count: Annotated[int, Query(ge=1, le=len(MAJOR_ARCANA))] = 3,
) -> CardDrawResponse:
    """Draw ``count`` distinct cards, each upright or reversed at random."""
    cards = random_cards(count)
    return CardDrawResponse(cards=[CardSelection.model_validate(c) for c in cards])


@router.get(
    "/daily",
    response_model=DailyCardResponse,
    summary="Card of the day",
)
async def daily_card(
    request: Request,
    current_user: OptionalUser,
    cache: Cache,
) -> DailyCardResponse:
    """
    One card per caller per UTC day.

    The draw is memoized in the cache for a day; while the cache is down
    every call draws afresh.
    """
    day = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    async def draw() -> dict[str, Any]:
        return random_cards(1)[0]

    card = await cache.get_daily_card(client_identifier(request, current_user), day, draw)
    return DailyCardResponse(date=day, card=CardSelection.model_validate(card))
