"""Token endpoints for an already-authenticated user.

Initial tokens come from the WeChat login exchange, which lives outside
this service.
"""

from fastapi import APIRouter

from arcana.api.deps import CurrentUser
from arcana.api.schemas import TokenResponse, UserResponse
from arcana.core.config import get_settings
from arcana.core.security import create_user_token

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get(
    "/check",
    response_model=UserResponse,
    summary="Validate the current token",
    responses={401: {"description": "Missing, invalid or expired token"}},
)
async def check(current_user: CurrentUser) -> UserResponse:
    """Returns the token's user; 401 means the client should log in again."""
    return UserResponse.model_validate(current_user)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
)
async def refresh_token(current_user: CurrentUser) -> TokenResponse:
    """
    Refresh the access token for the current user.

    Requires a valid (non-expired) token.
    """
    settings = get_settings()

    return TokenResponse(
        access_token=create_user_token(current_user.id),
        expires_in=settings.jwt_access_token_expire_days * 24 * 60 * 60,
        user=UserResponse.model_validate(current_user),
    )
