"""User profile endpoints."""

from fastapi import APIRouter

from arcana.api.deps import CurrentUser, DBSession
from arcana.api.schemas import UserProfileUpdate, UserResponse
from arcana.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/user", tags=["Users"])


@router.get(
    "/profile",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_profile(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update nickname and avatar",
    responses={422: {"description": "Nickname must be 2-20 characters; avatar must be an http(s) URL"}},
)
async def update_profile(
    body: UserProfileUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> UserResponse:
    """
    Update the display identity shown to relationship partners.

    Omitted fields are left unchanged.
    """
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(current_user, field, value)

    if changes:
        await db.flush()
        await db.refresh(current_user)
        logger.info("User profile updated", user_id=current_user.id, fields=sorted(changes))

    return UserResponse.model_validate(current_user)
