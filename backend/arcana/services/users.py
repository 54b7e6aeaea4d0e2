"""User lookups shared by routes."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arcana.db.models import User


def display_identity(user: User) -> dict[str, Any]:
    return {"userId": user.id, "nickname": user.nickname, "avatarUrl": user.avatar_url}


async def get_display_identities(
    db: AsyncSession, user_ids: list[int]
) -> dict[int, dict[str, Any]]:
    """Map user ids to their public name and avatar; unknown ids are omitted."""
    if not user_ids:
        return {}

    result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
    return {user.id: display_identity(user) for user in result.scalars()}
