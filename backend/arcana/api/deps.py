"""API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arcana.core.exceptions import RateLimitError
from arcana.core.security import decode_access_token
from arcana.db.models import User
from arcana.db.session import get_db
from arcana.services.cache import CacheService, get_cache_service
from arcana.services.interpretation import InterpretationService, get_interpretation_service
from arcana.services.rate_limit import RateLimitService, get_rate_limit_service
from arcana.services.relationship import RelationshipService

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If authentication fails
    """
    if not credentials:
        raise _unauthorized("Authentication required")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise _unauthorized("Invalid token payload")

    try:
        user_id = int(user_id_str)
    except (ValueError, TypeError):
        raise _unauthorized("Invalid user identifier")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    return user


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    if not credentials:
        return None

    try:
        return await get_current_user(credentials, db)
    except HTTPException:
        return None


def get_relationship_service(
    cache: Annotated[CacheService, Depends(get_cache_service)],
    interpretation: Annotated[InterpretationService, Depends(get_interpretation_service)],
) -> RelationshipService:
    return RelationshipService(cache, interpretation)


async def check_session_rate_limit(
    user: Annotated[User, Depends(get_current_user)],
    rate_limiter: Annotated[RateLimitService, Depends(get_rate_limit_service)],
) -> None:
    """Throttle relationship session creation and submission per user.

    Raises:
        RateLimitError: If rate limit exceeded
    """
    allowed, _ = await rate_limiter.check_session_limit(f"user:{user.id}")

    if not allowed:
        raise RateLimitError(retry_after=rate_limiter.window_seconds)


def client_identifier(request: Request, user: User | None) -> str:
    """User id when authenticated, otherwise the client IP."""
    if user:
        return f"user:{user.id}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
DBSession = Annotated[AsyncSession, Depends(get_db)]
Cache = Annotated[CacheService, Depends(get_cache_service)]
Relationships = Annotated[RelationshipService, Depends(get_relationship_service)]
SessionRateLimit = Depends(check_session_rate_limit)
