"""API module exports."""

from arcana.api.deps import CurrentUser, DBSession, OptionalUser
from arcana.api.routes import (
    auth_router,
    cache_router,
    cards_router,
    health_router,
    posters_router,
    relationship_router,
    users_router,
)

__all__ = [
    # Routers
    "auth_router",
    "cache_router",
    "cards_router",
    "health_router",
    "posters_router",
    "relationship_router",
    "users_router",
    # Dependencies
    "CurrentUser",
    "DBSession",
    "OptionalUser",
]
