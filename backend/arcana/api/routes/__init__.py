"""Routes module exports."""

from arcana.api.routes.auth import router as auth_router
from arcana.api.routes.cache import router as cache_router
from arcana.api.routes.cards import router as cards_router
from arcana.api.routes.health import router as health_router
from arcana.api.routes.posters import router as posters_router
from arcana.api.routes.relationship import router as relationship_router
from arcana.api.routes.users import router as users_router

__all__ = [
    "auth_router",
    "cache_router",
    "cards_router",
    "health_router",
    "posters_router",
    "relationship_router",
    "users_router",
]
