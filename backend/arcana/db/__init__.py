"""Database module exports."""

from arcana.db.models import Base, User
from arcana.db.session import (
    check_db_health,
    close_db,
    engine_options,
    get_db,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "User",
    # Session management
    "get_db",
    "engine_options",
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    "check_db_health",
]
