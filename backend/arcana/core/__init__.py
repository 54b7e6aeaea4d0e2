"""Core module exports."""

from arcana.core.config import Settings, get_settings
from arcana.core.exceptions import (
    AppError,
    AuthenticationError,
    ConflictError,
    LLMProviderError,
    NotFoundError,
    RateLimitError,
    SessionFullError,
    SessionNotFoundError,
    ValidationError,
)
from arcana.core.logging import get_logger, setup_logging
from arcana.core.security import (
    create_access_token,
    create_user_token,
    decode_access_token,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "get_logger",
    "setup_logging",
    # Security
    "create_access_token",
    "create_user_token",
    "decode_access_token",
    # Exceptions
    "AppError",
    "AuthenticationError",
    "ConflictError",
    "LLMProviderError",
    "NotFoundError",
    "RateLimitError",
    "SessionFullError",
    "SessionNotFoundError",
    "ValidationError",
]
