"""Services module exports."""

from arcana.services.cache import CacheService, get_cache_service
from arcana.services.interpretation import InterpretationService, get_interpretation_service
from arcana.services.llm import LLMService, get_llm_service
from arcana.services.rate_limit import RateLimitService, get_rate_limit_service
from arcana.services.relationship import RelationshipService, SessionStatus

__all__ = [
    # Cache
    "CacheService",
    "get_cache_service",
    # Interpretation
    "InterpretationService",
    "get_interpretation_service",
    # LLM
    "LLMService",
    "get_llm_service",
    # Rate Limiting
    "RateLimitService",
    "get_rate_limit_service",
    # Relationship sessions
    "RelationshipService",
    "SessionStatus",
]
