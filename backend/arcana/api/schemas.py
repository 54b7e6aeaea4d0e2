"""Pydantic schemas for API requests and responses.

Bodies exchanged with the mini-program are camelCase on the wire; the
``CamelModel`` base generates the aliases and still accepts field names.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for camelCase request/response bodies."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# User Schemas
# ============================================================

class UserResponse(CamelModel):
    """Schema for user data in responses."""

    id: int
    nickname: str | None = None
    avatar_url: str | None = None
    is_vip: bool = False
    vip_expires_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class UserProfileUpdate(CamelModel):
    """Schema for updating the display identity."""

    nickname: str | None = Field(default=None, min_length=2, max_length=20)
    avatar_url: str | None = Field(
        default=None, max_length=500, pattern=r"^https?://\S+$"
    )


class TokenResponse(CamelModel):
    """Schema for authentication token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token expiration time in seconds")
    user: UserResponse


class DisplayIdentity(CamelModel):
    """Public name and avatar shown to the other participant."""

    user_id: int
    nickname: str | None = None
    avatar_url: str | None = None


# ============================================================
# Card Schemas
# ============================================================

class CardSelection(CamelModel):
    """One drawn card as chosen on the client."""

    id: int | str
    name: str | None = None
    english_name: str | None = None
    image_url: str | None = None
    is_reversed: bool = False
    position: int | None = None


class CardDrawResponse(CamelModel):
    """Schema for a random draw."""

    cards: list[CardSelection]


class DailyCardResponse(CamelModel):
    """Schema for the card of the day."""

    date: str
    card: CardSelection


# ============================================================
# Relationship Session Schemas
# ============================================================

class SessionCreateResponse(CamelModel):
    """Schema returned when a session is opened."""

    session_id: str
    expires_in: int = Field(description="Seconds until the session lapses without activity")


class SessionSubmitRequest(CamelModel):
    """Schema for a participant's cards and question."""

    session_id: str = Field(..., min_length=1, max_length=64)
    cards: list[CardSelection] = Field(..., min_length=3, max_length=3)
    question: str = Field(default="", max_length=500)


class SessionStatusResponse(CamelModel):
    """Schema for submit and poll responses."""

    ready: bool
    result: dict[str, Any] | None = None


class SessionMetaResponse(CamelModel):
    """Schema for the invitation landing page."""

    creator: DisplayIdentity


class SessionDetailResponse(BaseModel):
    """Both sides of a session plus the shared result."""

    A: dict[str, Any] | None = None
    B: dict[str, Any] | None = None
    result: dict[str, Any] | None = None


# ============================================================
# Poster Schemas
# ============================================================

class PosterUploadRequest(CamelModel):
    """Schema for a poster upload as a data URL or bare base64."""

    data: str = Field(..., min_length=1)


class PosterUploadResponse(CamelModel):
    """Schema for the stored poster reference."""

    id: str
    url: str


# ============================================================
# Cache Schemas
# ============================================================

class CacheStatsResponse(CamelModel):
    """Schema for cache counters."""

    available: bool
    key_prefix: str
    hits: int
    misses: int
    sets: int
    errors: int
    fetches: int
    hit_rate: float


class CacheFlushResponse(CamelModel):
    """Schema for a namespace flush."""

    pattern: str
    deleted_count: int


# ============================================================
# Common Response Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: dict[str, Any] = Field(
        ...,
        json_schema_extra={"example": {"message": "Error description", "details": {}}},
    )


# ============================================================
# Health Check Schemas
# ============================================================

class ServiceHealth(BaseModel):
    """Schema for individual service health."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealth]
