"""Share poster upload and retrieval.

Posters are rendered on the client, uploaded as a data URL and kept in the
cache for a week; there is no durable copy.
"""

import base64
import binascii
import re
import secrets

from fastapi import APIRouter, Request, Response, status

from arcana.api.deps import Cache, CurrentUser
from arcana.api.schemas import PosterUploadRequest, PosterUploadResponse
from arcana.core.config import get_settings
from arcana.core.exceptions import NotFoundError, ValidationError
from arcana.core.logging import get_logger
from arcana.services.cache import TTL_POSTER

logger = get_logger(__name__)
router = APIRouter(prefix="/divination", tags=["Posters"])

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)
DEFAULT_MIME_TYPE = "image/png"


def parse_data_url(data: str) -> tuple[str, str]:
    """Split a data URL into (mime type, base64 payload); bare base64 is PNG."""
    match = DATA_URL_RE.match(data.strip())
    if match:
        return match.group("mime").lower(), match.group("payload").strip()
    return DEFAULT_MIME_TYPE, data.strip()


def decode_payload(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Poster data is not valid base64")


@router.post(
    "/upload/poster",
    response_model=PosterUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a share poster",
    responses={422: {"description": "Unsupported type, oversized or malformed image"}},
)
async def upload_poster(
    body: PosterUploadRequest,
    request: Request,
    current_user: CurrentUser,
    cache: Cache,
) -> PosterUploadResponse:
    """
    Store a poster image and return a URL it can be fetched from.

    - **data**: ``data:<mime>;base64,<payload>`` or a bare base64 PNG
    """
    settings = get_settings()
    mime_type, payload = parse_data_url(body.data)

    if mime_type not in settings.upload_allowed_types:
        raise ValidationError(
            "Unsupported image type",
            {"mime_type": mime_type, "allowed": settings.upload_allowed_types},
        )

    size = len(decode_payload(payload))
    if size > settings.upload_max_size:
        raise ValidationError(
            "Poster exceeds maximum size",
            {"size": size, "max_size": settings.upload_max_size},
        )

    poster_id = secrets.token_urlsafe(12)
    await cache.set_poster(poster_id, payload, mime_type, current_user.id)
    logger.info("Poster stored", poster_id=poster_id, user_id=current_user.id, size=size)

    url = str(request.url_for("get_poster", poster_id=poster_id))
    return PosterUploadResponse(id=poster_id, url=url)


@router.get(
    "/poster/{poster_id}",
    summary="Fetch a share poster",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}, "image/jpeg": {}, "image/webp": {}}},
        404: {"description": "Poster not found or expired"},
    },
)
async def get_poster(poster_id: str, cache: Cache) -> Response:
    """Serve the stored image bytes with a long client cache lifetime."""
    poster = await cache.get_poster(poster_id)
    if poster is None:
        raise NotFoundError("Poster")

    try:
        content = base64.b64decode(poster["base64"])
    except (binascii.Error, ValueError):
        logger.warning("Stored poster is corrupt", poster_id=poster_id)
        raise NotFoundError("Poster")

    return Response(
        content=content,
        media_type=poster.get("mimeType") or DEFAULT_MIME_TYPE,
        headers={"Cache-Control": f"public, max-age={TTL_POSTER}"},
    )
