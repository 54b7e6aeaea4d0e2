"""Wire encoding for cached values.

Values are stored as JSON text. Both directions are lossy-tolerant: an
unencodable value is stored as its ``str()`` form and a payload that is not
valid JSON (legacy plain strings) is handed back verbatim.
"""

import json
from typing import Any

from arcana.core.logging import get_logger

logger = get_logger(__name__)


def serialize(value: Any) -> str:
    """Encode a value for storage, falling back to string coercion."""
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.debug("Cache serialize failed, storing str()", error=str(e))
        return str(value)


def deserialize(raw: str | bytes | None) -> Any:
    """Decode a stored payload; non-JSON payloads come back as raw strings."""
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw == "":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Cache deserialize failed, returning raw value")
        return raw
