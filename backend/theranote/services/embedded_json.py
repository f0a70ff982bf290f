"""
Composite fields (emergency contact, country code, medical history, note
content, ...) are stored as serialized JSON text. Writes go through
`encode_field`, reads through `read_field`.
"""
import json
import logging
from typing import Any, Optional

from theranote.services.errors import ValidationFailure

logger = logging.getLogger(__name__)


def encode_field(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def parse_field(raw: Optional[str]) -> Any:
    """Strict parse. Raises ValidationFailure on malformed text."""
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationFailure(f"Malformed embedded JSON: {e}") from e


def read_field(raw: Optional[str], field: str = "field") -> Any:
    """Read path: a malformed value is treated as absent instead of failing the request."""
    try:
        return parse_field(raw)
    except ValidationFailure as e:
        logger.warning("Ignoring unreadable %s: %s", field, e.detail)
        return None


def coerce_stored(value: Any) -> Optional[str]:
    """Import path: dumps already carry JSON text, anything structured is serialized."""
    if value is None or isinstance(value, str):
        return value
    return encode_field(value)
