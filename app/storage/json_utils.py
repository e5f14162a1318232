"""JSON helpers for columns stored as text."""

import json
from typing import Any

from app.logging import get_logger

logger = get_logger(__name__)


def safe_json_dumps(data: Any, default: str = "[]") -> str:
    """Serialize data to compact JSON, returning default on failure."""
    if data is None:
        return default

    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"Failed to serialize JSON: {e}")
        return default


def safe_json_loads(text: str | None, default: Any = None) -> Any:
    """Parse JSON string, returning default on failure."""
    if not text:
        return default

    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning(f"Failed to parse JSON: {e}")
        return default


def load_genres(text: str | None) -> tuple[str, ...]:
    """Decode a genres column into an ordered tuple of non-empty names."""
    data = safe_json_loads(text, default=[])
    if not isinstance(data, list):
        return ()
    return tuple(str(g).strip() for g in data if str(g).strip())


def load_vector(text: str | None) -> list[float] | None:
    """Decode an embedding column; None when missing or malformed."""
    data = safe_json_loads(text)
    if not isinstance(data, list) or not data:
        return None
    try:
        return [float(v) for v in data]
    except (TypeError, ValueError):
        logger.warning("Embedding column contains non-numeric values")
        return None
