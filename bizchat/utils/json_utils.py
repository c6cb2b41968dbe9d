"""
JSON utilities for reading persisted documents.
"""

import json
from typing import Any, Optional


def clean_json_document(raw: str) -> str:
    """Strip whitespace and a UTF-8 byte order mark left by some editors.

    Args:
        raw: Raw document text

    Returns:
        Cleaned JSON string
    """
    if raw.startswith('\ufeff'):
        raw = raw[1:]
    return raw.strip()


def loads_or_none(raw: Optional[str]) -> Any:
    """Decode a JSON document, returning None when absent, empty or malformed.

    Args:
        raw: Raw document text or None

    Returns:
        Decoded value, or None
    """
    if raw is None:
        return None

    cleaned = clean_json_document(raw)
    if not cleaned:
        return None

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        return None
