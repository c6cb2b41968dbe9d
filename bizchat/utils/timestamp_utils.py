"""
Timestamp utilities. Records store epoch milliseconds.
"""

import secrets
import time
from typing import Optional


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def new_id(prefix: str = '', timestamp: Optional[int] = None) -> str:
    """Build a record identifier from the millisecond clock and a random suffix.

    Args:
        prefix: Optional tag such as 'user_'
        timestamp: Epoch milliseconds (optional, uses current time if None)

    Returns:
        Identifier string, e.g. 'user_1735000000000-3f9a1c'
    """
    if timestamp is None:
        timestamp = now_millis()
    return f'{prefix}{timestamp}-{secrets.token_hex(3)}'
