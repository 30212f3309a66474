from __future__ import annotations
import re
import time
from typing import Any, Optional
from urllib.parse import urlparse

# ========================================
#           TIME HELPERS
# ========================================

def ms() -> int:
    """Current unix time in milliseconds."""
    return int(time.time() * 1000)


# ========================================
#           INPUT COERCION HELPERS
# ========================================
# Inbound room payloads are loosely typed: identities arrive as strings or
# numbers and edit indices may be missing or malformed. These helpers turn
# such values into something usable without raising.

_DIGITS_RE = re.compile(r'^\d+$')

def is_digits(s: str) -> bool:
    """
    True when the string is a non-empty run of ASCII digits, e.g. a numeric room id.
    """
    return bool(_DIGITS_RE.fullmatch(s))

def as_int(value: Any, default: Optional[int]) -> Optional[int]:
    """
    Returns value as an int, or default when it is missing or not integral.

    - bools are rejected (True is an int in Python but never a valid index)
    - floats with an integral value are accepted (JSON numbers like 3.0)
    - numeric strings are accepted
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    if isinstance(value, str) and re.fullmatch(r'-?\d+', value.strip()):
        return int(value.strip())
    return default

def short_id(identity: Any, length: int = 4) -> str:
    """First `length` characters of an identity's string form."""
    return str(identity)[:length]

def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


# ========================================
#           HOST VALIDATION
# ========================================

def is_http_url(s: str) -> bool:
    """
    Accepts 'http://host[:port][/path]' or 'https://...'.

    Room hosts are Socket.IO endpoints reached over HTTP(S) long-polling
    first, so a scheme and a hostname are both required.
    """
    try:
        parsed = urlparse(s)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)
