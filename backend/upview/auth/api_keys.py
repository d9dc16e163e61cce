"""
API key format utilities.

Format: upv_xxxx_xxxx_xxxx_xxxx — the upv_ prefix followed by four groups
of four lowercase hex characters (dash or underscore separated). Keys are
generated with underscores.

Format checking happens before any store access so malformed keys never
reach the database. Only a short prefix of a key is ever logged.
"""

import re
import secrets

_KEY_PREFIX = "upv_"
_KEY_PATTERN = re.compile(r"^upv_[0-9a-f]{4}(?:[-_][0-9a-f]{4}){3}$")


def generate_api_key() -> str:
    """Generate a new key: 64 random bits rendered as upv_xxxx_xxxx_xxxx_xxxx."""
    random_part = secrets.token_hex(8)
    groups = [random_part[i:i + 4] for i in range(0, 16, 4)]
    return _KEY_PREFIX + "_".join(groups)


def is_valid_api_key_format(key: str) -> bool:
    return bool(_KEY_PATTERN.match(key))


def redact(key: str) -> str:
    """Loggable form of a key — prefix plus first group only."""
    return key[:8] + "…"
