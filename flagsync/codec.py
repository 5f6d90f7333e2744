"""
Flag value codec.

The backend field is free text, so the flag is stored as a string.  Only the
literal ``"true"`` reads as on; anything else (absent, empty, ``"True"``,
garbage) reads as off.  Nothing outside this module knows the representation.
"""

from __future__ import annotations

from typing import Optional

TRUE_TEXT = "true"
FALSE_TEXT = "false"

DEFAULT_VALUE = False


def encode(value: bool) -> str:
    """``True → "true"``, ``False → "false"``."""
    return TRUE_TEXT if value else FALSE_TEXT


def decode(raw: Optional[str]) -> bool:
    """Permissive decode: exactly ``"true"`` is True, everything else False."""
    if raw is None:
        return DEFAULT_VALUE
    return raw == TRUE_TEXT
