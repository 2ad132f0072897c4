"""Rune name to integer encoding.

Names are read as base-26 numbers with 'A' as digit zero, so "A" and "AA"
encode to different values only because of their length. The mapping is
write-only: a value cannot be turned back into a name without knowing the
name length.
"""

import re

from mcp_ordinals.errors import InvalidNameFormat


MAX_NAME_LENGTH = 26

NAME_PATTERN = re.compile(r"[A-Z]+")


def encode_rune_name(name: str) -> int:
    """Encode a rune name (A-Z, 1-26 chars) as an integer.

    Raises:
        InvalidNameFormat: If name is empty, too long or has other characters
    """
    if not name or len(name) > MAX_NAME_LENGTH:
        raise InvalidNameFormat(
            f"Rune name must be 1-{MAX_NAME_LENGTH} characters, got {len(name or '')}"
        )
    if not NAME_PATTERN.fullmatch(name):
        raise InvalidNameFormat("Rune name must contain only A-Z characters")

    value = 0
    for char in name:
        value = value * 26 + (ord(char) - ord("A"))
    return value
