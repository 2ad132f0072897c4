"""LEB128 variable-length integer encoding.

Each byte carries 7 bits of the value, least-significant group first. The high
bit (0x80) is set on every byte except the last. Values are not bounded to 64
bits since rune amounts can exceed machine-word range.
"""

from mcp_ordinals.errors import MalformedVarint


CONTINUATION_BIT = 0x80
GROUP_MASK = 0x7F


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a LEB128 varint.

    Args:
        value: Non-negative integer of any size

    Returns:
        Minimal-length varint bytes

    Raises:
        ValueError: If value is negative or not an integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Varint value must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Varint value must be non-negative, got {value}")

    result = bytearray()
    while value >= CONTINUATION_BIT:
        result.append((value & GROUP_MASK) | CONTINUATION_BIT)
        value >>= 7
    result.append(value)
    return bytes(result)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a LEB128 varint starting at offset.

    Args:
        data: Bytes containing the varint
        offset: Position of the first varint byte

    Returns:
        Tuple of (value, bytes_consumed)

    Raises:
        MalformedVarint: If data ends before a terminating byte
    """
    value = 0
    shift = 0
    pos = offset

    while pos < len(data):
        byte = data[pos]
        value |= (byte & GROUP_MASK) << shift
        pos += 1
        if not byte & CONTINUATION_BIT:
            return value, pos - offset
        shift += 7

    raise MalformedVarint(
        f"Unterminated varint at offset {offset}: {pos - offset} byte(s) without terminator"
    )
