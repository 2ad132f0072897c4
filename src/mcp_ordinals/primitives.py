"""Bitcoin script push framing and OP_RETURN helpers.

Data pushes use the smallest framing that fits:
- < 76 bytes: direct push (1 byte length, 0 bytes is OP_0)
- 76-255 bytes: OP_PUSHDATA1 (1 byte length)
- 256-65535 bytes: OP_PUSHDATA2 (2 byte length, little-endian)
- > 65535 bytes: OP_PUSHDATA4 (4 byte length, little-endian)
"""

from typing import Union

# Bitcoin script opcodes
OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_IF = 0x63
OP_ENDIF = 0x68
OP_RETURN = 0x6A

ScriptElement = Union[int, bytes]


def encode_push(data: bytes) -> bytes:
    """Frame data as a single push element."""
    length = len(data)

    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    elif length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    elif length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, 'little') + data
    else:
        return bytes([OP_PUSHDATA4]) + length.to_bytes(4, 'little') + data


def _read_push(script: bytes, pos: int) -> tuple[bytes, int]:
    """Read the push element whose opcode is at pos.

    Returns:
        Tuple of (pushed data, position after the element)
    """
    push_byte = script[pos]
    pos += 1

    if push_byte < OP_PUSHDATA1:
        length = push_byte
    elif push_byte == OP_PUSHDATA1:
        if pos >= len(script):
            raise ValueError("Truncated PUSHDATA1 script")
        length = script[pos]
        pos += 1
    elif push_byte == OP_PUSHDATA2:
        if pos + 2 > len(script):
            raise ValueError("Truncated PUSHDATA2 script")
        length = int.from_bytes(script[pos:pos+2], 'little')
        pos += 2
    elif push_byte == OP_PUSHDATA4:
        if pos + 4 > len(script):
            raise ValueError("Truncated PUSHDATA4 script")
        length = int.from_bytes(script[pos:pos+4], 'little')
        pos += 4
    else:
        raise ValueError(f"Invalid push opcode: {push_byte:#x}")

    if pos + length > len(script):
        raise ValueError(f"Script truncated: expected {length} bytes, got {len(script) - pos}")
    return script[pos:pos+length], pos + length


def parse_script(script: bytes) -> list[ScriptElement]:
    """Split a script into its elements.

    Push operations become ``bytes`` (OP_0 is ``b""``); every other opcode is
    returned as its ``int`` value.

    Raises:
        ValueError: If a push runs past the end of the script
    """
    elements: list[ScriptElement] = []
    pos = 0

    while pos < len(script):
        opcode = script[pos]
        if opcode <= OP_PUSHDATA4:
            data, pos = _read_push(script, pos)
            elements.append(data)
        else:
            elements.append(opcode)
            pos += 1

    return elements


def encode_op_return_script(data: bytes) -> bytes:
    """Encode data into an OP_RETURN script with a single push.

    Args:
        data: Raw data to embed in OP_RETURN

    Returns:
        Complete OP_RETURN script as bytes
    """
    return bytes([OP_RETURN]) + encode_push(data)


def decode_op_return_script(script: bytes) -> bytes:
    """Decode data from an OP_RETURN script.

    Args:
        script: OP_RETURN script bytes

    Returns:
        Extracted data payload

    Raises:
        ValueError: If script is not a valid OP_RETURN
    """
    if len(script) < 2:
        raise ValueError("Script too short")

    if script[0] != OP_RETURN:
        raise ValueError(f"Script is not an OP_RETURN (opcode: {script[0]:#x})")

    data, _ = _read_push(script, 1)
    return data
