"""Ordinal inscription envelope encoding and decoding.

The envelope format:
- OP_IF
- Push: marker ("ord")
- Push: content-type tag (0x01)
- Push: content type (UTF-8 MIME string)
- OP_0: body follows
- Push(es): body, at most 520 bytes per push
- OP_ENDIF
"""

import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Union

from mcp_ordinals.errors import UnrecognizedEnvelope
from mcp_ordinals.primitives import (
    OP_0,
    OP_ENDIF,
    OP_IF,
    encode_push,
    parse_script,
)

logger = logging.getLogger(__name__)


ORD_MARKER = "ord"
MAX_PUSH_SIZE = 520  # Largest single push allowed by script rules

TEXT_CONTENT_TYPE = "text/plain;charset=utf-8"
JSON_CONTENT_TYPE = "application/json"


class InscriptionTag(IntEnum):
    """Envelope field tags."""

    CONTENT_TYPE = 1
    POINTER = 2
    PARENT = 3
    METADATA = 5
    METAPROTOCOL = 7
    CONTENT_ENCODING = 9
    DELEGATE = 11
    RUNE = 13


CONTENT_TYPE_LABELS = {
    "text/plain;charset=utf-8": "text",
    "text/plain": "text",
    "application/json": "json",
}

# OP_IF, push of 3 bytes, "ord"
ENVELOPE_PREFIX = bytes([OP_IF]) + encode_push(ORD_MARKER.encode("ascii"))
# OP_IF, "ord" with no push framing, as written by older tooling
BARE_ENVELOPE_PREFIX = bytes([OP_IF]) + ORD_MARKER.encode("ascii")

# Element positions in a pushed envelope
CONTENT_TYPE_INDEX = 3
BODY_INDEX = 5


@dataclass(frozen=True)
class InscriptionEnvelope:
    """Inscription content to embed in an envelope script."""

    content_type: str
    body: bytes
    marker: str = ORD_MARKER

    def chunks(self) -> list[bytes]:
        return chunk_data(self.body)

    def to_script(self) -> bytes:
        return encode_inscription(self.marker, self.content_type, self.body)


@dataclass(frozen=True)
class ParsedInscription:
    """Simplified record recovered from an envelope script."""

    type: str
    content: Union[str, bytes]
    content_type: Optional[str] = None

    @classmethod
    def unknown(cls) -> "ParsedInscription":
        return cls(type="unknown", content="")

    @property
    def recognized(self) -> bool:
        return self.content_type is not None


def chunk_data(data: bytes, chunk_size: int = MAX_PUSH_SIZE) -> list[bytes]:
    """Split data into consecutive chunks of at most chunk_size bytes."""
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


def encode_inscription(marker: str, content_type: str, body: bytes) -> bytes:
    """Encode content into an inscription envelope script.

    Bodies larger than 520 bytes are split, and every chunk is written as
    its own push element.

    Args:
        marker: Envelope marker, normally "ord"
        content_type: MIME type of the body
        body: Raw content bytes

    Returns:
        Envelope script as bytes
    """
    script = bytearray([OP_IF])
    script += encode_push(marker.encode("utf-8"))
    script += encode_push(bytes([InscriptionTag.CONTENT_TYPE]))
    script += encode_push(content_type.encode("utf-8"))
    script.append(OP_0)
    for chunk in chunk_data(body):
        script += encode_push(chunk)
    script.append(OP_ENDIF)
    return bytes(script)


def encode_text_inscription(text: str, trailing_newline: bool = True) -> bytes:
    """Encode UTF-8 text as an "ord" inscription."""
    if trailing_newline:
        text += "\n"
    return encode_inscription(ORD_MARKER, TEXT_CONTENT_TYPE, text.encode("utf-8"))


def encode_json_inscription(document: Any) -> bytes:
    """Encode a JSON document as an "ord" inscription."""
    body = json.dumps(document, separators=(',', ':')).encode("utf-8")
    return encode_inscription(ORD_MARKER, JSON_CONTENT_TYPE, body)


def _read_pushed_envelope(script: bytes) -> tuple[bytes, bytes]:
    try:
        elements = parse_script(script)
    except ValueError as e:
        raise UnrecognizedEnvelope(f"Malformed envelope script: {e}") from e

    if len(elements) <= BODY_INDEX:
        raise UnrecognizedEnvelope(f"Envelope too short: {len(elements)} elements")

    if elements[CONTENT_TYPE_INDEX - 1] != bytes([InscriptionTag.CONTENT_TYPE]):
        raise UnrecognizedEnvelope("Expected content-type tag as first field")
    if elements[BODY_INDEX - 1] != b"":
        raise UnrecognizedEnvelope("Expected body separator after content type")

    content_type = elements[CONTENT_TYPE_INDEX]
    body = elements[BODY_INDEX]
    if not isinstance(content_type, bytes):
        raise UnrecognizedEnvelope(f"Expected content type push, got opcode {content_type:#x}")
    if body == OP_ENDIF:
        body = b""
    elif not isinstance(body, bytes):
        raise UnrecognizedEnvelope(f"Expected body push, got opcode {body:#x}")
    return content_type, body


def _read_bare_envelope(script: bytes) -> tuple[bytes, bytes]:
    pos = len(BARE_ENVELOPE_PREFIX)
    if len(script) < pos + 2 or script[pos] != InscriptionTag.CONTENT_TYPE:
        raise UnrecognizedEnvelope("Missing content-type tag")

    length = script[pos + 1]
    start = pos + 2
    end = start + length
    if end >= len(script) or script[end] != OP_0:
        raise UnrecognizedEnvelope("Missing body separator")
    if script[-1] != OP_ENDIF:
        raise UnrecognizedEnvelope("Missing OP_ENDIF")

    return script[start:end], script[end + 1:-1]


def _decode_body(body: bytes) -> Union[str, bytes]:
    """Decode a body as UTF-8, falling back to the raw bytes."""
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        # A full first chunk may end part way through a character
        if len(body) == MAX_PUSH_SIZE and e.reason == "unexpected end of data":
            return body[:e.start].decode("utf-8")
        return body


def decode_inscription(script: bytes) -> ParsedInscription:
    """Recover content type and body from an envelope script.

    Only the first body push is read; chunked bodies are not reassembled.
    Scripts that are not recognizable envelopes give an "unknown" result
    with empty content instead of raising.

    Args:
        script: Envelope script bytes

    Returns:
        ParsedInscription
    """
    try:
        if script.startswith(ENVELOPE_PREFIX):
            content_type_bytes, body = _read_pushed_envelope(script)
        elif script.startswith(BARE_ENVELOPE_PREFIX):
            content_type_bytes, body = _read_bare_envelope(script)
        else:
            raise UnrecognizedEnvelope(f"No envelope prefix: {script[:5].hex()}")
        content_type = content_type_bytes.decode("utf-8")
    except UnrecognizedEnvelope as e:
        logger.debug("Not an inscription envelope: %s", e)
        return ParsedInscription.unknown()
    except UnicodeDecodeError:
        logger.debug("Content type is not valid UTF-8")
        return ParsedInscription.unknown()

    return ParsedInscription(
        type=CONTENT_TYPE_LABELS.get(content_type, "unknown"),
        content=_decode_body(body),
        content_type=content_type,
    )


def parse_inscription_data(data: str) -> ParsedInscription:
    """Parse an envelope given as hex, or a "type:content" shorthand string."""
    try:
        script = bytes.fromhex(data)
    except ValueError:
        if ":" in data:
            type_str, content = data.split(":", 1)
            return ParsedInscription(type=type_str, content=content)
        return ParsedInscription.unknown()
    return decode_inscription(script)


def inspect_envelope(script: bytes) -> dict:
    """Describe where the envelope landmarks sit in a script.

    Positions are byte offsets into the script. The content-type tag position
    is the offset of the tag byte itself in both layouts, not of the push
    opcode that frames it.
    """
    marker = ORD_MARKER.encode("ascii")
    marker_pos = script.find(marker)
    result = {
        "total_bytes": len(script),
        "has_marker": marker_pos != -1,
        "marker_position": marker_pos if marker_pos != -1 else None,
        "content_type_tag_position": None,
        "separator_position": None,
        "body_pushes": None,
    }
    if marker_pos == -1:
        return result

    tag = bytes([InscriptionTag.CONTENT_TYPE])
    if script.startswith(ENVELOPE_PREFIX):
        tag_pos = script.find(encode_push(tag), len(ENVELOPE_PREFIX))
        if tag_pos != -1:
            tag_pos += 1  # step over the push length
    else:
        tag_pos = script.find(tag, marker_pos + len(marker))
    if tag_pos != -1:
        result["content_type_tag_position"] = tag_pos

    separator_pos = script.find(bytes([OP_0]), marker_pos)
    if separator_pos != -1:
        result["separator_position"] = separator_pos

    if script.startswith(ENVELOPE_PREFIX):
        try:
            elements = parse_script(script)
        except ValueError:
            return result
        result["body_pushes"] = sum(
            1 for element in elements[BODY_INDEX:] if isinstance(element, bytes)
        )

    return result
