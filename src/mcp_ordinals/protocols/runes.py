"""Rune etching payloads carried in OP_RETURN outputs.

The payload layout:
- Magic (2 bytes): "RS"
- Protocol id (1 byte): 0x00
- Fields (variable): (tag, value) varint pairs in canonical order

Fields whose value is zero or empty are left out entirely.
"""

import logging
import math
import re
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Mapping, Union

from mcp_ordinals.errors import MalformedVarint, UnrecognizedEnvelope, ValidationError
from mcp_ordinals.names import encode_rune_name
from mcp_ordinals.payload import TaggedField, TaggedFieldPayload
from mcp_ordinals.primitives import decode_op_return_script, encode_op_return_script
from mcp_ordinals.protocols.base import Protocol
from mcp_ordinals.validation import NUMERIC_FIELDS, validate_etching_request
from mcp_ordinals.varint import decode_varint

logger = logging.getLogger(__name__)


RUNES_MAGIC = b"RS"
RUNES_PROTOCOL_ID = 0x00
SIGNATURE = RUNES_MAGIC + bytes([RUNES_PROTOCOL_ID])


class Tag(IntEnum):
    """Etching field tags."""

    DIVISIBILITY = 1
    RUNE = 4
    SYMBOL = 5
    PREMINE = 6
    CAP = 8
    AMOUNT = 10
    HEIGHT_START = 12
    HEIGHT_END = 14
    OFFSET_START = 16
    OFFSET_END = 18
    POINTER = 22


# Emitted after the mint terms, in this order
BOUND_TAGS = (
    ("height_start", Tag.HEIGHT_START),
    ("height_end", Tag.HEIGHT_END),
    ("offset_start", Tag.OFFSET_START),
    ("offset_end", Tag.OFFSET_END),
    ("pointer", Tag.POINTER),
)

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class EtchingRequest(Protocol):
    """A rune etching request.

    Fields hold whatever the caller supplied; ``encode_etching`` normalizes
    numeric strings and integral floats before validating.
    """

    name: str = ""
    divisibility: int = 0
    symbol: str = ""
    premine: int = 0
    cap: int = 0
    amount: int = 0
    height_start: int = 0
    height_end: int = 0
    offset_start: int = 0
    offset_end: int = 0
    pointer: int = 0

    @classmethod
    def from_input(cls, **fields: Any) -> "EtchingRequest":
        """Build a request from loosely typed input.

        Raises:
            ValidationError: If any field cannot be converted or fails validation
        """
        request, errors = normalize_etching_request(fields)
        errors.extend(validate_etching_request(request))
        if errors:
            raise ValidationError(errors)
        return request

    def to_bytes(self) -> bytes:
        return encode_etching(self).payload

    def to_script(self) -> bytes:
        return encode_etching(self).script


@dataclass(frozen=True)
class EncodedPayload:
    """Result of encoding an etching request."""

    script: bytes
    payload: bytes
    fields: bytes
    request: EtchingRequest

    @property
    def script_hex(self) -> str:
        return self.script.hex()

    @property
    def payload_hex(self) -> str:
        return self.payload.hex()

    @property
    def fields_hex(self) -> str:
        return self.fields.hex()

    @property
    def length(self) -> int:
        return len(self.script)

    def details(self) -> dict:
        """Normalized request with big integers rendered as strings."""
        details = asdict(self.request)
        for key in ("premine", "cap", "amount"):
            details[key] = str(details[key])
        return details


def _coerce_int(field_name: str, value: Any, errors: list[str]) -> int:
    """Convert one numeric input to int, recording a violation on failure."""
    if value is None:
        return 0
    if isinstance(value, bool):
        errors.append(f"{field_name} must be an integer, got {value!r}")
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        errors.append(f"{field_name} must be an integer, got {value!r}")
        return 0
    if isinstance(value, str):
        text = value.strip()
        if INTEGER_PATTERN.fullmatch(text):
            return int(text)
        errors.append(f"{field_name} must be an integer, got {value!r}")
        return 0

    errors.append(f"{field_name} must be an integer, got {type(value).__name__}")
    return 0


def _coerce_str(field_name: str, value: Any, errors: list[str]) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    errors.append(f"{field_name} must be a string, got {type(value).__name__}")
    return ""


def normalize_etching_request(data: Mapping[str, Any]) -> tuple[EtchingRequest, list[str]]:
    """Convert loosely typed input into an EtchingRequest.

    Numbers may be given as ints, integral floats or decimal strings. Inputs
    that cannot be converted are reported rather than replaced by zero; their
    field is left at the default in the returned request.

    Args:
        data: Mapping of field name to raw value

    Returns:
        Tuple of (request, conversion errors)
    """
    errors: list[str] = []

    known = {"name", "divisibility", "symbol", *NUMERIC_FIELDS}
    for key in data:
        if key not in known:
            errors.append(f"Unknown field: {key}")

    values: dict[str, Any] = {
        "name": _coerce_str("name", data.get("name"), errors),
        "symbol": _coerce_str("symbol", data.get("symbol"), errors),
        "divisibility": _coerce_int("divisibility", data.get("divisibility"), errors),
    }
    for field_name in NUMERIC_FIELDS:
        values[field_name] = _coerce_int(field_name, data.get(field_name), errors)

    return EtchingRequest(**values), errors


def encode_etching(request: Union[EtchingRequest, Mapping[str, Any]]) -> EncodedPayload:
    """Encode a rune etching into an OP_RETURN script.

    Args:
        request: EtchingRequest, or a mapping of raw field values

    Returns:
        EncodedPayload with the script, the payload and the normalized request

    Raises:
        ValidationError: With every violated constraint
    """
    if isinstance(request, EtchingRequest):
        request = asdict(request)
    request, errors = normalize_etching_request(request)
    errors.extend(validate_etching_request(request))
    if errors:
        raise ValidationError(errors)

    builder = TaggedFieldPayload()
    builder.append(Tag.RUNE, encode_rune_name(request.name))

    if request.divisibility > 0:
        builder.append(Tag.DIVISIBILITY, request.divisibility)

    if request.symbol:
        builder.append(Tag.SYMBOL, ord(request.symbol))

    if request.premine > 0:
        builder.append(Tag.PREMINE, request.premine)

    # Mint terms
    if request.cap > 0 or request.amount > 0:
        if request.cap > 0:
            builder.append(Tag.CAP, request.cap)
        if request.amount > 0:
            builder.append(Tag.AMOUNT, request.amount)

    for field_name, tag in BOUND_TAGS:
        value = getattr(request, field_name)
        if value > 0:
            builder.append(tag, value)

    fields = builder.to_bytes()
    payload = SIGNATURE + fields
    script = encode_op_return_script(payload)

    logger.debug(
        "Encoded etching %s with %d field(s), %d byte script",
        request.name, len(builder.fields), len(script),
    )

    return EncodedPayload(
        script=script,
        payload=payload,
        fields=fields,
        request=request,
    )


def decode_etching_payload(payload: bytes) -> list[TaggedField]:
    """Read the tagged fields back out of an etching payload.

    Raises:
        UnrecognizedEnvelope: If the payload lacks the magic and protocol id
        MalformedVarint: If a varint is truncated or a tag has no value
    """
    if payload[:len(SIGNATURE)] != SIGNATURE:
        raise UnrecognizedEnvelope(
            f"Invalid rune signature: expected {SIGNATURE.hex()}, got {payload[:len(SIGNATURE)].hex()}"
        )

    fields = []
    pos = len(SIGNATURE)
    while pos < len(payload):
        tag, consumed = decode_varint(payload, pos)
        pos += consumed
        if pos >= len(payload):
            raise MalformedVarint(f"Tag {tag} has no value")
        value, consumed = decode_varint(payload, pos)
        pos += consumed
        fields.append(TaggedField(tag, value))

    return fields


def decode_etching_script(script: bytes) -> list[TaggedField]:
    """Read the tagged fields out of an OP_RETURN etching script.

    Raises:
        ValueError: If the script is not a single-push OP_RETURN, or the
            payload is not a valid etching
    """
    return decode_etching_payload(decode_op_return_script(script))
