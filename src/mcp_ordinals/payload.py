"""Tagged-field payload builder.

A payload is a flat run of (tag, value) pairs, each written as two
consecutive varints. There is no overall length prefix and no terminator, so
reading it back requires knowing the record grammar.
"""

from typing import NamedTuple

from mcp_ordinals.varint import encode_varint


class TaggedField(NamedTuple):
    """A single (tag, value) pair."""
    tag: int
    value: int

    def to_bytes(self) -> bytes:
        return encode_varint(self.tag) + encode_varint(self.value)


class TaggedFieldPayload:
    """Forward-only builder for tagged-field payloads."""

    def __init__(self):
        self._fields: list[TaggedField] = []
        self._buffer = bytearray()

    def append(self, tag: int, value: int) -> "TaggedFieldPayload":
        """Append a field in call order and return the builder."""
        field = TaggedField(int(tag), value)
        self._buffer += field.to_bytes()
        self._fields.append(field)
        return self

    @property
    def fields(self) -> tuple[TaggedField, ...]:
        return tuple(self._fields)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def __bytes__(self) -> bytes:
        return self.to_bytes()

    def __len__(self) -> int:
        return len(self._buffer)
