"""Record formats embedded in Bitcoin scripts."""

from mcp_ordinals.protocols.base import Protocol
from mcp_ordinals.protocols.brc20 import (
    BRC20Deploy,
    BRC20Mint,
    BRC20Transfer,
    BRC20Protocol,
)
from mcp_ordinals.protocols.runes import (
    EncodedPayload,
    EtchingRequest,
    Tag,
    decode_etching_payload,
    decode_etching_script,
    encode_etching,
    normalize_etching_request,
)

__all__ = [
    "Protocol",
    "BRC20Deploy",
    "BRC20Mint",
    "BRC20Transfer",
    "BRC20Protocol",
    "EncodedPayload",
    "EtchingRequest",
    "Tag",
    "decode_etching_payload",
    "decode_etching_script",
    "encode_etching",
    "normalize_etching_request",
]
