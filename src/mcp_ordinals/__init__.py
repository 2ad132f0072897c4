"""MCP server for ordinal inscription envelopes and rune etchings."""

__version__ = "0.1.0"

# Server entry points
from mcp_ordinals.server import create_server, main

# Configuration
from mcp_ordinals.config import Config, Network, ConnectionMethod

# Errors
from mcp_ordinals.errors import (
    OrdinalsError,
    ValidationError,
    InvalidNameFormat,
    MalformedVarint,
    UnrecognizedEnvelope,
    CollaboratorFailure,
)

# Codecs
from mcp_ordinals.varint import encode_varint, decode_varint
from mcp_ordinals.names import encode_rune_name
from mcp_ordinals.payload import TaggedField, TaggedFieldPayload
from mcp_ordinals.validation import validate_etching_request

# Inscription envelopes
from mcp_ordinals.envelope import (
    encode_inscription,
    decode_inscription,
    InscriptionEnvelope,
    ParsedInscription,
)

# Regtest daemons
from mcp_ordinals.supervisor import DaemonStatus, ProcessSupervisor

# Rune etchings
from mcp_ordinals.protocols.runes import (
    encode_etching,
    EtchingRequest,
    EncodedPayload,
)

__all__ = [
    # Version
    "__version__",
    # Server
    "create_server",
    "main",
    # Config
    "Config",
    "Network",
    "ConnectionMethod",
    # Errors
    "OrdinalsError",
    "ValidationError",
    "InvalidNameFormat",
    "MalformedVarint",
    "UnrecognizedEnvelope",
    "CollaboratorFailure",
    # Codecs
    "encode_varint",
    "decode_varint",
    "encode_rune_name",
    "TaggedField",
    "TaggedFieldPayload",
    "validate_etching_request",
    # Inscriptions
    "encode_inscription",
    "decode_inscription",
    "InscriptionEnvelope",
    "ParsedInscription",
    # Daemons
    "DaemonStatus",
    "ProcessSupervisor",
    # Runes
    "encode_etching",
    "EtchingRequest",
    "EncodedPayload",
]
