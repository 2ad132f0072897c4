"""Bitcoin Core node communication interfaces."""

from mcp_ordinals.node.interface import (
    NodeInterface,
    NodeInfo,
    UTXO,
)
from mcp_ordinals.node.cli import BitcoinCLI
from mcp_ordinals.node.rpc import BitcoinRPC

__all__ = [
    "NodeInterface",
    "NodeInfo",
    "UTXO",
    "BitcoinCLI",
    "BitcoinRPC",
]
