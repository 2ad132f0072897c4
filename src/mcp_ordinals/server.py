"""MCP server for ordinal inscriptions and rune etchings.

This server exposes tools for building and parsing inscription envelopes,
rune etching OP_RETURN scripts and BRC-20 inscriptions, plus a thin Bitcoin
Core interface for handing built scripts to a node and tools for starting
and stopping the regtest bitcoind and ord daemons.
"""

import logging
from dataclasses import asdict
from typing import Optional

from mcp.server.fastmcp import FastMCP

from mcp_ordinals.config import Config, ConnectionMethod, load_config
from mcp_ordinals.envelope import (
    decode_inscription,
    encode_inscription,
    encode_text_inscription,
    inspect_envelope,
    parse_inscription_data,
    ORD_MARKER,
)
from mcp_ordinals.errors import CollaboratorFailure, InvalidNameFormat, ValidationError
from mcp_ordinals.names import encode_rune_name
from mcp_ordinals.node.cli import BitcoinCLI
from mcp_ordinals.node.interface import NodeInterface
from mcp_ordinals.node.rpc import BitcoinRPC
from mcp_ordinals.primitives import decode_op_return_script
from mcp_ordinals.protocols.brc20 import BRC20Deploy, BRC20Mint, BRC20Transfer
from mcp_ordinals.protocols.runes import Tag, decode_etching_script, encode_etching
from mcp_ordinals.supervisor import ProcessSupervisor
from mcp_ordinals.varint import decode_varint, encode_varint

logger = logging.getLogger(__name__)

CONTENT_ENCODINGS = ("utf-8", "hex")


def _parse_hex(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"Invalid hex string: {e}") from e


def _content_fields(content) -> dict:
    if isinstance(content, bytes):
        return {"content": None, "content_hex": content.hex()}
    return {"content": content, "content_hex": content.encode("utf-8").hex()}


def create_server(config: Optional[Config] = None) -> FastMCP:
    """Create and configure the MCP server with all tools.

    Args:
        config: Optional configuration. If not provided, uses defaults.

    Returns:
        Configured FastMCP server instance.
    """
    if config is None:
        config = Config()

    mcp = FastMCP("mcp-ordinals")

    # Store config on server for access by tools
    mcp._config = config
    mcp._node: Optional[NodeInterface] = None
    mcp._supervisor: Optional[ProcessSupervisor] = None

    def get_node() -> NodeInterface:
        """Get or create the node interface."""
        if mcp._node is None:
            if config.connection_method == ConnectionMethod.CLI:
                mcp._node = BitcoinCLI(config)
            else:
                mcp._node = BitcoinRPC(config)
        return mcp._node

    def get_supervisor() -> ProcessSupervisor:
        """Get or create the daemon supervisor."""
        if mcp._supervisor is None:
            mcp._supervisor = ProcessSupervisor(config, get_node())
        return mcp._supervisor

    # =========================================================================
    # Primitives (offline-capable)
    # =========================================================================

    @mcp.tool()
    def encode_varint_hex(value: str) -> dict:
        """Encode a non-negative integer as a LEB128 varint.

        Args:
            value: Decimal integer (string, to allow values above 64 bits)

        Returns:
            Dictionary with 'varint_hex' and 'length'.
        """
        try:
            encoded = encode_varint(int(value))
        except ValueError as e:
            return {"error": str(e)}
        return {"varint_hex": encoded.hex(), "length": len(encoded)}

    @mcp.tool()
    def decode_varint_hex(data_hex: str, offset: int = 0) -> dict:
        """Decode a LEB128 varint from hex data.

        Args:
            data_hex: Hex-encoded bytes
            offset: Byte offset of the varint (default: 0)

        Returns:
            Dictionary with 'value' (decimal string) and 'bytes_consumed'.
        """
        try:
            value, consumed = decode_varint(_parse_hex(data_hex), offset)
        except ValueError as e:
            return {"error": str(e)}
        return {"value": str(value), "bytes_consumed": consumed}

    @mcp.tool()
    def encode_rune_name_value(name: str) -> dict:
        """Encode a rune name (A-Z, 1-26 characters) to its integer value.

        Returns:
            Dictionary with 'value' (decimal string).
        """
        try:
            return {"name": name, "value": str(encode_rune_name(name))}
        except InvalidNameFormat as e:
            return {"error": str(e)}

    @mcp.tool()
    def decode_op_return(script_hex: str) -> dict:
        """Parse OP_RETURN data from script hex.

        Args:
            script_hex: OP_RETURN script as hex string

        Returns:
            Dictionary with 'data_hex' and 'data_utf8' (if decodable).
        """
        try:
            data = decode_op_return_script(_parse_hex(script_hex))
        except ValueError as e:
            return {"error": str(e)}

        result = {"data_hex": data.hex()}
        try:
            result["data_utf8"] = data.decode("utf-8")
        except UnicodeDecodeError:
            result["data_utf8"] = None
        return result

    # =========================================================================
    # Runes
    # =========================================================================

    @mcp.tool()
    def create_rune_etching(
        name: str,
        divisibility: int = 0,
        symbol: str = "",
        premine: str = "0",
        cap: str = "0",
        amount: str = "0",
        height_start: int = 0,
        height_end: int = 0,
        offset_start: int = 0,
        offset_end: int = 0,
        pointer: int = 0,
    ) -> dict:
        """Build a rune etching OP_RETURN script.

        Args:
            name: Rune name, A-Z only, 1-26 characters
            divisibility: Decimal places, 0-38
            symbol: Single currency symbol character (optional)
            premine: Amount premined to the etcher (decimal string)
            cap: Number of mints allowed (decimal string)
            amount: Amount per mint (decimal string)
            height_start: First block height at which minting opens
            height_end: Block height at which minting closes
            offset_start: Mint opening, as an offset from the etching block
            offset_end: Mint closing, as an offset from the etching block
            pointer: Output index receiving the premine

        Returns:
            Dictionary with 'script_hex', 'payload_hex', 'fields_hex', 'length'
            and normalized 'details'. Validation failures are returned as
            'error' plus the full list of 'violations'.
        """
        try:
            encoded = encode_etching({
                "name": name,
                "divisibility": divisibility,
                "symbol": symbol,
                "premine": premine,
                "cap": cap,
                "amount": amount,
                "height_start": height_start,
                "height_end": height_end,
                "offset_start": offset_start,
                "offset_end": offset_end,
                "pointer": pointer,
            })
        except ValidationError as e:
            return {"error": str(e), "violations": e.violations}

        return {
            "name": encoded.request.name,
            "script_hex": encoded.script_hex,
            "payload_hex": encoded.payload_hex,
            "fields_hex": encoded.fields_hex,
            "length": encoded.length,
            "details": encoded.details(),
        }

    @mcp.tool()
    def parse_rune_etching(script_hex: str) -> dict:
        """Read the tagged fields from a rune etching OP_RETURN script.

        Returns:
            Dictionary with a list of 'fields' (tag number, tag name, value).
        """
        try:
            fields = decode_etching_script(_parse_hex(script_hex))
        except ValueError as e:
            return {"error": str(e)}

        def tag_name(tag: int) -> Optional[str]:
            try:
                return Tag(tag).name
            except ValueError:
                return None

        return {
            "fields": [
                {"tag": f.tag, "name": tag_name(f.tag), "value": str(f.value)}
                for f in fields
            ],
        }

    # =========================================================================
    # Inscriptions
    # =========================================================================

    @mcp.tool()
    def create_inscription(
        content: str,
        content_type: str = "text/plain;charset=utf-8",
        encoding: str = "utf-8",
    ) -> dict:
        """Build an "ord" inscription envelope script.

        Args:
            content: Content to inscribe
            content_type: MIME type of the content
            encoding: Content encoding ('utf-8' or 'hex')

        Returns:
            Dictionary with 'script_hex', 'body_size' and 'chunks'.
        """
        if encoding not in CONTENT_ENCODINGS:
            return {"error": f"Unsupported encoding: {encoding} (use utf-8 or hex)"}

        if encoding == "hex":
            try:
                body = _parse_hex(content)
            except ValueError as e:
                return {"error": str(e)}
        else:
            body = content.encode("utf-8")

        if len(body) > config.max_body_size:
            return {
                "error": f"Body too large: {len(body)} bytes (max {config.max_body_size})",
            }

        script = encode_inscription(ORD_MARKER, content_type, body)
        return {
            "content_type": content_type,
            "body_size": len(body),
            "chunks": inspect_envelope(script)["body_pushes"],
            "script_hex": script.hex(),
        }

    @mcp.tool()
    def create_text_inscription(text: str, trailing_newline: bool = True) -> dict:
        """Build a plain-text inscription envelope script.

        Returns:
            Dictionary with 'script_hex' and 'length'.
        """
        script = encode_text_inscription(text, trailing_newline)
        return {"script_hex": script.hex(), "length": len(script)}

    @mcp.tool()
    def parse_inscription(data: str) -> dict:
        """Parse an inscription envelope.

        Args:
            data: Envelope script as hex, or a 'type:content' shorthand

        Returns:
            Dictionary with 'type', 'content_type', 'content' and 'content_hex'.
            Unrecognized input gives type 'unknown' with empty content.
        """
        parsed = parse_inscription_data(data)
        return {
            "type": parsed.type,
            "content_type": parsed.content_type,
            **_content_fields(parsed.content),
        }

    @mcp.tool()
    def inspect_inscription(script_hex: str) -> dict:
        """Describe the structure of an inscription envelope script.

        Returns:
            Dictionary with marker, tag and separator positions.
        """
        try:
            script = _parse_hex(script_hex)
        except ValueError as e:
            return {"error": str(e)}
        result = inspect_envelope(script)
        result["type"] = decode_inscription(script).type
        return result

    # =========================================================================
    # BRC-20 Inscriptions
    # =========================================================================

    @mcp.tool()
    def create_token_deploy(
        tick: str,
        max_supply: int,
        mint_limit: Optional[int] = None,
        decimals: int = 18,
    ) -> dict:
        """Create a BRC-20 token deployment inscription.

        Args:
            tick: Token ticker (exactly 4 characters)
            max_supply: Maximum token supply
            mint_limit: Maximum amount per mint (optional)
            decimals: Token decimals (default: 18)

        Returns:
            Dictionary with the JSON body and envelope script.
        """
        try:
            deploy = BRC20Deploy(
                tick=tick,
                max_supply=max_supply,
                mint_limit=mint_limit,
                decimals=decimals,
            )
        except ValueError as e:
            return {"error": str(e)}

        return {
            "operation": "deploy",
            "tick": tick,
            "json": deploy.to_json(),
            "script_hex": deploy.to_script().hex(),
        }

    @mcp.tool()
    def create_token_mint(tick: str, amount: int) -> dict:
        """Create a BRC-20 token mint inscription.

        Args:
            tick: Token ticker (exactly 4 characters)
            amount: Amount to mint
        """
        try:
            mint = BRC20Mint(tick=tick, amount=amount)
        except ValueError as e:
            return {"error": str(e)}

        return {
            "operation": "mint",
            "tick": tick,
            "json": mint.to_json(),
            "script_hex": mint.to_script().hex(),
        }

    @mcp.tool()
    def create_token_transfer(tick: str, amount: int) -> dict:
        """Create a BRC-20 token transfer inscription.

        Args:
            tick: Token ticker (exactly 4 characters)
            amount: Amount to transfer
        """
        try:
            transfer = BRC20Transfer(tick=tick, amount=amount)
        except ValueError as e:
            return {"error": str(e)}

        return {
            "operation": "transfer",
            "tick": tick,
            "json": transfer.to_json(),
            "script_hex": transfer.to_script().hex(),
        }

    # =========================================================================
    # Bitcoin Core Interface
    # =========================================================================

    @mcp.tool()
    async def get_node_info() -> dict:
        """Check connection and network status.

        Returns:
            Dictionary with node information including connection status,
            network, block height, and version.
        """
        node = get_node()
        info = await node.get_info()
        return {
            "connected": info.connected,
            "network": info.network,
            "block_height": info.block_height,
            "version": info.version,
            "errors": info.errors if info.errors else None,
        }

    @mcp.tool()
    async def list_utxos(
        min_confirmations: int = 1,
        min_amount: float = 0.0,
    ) -> dict:
        """List available UTXOs.

        Args:
            min_confirmations: Minimum confirmations required (default: 1)
            min_amount: Minimum UTXO amount in BTC (default: 0.0)
        """
        node = get_node()
        utxos = await node.list_utxos(min_confirmations, min_amount)

        return {
            "count": len(utxos),
            "utxos": [
                {
                    "txid": u.txid,
                    "vout": u.vout,
                    "amount": u.amount,
                    "confirmations": u.confirmations,
                }
                for u in utxos
            ],
        }

    @mcp.tool()
    async def broadcast_transaction(
        tx_hex: str,
        dry_run: Optional[bool] = None,
        max_fee_rate: Optional[float] = None,
    ) -> dict:
        """Send a signed transaction to the network.

        Args:
            tx_hex: Signed transaction as hex string
            dry_run: If True, only test without broadcasting
                (default: the configured dry_run_default)
            max_fee_rate: Maximum fee rate in BTC/kB (optional)
        """
        node = get_node()
        if dry_run is None:
            dry_run = config.dry_run_default

        if dry_run:
            result = await node.test_mempool_accept(tx_hex)
            return {
                "dry_run": True,
                "allowed": result.get("allowed", False),
                "reject_reason": result.get("reject-reason"),
            }

        txid = await node.send_raw_transaction(tx_hex, max_fee_rate)
        logger.info("Broadcast transaction %s", txid)
        return {"dry_run": False, "txid": txid, "broadcast": True}

    @mcp.tool()
    async def decode_script(script_hex: str) -> dict:
        """Ask the node to decode a script (e.g. an inscription envelope)."""
        node = get_node()
        return await node.decode_script(script_hex)

    @mcp.tool()
    async def mine_blocks(blocks: int = 1, address: str = "") -> dict:
        """Mine blocks on regtest.

        Args:
            blocks: Number of blocks to mine
            address: Reward address (default: a new wallet address)
        """
        node = get_node()
        if not address:
            address = await node.get_new_address()
        hashes = await node.generate_to_address(blocks, address)
        return {"address": address, "count": len(hashes), "block_hashes": hashes}

    @mcp.tool()
    async def get_balance() -> dict:
        """Get the loaded wallet's balance in BTC."""
        node = get_node()
        return {"balance": await node.get_balance()}

    # =========================================================================
    # Regtest Daemons
    # =========================================================================

    @mcp.tool()
    async def start_node() -> dict:
        """Start bitcoind and wait for it to answer RPC calls.

        Returns:
            Dictionary with 'name', 'started', 'ready' and 'pid'. A node that
            is still warming up after the startup timeout is reported as
            started but not ready.
        """
        try:
            status = await get_supervisor().start_node()
        except CollaboratorFailure as e:
            return {"error": str(e)}
        return asdict(status)

    @mcp.tool()
    async def start_indexer() -> dict:
        """Start the ord server and wait for it to start listening."""
        try:
            status = await get_supervisor().start_indexer()
        except CollaboratorFailure as e:
            return {"error": str(e)}
        return asdict(status)

    @mcp.tool()
    async def stop_daemons() -> dict:
        """Stop the ord server, then bitcoind."""
        await get_supervisor().stop_all()
        return {"stopped": True}

    return mcp


def main():
    """Entry point for the MCP server."""
    from pathlib import Path

    # Try to load config from standard locations
    config_paths = [
        Path("mcp-ordinals.toml"),
        Path.home() / ".config" / "mcp-ordinals" / "config.toml",
    ]

    config = None
    for path in config_paths:
        if path.exists():
            config = load_config(path)
            break

    if config is None:
        config = Config()

    logging.basicConfig(level=config.get_log_level())

    server = create_server(config)
    server.run()


if __name__ == "__main__":
    main()
