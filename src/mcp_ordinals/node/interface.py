"""Abstract interface for Bitcoin Core communication.

Implementations raise CollaboratorFailure for every transport or RPC error
and never retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class NodeInfo:
    """Bitcoin node information."""
    connected: bool
    network: str
    block_height: int
    version: int
    errors: str = ""


@dataclass
class UTXO:
    """Unspent transaction output."""
    txid: str
    vout: int
    amount: float  # BTC
    confirmations: int
    script_pubkey: str


def _parse_utxos(result: list[dict], min_amount: float) -> list[UTXO]:
    return [
        UTXO(
            txid=u["txid"],
            vout=u["vout"],
            amount=u["amount"],
            confirmations=u["confirmations"],
            script_pubkey=u["scriptPubKey"],
        )
        for u in result
        if u["amount"] >= min_amount
    ]


class NodeInterface(ABC):
    """Abstract interface for Bitcoin Core communication."""

    @abstractmethod
    async def _call(self, method: str, *args: Any) -> Any:
        """Execute a node method and return its parsed result."""
        pass  # pragma: no cover

    async def get_info(self) -> NodeInfo:
        """Get node status and network info. Doubles as a health check."""
        try:
            chain_info = await self._call("getblockchaininfo")
            network_info = await self._call("getnetworkinfo")

            return NodeInfo(
                connected=True,
                network=chain_info["chain"],
                block_height=chain_info["blocks"],
                version=network_info["version"],
                errors=chain_info.get("warnings", ""),
            )
        except Exception as e:
            return NodeInfo(
                connected=False,
                network="unknown",
                block_height=0,
                version=0,
                errors=str(e),
            )

    async def list_utxos(
        self,
        min_confirmations: int = 1,
        min_amount: float = 0,
    ) -> list[UTXO]:
        """List available UTXOs."""
        result = await self._call("listunspent", min_confirmations)
        return _parse_utxos(result, min_amount)

    async def send_raw_transaction(
        self,
        tx_hex: str,
        max_fee_rate: Optional[float] = None,
    ) -> str:
        """Broadcast signed transaction, return txid."""
        if max_fee_rate:
            return await self._call("sendrawtransaction", tx_hex, max_fee_rate)
        return await self._call("sendrawtransaction", tx_hex)

    async def test_mempool_accept(self, tx_hex: str) -> dict[str, Any]:
        """Test if transaction would be accepted (dry run)."""
        result = await self._call("testmempoolaccept", [tx_hex])
        return result[0] if result else {"allowed": False}

    async def decode_script(self, script_hex: str) -> dict[str, Any]:
        """Let the node decode a script."""
        return await self._call("decodescript", script_hex)

    async def get_new_address(self, label: str = "") -> str:
        """Generate new receiving address."""
        if label:
            return await self._call("getnewaddress", label)
        return await self._call("getnewaddress")

    async def generate_to_address(self, blocks: int, address: str) -> list[str]:
        """Mine blocks to an address (regtest), return block hashes."""
        return await self._call("generatetoaddress", blocks, address)

    async def get_balance(self) -> float:
        """Get wallet balance in BTC."""
        return await self._call("getbalance")

    async def create_wallet(self, name: str) -> dict[str, Any]:
        """Create a wallet."""
        return await self._call("createwallet", name)

    async def load_wallet(self, name: str) -> dict[str, Any]:
        """Load an existing wallet."""
        return await self._call("loadwallet", name)

    async def stop(self) -> str:
        """Ask the node to shut down."""
        return await self._call("stop")
