"""Bitcoin Core CLI (subprocess) interface."""

import asyncio
import json
import logging
from typing import Any

from mcp_ordinals.config import Config, Network
from mcp_ordinals.errors import CollaboratorFailure
from mcp_ordinals.node.interface import NodeInterface

logger = logging.getLogger(__name__)


# Network CLI flags
NETWORK_FLAGS = {
    Network.MAINNET: [],
    Network.TESTNET: ["-testnet"],
    Network.SIGNET: ["-signet"],
    Network.REGTEST: ["-regtest"],
}


class BitcoinCLI(NodeInterface):
    """Bitcoin Core interface via bitcoin-cli subprocess."""

    def __init__(self, config: Config):
        self.config = config
        self.cli_path = config.cli_path
        self.network = config.network
        self.datadir = config.cli_datadir

    def _build_command(self, method: str, *args: Any) -> list[str]:
        """Build bitcoin-cli command."""
        cmd = [self.cli_path]
        cmd.extend(NETWORK_FLAGS.get(self.network, []))

        if self.datadir:
            cmd.append(f"-datadir={self.datadir}")

        cmd.append(method)
        # Structured arguments are passed as JSON literals
        cmd.extend(json.dumps(arg) if isinstance(arg, (list, dict)) else str(arg) for arg in args)

        return cmd

    async def _call(self, method: str, *args: Any) -> Any:
        """Execute bitcoin-cli command and parse JSON response."""
        cmd = self._build_command(method, *args)
        logger.debug("bitcoin-cli %s", method)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CollaboratorFailure(f"Could not run {self.cli_path}: {e}") from e

        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            error_msg = stderr.decode().strip()
            raise CollaboratorFailure(f"bitcoin-cli error: {error_msg}")

        output = stdout.decode().strip()
        if not output:
            return None

        try:
            return json.loads(output)
        except json.JSONDecodeError:
            # Some commands return plain text
            return output
