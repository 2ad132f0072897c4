"""Start and stop the bitcoind node and the ord indexer.

Readiness is reported either from a successful health check or after a fixed
timeout. A daemon reported as started is not necessarily ready; callers
inspect ``DaemonStatus.ready``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from mcp_ordinals.config import Config, Network
from mcp_ordinals.errors import CollaboratorFailure
from mcp_ordinals.node.cli import NETWORK_FLAGS
from mcp_ordinals.node.interface import NodeInterface

logger = logging.getLogger(__name__)


ORD_NETWORK_FLAGS = {
    Network.MAINNET: [],
    Network.TESTNET: ["--testnet"],
    Network.SIGNET: ["--signet"],
    Network.REGTEST: ["--regtest"],
}

NODE = "bitcoind"
INDEXER = "ord"
INDEXER_READY_TEXT = "listening"
STOP_TIMEOUT = 10.0


@dataclass
class DaemonStatus:
    """Outcome of starting a daemon."""
    name: str
    started: bool
    ready: bool
    pid: Optional[int] = None


class ProcessSupervisor:
    """Supervise the node and indexer daemons as child processes."""

    def __init__(self, config: Config, node: NodeInterface):
        self.config = config
        self.node = node
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._pumps: dict[str, list[asyncio.Task]] = {}
        self._ready_events: dict[str, asyncio.Event] = {}

    def build_node_command(self) -> list[str]:
        """Build the bitcoind command line."""
        config = self.config
        cmd = [config.bitcoind_path]
        cmd.extend(NETWORK_FLAGS.get(config.network, []))
        if config.cli_datadir:
            cmd.append(f"-datadir={config.cli_datadir}")
        cmd.extend([
            "-server=1",
            "-txindex=1",
            "-fallbackfee=0.00001",
            f"-rpcport={config.get_rpc_port()}",
        ])
        if config.rpc_user:
            cmd.append(f"-rpcuser={config.rpc_user}")
        if config.rpc_password:
            cmd.append(f"-rpcpassword={config.rpc_password}")
        return cmd

    def build_indexer_command(self) -> list[str]:
        """Build the ord server command line."""
        config = self.config
        cmd = [config.ord_path]
        cmd.extend(ORD_NETWORK_FLAGS.get(config.network, []))
        cmd.extend(["--bitcoin-rpc-url", config.rpc_url])
        if config.rpc_user:
            cmd.extend(["--bitcoin-rpc-username", config.rpc_user])
        if config.rpc_password:
            cmd.extend(["--bitcoin-rpc-password", config.rpc_password])
        cmd.append("server")
        return cmd

    def is_running(self, name: str) -> bool:
        proc = self._processes.get(name)
        return proc is not None and proc.returncode is None

    async def _pump(self, name: str, stream: asyncio.StreamReader) -> None:
        """Drain a daemon output stream, flagging readiness text."""
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode(errors="replace").rstrip()
            logger.debug("%s: %s", name, text)
            if INDEXER_READY_TEXT in text and name in self._ready_events:
                self._ready_events[name].set()

    async def _spawn(self, name: str, cmd: list[str]) -> asyncio.subprocess.Process:
        logger.info("Starting %s: %s", name, cmd[0])
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CollaboratorFailure(f"Failed to start {name}: {e}") from e

        self._processes[name] = proc
        self._pumps[name] = [
            asyncio.create_task(self._pump(name, proc.stdout)),
            asyncio.create_task(self._pump(name, proc.stderr)),
        ]
        return proc

    async def health_check(self) -> bool:
        """Return True if the node answers RPC calls."""
        info = await self.node.get_info()
        return info.connected

    async def _wait_for_node(self) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.node_startup_timeout
        while True:
            if await self.health_check():
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self.config.poll_interval, remaining))

    async def start_node(self) -> DaemonStatus:
        """Start bitcoind and wait for it to answer RPC calls."""
        if self.is_running(NODE):
            proc = self._processes[NODE]
            return DaemonStatus(NODE, started=True, ready=await self.health_check(), pid=proc.pid)

        proc = await self._spawn(NODE, self.build_node_command())
        ready = await self._wait_for_node()
        if ready:
            logger.info("%s ready (pid %s)", NODE, proc.pid)
        else:
            logger.warning(
                "%s not answering after %.1fs; continuing without readiness",
                NODE, self.config.node_startup_timeout,
            )
        return DaemonStatus(NODE, started=True, ready=ready, pid=proc.pid)

    async def start_indexer(self) -> DaemonStatus:
        """Start the ord server and wait for it to report it is listening."""
        if self.is_running(INDEXER):
            proc = self._processes[INDEXER]
            ready = self._ready_events[INDEXER].is_set()
            return DaemonStatus(INDEXER, started=True, ready=ready, pid=proc.pid)

        event = asyncio.Event()
        self._ready_events[INDEXER] = event
        proc = await self._spawn(INDEXER, self.build_indexer_command())

        try:
            await asyncio.wait_for(event.wait(), timeout=self.config.indexer_startup_timeout)
            ready = True
            logger.info("%s listening (pid %s)", INDEXER, proc.pid)
        except asyncio.TimeoutError:
            ready = False
            logger.warning(
                "%s started (timeout after %.1fs)", INDEXER, self.config.indexer_startup_timeout
            )
        return DaemonStatus(INDEXER, started=True, ready=ready, pid=proc.pid)

    async def _terminate(self, name: str) -> None:
        proc = self._processes.pop(name, None)
        pumps = self._pumps.pop(name, [])
        self._ready_events.pop(name, None)
        if proc is None:
            return

        if proc.returncode is None:
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=STOP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("%s did not exit, killing", name)
                proc.kill()
                await proc.wait()

        for task in pumps:
            task.cancel()
        logger.info("%s stopped", name)

    async def stop_node(self) -> None:
        """Ask bitcoind to stop over RPC, then terminate the process."""
        if not self.is_running(NODE):
            await self._terminate(NODE)
            return
        try:
            await self.node.stop()
        except CollaboratorFailure as e:
            logger.warning("RPC stop failed, terminating %s: %s", NODE, e)
        await self._terminate(NODE)

    async def stop_indexer(self) -> None:
        await self._terminate(INDEXER)

    async def stop_all(self) -> None:
        """Stop the indexer first, then the node it depends on."""
        await self.stop_indexer()
        await self.stop_node()
