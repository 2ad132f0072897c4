"""Configuration loading and management."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

try:
    import tomli
except ImportError:  # pragma: no cover
    import tomllib as tomli  # Python 3.11+


class ConnectionMethod(Enum):
    """Bitcoin Core connection method."""
    CLI = "cli"
    RPC = "rpc"


class Network(Enum):
    """Bitcoin network."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


# Default RPC ports per network
DEFAULT_PORTS = {
    Network.MAINNET: 8332,
    Network.TESTNET: 18332,
    Network.SIGNET: 38332,
    Network.REGTEST: 18443,
}


@dataclass
class Config:
    """Server configuration."""

    # Connection settings
    connection_method: ConnectionMethod = ConnectionMethod.RPC
    network: Network = Network.REGTEST

    # CLI settings
    cli_path: str = "bitcoin-cli"
    cli_datadir: str = ""

    # RPC settings
    rpc_host: str = "127.0.0.1"
    rpc_port: Optional[int] = None
    rpc_user: str = ""
    rpc_password: str = ""
    rpc_timeout: float = 30.0

    # Supervisor settings
    bitcoind_path: str = "bitcoind"
    ord_path: str = "ord"
    node_startup_timeout: float = 3.0
    indexer_startup_timeout: float = 10.0
    poll_interval: float = 0.5

    # Safety settings
    dry_run_default: bool = True
    max_body_size: int = 400000  # Standard-relay witness limit

    # Logging
    log_level: str = "WARNING"

    @property
    def default_rpc_port(self) -> int:
        """Get default RPC port for current network."""
        return DEFAULT_PORTS[self.network]

    def get_rpc_port(self) -> int:
        """Get configured or default RPC port."""
        return self.rpc_port if self.rpc_port else self.default_rpc_port

    @property
    def rpc_url(self) -> str:
        return f"http://{self.rpc_host}:{self.get_rpc_port()}"

    def get_log_level(self) -> int:
        """Resolve log_level to a logging constant, defaulting to WARNING."""
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.WARNING


DEFAULT_CONFIG = Config()


def load_config(path: Path) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to config file

    Returns:
        Loaded configuration, merged with defaults
    """
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        data = tomli.load(f)

    defaults = DEFAULT_CONFIG
    conn = data.get("connection", {})
    cli = data.get("cli", {})
    rpc = data.get("rpc", {})
    supervisor = data.get("supervisor", {})
    safety = data.get("safety", {})
    logging_section = data.get("logging", {})

    return Config(
        connection_method=ConnectionMethod(conn.get("method", defaults.connection_method.value)),
        network=Network(conn.get("network", defaults.network.value)),
        cli_path=cli.get("path", defaults.cli_path),
        cli_datadir=cli.get("datadir", defaults.cli_datadir),
        rpc_host=rpc.get("host", defaults.rpc_host),
        rpc_port=rpc.get("port"),
        rpc_user=rpc.get("user", defaults.rpc_user),
        rpc_password=rpc.get("password", defaults.rpc_password),
        rpc_timeout=float(rpc.get("timeout", defaults.rpc_timeout)),
        bitcoind_path=supervisor.get("bitcoind_path", defaults.bitcoind_path),
        ord_path=supervisor.get("ord_path", defaults.ord_path),
        node_startup_timeout=float(
            supervisor.get("node_startup_timeout", defaults.node_startup_timeout)
        ),
        indexer_startup_timeout=float(
            supervisor.get("indexer_startup_timeout", defaults.indexer_startup_timeout)
        ),
        poll_interval=float(supervisor.get("poll_interval", defaults.poll_interval)),
        dry_run_default=safety.get("dry_run_default", defaults.dry_run_default),
        max_body_size=safety.get("max_body_size", defaults.max_body_size),
        log_level=logging_section.get("level", defaults.log_level),
    )
