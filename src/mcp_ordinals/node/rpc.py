"""Bitcoin Core JSON-RPC interface."""

import base64
import logging
from typing import Any

import httpx

from mcp_ordinals.config import Config
from mcp_ordinals.errors import CollaboratorFailure
from mcp_ordinals.node.interface import NodeInterface

logger = logging.getLogger(__name__)


class BitcoinRPC(NodeInterface):
    """Bitcoin Core interface via JSON-RPC."""

    def __init__(self, config: Config):
        self.config = config
        self.url = config.rpc_url

        # Build auth header
        credentials = f"{config.rpc_user}:{config.rpc_password}"
        auth_bytes = base64.b64encode(credentials.encode()).decode()

        self._headers = {
            "Authorization": f"Basic {auth_bytes}",
            "Content-Type": "application/json",
        }

        self._client = httpx.AsyncClient(timeout=config.rpc_timeout)
        self._request_id = 0

    async def _call(self, method: str, *args: Any) -> Any:
        """Execute JSON-RPC call."""
        self._request_id += 1

        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": list(args),
        }

        logger.debug("RPC %s (id=%d)", method, self._request_id)
        try:
            response = await self._client.post(
                self.url,
                json=payload,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"RPC transport error calling {method}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise CollaboratorFailure(
                f"Invalid RPC response for {method} (HTTP {response.status_code})"
            ) from e

        if data.get("error"):
            error = data["error"]
            raise CollaboratorFailure(f"RPC error {error['code']}: {error['message']}")

        return data.get("result")

    async def close(self):
        """Close HTTP client."""
        await self._client.aclose()
