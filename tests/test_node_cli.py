"""Tests for bitcoin-cli interface."""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from mcp_ordinals.node.cli import BitcoinCLI
from mcp_ordinals.config import Config, Network
from mcp_ordinals.errors import CollaboratorFailure


def fake_process(stdout=b"", stderr=b"", returncode=0):
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    return proc


class TestBitcoinCLI:
    """Test bitcoin-cli subprocess interface."""

    @pytest.fixture
    def cli(self):
        """Create CLI instance with test config."""
        config = Config(network=Network.REGTEST)
        return BitcoinCLI(config)

    def test_build_command_basic(self, cli):
        """Build basic command with network flag."""
        cmd = cli._build_command("getblockcount")

        assert cmd == ["bitcoin-cli", "-regtest", "getblockcount"]

    def test_build_command_with_args(self, cli):
        """Build command with arguments."""
        cmd = cli._build_command("generatetoaddress", 5, "bcrt1qaddr")

        assert cmd[-3:] == ["generatetoaddress", "5", "bcrt1qaddr"]

    def test_build_command_json_args(self, cli):
        """Structured arguments are passed as JSON."""
        cmd = cli._build_command("testmempoolaccept", ["0200"])

        assert json.loads(cmd[-1]) == ["0200"]

    def test_build_command_datadir(self):
        cli = BitcoinCLI(Config(network=Network.SIGNET, cli_datadir="/data"))

        assert cli._build_command("getblockcount")[1:3] == ["-signet", "-datadir=/data"]

    @pytest.mark.asyncio
    async def test_call_parses_json(self, cli):
        proc = fake_process(stdout=b'{"blocks": 7}\n')

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            assert await cli._call("getblockchaininfo") == {"blocks": 7}

    @pytest.mark.asyncio
    async def test_call_plain_text(self, cli):
        proc = fake_process(stdout=b"bcrt1qxyz\n")

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            assert await cli._call("getnewaddress") == "bcrt1qxyz"

    @pytest.mark.asyncio
    async def test_call_empty_output(self, cli):
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process())):
            assert await cli._call("loadwallet", "w") is None

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, cli):
        proc = fake_process(stderr=b"error code: -18\n", returncode=18)

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(CollaboratorFailure, match="bitcoin-cli error: error code: -18"):
                await cli._call("getbalance")

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self, cli):
        spawn = AsyncMock(side_effect=FileNotFoundError("bitcoin-cli"))

        with patch("asyncio.create_subprocess_exec", spawn):
            with pytest.raises(CollaboratorFailure, match="Could not run bitcoin-cli"):
                await cli._call("getblockcount")

    @pytest.mark.asyncio
    async def test_get_info_parses_response(self, cli):
        """Parse getblockchaininfo response."""
        mock_response = {
            "chain": "regtest",
            "blocks": 100,
            "headers": 100,
            "bestblockhash": "abc",
            "warnings": "",
        }
        mock_network = {"version": 270000, "subversion": "/Satoshi:27.0.0/"}

        with patch.object(cli, '_call', new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = [mock_response, mock_network]

            info = await cli.get_info()

            assert info.connected is True
            assert info.network == "regtest"
            assert info.block_height == 100
            assert info.version == 270000

    @pytest.mark.asyncio
    async def test_list_utxos_filters_by_amount(self, cli):
        """Parse listunspent response."""
        mock_response = [
            {
                "txid": "abc123",
                "vout": 0,
                "amount": 1.5,
                "confirmations": 10,
                "scriptPubKey": "0014aa",
            },
            {
                "txid": "def456",
                "vout": 1,
                "amount": 0.0001,
                "confirmations": 3,
                "scriptPubKey": "0014bb",
            },
        ]

        with patch.object(cli, '_call', new_callable=AsyncMock) as mock_call:
            mock_call.return_value = mock_response

            utxos = await cli.list_utxos(min_amount=0.01)

            assert len(utxos) == 1
            assert utxos[0].txid == "abc123"
            assert utxos[0].script_pubkey == "0014aa"

    @pytest.mark.asyncio
    async def test_dry_run_uses_testmempoolaccept(self, cli):
        """Dry run uses testmempoolaccept."""
        with patch.object(cli, '_call', new_callable=AsyncMock) as mock_call:
            mock_call.return_value = [{"txid": "abc", "allowed": True}]

            result = await cli.test_mempool_accept("0100")

            mock_call.assert_called_once_with("testmempoolaccept", ["0100"])
            assert result["allowed"] is True
