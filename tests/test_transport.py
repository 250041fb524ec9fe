"""Tests for the solana-py transport adapter with a mocked AsyncClient."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from guardian_stake.errors import TransportError
from guardian_stake.transport import SolanaRpcTransport, Transport

ADDRESS = Pubkey.from_bytes(bytes([5] * 32))


@pytest.fixture
def rpc():
    transport = SolanaRpcTransport("http://localhost:8899")
    transport._client = AsyncMock()
    return transport


class TestProtocol:
    def test_is_transport(self, rpc):
        assert isinstance(rpc, Transport)


class TestFetchBytes:
    @pytest.mark.asyncio
    async def test_returns_account_data(self, rpc):
        rpc._client.get_account_info.return_value = SimpleNamespace(value=SimpleNamespace(data=b"\x01\x02"))
        assert await rpc.fetch_bytes(ADDRESS) == b"\x01\x02"

    @pytest.mark.asyncio
    async def test_missing_account(self, rpc):
        rpc._client.get_account_info.return_value = SimpleNamespace(value=None)
        assert await rpc.fetch_bytes(ADDRESS) is None

    @pytest.mark.asyncio
    async def test_rpc_failure_wrapped(self, rpc):
        rpc._client.get_account_info.side_effect = ConnectionError("refused")
        with pytest.raises(TransportError) as exc_info:
            await rpc.fetch_bytes(ADDRESS)
        assert exc_info.value.details["operation"] == "fetch_bytes"
        assert exc_info.value.details["address"] == str(ADDRESS)


class TestCurrentUnixTime:
    @pytest.mark.asyncio
    async def test_block_time(self, rpc):
        rpc._client.get_slot.return_value = SimpleNamespace(value=1234)
        rpc._client.get_block_time.return_value = SimpleNamespace(value=1_700_000_000)
        assert await rpc.current_unix_time() == 1_700_000_000
        rpc._client.get_block_time.assert_awaited_once_with(1234)

    @pytest.mark.asyncio
    async def test_falls_back_to_local_clock(self, rpc, monkeypatch):
        rpc._client.get_slot.return_value = SimpleNamespace(value=1234)
        rpc._client.get_block_time.return_value = SimpleNamespace(value=None)
        monkeypatch.setattr("guardian_stake.transport.time.time", lambda: 42.9)
        assert await rpc.current_unix_time() == 42


class TestSubmit:
    @pytest.mark.asyncio
    async def test_sends_versioned_transaction(self, rpc):
        from solders.instruction import Instruction

        signer = Keypair()
        rpc._client.get_latest_blockhash.return_value = SimpleNamespace(
            value=SimpleNamespace(blockhash=Hash.default())
        )
        rpc._client.send_transaction.return_value = SimpleNamespace(value="5igSig")
        ix = Instruction(ADDRESS, b"\x00", [])

        assert await rpc.submit([ix], signer) == "5igSig"
        rpc._client.send_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_wrapped(self, rpc):
        rpc._client.get_latest_blockhash.side_effect = RuntimeError("boom")
        with pytest.raises(TransportError):
            await rpc.submit([], Keypair())
