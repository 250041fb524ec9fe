"""Transport collaborator: account reads, chain time and call submission.

The protocol core never talks to the network itself; ``StakingClient``
consumes anything implementing ``Transport``. ``SolanaRpcTransport`` is
the solana-py implementation. Failures are wrapped in ``TransportError``
and never retried here.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol, Sequence, runtime_checkable

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from guardian_stake.errors import TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    async def fetch_bytes(self, address: Pubkey) -> Optional[bytes]:
        """Raw account data, or None if the account does not exist."""
        ...

    async def current_unix_time(self) -> int:
        ...

    async def submit(self, instructions: Sequence[Instruction], signer: Keypair) -> str:
        """Sign, send and return the transaction signature."""
        ...


class SolanaRpcTransport:
    """Transport backed by a single solana-py ``AsyncClient`` endpoint."""

    def __init__(self, rpc_url: str, commitment: str = "confirmed", timeout: float = 20.0):
        self.rpc_url = rpc_url
        self.commitment = Commitment(commitment)
        self._client = AsyncClient(rpc_url, commitment=self.commitment, timeout=timeout)

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> SolanaRpcTransport:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def fetch_bytes(self, address: Pubkey) -> Optional[bytes]:
        try:
            resp = await self._client.get_account_info(address, commitment=self.commitment)
        except Exception as exc:
            logger.warning(f"get_account_info failed for {address}: {exc}")
            raise TransportError(
                f"Failed to fetch account {address}",
                {"operation": "fetch_bytes", "address": str(address), "error": str(exc)},
            ) from exc
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def current_unix_time(self) -> int:
        """Block time of the latest slot; local clock if the node has none."""
        try:
            slot = (await self._client.get_slot(commitment=self.commitment)).value
            block_time = (await self._client.get_block_time(slot)).value
        except Exception as exc:
            logger.warning(f"Block time lookup failed: {exc}")
            raise TransportError(
                "Failed to read chain time", {"operation": "current_unix_time", "error": str(exc)}
            ) from exc
        if block_time is None:
            logger.info(f"No block time for slot {slot}, using local clock")
            return int(time.time())
        return int(block_time)

    async def submit(self, instructions: Sequence[Instruction], signer: Keypair) -> str:
        try:
            blockhash = (await self._client.get_latest_blockhash(commitment=self.commitment)).value.blockhash
            message = MessageV0.try_compile(signer.pubkey(), list(instructions), [], blockhash)
            tx = VersionedTransaction(message, [signer])
            opts = TxOpts(skip_preflight=False, preflight_commitment=self.commitment)
            resp = await self._client.send_transaction(tx, opts=opts)
        except Exception as exc:
            logger.error(f"Transaction submission failed: {exc}")
            raise TransportError(
                "Failed to submit transaction",
                {"operation": "submit", "address": str(signer.pubkey()), "error": str(exc)},
            ) from exc
        signature = str(resp.value)
        logger.info(f"Submitted staking transaction {signature}")
        return signature
