"""
Guardian staking test configuration.

Shared fixtures: an in-memory transport standing in for RPC, settings,
program addresses and helpers that write encoded accounts into it.
"""

import os
import sys
from typing import Dict, List, Optional, Sequence

# Add project root to path FIRST
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from guardian_stake.client import StakingClient
from guardian_stake.config import StakingSettings
from guardian_stake.constants import DEFAULT_COOLDOWN_SECONDS, SHARE_PRICE_SCALE
from guardian_stake.instructions import ProgramAddresses
from guardian_stake.layouts import GlobalConfig, UserStake, encode_global_config, encode_user_stake

# Known test addresses (no funds)
TEST_USER = Pubkey.from_string("2GaN26Fy8bdKETdkU9e4R2qrF4cGFHiY8oRBp2mALjqH")
TEST_POOL = Pubkey.from_string("CEVuz5HoDFKyNh6ZgWKce6WbHsiVLvhZtet59tbnKsJD")

NOW = 1_750_000_000


class FakeTransport:
    """In-memory Transport: accounts by address plus a settable clock."""

    def __init__(self, now: int = NOW):
        self.accounts: Dict[Pubkey, bytes] = {}
        self.now = now
        self.submitted: List[Sequence[Instruction]] = []
        self.fetches: List[Pubkey] = []

    async def fetch_bytes(self, address: Pubkey) -> Optional[bytes]:
        self.fetches.append(address)
        return self.accounts.get(address)

    async def current_unix_time(self) -> int:
        return self.now

    async def submit(self, instructions: Sequence[Instruction], signer: Keypair) -> str:
        self.submitted.append(list(instructions))
        return f"sig-{len(self.submitted)}"


def make_config(program: ProgramAddresses, **overrides) -> GlobalConfig:
    fields = dict(
        bump=254,
        authority=Pubkey.default(),
        token_mint=StakingSettings().token_mint,
        vault=program.vault,
        min_stake=1_000_000,
        cooldown_seconds=DEFAULT_COOLDOWN_SECONDS,
        total_shares=500_000_000_000,
        share_price=SHARE_PRICE_SCALE,
    )
    fields.update(overrides)
    return GlobalConfig(**fields)


def make_user_stake(program: ProgramAddresses, user: Pubkey = TEST_USER, pool: Pubkey = None, **overrides) -> UserStake:
    fields = dict(
        bump=253,
        config=program.config,
        user=user,
        guardian_pool=pool if pool is not None else Pubkey.default(),
        shares=100_000_000,
        cost_basis=100_000_000,
        commission_accumulator=0,
        unstaking_amount=0,
        unstake_timestamp=0,
    )
    fields.update(overrides)
    return UserStake(**fields)


@pytest.fixture
def settings():
    return StakingSettings()


@pytest.fixture
def program(settings):
    return ProgramAddresses.derive(settings.program_id)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport, settings):
    return StakingClient(transport, settings)


@pytest.fixture
def put_config(transport, program):
    """Write a StakeConfig account into the fake transport."""
    def _put(**overrides) -> GlobalConfig:
        config = make_config(program, **overrides)
        transport.accounts[program.config] = encode_global_config(config)
        return config
    return _put


@pytest.fixture
def put_user_stake(transport, program):
    """Write a UserStake account for (user, pool) into the fake transport."""
    def _put(user: Pubkey = TEST_USER, pool: Optional[Pubkey] = None, **overrides) -> UserStake:
        record = make_user_stake(program, user, pool, **overrides)
        transport.accounts[program.user_stake(user, record.guardian_pool)] = encode_user_stake(record)
        return record
    return _put
