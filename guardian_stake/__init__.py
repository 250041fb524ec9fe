"""
Guardian staking client - Python 3, solders/solana-py based.

Derives program addresses, encodes and decodes the staking program's
accounts and instructions, converts between tokens and shares, and
classifies a user's stake lifecycle. Network access goes through an
injected Transport; nothing in the protocol core performs I/O.
"""

from guardian_stake.client import StakePosition, StakingClient
from guardian_stake.config import StakingSettings
from guardian_stake.errors import StakingError
from guardian_stake.layouts import GlobalConfig, InstructionKind, UserStake
from guardian_stake.lifecycle import StakeState

__all__ = [
    "GlobalConfig",
    "InstructionKind",
    "StakePosition",
    "StakeState",
    "StakingClient",
    "StakingError",
    "StakingSettings",
    "UserStake",
]
