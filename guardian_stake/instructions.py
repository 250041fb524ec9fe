"""Guardian staking program instructions.

Each builder returns a solders ``Instruction`` (program id, ordered
``AccountMeta`` list, payload bytes). Account order and signer/writable
flags are fixed by the program; the builders are pure and never touch the
network.

Account order (all instructions end with the Anchor event-CPI pair
``event_authority, program``):

    stake           user[s,w] config[w] user_stake[w] guardian_pool
                    user_token[w] vault[w] mint token_program system_program
    unstake         user[s,w] config[w] user_stake[w] guardian_pool
    cancel_unstake  user[s,w] config[w] user_stake[w] guardian_pool
    withdraw        user[s,w] config[w] user_stake[w] guardian_pool
                    user_token[w] vault[w] mint token_program
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from guardian_stake.constants import DEFAULT_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID
from guardian_stake.layouts import (
    encode_cancel_unstake_data,
    encode_stake_data,
    encode_unstake_data,
    encode_withdraw_data,
)
from guardian_stake.pda import (
    derive_config_pda,
    derive_event_authority_pda,
    derive_user_stake_pda,
    derive_vault_pda,
)

logger = logging.getLogger(__name__)


class ProgramAddresses(NamedTuple):
    """Fixed addresses of one staking program deployment."""

    program_id: Pubkey
    """Staking program."""
    config: Pubkey
    """`[w]` StakeConfig singleton."""
    vault: Pubkey
    """`[w]` Token vault holding pooled stake."""
    event_authority: Pubkey
    """`[]` Anchor event CPI authority."""

    @classmethod
    def derive(cls, program_id: Pubkey = DEFAULT_PROGRAM_ID) -> ProgramAddresses:
        config, _ = derive_config_pda(program_id)
        vault, _ = derive_vault_pda(config, program_id)
        event_authority, _ = derive_event_authority_pda(program_id)
        return cls(program_id=program_id, config=config, vault=vault, event_authority=event_authority)

    def user_stake(self, user: Pubkey, guardian_pool: Pubkey) -> Pubkey:
        address, _ = derive_user_stake_pda(self.config, user, guardian_pool, self.program_id)
        return address


def _head(program: ProgramAddresses, user: Pubkey, guardian_pool: Pubkey) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=user, is_signer=True, is_writable=True),
        AccountMeta(pubkey=program.config, is_signer=False, is_writable=True),
        AccountMeta(pubkey=program.user_stake(user, guardian_pool), is_signer=False, is_writable=True),
        AccountMeta(pubkey=guardian_pool, is_signer=False, is_writable=False),
    ]


def _token_accounts(
    program: ProgramAddresses, user_token_account: Pubkey, mint: Pubkey, token_program_id: Pubkey
) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=user_token_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=program.vault, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=token_program_id, is_signer=False, is_writable=False),
    ]


def _event_cpi(program: ProgramAddresses) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=program.event_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=program.program_id, is_signer=False, is_writable=False),
    ]


def stake(
    program: ProgramAddresses,
    user: Pubkey,
    guardian_pool: Pubkey,
    user_token_account: Pubkey,
    mint: Pubkey,
    amount: int,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Deposit ``amount`` raw tokens; creates the UserStake record on first use."""
    accounts = (
        _head(program, user, guardian_pool)
        + _token_accounts(program, user_token_account, mint, token_program_id)
        + [AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False)]
        + _event_cpi(program)
    )
    return Instruction(program_id=program.program_id, data=encode_stake_data(amount), accounts=accounts)


def unstake(program: ProgramAddresses, user: Pubkey, guardian_pool: Pubkey, shares: int) -> Instruction:
    """Start the cooldown for ``shares``."""
    accounts = _head(program, user, guardian_pool) + _event_cpi(program)
    return Instruction(program_id=program.program_id, data=encode_unstake_data(shares), accounts=accounts)


def cancel_unstake(program: ProgramAddresses, user: Pubkey, guardian_pool: Pubkey) -> Instruction:
    accounts = _head(program, user, guardian_pool) + _event_cpi(program)
    return Instruction(program_id=program.program_id, data=encode_cancel_unstake_data(), accounts=accounts)


def withdraw(
    program: ProgramAddresses,
    user: Pubkey,
    guardian_pool: Pubkey,
    user_token_account: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Pay out the pending unstake once the cooldown has elapsed."""
    accounts = (
        _head(program, user, guardian_pool)
        + _token_accounts(program, user_token_account, mint, token_program_id)
        + _event_cpi(program)
    )
    return Instruction(program_id=program.program_id, data=encode_withdraw_data(), accounts=accounts)
