"""
Guardian staking client.

Read path:  fetch bytes -> decode -> value at current price -> classify.
Write path: fetch state -> check preconditions -> build instruction.

The client holds no cached chain state; every call fetches what it needs
through the injected ``Transport``, and share price is always read before
it is used for a conversion in the same call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from guardian_stake import instructions, lifecycle, shares
from guardian_stake.config import StakingSettings
from guardian_stake.errors import AccountNotFound, InvalidAmount, StakingError
from guardian_stake.instructions import ProgramAddresses
from guardian_stake.layouts import GlobalConfig, UserStake, decode_global_config, decode_user_stake
from guardian_stake.lifecycle import StakeState
from guardian_stake.logging_config import get_logger
from guardian_stake.transport import Transport

logger = get_logger(__name__)


@dataclass(frozen=True)
class StakePosition:
    """A user's stake in one guardian pool as observed at ``observed_at``."""
    address: Pubkey
    user: Pubkey
    guardian_pool: Pubkey
    record: Optional[UserStake]
    state: StakeState
    share_price: int
    observed_at: int
    token_value: int = 0
    unrealized_gain: int = 0
    cooldown_ends_at: Optional[int] = None
    seconds_remaining: int = 0

    @property
    def shares(self) -> int:
        return self.record.shares if self.record else 0

    @property
    def cost_basis(self) -> int:
        return self.record.cost_basis if self.record else 0

    @property
    def unstaking_amount(self) -> int:
        return self.record.unstaking_amount if self.record else 0


class StakingClient:
    """Reads staking accounts and builds guarded program calls."""

    def __init__(self, transport: Transport, settings: Optional[StakingSettings] = None):
        self.transport = transport
        self.settings = settings or StakingSettings()
        self.program = ProgramAddresses.derive(self.settings.program_id)

    def _pool(self, guardian_pool: Optional[Pubkey]) -> Pubkey:
        return guardian_pool if guardian_pool is not None else self.settings.default_guardian_pool

    def token_account_for(self, user: Pubkey) -> Pubkey:
        """The user's associated token account for the staked mint."""
        return get_associated_token_address(user, self.settings.token_mint)

    def user_stake_address(self, user: Pubkey, guardian_pool: Optional[Pubkey] = None) -> Pubkey:
        return self.program.user_stake(user, self._pool(guardian_pool))

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def fetch_config(self) -> GlobalConfig:
        data = await self.transport.fetch_bytes(self.program.config)
        if data is None:
            raise AccountNotFound("StakeConfig", str(self.program.config))
        return decode_global_config(data)

    async def fetch_user_stake(
        self, user: Pubkey, guardian_pool: Optional[Pubkey] = None
    ) -> Optional[UserStake]:
        data = await self.transport.fetch_bytes(self.user_stake_address(user, guardian_pool))
        if data is None:
            return None
        return decode_user_stake(data)

    async def _snapshot(
        self, user: Pubkey, guardian_pool: Optional[Pubkey]
    ) -> Tuple[GlobalConfig, Optional[UserStake], int]:
        config = await self.fetch_config()
        record = await self.fetch_user_stake(user, guardian_pool)
        now = await self.transport.current_unix_time()
        return config, record, now

    async def get_position(self, user: Pubkey, guardian_pool: Optional[Pubkey] = None) -> StakePosition:
        pool = self._pool(guardian_pool)
        config, record, now = await self._snapshot(user, pool)
        state = lifecycle.classify(record, now, config.cooldown_seconds)

        token_value = 0
        gain = 0
        deadline = None
        remaining = 0
        if record is not None:
            token_value = shares.shares_to_tokens(record.shares, config.share_price)
            gain = shares.unrealized_gain(record.shares, record.cost_basis, config.share_price)
            deadline = lifecycle.cooldown_deadline(record, config.cooldown_seconds)
            remaining = lifecycle.seconds_until_withdrawable(record, now, config.cooldown_seconds)

        return StakePosition(
            address=self.program.user_stake(user, pool),
            user=user,
            guardian_pool=pool,
            record=record,
            state=state,
            share_price=config.share_price,
            observed_at=now,
            token_value=token_value,
            unrealized_gain=gain,
            cooldown_ends_at=deadline,
            seconds_remaining=remaining,
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def build_stake(
        self,
        user: Pubkey,
        amount: int,
        guardian_pool: Optional[Pubkey] = None,
        token_account: Optional[Pubkey] = None,
    ) -> Instruction:
        """Stake ``amount`` raw tokens from the user's token account."""
        pool = self._pool(guardian_pool)
        config = await self.fetch_config()
        try:
            lifecycle.ensure_can_stake(amount, config.min_stake)
            expected_shares = shares.tokens_to_shares(amount, config.share_price)
        except StakingError as exc:
            logger.warning("Refusing stake", user=str(user), code=exc.code, **exc.details)
            raise

        ix = instructions.stake(
            self.program,
            user,
            pool,
            token_account or self.token_account_for(user),
            self.settings.token_mint,
            amount,
            self.settings.token_program_id,
        )
        logger.info(
            "Built stake",
            user=str(user),
            amount=amount,
            expected_shares=expected_shares,
        )
        return ix

    async def build_unstake(
        self,
        user: Pubkey,
        share_amount: Optional[int] = None,
        guardian_pool: Optional[Pubkey] = None,
    ) -> Instruction:
        """Start the cooldown for ``share_amount`` shares (all when None)."""
        pool = self._pool(guardian_pool)
        config, record, _ = await self._snapshot(user, pool)
        requested = share_amount if share_amount is not None else (record.shares if record else 0)
        try:
            lifecycle.ensure_can_unstake(record, requested)
            expected_tokens = shares.shares_to_tokens(requested, config.share_price)
        except StakingError as exc:
            logger.warning("Refusing unstake", user=str(user), code=exc.code, **exc.details)
            raise

        ix = instructions.unstake(self.program, user, pool, requested)
        logger.info(
            "Built unstake",
            user=str(user),
            shares=requested,
            expected_tokens=expected_tokens,
        )
        return ix

    async def build_unstake_tokens(
        self,
        user: Pubkey,
        token_amount: int,
        guardian_pool: Optional[Pubkey] = None,
    ) -> Instruction:
        """Unstake the shares worth ``token_amount`` raw tokens at the current price."""
        config = await self.fetch_config()
        try:
            if isinstance(token_amount, bool) or not isinstance(token_amount, int) or token_amount <= 0:
                raise InvalidAmount("token_amount", token_amount)
            share_amount = shares.tokens_to_shares(token_amount, config.share_price)
        except StakingError as exc:
            logger.warning("Refusing unstake", user=str(user), code=exc.code, **exc.details)
            raise
        return await self.build_unstake(user, share_amount, guardian_pool)

    async def build_cancel_unstake(self, user: Pubkey, guardian_pool: Optional[Pubkey] = None) -> Instruction:
        pool = self._pool(guardian_pool)
        record = await self.fetch_user_stake(user, pool)
        try:
            lifecycle.ensure_can_cancel_unstake(record)
        except StakingError as exc:
            logger.warning("Refusing cancel_unstake", user=str(user), code=exc.code, **exc.details)
            raise

        logger.info("Built cancel_unstake", user=str(user), unstaking_amount=record.unstaking_amount)
        return instructions.cancel_unstake(self.program, user, pool)

    async def build_withdraw(
        self,
        user: Pubkey,
        guardian_pool: Optional[Pubkey] = None,
        token_account: Optional[Pubkey] = None,
    ) -> Instruction:
        pool = self._pool(guardian_pool)
        config, record, now = await self._snapshot(user, pool)
        try:
            lifecycle.ensure_can_withdraw(record, now, config.cooldown_seconds)
        except StakingError as exc:
            logger.warning("Refusing withdraw", user=str(user), code=exc.code, **exc.details)
            raise

        logger.info("Built withdraw", user=str(user), amount=record.unstaking_amount)
        return instructions.withdraw(
            self.program,
            user,
            pool,
            token_account or self.token_account_for(user),
            self.settings.token_mint,
            self.settings.token_program_id,
        )

    async def submit(self, instruction: Instruction, signer: Keypair) -> str:
        return await self.transport.submit([instruction], signer)
