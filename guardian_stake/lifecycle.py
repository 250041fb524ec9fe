"""Stake lifecycle: state classification and call preconditions.

States are inferred from a decoded UserStake record (or its absence) and
the current unix time:

    NO_STAKE      record missing, or empty after a full withdraw
    STAKED        shares > 0 and nothing pending
    COOLDOWN      unstaking_amount > 0 and now <  unstake_ts + cooldown
    WITHDRAWABLE  unstaking_amount > 0 and now >= unstake_ts + cooldown

Transitions map one-to-one onto program instructions. The guards below
refuse to build calls the program would obviously reject; they never
execute anything themselves.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from guardian_stake.constants import DEFAULT_COOLDOWN_SECONDS, U64_MAX
from guardian_stake.errors import (
    ArithmeticOverflow,
    BelowMinimumStake,
    IneligibleForWithdraw,
    InsufficientShares,
    InvalidAmount,
    NoPendingUnstake,
    UnstakeAlreadyPending,
)
from guardian_stake.layouts import InstructionKind, UserStake

logger = logging.getLogger(__name__)


class StakeState(Enum):
    """Observable state of a user's stake in one guardian pool."""
    NO_STAKE = "no_stake"
    STAKED = "staked"
    COOLDOWN = "cooldown"
    WITHDRAWABLE = "withdrawable"


# (state, instruction) -> possible resulting states
TRANSITIONS: Dict[Tuple[StakeState, InstructionKind], FrozenSet[StakeState]] = {
    (StakeState.NO_STAKE, InstructionKind.STAKE): frozenset({StakeState.STAKED}),
    (StakeState.STAKED, InstructionKind.STAKE): frozenset({StakeState.STAKED}),
    (StakeState.STAKED, InstructionKind.UNSTAKE): frozenset({StakeState.COOLDOWN}),
    (StakeState.COOLDOWN, InstructionKind.CANCEL_UNSTAKE): frozenset({StakeState.STAKED}),
    # cancel stays legal once the deadline has passed
    (StakeState.WITHDRAWABLE, InstructionKind.CANCEL_UNSTAKE): frozenset({StakeState.STAKED}),
    (StakeState.WITHDRAWABLE, InstructionKind.WITHDRAW): frozenset(
        {StakeState.STAKED, StakeState.NO_STAKE}
    ),
}


def allowed_actions(state: StakeState) -> FrozenSet[InstructionKind]:
    return frozenset(kind for (src, kind) in TRANSITIONS if src == state)


def cooldown_deadline(record: UserStake, cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS) -> Optional[int]:
    """Unix time the pending unstake becomes withdrawable, or None."""
    if not record.has_pending_unstake:
        return None
    return record.unstake_timestamp + cooldown_seconds


def classify(
    record: Optional[UserStake],
    now: int,
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
) -> StakeState:
    if record is None:
        return StakeState.NO_STAKE
    if record.has_pending_unstake:
        if now < record.unstake_timestamp + cooldown_seconds:
            return StakeState.COOLDOWN
        return StakeState.WITHDRAWABLE
    if record.shares > 0:
        return StakeState.STAKED
    return StakeState.NO_STAKE


def seconds_until_withdrawable(
    record: UserStake, now: int, cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
) -> int:
    deadline = cooldown_deadline(record, cooldown_seconds)
    if deadline is None:
        return 0
    return max(0, deadline - now)


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


def ensure_can_stake(amount: int, min_stake: int = 0) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount("amount", amount)
    if amount > U64_MAX:
        raise ArithmeticOverflow("amount", amount, "u64")
    if amount < min_stake:
        raise BelowMinimumStake(amount, min_stake)


def ensure_can_unstake(record: Optional[UserStake], shares: int) -> None:
    if record is not None and record.has_pending_unstake:
        raise UnstakeAlreadyPending(record.unstaking_amount)
    if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
        raise InvalidAmount("shares", shares)
    available = record.shares if record is not None else 0
    if shares > available:
        raise InsufficientShares(shares, available)


def ensure_can_cancel_unstake(record: Optional[UserStake]) -> None:
    # legal in both COOLDOWN and WITHDRAWABLE
    if record is None or not record.has_pending_unstake:
        raise NoPendingUnstake(InstructionKind.CANCEL_UNSTAKE.value)


def ensure_can_withdraw(
    record: Optional[UserStake],
    now: int,
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
) -> None:
    if record is None or not record.has_pending_unstake:
        raise NoPendingUnstake(InstructionKind.WITHDRAW.value)
    eligible_at = record.unstake_timestamp + cooldown_seconds
    if now < eligible_at:
        raise IneligibleForWithdraw(now, eligible_at)
