"""Binary layouts for guardian staking accounts and instruction payloads.

All records are fixed-offset, little-endian and unpadded:

StakeConfig (153 bytes)
    0   discriminator   [u8; 8]
    8   bump            u8
    9   authority       Pubkey
    41  token_mint      Pubkey
    73  vault           Pubkey
    105 min_stake       u64
    113 cooldown_secs   u64
    121 total_shares    u128
    137 share_price     u128   (scaled by 10^9)

UserStake (169 bytes)
    0   discriminator   [u8; 8]
    8   bump            u8
    9   config          Pubkey
    41  user            Pubkey
    73  guardian_pool   Pubkey
    105 shares          u128
    121 cost_basis      u128
    137 commission_acc  u128
    153 unstaking_amt   u64
    161 unstake_ts      i64

u128 fields are two u64 words (low first); i64 is read as u64 and
reinterpreted as two's complement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from construct import Adapter, Bytes, Const, ConstructError, Int8ul, Int64ul, Struct
from solders.pubkey import Pubkey

from guardian_stake.constants import (
    ACCOUNT_DISCRIMINATORS,
    DISCRIMINATOR_SIZE,
    I64_MAX,
    I64_MIN,
    INSTRUCTION_DISCRIMINATORS,
    PUBKEY_SIZE,
    U8_MAX,
    U64_MAX,
    U128_MAX,
)
from guardian_stake.errors import ArithmeticOverflow, SchemaMismatch
from guardian_stake.u128 import U128

logger = logging.getLogger(__name__)


class PubkeyAdapter(Adapter):
    def __init__(self):
        super().__init__(Bytes(PUBKEY_SIZE))

    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(bytes(obj))

    def _encode(self, obj, context, path):
        return bytes(obj)


class U128Adapter(Adapter):
    def __init__(self):
        super().__init__(Bytes(16))

    def _decode(self, obj, context, path):
        return int(U128.from_bytes(bytes(obj)))

    def _encode(self, obj, context, path):
        return U128.from_int(obj).to_bytes()


class I64Adapter(Adapter):
    def __init__(self):
        super().__init__(Int64ul)

    def _decode(self, obj, context, path):
        return obj - (1 << 64) if obj >= (1 << 63) else obj

    def _encode(self, obj, context, path):
        return obj & U64_MAX


PUBKEY = PubkeyAdapter()
U128_LE = U128Adapter()
I64_LE = I64Adapter()


class InstructionKind(str, Enum):
    """The four user-facing staking program instructions."""
    STAKE = "stake"
    UNSTAKE = "unstake"
    CANCEL_UNSTAKE = "cancel_unstake"
    WITHDRAW = "withdraw"

    @property
    def discriminator(self) -> bytes:
        return INSTRUCTION_DISCRIMINATORS[self.value]


STAKE_CONFIG_DISCRIMINATOR = ACCOUNT_DISCRIMINATORS["StakeConfig"]
USER_STAKE_DISCRIMINATOR = ACCOUNT_DISCRIMINATORS["UserStake"]

STAKE_CONFIG_LAYOUT = Struct(
    "discriminator" / Const(STAKE_CONFIG_DISCRIMINATOR),
    "bump" / Int8ul,
    "authority" / PUBKEY,
    "token_mint" / PUBKEY,
    "vault" / PUBKEY,
    "min_stake" / Int64ul,
    "cooldown_seconds" / Int64ul,
    "total_shares" / U128_LE,
    "share_price" / U128_LE,
)

USER_STAKE_LAYOUT = Struct(
    "discriminator" / Const(USER_STAKE_DISCRIMINATOR),
    "bump" / Int8ul,
    "config" / PUBKEY,
    "user" / PUBKEY,
    "guardian_pool" / PUBKEY,
    "shares" / U128_LE,
    "cost_basis" / U128_LE,
    "commission_accumulator" / U128_LE,
    "unstaking_amount" / Int64ul,
    "unstake_timestamp" / I64_LE,
)

INSTRUCTION_LAYOUTS = {
    InstructionKind.STAKE: Struct(
        "discriminator" / Const(InstructionKind.STAKE.discriminator),
        "amount" / Int64ul,
    ),
    InstructionKind.UNSTAKE: Struct(
        "discriminator" / Const(InstructionKind.UNSTAKE.discriminator),
        "shares" / U128_LE,
    ),
    InstructionKind.CANCEL_UNSTAKE: Struct(
        "discriminator" / Const(InstructionKind.CANCEL_UNSTAKE.discriminator),
    ),
    InstructionKind.WITHDRAW: Struct(
        "discriminator" / Const(InstructionKind.WITHDRAW.discriminator),
    ),
}

STAKE_CONFIG_SIZE = STAKE_CONFIG_LAYOUT.sizeof()
USER_STAKE_SIZE = USER_STAKE_LAYOUT.sizeof()

_BOUNDS = {
    "u8": (0, U8_MAX),
    "u64": (0, U64_MAX),
    "u128": (0, U128_MAX),
    "i64": (I64_MIN, I64_MAX),
}


def _check(field_name: str, value: int, kind: str) -> None:
    low, high = _BOUNDS[kind]
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ArithmeticOverflow(field_name, value, kind)


@dataclass(frozen=True)
class GlobalConfig:
    """Decoded StakeConfig singleton."""
    bump: int
    authority: Pubkey
    token_mint: Pubkey
    vault: Pubkey
    min_stake: int
    cooldown_seconds: int
    total_shares: int
    share_price: int

    def validate(self) -> None:
        _check("bump", self.bump, "u8")
        _check("min_stake", self.min_stake, "u64")
        _check("cooldown_seconds", self.cooldown_seconds, "u64")
        _check("total_shares", self.total_shares, "u128")
        _check("share_price", self.share_price, "u128")


@dataclass(frozen=True)
class UserStake:
    """Decoded per-(user, guardian pool) stake record."""
    bump: int
    config: Pubkey
    user: Pubkey
    guardian_pool: Pubkey
    shares: int = 0
    cost_basis: int = 0
    commission_accumulator: int = 0
    unstaking_amount: int = 0
    unstake_timestamp: int = 0

    @property
    def has_pending_unstake(self) -> bool:
        return self.unstaking_amount > 0

    def validate(self) -> None:
        _check("bump", self.bump, "u8")
        _check("shares", self.shares, "u128")
        _check("cost_basis", self.cost_basis, "u128")
        _check("commission_accumulator", self.commission_accumulator, "u128")
        _check("unstaking_amount", self.unstaking_amount, "u64")
        _check("unstake_timestamp", self.unstake_timestamp, "i64")


@dataclass(frozen=True)
class DecodedInstruction:
    kind: InstructionKind
    args: Dict[str, Any] = field(default_factory=dict)


def _require_discriminator(name: str, data: bytes, expected: bytes) -> None:
    actual = bytes(data[:DISCRIMINATOR_SIZE])
    if actual != expected:
        raise SchemaMismatch(
            f"{name} discriminator mismatch",
            {"record": name, "expected": expected.hex(), "actual": actual.hex()},
        )


def _require_size(name: str, data: bytes, expected: int, exact: bool) -> None:
    size = len(data)
    if size < expected or (exact and size != expected):
        raise SchemaMismatch(
            f"{name} has {size} bytes, expected {expected}",
            {"record": name, "expected_size": expected, "actual_size": size},
        )


def _parse(name: str, layout: Struct, data: bytes, discriminator: bytes, *, exact: bool):
    _require_discriminator(name, data, discriminator)
    _require_size(name, data, layout.sizeof(), exact)
    try:
        return layout.parse(bytes(data))
    except ConstructError as exc:
        raise SchemaMismatch(f"{name} failed to parse: {exc}", {"record": name}) from exc


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


def decode_global_config(data: bytes) -> GlobalConfig:
    """Decode StakeConfig account bytes.

    Trailing bytes past the fixed layout are tolerated (account space may
    be over-allocated); a short buffer or foreign discriminator is not.
    """
    parsed = _parse("StakeConfig", STAKE_CONFIG_LAYOUT, data, STAKE_CONFIG_DISCRIMINATOR, exact=False)
    return GlobalConfig(
        bump=parsed.bump,
        authority=parsed.authority,
        token_mint=parsed.token_mint,
        vault=parsed.vault,
        min_stake=parsed.min_stake,
        cooldown_seconds=parsed.cooldown_seconds,
        total_shares=parsed.total_shares,
        share_price=parsed.share_price,
    )


def encode_global_config(config: GlobalConfig) -> bytes:
    config.validate()
    return STAKE_CONFIG_LAYOUT.build(
        {
            "bump": config.bump,
            "authority": config.authority,
            "token_mint": config.token_mint,
            "vault": config.vault,
            "min_stake": config.min_stake,
            "cooldown_seconds": config.cooldown_seconds,
            "total_shares": config.total_shares,
            "share_price": config.share_price,
        }
    )


def decode_user_stake(data: bytes) -> UserStake:
    """Decode UserStake account bytes (same size rules as the config)."""
    parsed = _parse("UserStake", USER_STAKE_LAYOUT, data, USER_STAKE_DISCRIMINATOR, exact=False)
    return UserStake(
        bump=parsed.bump,
        config=parsed.config,
        user=parsed.user,
        guardian_pool=parsed.guardian_pool,
        shares=parsed.shares,
        cost_basis=parsed.cost_basis,
        commission_accumulator=parsed.commission_accumulator,
        unstaking_amount=parsed.unstaking_amount,
        unstake_timestamp=parsed.unstake_timestamp,
    )


def encode_user_stake(record: UserStake) -> bytes:
    record.validate()
    return USER_STAKE_LAYOUT.build(
        {
            "bump": record.bump,
            "config": record.config,
            "user": record.user,
            "guardian_pool": record.guardian_pool,
            "shares": record.shares,
            "cost_basis": record.cost_basis,
            "commission_accumulator": record.commission_accumulator,
            "unstaking_amount": record.unstaking_amount,
            "unstake_timestamp": record.unstake_timestamp,
        }
    )


# ---------------------------------------------------------------------------
# Instruction payloads
# ---------------------------------------------------------------------------


def encode_stake_data(amount: int) -> bytes:
    _check("amount", amount, "u64")
    return INSTRUCTION_LAYOUTS[InstructionKind.STAKE].build({"amount": amount})


def encode_unstake_data(shares: int) -> bytes:
    _check("shares", shares, "u128")
    return INSTRUCTION_LAYOUTS[InstructionKind.UNSTAKE].build({"shares": shares})


def encode_cancel_unstake_data() -> bytes:
    return INSTRUCTION_LAYOUTS[InstructionKind.CANCEL_UNSTAKE].build({})


def encode_withdraw_data() -> bytes:
    return INSTRUCTION_LAYOUTS[InstructionKind.WITHDRAW].build({})


def decode_instruction(data: bytes) -> DecodedInstruction:
    """Identify an instruction by discriminator and decode its arguments.

    Payloads must match their layout exactly; unknown discriminators raise
    ``SchemaMismatch``.
    """
    head = bytes(data[:DISCRIMINATOR_SIZE])
    for kind, layout in INSTRUCTION_LAYOUTS.items():
        if head != kind.discriminator:
            continue
        parsed = _parse(kind.value, layout, data, kind.discriminator, exact=True)
        args = {k: v for k, v in parsed.items() if not k.startswith("_") and k != "discriminator"}
        return DecodedInstruction(kind=kind, args=args)

    raise SchemaMismatch(
        "Unknown instruction discriminator",
        {
            "record": "instruction",
            "expected": [d.hex() for d in INSTRUCTION_DISCRIMINATORS.values()],
            "actual": head.hex(),
        },
    )
