"""Guardian staking program constants.

Seed tags, discriminators and numeric parameters are part of the on-chain
wire contract. Discriminators are the first 8 bytes of
``sha256("global:<ix>")`` / ``sha256("account:<Name>")`` as produced by
Anchor, pinned here so nothing is hashed at runtime.
"""

from types import MappingProxyType

from solders.pubkey import Pubkey

DEFAULT_PROGRAM_ID = Pubkey.from_string("AkM6thAquYgnnFWD2f5fEZej4JUSoGGmP7FSeUNEzFNm")
"""Guardian staking program (overridable via STAKING_PROGRAM_ID)."""

DEFAULT_TOKEN_MINT = Pubkey.from_string("B5LP6Ag7M1H3cxyHZ5aRNEQGmWNnQ5iUaNFHCtRZaLWK")
"""Staked token mint (overridable via STAKING_TOKEN_MINT)."""

DEFAULT_GUARDIAN_POOL = Pubkey.default()
"""The default guardian pool most users stake under."""

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")

# Seed tags
STAKE_CONFIG_SEED = b"stake_config"
STAKE_VAULT_SEED = b"stake_vault"
EVENT_AUTHORITY_SEED = b"__event_authority"
USER_STAKE_SEED = b"user_stake"

# Numeric protocol parameters
TOKEN_DECIMALS = 6
DEFAULT_COOLDOWN_SECONDS = 172_800  # 48h
SHARE_PRICE_SCALE = 10**9

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE = 32

U8_MAX = 2**8 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

INSTRUCTION_DISCRIMINATORS = MappingProxyType({
    "stake": bytes.fromhex("ceb0ca12c8d1b36c"),
    "unstake": bytes.fromhex("5a5f6b2acd7c32e1"),
    "cancel_unstake": bytes.fromhex("404135e37d9903a7"),
    "withdraw": bytes.fromhex("b712469c946da122"),
})

ACCOUNT_DISCRIMINATORS = MappingProxyType({
    "StakeConfig": bytes.fromhex("ee972b030b973fb0"),
    "UserStake": bytes.fromhex("6635a36b098a5799"),
})
