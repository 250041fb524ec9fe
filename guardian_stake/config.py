"""Staking client settings.

Loaded from the process environment, after merging a ``.env`` file with
``override=False`` so real environment variables always win.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from guardian_stake.constants import (
    DEFAULT_GUARDIAN_POOL,
    DEFAULT_PROGRAM_ID,
    DEFAULT_TOKEN_MINT,
    TOKEN_DECIMALS,
    TOKEN_PROGRAM_ID,
)
from guardian_stake.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


def _pubkey(env: Mapping[str, str], name: str, default: Pubkey) -> Pubkey:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return Pubkey.from_string(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} is not a valid pubkey: {exc}", {"variable": name, "value": raw}
        ) from exc


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer", {"variable": name, "value": raw}) from exc


@dataclass(frozen=True)
class StakingSettings:
    program_id: Pubkey = DEFAULT_PROGRAM_ID
    token_mint: Pubkey = DEFAULT_TOKEN_MINT
    default_guardian_pool: Pubkey = DEFAULT_GUARDIAN_POOL
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = "confirmed"
    token_decimals: int = TOKEN_DECIMALS

    def __post_init__(self) -> None:
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigurationError(
                f"Unknown commitment {self.commitment!r}",
                {"variable": "STAKING_COMMITMENT", "value": self.commitment},
            )
        if not 0 <= self.token_decimals <= 18:
            raise ConfigurationError(
                "Token decimals out of range",
                {"variable": "STAKING_TOKEN_DECIMALS", "value": str(self.token_decimals)},
            )

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
    ) -> StakingSettings:
        """Build settings from ``env`` (default: ``os.environ`` after .env)."""
        if env is None:
            if env_file is not None and env_file.exists():
                load_dotenv(env_file, override=False)
                logger.debug(f"Loaded .env from {env_file}")
            elif env_file is None:
                load_dotenv(override=False)
            env = os.environ

        return cls(
            program_id=_pubkey(env, "STAKING_PROGRAM_ID", DEFAULT_PROGRAM_ID),
            token_mint=_pubkey(env, "STAKING_TOKEN_MINT", DEFAULT_TOKEN_MINT),
            default_guardian_pool=_pubkey(env, "STAKING_GUARDIAN_POOL", DEFAULT_GUARDIAN_POOL),
            token_program_id=_pubkey(env, "STAKING_TOKEN_PROGRAM_ID", TOKEN_PROGRAM_ID),
            rpc_url=env.get("SOLANA_RPC_URL", "").strip() or DEFAULT_RPC_URL,
            commitment=env.get("STAKING_COMMITMENT", "").strip() or "confirmed",
            token_decimals=_int(env, "STAKING_TOKEN_DECIMALS", TOKEN_DECIMALS),
        )
