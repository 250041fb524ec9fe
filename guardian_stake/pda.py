"""Deterministic program-derived addresses for the guardian staking program.

Seed layouts (all under the staking program id):
    config          [b"stake_config"]
    vault           [b"stake_vault", config]
    event authority [b"__event_authority"]
    user stake      [b"user_stake", config, user, guardian_pool]

Seed order is part of the program contract.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from guardian_stake.constants import (
    DEFAULT_PROGRAM_ID,
    EVENT_AUTHORITY_SEED,
    STAKE_CONFIG_SEED,
    STAKE_VAULT_SEED,
    USER_STAKE_SEED,
)
from guardian_stake.errors import AddressSpaceExhausted, InvalidSeeds

logger = logging.getLogger(__name__)

MAX_SEEDS = 16
MAX_SEED_LEN = 32


def _check_seeds(seeds: Sequence[bytes]) -> None:
    # the bump occupies one of the 16 seed slots
    if len(seeds) >= MAX_SEEDS:
        raise InvalidSeeds(
            f"too many seeds: {len(seeds)} (max {MAX_SEEDS - 1})",
            {"count": len(seeds), "max": MAX_SEEDS - 1},
        )
    for index, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeeds(
                f"seed {index} is {len(seed)} bytes (max {MAX_SEED_LEN})",
                {"index": index, "length": len(seed), "max": MAX_SEED_LEN},
            )


def derive_address(
    domain_tag: bytes,
    seeds: Sequence[bytes],
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Find the canonical (address, bump) for ``[domain_tag, *seeds]``.

    Bumps are tried from 255 down to 0; solders rejects candidates that lie
    on the ed25519 curve and the first accepted one wins. Raises
    ``AddressSpaceExhausted`` if every bump is rejected.
    """
    full_seeds = [bytes(domain_tag), *(bytes(s) for s in seeds)]
    _check_seeds(full_seeds)

    for bump in range(255, -1, -1):
        try:
            return Pubkey.create_program_address([*full_seeds, bytes([bump])], program_id), bump
        except ValueError:
            continue

    logger.error("No off-curve address for seeds under %s", program_id)
    raise AddressSpaceExhausted(
        f"No valid bump for seeds under program {program_id}",
        {"seeds": [s.hex() for s in full_seeds], "program_id": str(program_id)},
    )


def derive_config_pda(program_id: Pubkey = DEFAULT_PROGRAM_ID) -> Tuple[Pubkey, int]:
    return derive_address(STAKE_CONFIG_SEED, [], program_id)


def derive_vault_pda(
    config: Pubkey, program_id: Pubkey = DEFAULT_PROGRAM_ID
) -> Tuple[Pubkey, int]:
    return derive_address(STAKE_VAULT_SEED, [bytes(config)], program_id)


def derive_event_authority_pda(program_id: Pubkey = DEFAULT_PROGRAM_ID) -> Tuple[Pubkey, int]:
    return derive_address(EVENT_AUTHORITY_SEED, [], program_id)


def derive_user_stake_pda(
    config: Pubkey,
    user: Pubkey,
    guardian_pool: Pubkey,
    program_id: Pubkey = DEFAULT_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    """Per-(user, guardian pool) stake record address."""
    return derive_address(
        USER_STAKE_SEED,
        [bytes(config), bytes(user), bytes(guardian_pool)],
        program_id,
    )
