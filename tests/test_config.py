"""Tests for StakingSettings."""

from dataclasses import FrozenInstanceError

import pytest
from solders.pubkey import Pubkey

from guardian_stake.config import DEFAULT_RPC_URL, StakingSettings
from guardian_stake.constants import DEFAULT_GUARDIAN_POOL, DEFAULT_PROGRAM_ID, DEFAULT_TOKEN_MINT
from guardian_stake.errors import ConfigurationError

from conftest import TEST_POOL


class TestDefaults:
    def test_empty_env_uses_defaults(self):
        settings = StakingSettings.from_env({})
        assert settings.program_id == DEFAULT_PROGRAM_ID
        assert settings.token_mint == DEFAULT_TOKEN_MINT
        assert settings.default_guardian_pool == DEFAULT_GUARDIAN_POOL
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.commitment == "confirmed"
        assert settings.token_decimals == 6

    def test_blank_values_ignored(self):
        settings = StakingSettings.from_env({"STAKING_PROGRAM_ID": "  ", "SOLANA_RPC_URL": ""})
        assert settings.program_id == DEFAULT_PROGRAM_ID
        assert settings.rpc_url == DEFAULT_RPC_URL


class TestFromEnv:
    def test_overrides(self):
        settings = StakingSettings.from_env({
            "STAKING_GUARDIAN_POOL": str(TEST_POOL),
            "SOLANA_RPC_URL": "http://localhost:8899",
            "STAKING_COMMITMENT": "finalized",
            "STAKING_TOKEN_DECIMALS": "9",
        })
        assert settings.default_guardian_pool == TEST_POOL
        assert settings.rpc_url == "http://localhost:8899"
        assert settings.commitment == "finalized"
        assert settings.token_decimals == 9

    def test_invalid_pubkey(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StakingSettings.from_env({"STAKING_TOKEN_MINT": "not-a-key"})
        assert exc_info.value.details["variable"] == "STAKING_TOKEN_MINT"

    def test_invalid_decimals(self):
        with pytest.raises(ConfigurationError):
            StakingSettings.from_env({"STAKING_TOKEN_DECIMALS": "six"})

    def test_decimals_out_of_range(self):
        with pytest.raises(ConfigurationError):
            StakingSettings.from_env({"STAKING_TOKEN_DECIMALS": "19"})

    def test_unknown_commitment(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StakingSettings.from_env({"STAKING_COMMITMENT": "max"})
        assert exc_info.value.details["variable"] == "STAKING_COMMITMENT"

    def test_reads_dotenv_without_overriding(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text(f"STAKING_GUARDIAN_POOL={TEST_POOL}\nSTAKING_TOKEN_DECIMALS=9\n")
        monkeypatch.delenv("STAKING_GUARDIAN_POOL", raising=False)
        monkeypatch.setenv("STAKING_TOKEN_DECIMALS", "8")

        settings = StakingSettings.from_env(env_file=env_file)
        assert settings.default_guardian_pool == TEST_POOL
        assert settings.token_decimals == 8

    def test_settings_are_immutable(self):
        settings = StakingSettings()
        with pytest.raises(FrozenInstanceError):
            settings.rpc_url = "http://elsewhere"

    def test_pool_is_pubkey(self):
        assert isinstance(StakingSettings().default_guardian_pool, Pubkey)
