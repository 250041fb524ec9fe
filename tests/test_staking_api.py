"""
Staking API Endpoint Tests

Exercises the /api/staking router against the in-memory transport.
"""
import base64

import pytest

# Skip if fastapi not installed
pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from api.fastapi_app import create_app
from api.routes.staking import get_staking_client
from guardian_stake.constants import INSTRUCTION_DISCRIMINATORS

from conftest import NOW, TEST_POOL, TEST_USER

WALLET = str(TEST_USER)


@pytest.fixture
def api(client):
    app = create_app()
    app.dependency_overrides[get_staking_client] = lambda: client
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_health_returns_200(self, api):
        response = api.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestPool:
    def test_pool_stats(self, api, put_config, program):
        put_config(share_price=1_500_000_000, total_shares=2_000_000)
        data = api.get("/api/staking/pool").json()
        assert data["config"] == str(program.config)
        assert data["sharePrice"] == 1_500_000_000
        assert data["sharePriceDisplay"] == "1.5"
        assert data["totalStaked"] == 3_000_000
        assert data["cooldownSeconds"] == 172_800

    def test_missing_config_is_404(self, api):
        response = api.get("/api/staking/pool")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CHAIN_001"


class TestUserStake:
    def test_no_stake(self, api, put_config):
        put_config()
        data = api.get(f"/api/staking/user/{WALLET}").json()
        assert data["state"] == "no_stake"
        assert data["shares"] == 0

    def test_cooldown(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake(pool=TEST_POOL, shares=0, unstaking_amount=7_000_000, unstake_timestamp=NOW - 10)
        response = api.get(f"/api/staking/user/{WALLET}", params={"guardianPool": str(TEST_POOL)})
        data = response.json()
        assert data["state"] == "cooldown"
        assert data["cooldownAmount"] == 7_000_000
        assert data["secondsRemaining"] == 172_790

    def test_invalid_wallet(self, api):
        response = api.get("/api/staking/user/not-a-wallet")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VAL_001"


class TestStake:
    def test_builds_instruction(self, api, put_config, program):
        put_config()
        response = api.post("/api/staking/stake", json={"wallet": WALLET, "displayAmount": "100"})
        assert response.status_code == 200
        data = response.json()
        assert data["programId"] == str(program.program_id)
        assert data["accounts"][0] == {"pubkey": WALLET, "isSigner": True, "isWritable": True}
        raw = base64.b64decode(data["data"])
        assert raw == INSTRUCTION_DISCRIMINATORS["stake"] + (100_000_000).to_bytes(8, "little")

    def test_below_minimum(self, api, put_config):
        put_config(min_stake=10_000_000)
        response = api.post("/api/staking/stake", json={"wallet": WALLET, "amount": 5})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "STAKE_005"

    def test_amount_required(self, api, put_config):
        put_config()
        response = api.post("/api/staking/stake", json={"wallet": WALLET})
        assert response.status_code == 422

    def test_negative_amount_rejected(self, api, put_config):
        put_config()
        response = api.post("/api/staking/stake", json={"wallet": WALLET, "amount": -1})
        assert response.status_code == 422


class TestUnstake:
    def test_initiate(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake(shares=100)
        response = api.post("/api/staking/unstake/initiate", json={"wallet": WALLET, "shares": 60})
        assert response.status_code == 200
        raw = base64.b64decode(response.json()["data"])
        assert raw[:8] == INSTRUCTION_DISCRIMINATORS["unstake"]
        assert int.from_bytes(raw[8:], "little") == 60

    def test_initiate_insufficient(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake(shares=100)
        response = api.post("/api/staking/unstake/initiate", json={"wallet": WALLET, "shares": 101})
        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"requested": 101, "available": 100}

    def test_cancel_without_pending(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake()
        response = api.post("/api/staking/unstake/cancel", json={"wallet": WALLET})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "STAKE_003"

    def test_complete_during_cooldown(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake(shares=0, unstaking_amount=10, unstake_timestamp=NOW)
        response = api.post("/api/staking/unstake/complete", json={"wallet": WALLET})
        assert response.status_code == 409
        assert response.json()["error"]["details"]["seconds_remaining"] == 172_800

    def test_complete_when_withdrawable(self, api, put_config, put_user_stake):
        put_config()
        put_user_stake(shares=0, unstaking_amount=10, unstake_timestamp=NOW - 172_800)
        response = api.post("/api/staking/unstake/complete", json={"wallet": WALLET})
        assert response.status_code == 200
        assert base64.b64decode(response.json()["data"]) == INSTRUCTION_DISCRIMINATORS["withdraw"]
