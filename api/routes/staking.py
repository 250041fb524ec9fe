"""
Staking API Routes.

FastAPI endpoints for guardian staking:
- Pool configuration and share price
- User stake position and lifecycle state
- Stake / Unstake / Cancel / Withdraw instruction building

Instructions are returned unsigned; the caller's wallet signs and submits.
"""

import base64
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from guardian_stake.client import StakingClient
from guardian_stake.config import StakingSettings
from guardian_stake.errors import StakingError
from guardian_stake.logging_config import WalletContext
from guardian_stake.shares import price_to_display, shares_to_tokens, to_display_amount, to_raw_amount
from guardian_stake.transport import SolanaRpcTransport

logger = logging.getLogger("guardian_stake.api.staking")

router = APIRouter(prefix="/api/staking", tags=["Staking"])


# =============================================================================
# Request/Response Models
# =============================================================================


class StakeRequest(BaseModel):
    """Request to stake tokens."""
    wallet: str = Field(..., description="User's wallet address")
    amount: Optional[int] = Field(None, gt=0, description="Amount to stake in raw token units")
    displayAmount: Optional[str] = Field(None, description="Amount in whole tokens, e.g. '12.5'")
    guardianPool: Optional[str] = Field(None, description="Guardian pool (default pool if omitted)")
    tokenAccount: Optional[str] = Field(None, description="Source token account (ATA if omitted)")


class UnstakeRequest(BaseModel):
    """Request to unstake (initiates cooldown)."""
    wallet: str = Field(..., description="User's wallet address")
    shares: Optional[int] = Field(None, gt=0, description="Shares to unstake (None = all)")
    tokenAmount: Optional[int] = Field(None, gt=0, description="Raw token value to unstake instead of shares")
    guardianPool: Optional[str] = Field(None, description="Guardian pool (default pool if omitted)")


class WalletRequest(BaseModel):
    """Request identifying a user's stake."""
    wallet: str = Field(..., description="User's wallet address")
    guardianPool: Optional[str] = Field(None, description="Guardian pool (default pool if omitted)")
    tokenAccount: Optional[str] = Field(None, description="Destination token account (ATA if omitted)")


class PoolStatsResponse(BaseModel):
    """Global staking configuration."""
    config: str = Field(..., description="StakeConfig address")
    vault: str = Field(..., description="Token vault address")
    totalShares: int = Field(default=0, description="Shares outstanding")
    totalStaked: int = Field(default=0, description="Token value of all shares (raw units)")
    sharePrice: int = Field(default=0, description="Tokens per share, scaled by 1e9")
    sharePriceDisplay: str = Field(default="0", description="Tokens per share")
    minStake: int = Field(default=0, description="Minimum stake in raw units")
    cooldownSeconds: int = Field(default=0, description="Unstake cooldown")


class UserStakeResponse(BaseModel):
    """User's stake information."""
    address: str = Field(..., description="UserStake account address")
    state: str = Field(..., description="no_stake | staked | cooldown | withdrawable")
    shares: int = Field(default=0)
    tokenValue: int = Field(default=0, description="Current value of shares (raw units)")
    tokenValueDisplay: str = Field(default="0")
    costBasis: int = Field(default=0, description="Tokens originally deposited (raw units)")
    unrealizedGain: int = Field(default=0)
    cooldownAmount: int = Field(default=0, description="Raw amount pending withdrawal")
    cooldownEnd: Optional[int] = Field(None, description="Unix time the cooldown ends")
    secondsRemaining: int = Field(default=0)


class AccountMetaResponse(BaseModel):
    pubkey: str
    isSigner: bool
    isWritable: bool


class InstructionResponse(BaseModel):
    """Instruction ready for transaction assembly and signing."""
    programId: str
    accounts: List[AccountMetaResponse]
    data: str = Field(..., description="Base64 encoded instruction data")
    message: str = Field(default="", description="Human-readable description")


# =============================================================================
# Helpers
# =============================================================================


_staking_client: Optional[StakingClient] = None


def get_staking_client() -> StakingClient:
    """Get or create the staking client."""
    global _staking_client
    if _staking_client is None:
        settings = StakingSettings.from_env()
        transport = SolanaRpcTransport(settings.rpc_url, settings.commitment)
        _staking_client = StakingClient(transport, settings)
    return _staking_client


def _parse_pubkey(value: Optional[str], field: str) -> Optional[Pubkey]:
    if value is None:
        return None
    try:
        return Pubkey.from_string(value)
    except ValueError:
        raise HTTPException(400, {"code": "VAL_001", "message": f"Invalid {field}", "details": {"field": field}})


def _instruction_response(ix: Instruction, message: str) -> InstructionResponse:
    return InstructionResponse(
        programId=str(ix.program_id),
        accounts=[
            AccountMetaResponse(pubkey=str(meta.pubkey), isSigner=meta.is_signer, isWritable=meta.is_writable)
            for meta in ix.accounts
        ],
        data=base64.b64encode(bytes(ix.data)).decode("ascii"),
        message=message,
    )


def _http_error(exc: StakingError) -> HTTPException:
    return HTTPException(exc.status_code, exc.to_dict())


# =============================================================================
# API Endpoints
# =============================================================================


@router.get("/pool", response_model=PoolStatsResponse)
async def get_pool_stats(client: StakingClient = Depends(get_staking_client)):
    """Get global staking configuration."""
    try:
        config = await client.fetch_config()
    except StakingError as e:
        logger.error(f"Error fetching stake config: {e}")
        raise _http_error(e)

    return PoolStatsResponse(
        config=str(client.program.config),
        vault=str(config.vault),
        totalShares=config.total_shares,
        totalStaked=shares_to_tokens(config.total_shares, config.share_price) if config.share_price else 0,
        sharePrice=config.share_price,
        sharePriceDisplay=str(price_to_display(config.share_price)),
        minStake=config.min_stake,
        cooldownSeconds=config.cooldown_seconds,
    )


@router.get("/user/{wallet}", response_model=UserStakeResponse)
async def get_user_stake(
    wallet: str,
    guardian_pool: Optional[str] = Query(None, alias="guardianPool"),
    client: StakingClient = Depends(get_staking_client),
):
    """Get user's stake position."""
    user = _parse_pubkey(wallet, "wallet")
    pool = _parse_pubkey(guardian_pool, "guardianPool")
    with WalletContext(wallet=wallet):
        try:
            position = await client.get_position(user, pool)
        except StakingError as e:
            logger.error(f"Error fetching user stake: {e}")
            raise _http_error(e)

    return UserStakeResponse(
        address=str(position.address),
        state=position.state.value,
        shares=position.shares,
        tokenValue=position.token_value,
        tokenValueDisplay=str(to_display_amount(position.token_value, client.settings.token_decimals)),
        costBasis=position.cost_basis,
        unrealizedGain=position.unrealized_gain,
        cooldownAmount=position.unstaking_amount,
        cooldownEnd=position.cooldown_ends_at,
        secondsRemaining=position.seconds_remaining,
    )


@router.post("/stake", response_model=InstructionResponse)
async def create_stake_instruction(
    request: StakeRequest,
    client: StakingClient = Depends(get_staking_client),
):
    """Build a stake instruction for signing."""
    user = _parse_pubkey(request.wallet, "wallet")
    pool = _parse_pubkey(request.guardianPool, "guardianPool")
    token_account = _parse_pubkey(request.tokenAccount, "tokenAccount")
    with WalletContext(wallet=request.wallet):
        try:
            if request.amount is not None:
                amount = request.amount
            elif request.displayAmount is not None:
                amount = to_raw_amount(request.displayAmount, client.settings.token_decimals)
            else:
                raise HTTPException(422, {"code": "VAL_001", "message": "amount or displayAmount required"})
            ix = await client.build_stake(user, amount, pool, token_account)
        except StakingError as e:
            raise _http_error(e)

    display = to_display_amount(amount, client.settings.token_decimals)
    return _instruction_response(ix, f"Stake {display} tokens")


@router.post("/unstake/initiate", response_model=InstructionResponse)
async def create_unstake_instruction(
    request: UnstakeRequest,
    client: StakingClient = Depends(get_staking_client),
):
    """Build an unstake instruction (starts the cooldown)."""
    user = _parse_pubkey(request.wallet, "wallet")
    pool = _parse_pubkey(request.guardianPool, "guardianPool")
    with WalletContext(wallet=request.wallet):
        try:
            if request.tokenAmount is not None:
                ix = await client.build_unstake_tokens(user, request.tokenAmount, pool)
            else:
                ix = await client.build_unstake(user, request.shares, pool)
        except StakingError as e:
            raise _http_error(e)

    return _instruction_response(ix, "Initiate unstake (cooldown applies)")


@router.post("/unstake/cancel", response_model=InstructionResponse)
async def cancel_unstake_instruction(
    request: WalletRequest,
    client: StakingClient = Depends(get_staking_client),
):
    """Build a cancel-unstake instruction restoring the pending shares."""
    user = _parse_pubkey(request.wallet, "wallet")
    pool = _parse_pubkey(request.guardianPool, "guardianPool")
    with WalletContext(wallet=request.wallet):
        try:
            ix = await client.build_cancel_unstake(user, pool)
        except StakingError as e:
            raise _http_error(e)

    return _instruction_response(ix, "Cancel pending unstake")


@router.post("/unstake/complete", response_model=InstructionResponse)
async def complete_unstake_instruction(
    request: WalletRequest,
    client: StakingClient = Depends(get_staking_client),
):
    """Build a withdraw instruction once the cooldown has elapsed."""
    user = _parse_pubkey(request.wallet, "wallet")
    pool = _parse_pubkey(request.guardianPool, "guardianPool")
    token_account = _parse_pubkey(request.tokenAccount, "tokenAccount")
    with WalletContext(wallet=request.wallet):
        try:
            ix = await client.build_withdraw(user, pool, token_account)
        except StakingError as e:
            raise _http_error(e)

    return _instruction_response(ix, "Withdraw unstaked tokens")
