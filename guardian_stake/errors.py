"""Staking client exception hierarchy.

Every error carries a stable ``code``, the HTTP ``status_code`` the API
surface answers with, and a ``details`` dict naming the field and bound
that was violated.
"""
from typing import Any, Dict, Optional


class StakingError(Exception):
    """Base exception for all guardian staking errors."""
    code: str = "STAKE_000"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class SchemaMismatch(StakingError):
    """Account or instruction bytes do not match the expected layout."""
    code = "SCHEMA_001"
    status_code = 422


class InvalidSharePrice(StakingError):
    """Share price is zero or negative."""
    code = "SHARE_001"
    status_code = 400

    def __init__(self, price: int):
        super().__init__(f"Invalid share price: {price}", {"price": price})
        self.price = price


class InsufficientShares(StakingError):
    """Unstake requested for more shares than the record holds."""
    code = "STAKE_001"
    status_code = 400

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Cannot unstake {requested} shares, only {available} available",
            {"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class IneligibleForWithdraw(StakingError):
    """Withdraw attempted before the cooldown deadline."""
    code = "STAKE_002"
    status_code = 409

    def __init__(self, now: int, eligible_at: int):
        remaining = eligible_at - now
        super().__init__(
            f"Cooldown not complete, withdrawable in {remaining}s",
            {"now": now, "eligible_at": eligible_at, "seconds_remaining": remaining},
        )
        self.now = now
        self.eligible_at = eligible_at
        self.seconds_remaining = remaining


class NoPendingUnstake(StakingError):
    """Cancel or withdraw attempted without a pending unstake."""
    code = "STAKE_003"
    status_code = 409

    def __init__(self, operation: str):
        super().__init__(f"No pending unstake for {operation}", {"operation": operation})
        self.operation = operation


class UnstakeAlreadyPending(StakingError):
    """A second unstake requested while one is still pending."""
    code = "STAKE_004"
    status_code = 409

    def __init__(self, unstaking_amount: int):
        super().__init__(
            f"An unstake of {unstaking_amount} is already pending",
            {"unstaking_amount": unstaking_amount},
        )
        self.unstaking_amount = unstaking_amount


class BelowMinimumStake(StakingError):
    """Stake amount below the configured minimum."""
    code = "STAKE_005"
    status_code = 400

    def __init__(self, amount: int, minimum: int):
        super().__init__(
            f"Stake amount {amount} below minimum {minimum}",
            {"amount": amount, "minimum": minimum},
        )
        self.amount = amount
        self.minimum = minimum


class InvalidAmount(StakingError):
    """Amount is non-positive or not a number."""
    code = "STAKE_006"
    status_code = 400

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid {field}: {value!r}", {"field": field, "value": str(value)})
        self.field = field
        self.value = value


class AddressSpaceExhausted(StakingError):
    """No bump seed yields an off-curve program address."""
    code = "PDA_001"
    status_code = 500


class InvalidSeeds(StakingError):
    """Seed list too long, or a seed over 32 bytes."""
    code = "PDA_002"
    status_code = 400


class ArithmeticOverflow(StakingError):
    """Value or intermediate result outside its fixed-width bound."""
    code = "MATH_001"
    status_code = 400

    def __init__(self, field: str, value: int, bound: str):
        super().__init__(
            f"{field}={value} outside {bound}",
            {"field": field, "value": str(value), "bound": bound},
        )
        self.field = field
        self.value = value
        self.bound = bound


class AccountNotFound(StakingError):
    """Required program account does not exist."""
    code = "CHAIN_001"
    status_code = 404

    def __init__(self, account: str, address: str):
        super().__init__(f"{account} account not found at {address}", {"account": account, "address": address})


class TransportError(StakingError):
    """RPC transport failed."""
    code = "CHAIN_002"
    status_code = 502


class ConfigurationError(StakingError):
    """Invalid configuration value."""
    code = "CFG_001"
    status_code = 500
