"""Share/token accounting at a 10^9 fixed-point share price.

    shares = floor(tokens * 10^9 / price)
    tokens = floor(shares * price / 10^9)

Both directions truncate, so tokens -> shares -> tokens may lose up to one
raw unit. Intermediate products are checked against u128; price is always
passed in explicitly, there is no cached price.
"""

from __future__ import annotations

import logging
from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext
from typing import Union

from guardian_stake.constants import SHARE_PRICE_SCALE, TOKEN_DECIMALS, U64_MAX
from guardian_stake.errors import ArithmeticOverflow, InvalidAmount, InvalidSharePrice
from guardian_stake.u128 import U128

logger = logging.getLogger(__name__)

DisplayAmount = Union[Decimal, int, float, str]


def _require_price(price: int) -> U128:
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise InvalidSharePrice(price)
    return U128.from_int(price, "share_price")


def tokens_to_shares(tokens: int, price: int) -> int:
    """Shares minted for ``tokens`` raw units at ``price``."""
    divisor = _require_price(price)
    scaled = U128.from_int(tokens, "tokens").checked_mul(SHARE_PRICE_SCALE, "tokens * 10^9")
    return int(scaled.floordiv(divisor))


def shares_to_tokens(shares: int, price: int) -> int:
    """Raw token value of ``shares`` at ``price``."""
    multiplier = _require_price(price)
    product = U128.from_int(shares, "shares").checked_mul(multiplier, "shares * price")
    return int(product) // SHARE_PRICE_SCALE


def to_raw_amount(display: DisplayAmount, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human amount (e.g. ``"1.5"``) to raw u64 units, flooring."""
    try:
        value = display if isinstance(display, Decimal) else Decimal(str(display))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount("amount", display) from exc
    if not value.is_finite() or value < 0:
        raise InvalidAmount("amount", display)

    # anything at or above 10^20 raw units is past u64 before rounding
    if value and value.adjusted() + decimals >= 20:
        raise ArithmeticOverflow("amount", display, "u64")

    with localcontext() as ctx:
        ctx.prec = len(value.as_tuple().digits) + decimals + 1
        raw = int(value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR))
    if raw > U64_MAX:
        raise ArithmeticOverflow("amount", raw, "u64")
    return raw


def to_display_amount(raw: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    return Decimal(raw) / (Decimal(10) ** decimals)


def price_to_display(price: int) -> Decimal:
    """Tokens per share as a decimal (1.0 at launch)."""
    return Decimal(price) / Decimal(SHARE_PRICE_SCALE)


def unrealized_gain(shares: int, cost_basis: int, price: int) -> int:
    """Current token value of ``shares`` minus what was deposited.

    Negative only if the price has dropped below entry, which the program
    does not allow; kept signed so callers need not special-case it.
    """
    return shares_to_tokens(shares, price) - cost_basis
