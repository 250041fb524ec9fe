"""Unsigned 128-bit value type built from two 64-bit halves.

The program stores shares, cost basis and share price as u128. Values are
carried as ``(low, high)`` and serialized as two little-endian u64 words,
low word first, so the byte layout never depends on a native 128-bit type.
Arithmetic is checked: any result outside ``[0, 2**128)`` raises
``ArithmeticOverflow`` instead of wrapping.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from functools import total_ordering
from typing import Union

from guardian_stake.constants import U64_MAX, U128_MAX
from guardian_stake.errors import ArithmeticOverflow, InvalidSharePrice, SchemaMismatch

_HALVES = struct.Struct("<QQ")

IntLike = Union["U128", int]


def _as_int(value: IntLike) -> int:
    return int(value)


@total_ordering
@dataclass(frozen=True)
class U128:
    low: int = 0
    high: int = 0

    def __post_init__(self) -> None:
        for name in ("low", "high"):
            half = getattr(self, name)
            if not 0 <= half <= U64_MAX:
                raise ArithmeticOverflow(f"u128.{name}", half, "u64")

    @classmethod
    def from_int(cls, value: int, field: str = "value") -> U128:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ArithmeticOverflow(field, value, "u128")
        if not 0 <= value <= U128_MAX:
            raise ArithmeticOverflow(field, value, "u128")
        return cls(low=value & U64_MAX, high=value >> 64)

    @classmethod
    def from_bytes(cls, data: bytes) -> U128:
        if len(data) != _HALVES.size:
            raise SchemaMismatch(
                "u128 requires 16 bytes",
                {"expected_size": _HALVES.size, "actual_size": len(data)},
            )
        low, high = _HALVES.unpack(data)
        return cls(low=low, high=high)

    def to_bytes(self) -> bytes:
        return _HALVES.pack(self.low, self.high)

    def __int__(self) -> int:
        return (self.high << 64) | self.low

    def __index__(self) -> int:
        return int(self)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, U128):
            return (self.high, self.low) == (other.high, other.low)
        if isinstance(other, int) and not isinstance(other, bool):
            return int(self) == other
        return NotImplemented

    def __lt__(self, other: IntLike) -> bool:
        if isinstance(other, U128):
            return (self.high, self.low) < (other.high, other.low)
        if isinstance(other, int):
            return int(self) < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(int(self))

    def __repr__(self) -> str:
        return f"U128({int(self)})"

    def checked_mul(self, other: IntLike, field: str = "product") -> U128:
        return U128.from_int(int(self) * _as_int(other), field)

    def floordiv(self, divisor: IntLike) -> U128:
        """Truncating division; a zero divisor is an invalid price."""
        d = _as_int(divisor)
        if d <= 0:
            raise InvalidSharePrice(d)
        return U128.from_int(int(self) // d, "quotient")
