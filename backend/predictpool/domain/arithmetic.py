"""Checked fixed-point arithmetic for pooled funds.

Amounts are plain ``int`` values bounded to the signed 128-bit range used by
the token ledger. Any result outside that range raises ``Overflow`` instead of
silently growing.
"""

from __future__ import annotations

from predictpool.errors import Overflow

AMOUNT_MIN = -(2**127)
AMOUNT_MAX = 2**127 - 1
BASIS_POINTS_DIVISOR = 10_000


def _bounded(value: int) -> int:
    if value < AMOUNT_MIN or value > AMOUNT_MAX:
        raise Overflow(f"Result {value} exceeds the 128-bit amount range")
    return value


def checked_add(left: int, right: int) -> int:
    return _bounded(left + right)


def checked_sub(left: int, right: int) -> int:
    return _bounded(left - right)


def checked_mul(left: int, right: int) -> int:
    return _bounded(left * right)


def checked_div(left: int, right: int) -> int:
    """Integer division truncating toward zero, matching ledger semantics."""

    if right == 0:
        raise Overflow("Division by zero")
    quotient = abs(left) // abs(right)
    if (left < 0) != (right < 0):
        quotient = -quotient
    return _bounded(quotient)


def fee_for(amount: int, fee_bps: int) -> int:
    """Return ``floor(amount * fee_bps / 10_000)`` for non-negative inputs."""

    return checked_div(checked_mul(amount, fee_bps), BASIS_POINTS_DIVISOR)


__all__ = [
    "AMOUNT_MAX",
    "AMOUNT_MIN",
    "BASIS_POINTS_DIVISOR",
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_sub",
    "fee_for",
]
