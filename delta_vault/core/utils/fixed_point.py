"""Checked integer math with explicit rounding.

Every amount in the engine is an ``int`` in base units. Results that leave the
uint256 / int256 range are hard failures, never wrapped.
"""

from __future__ import annotations

from enum import Enum

from delta_vault.core.constants.base import (
    MAX_BPS,
    MAX_INT256,
    MAX_UINT256,
    MIN_INT256,
)
from delta_vault.core.errors import ArithmeticOverflowError


class Rounding(Enum):
    DOWN = "down"
    UP = "up"


def to_uint256(value: int) -> int:
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflowError(f"uint256 out of range: {value}")
    return value


def to_int256(value: int) -> int:
    if value < MIN_INT256 or value > MAX_INT256:
        raise ArithmeticOverflowError(f"int256 out of range: {value}")
    return value


def checked_sub(a: int, b: int) -> int:
    return to_uint256(a - b)


def checked_add_signed(acc: int, delta: int) -> int:
    return to_int256(acc + delta)


def mul_div(a: int, b: int, c: int, rounding: Rounding = Rounding.DOWN) -> int:
    if c == 0:
        raise ArithmeticOverflowError("division by zero")
    to_uint256(a)
    to_uint256(b)
    numerator = a * b
    q, r = divmod(numerator, c)
    if rounding is Rounding.UP and r:
        q += 1
    return to_uint256(q)


def mul_div_up(a: int, b: int, c: int) -> int:
    return mul_div(a, b, c, Rounding.UP)


def apply_bps(amount: int, bps: int, rounding: Rounding = Rounding.DOWN) -> int:
    return mul_div(amount, bps, MAX_BPS, rounding)


def sub_bps(amount: int, bps: int) -> int:
    """``amount * (1 - bps)``, rounded down."""
    return mul_div(amount, MAX_BPS - bps, MAX_BPS)


def add_bps(amount: int, bps: int) -> int:
    """``amount * (1 + bps)``, rounded up."""
    return mul_div(amount, MAX_BPS + bps, MAX_BPS, Rounding.UP)


def abs_diff(a: int, b: int) -> int:
    return a - b if a >= b else b - a


def is_within_bps(value: int, reference: int, bps: int) -> bool:
    return abs_diff(value, reference) * MAX_BPS <= reference * bps
