import pytest

from delta_vault.core.constants.base import MAX_INT256, MAX_UINT256
from delta_vault.core.errors import ArithmeticOverflowError
from delta_vault.core.utils.fixed_point import (
    Rounding,
    abs_diff,
    add_bps,
    checked_add_signed,
    checked_sub,
    is_within_bps,
    mul_div,
    mul_div_up,
    sub_bps,
    to_int256,
)


def test_mul_div_rounding_direction():
    assert mul_div(10, 1, 3) == 3
    assert mul_div(10, 1, 3, Rounding.UP) == 4
    assert mul_div_up(9, 1, 3) == 3


def test_mul_div_rejects_zero_divisor_and_negative_inputs():
    with pytest.raises(ArithmeticOverflowError):
        mul_div(1, 1, 0)
    with pytest.raises(ArithmeticOverflowError):
        mul_div(-1, 1, 1)


def test_mul_div_keeps_full_precision_intermediate():
    # a * b overflows uint256 but the quotient does not
    assert mul_div(MAX_UINT256, 2, 4) == MAX_UINT256 // 2


def test_bps_helpers_round_against_the_vault():
    assert sub_bps(1_001, 50) == 995  # 995.995 floors
    assert add_bps(1_001, 50) == 1_007  # 1006.005 ceils
    assert sub_bps(1_000, 0) == 1_000
    assert add_bps(1_000, 0) == 1_000


def test_checked_sub_underflow():
    assert checked_sub(5, 5) == 0
    with pytest.raises(ArithmeticOverflowError):
        checked_sub(4, 5)


def test_signed_accumulator_bounds():
    assert checked_add_signed(10, -25) == -15
    with pytest.raises(ArithmeticOverflowError):
        checked_add_signed(MAX_INT256, 1)
    with pytest.raises(ArithmeticOverflowError):
        to_int256(-(2**255) - 1)


def test_within_bps():
    assert abs_diff(3, 10) == 7
    assert is_within_bps(10_050, 10_000, 50)
    assert not is_within_bps(10_051, 10_000, 50)
