from fractions import Fraction

import pytest

from bigmath import (
    apply_bps_down,
    apply_bps_up,
    compare,
    isqrt,
    mul_div,
    ratio,
)


def test_mul_div_floors():
    assert mul_div(10, 10, 3) == 33
    assert mul_div(9, 1, 3) == 3


def test_mul_div_keeps_precision_past_u64():
    big = 2 ** 64 - 1
    assert mul_div(big, big, big) == big


def test_mul_div_zero_denominator():
    with pytest.raises(ZeroDivisionError):
        mul_div(1, 1, 0)


@pytest.mark.parametrize("value", [0, 1, 2, 3, 4, 15, 16, 17, 10 ** 18, 10 ** 36 + 1, 2 ** 127 - 1])
def test_isqrt_is_floor_sqrt(value):
    root = isqrt(value)
    assert root * root <= value < (root + 1) * (root + 1)


def test_isqrt_rejects_negative():
    with pytest.raises(ValueError):
        isqrt(-1)


def test_compare():
    assert compare(1, 2) == -1
    assert compare(2, 2) == 0
    assert compare(3, 2) == 1


def test_apply_bps():
    assert apply_bps_up(1_000_000, 100) == 1_010_000
    assert apply_bps_down(1_000_000, 100) == 990_000
    assert apply_bps_down(9_900_990, 100) == 9_801_980


def test_ratio_is_exact():
    assert ratio(1, 3) == Fraction(1, 3)
    with pytest.raises(ZeroDivisionError):
        ratio(1, 0)
