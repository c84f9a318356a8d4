"""Integer ratio math shared by every quote path.

Python ints are arbitrary precision, so products never overflow; the helpers
exist to keep "multiply before divide" and the rounding direction explicit
at each call site. Nothing here touches floating point.
"""

from fractions import Fraction

BPS_DENOMINATOR = 10_000


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def isqrt(value: int) -> int:
    """Integer square root by Newton's method.

    Starts from x0 = value and iterates x' = (x + value // x) // 2 until the
    sequence stops decreasing. Returns floor(sqrt(value)).
    """
    if value < 0:
        raise ValueError(f"isqrt of negative value: {value}")
    if value == 0:
        return 0

    x = value
    y = (x + 1) // 2
    while y < x:
        x = y
        y = (x + value // x) // 2
    return x


def compare(a: int, b: int) -> int:
    """Three-way compare: -1, 0 or 1."""
    return (a > b) - (a < b)


def apply_bps_up(amount: int, bps: int) -> int:
    """amount * (10000 + bps) / 10000, floored. Used for maximum-in bounds."""
    return mul_div(amount, BPS_DENOMINATOR + bps, BPS_DENOMINATOR)


def apply_bps_down(amount: int, bps: int) -> int:
    """amount * (10000 - bps) / 10000, floored. Used for minimum-out bounds."""
    return mul_div(amount, BPS_DENOMINATOR - bps, BPS_DENOMINATOR)


def ratio(numerator: int, denominator: int) -> Fraction:
    """Exact ratio, for prices that are only ever displayed or compared."""
    if denominator == 0:
        raise ZeroDivisionError("ratio denominator is zero")
    return Fraction(numerator, denominator)
