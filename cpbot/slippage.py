"""Slippage estimation on a constant-product pool.

Prices are quoted as currency per token in raw units: p = currency_reserve /
token_reserve. A buy takes tokens out (price rises), a sell puts tokens in
(price falls).

estimate_volume solves the inverse problem: the largest trade whose marginal
price stays within max_slippage of the current price. With token reserve t and
target price pt, the invariant gives t' = sqrt(k / pt). The target price is
carried as an integer scaled by PRECISION so the whole solve stays in integers.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction

from solders.pubkey import Pubkey

from bigmath import BPS_DENOMINATOR, isqrt, mul_div, ratio
from errors import EmptyPool, InsufficientLiquidity, Outcome, SlippageUnachievable
from pool_resolver import PoolState

PRECISION = 10 ** 18


class TradeSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class VolumeEstimate:
    side: TradeSide
    token_mint: Pubkey
    currency_mint: Pubkey
    max_slippage_bps: int
    token_amount: int      # largest tradable amount of token_mint
    counter_amount: int    # currency paid (buy) or received (sell)
    new_token_reserve: int
    k: int
    current_price: Fraction
    actual_price: Fraction
    achieved_slippage_pct: Decimal  # verification figure, display only


@dataclass(frozen=True)
class SlippageEstimate:
    side: TradeSide
    token_mint: Pubkey
    currency_mint: Pubkey
    token_amount: int
    counter_amount: int
    k: int
    current_price: Fraction
    actual_price: Fraction
    slippage_pct: Decimal


def slippage_pct(actual_price: Fraction, current_price: Fraction) -> Decimal:
    """|actual - current| / current as a percent."""
    rel = abs(actual_price - current_price) / current_price * 100
    return Decimal(rel.numerator) / Decimal(rel.denominator)


def _split_reserves(pool: PoolState, token_mint: Pubkey) -> tuple[int, int]:
    """(token_reserve, currency_reserve)."""
    token_reserve = pool.reserve_of(token_mint)
    currency_reserve = pool.reserve_of(pool.other_mint(token_mint))
    return token_reserve, currency_reserve


def solve_max_volume(
    token_reserve: int,
    currency_reserve: int,
    side: TradeSide,
    max_slippage_bps: int,
) -> Outcome[tuple[int, int, int]]:
    """Integer core of estimate_volume.

    Returns (token_amount, counter_amount, new_token_reserve).
    """
    if token_reserve == 0 or currency_reserve == 0:
        return Outcome.failure(EmptyPool())

    k = token_reserve * currency_reserve
    price = mul_div(currency_reserve, PRECISION, token_reserve)
    if side is TradeSide.BUY:
        target = mul_div(price, BPS_DENOMINATOR + max_slippage_bps, BPS_DENOMINATOR)
    else:
        target = mul_div(price, BPS_DENOMINATOR - max_slippage_bps, BPS_DENOMINATOR)
    if target == 0:
        return Outcome.failure(SlippageUnachievable(max_slippage_bps))

    new_token_reserve = isqrt(mul_div(k, PRECISION, target))

    if side is TradeSide.BUY:
        # buying must shrink the token reserve
        if new_token_reserve >= token_reserve or new_token_reserve == 0:
            return Outcome.failure(SlippageUnachievable(max_slippage_bps))
        token_amount = token_reserve - new_token_reserve
        counter_amount = k // new_token_reserve - currency_reserve
    else:
        # selling must grow it
        if new_token_reserve <= token_reserve:
            return Outcome.failure(SlippageUnachievable(max_slippage_bps))
        token_amount = new_token_reserve - token_reserve
        counter_amount = mul_div(token_amount, currency_reserve, new_token_reserve)

    if counter_amount <= 0:
        return Outcome.failure(SlippageUnachievable(max_slippage_bps))
    return Outcome.success((token_amount, counter_amount, new_token_reserve))


def estimate_volume(
    pool: PoolState,
    token_mint: Pubkey,
    side: TradeSide,
    max_slippage_bps: int,
) -> Outcome[VolumeEstimate]:
    """Largest trade of token_mint that keeps slippage within max_slippage_bps."""
    if not 0 < max_slippage_bps < BPS_DENOMINATOR:
        raise ValueError(
            f"max_slippage_bps must be between 0 and {BPS_DENOMINATOR}, got {max_slippage_bps}"
        )

    token_reserve, currency_reserve = _split_reserves(pool, token_mint)
    solved = solve_max_volume(token_reserve, currency_reserve, side, max_slippage_bps)
    if not solved.ok:
        if isinstance(solved.error, EmptyPool):
            return Outcome.failure(EmptyPool(str(pool.pool_address)))
        return Outcome.failure(solved.error)

    token_amount, counter_amount, new_token_reserve = solved.value
    current_price = ratio(currency_reserve, token_reserve)
    actual_price = ratio(counter_amount, token_amount)

    return Outcome.success(VolumeEstimate(
        side=side,
        token_mint=token_mint,
        currency_mint=pool.other_mint(token_mint),
        max_slippage_bps=max_slippage_bps,
        token_amount=token_amount,
        counter_amount=counter_amount,
        new_token_reserve=new_token_reserve,
        k=token_reserve * currency_reserve,
        current_price=current_price,
        actual_price=actual_price,
        achieved_slippage_pct=slippage_pct(actual_price, current_price),
    ))


def estimate_slippage(
    pool: PoolState,
    token_mint: Pubkey,
    side: TradeSide,
    token_amount: int,
) -> Outcome[SlippageEstimate]:
    """Realized slippage of buying or selling token_amount of token_mint."""
    if token_amount <= 0:
        raise ValueError(f"token_amount must be positive, got {token_amount}")

    token_reserve, currency_reserve = _split_reserves(pool, token_mint)
    if token_reserve == 0 or currency_reserve == 0:
        return Outcome.failure(EmptyPool(str(pool.pool_address)))

    k = token_reserve * currency_reserve
    if side is TradeSide.BUY:
        new_token_reserve = token_reserve - token_amount
        if new_token_reserve <= 0:
            return Outcome.failure(InsufficientLiquidity(
                token_reserve, token_amount, "purchase exceeds reserve"
            ))
        counter_amount = k // new_token_reserve - currency_reserve
    else:
        counter_amount = mul_div(token_amount, currency_reserve, token_reserve + token_amount)

    current_price = ratio(currency_reserve, token_reserve)
    actual_price = ratio(counter_amount, token_amount)

    return Outcome.success(SlippageEstimate(
        side=side,
        token_mint=token_mint,
        currency_mint=pool.other_mint(token_mint),
        token_amount=token_amount,
        counter_amount=counter_amount,
        k=k,
        current_price=current_price,
        actual_price=actual_price,
        slippage_pct=slippage_pct(actual_price, current_price),
    ))
