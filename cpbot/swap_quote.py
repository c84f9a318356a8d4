"""Constant-product swap quotes.

Two modes share the invariant base_reserve * quote_reserve = k:

  exact-output ("buy"):  fix amount_out, solve amount_in, bound it with a
                         maximum of amount_in * (10000 + bps) / 10000
  exact-input  ("sell"): fix amount_in, solve amount_out, bound it with a
                         minimum of amount_out * (10000 - bps) / 10000

Integer division truncates toward zero, which leaves the rounding remainder
in the pool, matching on-chain behaviour.
"""

from dataclasses import dataclass
from enum import Enum

from solders.pubkey import Pubkey

from bigmath import BPS_DENOMINATOR, apply_bps_down, apply_bps_up, mul_div
from errors import EmptyPool, InsufficientLiquidity, Outcome
from pool_resolver import PoolState


class SwapMode(str, Enum):
    EXACT_INPUT = "exact_input"    # sell
    EXACT_OUTPUT = "exact_output"  # buy


@dataclass(frozen=True)
class Quote:
    input_mint: Pubkey
    output_mint: Pubkey
    mode: SwapMode
    fixed_amount: int     # amount_in for exact-input, amount_out for exact-output
    counter_amount: int   # the solved side
    bounded_amount: int   # counter_amount after slippage
    slippage_bps: int

    @property
    def amount_in(self) -> int:
        return self.fixed_amount if self.mode is SwapMode.EXACT_INPUT else self.counter_amount

    @property
    def amount_out(self) -> int:
        return self.counter_amount if self.mode is SwapMode.EXACT_INPUT else self.fixed_amount

    @property
    def max_amount_in(self) -> int:
        """Most the caller will pay; equals amount_in for exact-input."""
        return self.bounded_amount if self.mode is SwapMode.EXACT_OUTPUT else self.fixed_amount

    @property
    def min_amount_out(self) -> int:
        """Least the caller will accept; equals amount_out for exact-output."""
        return self.bounded_amount if self.mode is SwapMode.EXACT_INPUT else self.fixed_amount


def _check_slippage(slippage_bps: int) -> None:
    if not 0 <= slippage_bps < BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}), got {slippage_bps}")


def amount_in_for_output(reserve_in: int, reserve_out: int, amount_out: int) -> Outcome[int]:
    """Input needed to take amount_out out of the pool.

    new_reserve_out = reserve_out - amount_out
    amount_in = k // new_reserve_out - reserve_in
             == amount_out * reserve_in // (reserve_out - amount_out)
    """
    if reserve_in == 0 or reserve_out == 0:
        return Outcome.failure(EmptyPool())
    new_reserve_out = reserve_out - amount_out
    if new_reserve_out <= 0:
        return Outcome.failure(
            InsufficientLiquidity(reserve_out, amount_out, "purchase exceeds reserve")
        )
    k = reserve_in * reserve_out
    return Outcome.success(k // new_reserve_out - reserve_in)


def amount_out_for_input(reserve_in: int, reserve_out: int, amount_in: int) -> Outcome[int]:
    """amount_out = amount_in * reserve_out // (reserve_in + amount_in)."""
    if reserve_in == 0 or reserve_out == 0:
        return Outcome.failure(EmptyPool())
    return Outcome.success(mul_div(amount_in, reserve_out, reserve_in + amount_in))


def quote_exact_output(
    pool: PoolState, input_mint: Pubkey, amount_out: int, slippage_bps: int
) -> Outcome[Quote]:
    """Buy a fixed amount_out of the other side, paying input_mint."""
    if amount_out <= 0:
        raise ValueError(f"amount_out must be positive, got {amount_out}")
    _check_slippage(slippage_bps)

    reserve_in, reserve_out = pool.reserves_for(input_mint)
    solved = amount_in_for_output(reserve_in, reserve_out, amount_out)
    if not solved.ok:
        if isinstance(solved.error, EmptyPool):
            return Outcome.failure(EmptyPool(str(pool.pool_address)))
        return Outcome.failure(solved.error)

    amount_in = solved.value
    return Outcome.success(Quote(
        input_mint=input_mint,
        output_mint=pool.other_mint(input_mint),
        mode=SwapMode.EXACT_OUTPUT,
        fixed_amount=amount_out,
        counter_amount=amount_in,
        bounded_amount=apply_bps_up(amount_in, slippage_bps),
        slippage_bps=slippage_bps,
    ))


def quote_exact_input(
    pool: PoolState, input_mint: Pubkey, amount_in: int, slippage_bps: int
) -> Outcome[Quote]:
    """Sell a fixed amount_in of input_mint for the other side."""
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive, got {amount_in}")
    _check_slippage(slippage_bps)

    reserve_in, reserve_out = pool.reserves_for(input_mint)
    solved = amount_out_for_input(reserve_in, reserve_out, amount_in)
    if not solved.ok:
        return Outcome.failure(EmptyPool(str(pool.pool_address)))

    amount_out = solved.value
    return Outcome.success(Quote(
        input_mint=input_mint,
        output_mint=pool.other_mint(input_mint),
        mode=SwapMode.EXACT_INPUT,
        fixed_amount=amount_in,
        counter_amount=amount_out,
        bounded_amount=apply_bps_down(amount_out, slippage_bps),
        slippage_bps=slippage_bps,
    ))


def quote_swap(
    pool: PoolState,
    input_mint: Pubkey,
    amount: int,
    mode: SwapMode,
    slippage_bps: int,
) -> Outcome[Quote]:
    if mode is SwapMode.EXACT_OUTPUT:
        return quote_exact_output(pool, input_mint, amount, slippage_bps)
    return quote_exact_input(pool, input_mint, amount, slippage_bps)
