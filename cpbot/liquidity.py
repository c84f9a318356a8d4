"""LP-token accounting for add / remove / burn.

All amounts are computed in canonical (A, B) pool order and labelled with
the pool mints. Use LiquidityDelta.oriented to hand them back in the order a
caller listed its mints.
"""

from dataclasses import dataclass, replace
from typing import Optional

from solders.pubkey import Pubkey

from bigmath import BPS_DENOMINATOR, apply_bps_down, apply_bps_up, mul_div
from errors import EmptyPool, InsufficientBalance, InsufficientLiquidity, Outcome
from pool_resolver import PoolState, in_caller_order

# 98% of the proportional estimate, covering reserve drift between quote and execution
DEFAULT_LP_SAFETY_MARGIN_BPS = 200


@dataclass(frozen=True)
class LiquidityDelta:
    """LP and token amounts of one add / remove / burn, labelled by mint.

    token_a_amount and limit_a belong to mint_a. Quotes come out in canonical
    pool order; oriented() relabels them for the caller's mint.
    """
    lp_token_amount: int
    token_a_amount: int
    token_b_amount: int
    share_of_pool_bps: int
    # maximum to deposit (add) or minimum to accept (remove); zero for burn
    limit_a: int = 0
    limit_b: int = 0
    mint_a: Optional[Pubkey] = None
    mint_b: Optional[Pubkey] = None

    def oriented(self, first_mint: Pubkey) -> "LiquidityDelta":
        """Same figures with first_mint as mint_a."""
        if first_mint == self.mint_a:
            return self
        if first_mint != self.mint_b:
            raise ValueError(f"{first_mint} is not one of {self.mint_a} / {self.mint_b}")
        return replace(
            self,
            token_a_amount=self.token_b_amount,
            token_b_amount=self.token_a_amount,
            limit_a=self.limit_b,
            limit_b=self.limit_a,
            mint_a=self.mint_b,
            mint_b=self.mint_a,
        )

    def in_caller_order(self, first_mint: Pubkey) -> tuple[int, int]:
        return in_caller_order((self.token_a_amount, self.token_b_amount), self.mint_a, first_mint)

    def limits_in_caller_order(self, first_mint: Pubkey) -> tuple[int, int]:
        return in_caller_order((self.limit_a, self.limit_b), self.mint_a, first_mint)


def quote_paired_amount(pool: PoolState, mint: Pubkey, amount: int) -> Outcome[int]:
    """Amount of the other side that matches `amount` of mint at the pool ratio."""
    reserve = pool.reserve_of(mint)
    other_reserve = pool.reserve_of(pool.other_mint(mint))
    if reserve == 0:
        return Outcome.failure(EmptyPool(str(pool.pool_address)))
    return Outcome.success(mul_div(amount, other_reserve, reserve))


def quote_add_liquidity(
    pool: PoolState,
    amount_a: int,
    amount_b: int,
    slippage_bps: int,
    safety_margin_bps: int = DEFAULT_LP_SAFETY_MARGIN_BPS,
) -> Outcome[LiquidityDelta]:
    """LP tokens minted for depositing (amount_a, amount_b), canonical order.

    First deposit (no LP supply yet) mints min(amount_a, amount_b). Otherwise
    lp = amount_a * lp_supply / reserve_a, reduced by safety_margin_bps.
    """
    if amount_a <= 0 or amount_b <= 0:
        raise ValueError(f"Deposit amounts must be positive, got {amount_a}/{amount_b}")

    supply = pool.lp_amount
    if supply == 0:
        lp_amount = min(amount_a, amount_b)
    else:
        if pool.base_reserve == 0:
            return Outcome.failure(EmptyPool(str(pool.pool_address)))
        lp_amount = mul_div(amount_a, supply, pool.base_reserve)
        lp_amount = apply_bps_down(lp_amount, safety_margin_bps)

    return Outcome.success(LiquidityDelta(
        lp_token_amount=lp_amount,
        token_a_amount=amount_a,
        token_b_amount=amount_b,
        share_of_pool_bps=mul_div(lp_amount, BPS_DENOMINATOR, supply + lp_amount)
        if lp_amount else 0,
        limit_a=apply_bps_up(amount_a, slippage_bps),
        limit_b=apply_bps_up(amount_b, slippage_bps),
        mint_a=pool.mint_a,
        mint_b=pool.mint_b,
    ))


def quote_add_liquidity_for(
    pool: PoolState,
    mint: Pubkey,
    amount: int,
    slippage_bps: int,
    safety_margin_bps: int = DEFAULT_LP_SAFETY_MARGIN_BPS,
) -> Outcome[LiquidityDelta]:
    """Deposit `amount` of mint plus whatever the other side the pool ratio asks for."""
    paired = quote_paired_amount(pool, mint, amount)
    if not paired.ok:
        return Outcome.failure(paired.error)

    if pool.is_mint_a(mint):
        amount_a, amount_b = amount, paired.value
    else:
        amount_a, amount_b = paired.value, amount
    if amount_a == 0 or amount_b == 0:
        return Outcome.failure(InsufficientLiquidity(
            pool.reserve_of(mint), amount, "deposit too small to pair"
        ))
    return quote_add_liquidity(pool, amount_a, amount_b, slippage_bps, safety_margin_bps)


def lp_amount_for_percentage(lp_balance: int, percentage: int) -> int:
    if not 0 < percentage <= 100:
        raise ValueError(f"percentage must be in (0, 100], got {percentage}")
    return lp_balance * percentage // 100


def _proportional(pool: PoolState, lp_amount: int) -> tuple[int, int, int]:
    supply = pool.lp_amount
    return (
        mul_div(lp_amount, pool.base_reserve, supply),
        mul_div(lp_amount, pool.quote_reserve, supply),
        mul_div(lp_amount, BPS_DENOMINATOR, supply),
    )


def quote_remove_liquidity(
    pool: PoolState, lp_amount: int, slippage_bps: int
) -> Outcome[LiquidityDelta]:
    """Tokens returned for redeeming lp_amount, each side floored independently."""
    if lp_amount <= 0:
        raise ValueError(f"lp_amount must be positive, got {lp_amount}")
    if pool.lp_amount == 0:
        return Outcome.failure(EmptyPool(str(pool.pool_address)))
    if lp_amount > pool.lp_amount:
        return Outcome.failure(InsufficientLiquidity(
            pool.lp_amount, lp_amount, "redeeming more than the LP supply"
        ))

    token_a, token_b, share = _proportional(pool, lp_amount)
    return Outcome.success(LiquidityDelta(
        lp_token_amount=lp_amount,
        token_a_amount=token_a,
        token_b_amount=token_b,
        share_of_pool_bps=share,
        limit_a=apply_bps_down(token_a, slippage_bps),
        limit_b=apply_bps_down(token_b, slippage_bps),
        mint_a=pool.mint_a,
        mint_b=pool.mint_b,
    ))


def _claim(pool: PoolState, lp_amount: int, token_a: int, token_b: int, share: int) -> LiquidityDelta:
    return LiquidityDelta(
        lp_amount, token_a, token_b, share, mint_a=pool.mint_a, mint_b=pool.mint_b
    )


def quote_burn(pool: PoolState, lp_amount: int, lp_balance: int) -> Outcome[LiquidityDelta]:
    """Burn lp_amount without withdrawing.

    token amounts report the claim that is given up; nothing leaves the pool.
    """
    if lp_amount <= 0:
        raise ValueError(f"lp_amount must be positive, got {lp_amount}")
    if lp_balance < lp_amount:
        return Outcome.failure(InsufficientBalance("LP token", lp_amount, lp_balance))

    if pool.lp_amount == 0:
        return Outcome.success(_claim(pool, lp_amount, 0, 0, 0))
    token_a, token_b, share = _proportional(pool, lp_amount)
    return Outcome.success(_claim(pool, lp_amount, token_a, token_b, share))


def lp_position(pool: PoolState, lp_balance: int) -> LiquidityDelta:
    """Share of pool and underlying claim for an LP balance."""
    if pool.lp_amount == 0 or lp_balance == 0:
        return _claim(pool, lp_balance, 0, 0, 0)
    token_a, token_b, share = _proportional(pool, lp_balance)
    return _claim(pool, lp_balance, token_a, token_b, share)
