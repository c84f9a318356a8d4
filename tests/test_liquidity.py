import pytest
from solders.pubkey import Pubkey

from conftest import make_pool_state
from errors import EmptyPool, InsufficientBalance, InsufficientLiquidity
from pool_resolver import order_mints
from liquidity import (
    lp_amount_for_percentage,
    lp_position,
    quote_add_liquidity,
    quote_add_liquidity_for,
    quote_burn,
    quote_paired_amount,
    quote_remove_liquidity,
)


def test_first_deposit_mints_smaller_side(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 0, 0, lp_supply=0)
    delta = quote_add_liquidity(pool, 5_000, 3_000, 100).unwrap()
    assert delta.lp_token_amount == 3_000
    assert delta.share_of_pool_bps == 10_000


def test_deposit_applies_safety_margin(token_mint, other_mint):
    mint_a, mint_b = order_mints(token_mint, other_mint)
    pool = make_pool_state(mint_a, mint_b, 1_000_000, 4_000_000, lp_supply=2_000_000)
    delta = quote_add_liquidity(pool, 100_000, 400_000, 100).unwrap()
    # 100_000 * 2_000_000 / 1_000_000 = 200_000, then 98%
    assert delta.lp_token_amount == 196_000
    assert delta.limit_a == 101_000
    assert delta.limit_b == 404_000

    no_margin = quote_add_liquidity(pool, 100_000, 400_000, 100, safety_margin_bps=0).unwrap()
    assert no_margin.lp_token_amount == 200_000


def test_paired_amount_follows_pool_ratio(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 1_000_000, 4_000_000, lp_supply=2_000_000)
    assert quote_paired_amount(pool, token_mint, 250).unwrap() == 1_000
    assert quote_paired_amount(pool, other_mint, 1_000).unwrap() == 250


def test_add_for_one_side_in_caller_order(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 1_000_000, 4_000_000, lp_supply=2_000_000)
    delta = quote_add_liquidity_for(pool, token_mint, 10_000, 50).unwrap()
    assert delta.in_caller_order(token_mint) == (10_000, 40_000)
    assert delta.in_caller_order(other_mint) == (40_000, 10_000)


def test_add_for_dust_that_cannot_pair(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 4_000_000, 1_000_000, lp_supply=2_000_000)
    outcome = quote_add_liquidity_for(pool, token_mint, 3, 50)
    assert isinstance(outcome.error, InsufficientLiquidity)


def test_remove_redeems_proportionally(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 1_000_000, 4_000_000, lp_supply=2_000_000)
    delta = quote_remove_liquidity(pool, 500_000, 100).unwrap()
    assert delta.in_caller_order(token_mint) == (250_000, 1_000_000)
    assert delta.limits_in_caller_order(token_mint) == (247_500, 990_000)
    assert delta.share_of_pool_bps == 2_500


def test_add_then_remove_never_returns_more(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 7_777_777, 3_333_333, lp_supply=5_000_000)
    added = quote_add_liquidity_for(pool, token_mint, 123_456, 0).unwrap()
    grown = make_pool_state(
        token_mint, other_mint,
        7_777_777 + added.in_caller_order(token_mint)[0],
        3_333_333 + added.in_caller_order(token_mint)[1],
        lp_supply=5_000_000 + added.lp_token_amount,
    )
    removed = quote_remove_liquidity(grown, added.lp_token_amount, 0).unwrap()
    assert removed.token_a_amount <= added.token_a_amount
    assert removed.token_b_amount <= added.token_b_amount


def test_remove_errors(token_mint, other_mint):
    empty = make_pool_state(token_mint, other_mint, 0, 0, lp_supply=0)
    assert isinstance(quote_remove_liquidity(empty, 1, 0).error, EmptyPool)

    pool = make_pool_state(token_mint, other_mint, 100, 100, lp_supply=100)
    assert isinstance(quote_remove_liquidity(pool, 101, 0).error, InsufficientLiquidity)
    with pytest.raises(ValueError):
        quote_remove_liquidity(pool, 0, 0)


def test_percentage_of_balance():
    assert lp_amount_for_percentage(1_001, 50) == 500
    assert lp_amount_for_percentage(1_001, 100) == 1_001
    for bad in (0, 101):
        with pytest.raises(ValueError):
            lp_amount_for_percentage(1_000, bad)


def test_burn_checks_balance(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 1_000, 2_000, lp_supply=1_000)
    outcome = quote_burn(pool, 600, 500)
    assert isinstance(outcome.error, InsufficientBalance)
    assert (outcome.error.required, outcome.error.available) == (600, 500)

    delta = quote_burn(pool, 100, 500).unwrap()
    assert delta.share_of_pool_bps == 1_000
    assert (delta.limit_a, delta.limit_b) == (0, 0)


def test_lp_position(token_mint, other_mint):
    pool = make_pool_state(token_mint, other_mint, 1_000, 2_000, lp_supply=1_000)
    position = lp_position(pool, 250)
    assert position.in_caller_order(token_mint) == (250, 500)
    assert lp_position(pool, 0).share_of_pool_bps == 0


def test_first_deposit_redeems_in_full(token_mint, other_mint):
    mint_a, mint_b = order_mints(token_mint, other_mint)
    empty = make_pool_state(mint_a, mint_b, 0, 0, lp_supply=0)

    added = quote_add_liquidity(empty, 7_000_003, 2_000_001, 0).unwrap()
    assert added.lp_token_amount == 2_000_001

    seeded = make_pool_state(mint_a, mint_b, 7_000_003, 2_000_001, lp_supply=added.lp_token_amount)
    removed = quote_remove_liquidity(seeded, added.lp_token_amount, 0).unwrap()
    assert (removed.token_a_amount, removed.token_b_amount) == (7_000_003, 2_000_001)
    assert removed.share_of_pool_bps == 10_000


def test_oriented_relabels_for_second_mint(token_mint, other_mint):
    mint_a, mint_b = order_mints(token_mint, other_mint)
    pool = make_pool_state(mint_a, mint_b, 1_000_000, 4_000_000, lp_supply=2_000_000)
    delta = quote_remove_liquidity(pool, 500_000, 100).unwrap()

    assert delta.oriented(mint_a) is delta
    flipped = delta.oriented(mint_b)
    assert (flipped.mint_a, flipped.mint_b) == (mint_b, mint_a)
    assert (flipped.token_a_amount, flipped.token_b_amount) == (1_000_000, 250_000)
    assert (flipped.limit_a, flipped.limit_b) == (990_000, 247_500)
    assert flipped.lp_token_amount == 500_000
    with pytest.raises(ValueError):
        delta.oriented(Pubkey.new_unique())
