from types import SimpleNamespace

import pytest
from solders.pubkey import Pubkey

from amm_swap import get_associated_token_address
from conftest import pack_token_account, token_balance
from settlement import (
    FROM_BALANCES,
    FROM_TRANSACTION,
    Settlement,
    settle,
    settlement_from_balances,
    settlement_from_meta,
)
from wsol import WSOL_MINT


@pytest.fixture
def authority():
    return Pubkey.new_unique()


def test_vault_changes_from_token_balances(authority, token_mint, wallet):
    meta = SimpleNamespace(
        pre_token_balances=[
            token_balance(WSOL_MINT, authority, 1_000, 1),
            token_balance(token_mint, authority, 2_000, 2),
            token_balance(WSOL_MINT, wallet.pubkey(), 9_999, 3),
        ],
        post_token_balances=[
            token_balance(WSOL_MINT, authority, 1_500, 1),
            token_balance(token_mint, authority, 1_800, 2),
            token_balance(WSOL_MINT, wallet.pubkey(), 0, 3),
        ],
    )

    settled = settlement_from_meta(meta, authority, [WSOL_MINT, token_mint])

    assert settled.source == FROM_TRANSACTION
    assert settled.pool_inflow == {WSOL_MINT: 500, token_mint: -200}
    assert (settled.paid(WSOL_MINT), settled.received(WSOL_MINT)) == (500, 0)
    assert (settled.paid(token_mint), settled.received(token_mint)) == (0, 200)


def test_vault_created_in_the_same_transaction(authority, token_mint):
    meta = SimpleNamespace(
        pre_token_balances=[],
        post_token_balances=[
            token_balance(WSOL_MINT, authority, 2_000_000, 1),
            token_balance(token_mint, authority, 5_000_000, 2),
        ],
    )
    settled = settlement_from_meta(meta, authority, [WSOL_MINT, token_mint])
    assert settled.pool_inflow == {WSOL_MINT: 2_000_000, token_mint: 5_000_000}


def test_incomplete_metadata_gives_nothing(authority, token_mint):
    assert settlement_from_meta(None, authority, [token_mint]) is None
    no_balances = SimpleNamespace(pre_token_balances=None, post_token_balances=None)
    assert settlement_from_meta(no_balances, authority, [token_mint]) is None
    other_vault = SimpleNamespace(
        pre_token_balances=[], post_token_balances=[token_balance(WSOL_MINT, authority, 1)]
    )
    assert settlement_from_meta(other_vault, authority, [token_mint]) is None


def test_balances_discount_wrapped_sol(token_mint):
    # 100 already wrapped, 900 more wrapped in the tx, 800 spent on 50 tokens
    settled = settlement_from_balances(
        before={WSOL_MINT: 100, token_mint: 0},
        after={WSOL_MINT: 200, token_mint: 50},
        deposited={WSOL_MINT: 900},
    )
    assert settled.source == FROM_BALANCES
    assert settled.paid(WSOL_MINT) == 800
    assert settled.received(token_mint) == 50


def test_unknown_mint_is_none(token_mint):
    assert Settlement({}, FROM_BALANCES).paid(token_mint) is None


@pytest.mark.asyncio
async def test_settle_reads_owner_accounts_without_metadata(rpc, wallet, authority, token_mint):
    owner = wallet.pubkey()
    account = get_associated_token_address(owner, token_mint)
    rpc.set_account(account, pack_token_account(token_mint, owner, 70))

    settled = await settle(
        rpc, "1" * 64, authority, {token_mint: account}, before={token_mint: 100}
    )

    assert settled.source == FROM_BALANCES
    assert settled.paid(token_mint) == 30
