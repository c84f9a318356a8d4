"""Settled amounts — what actually moved through the pool vaults.

Quotes are bounds; the pool may fill anywhere inside them. After a
transaction lands, the pre/post token balances in its metadata show the real
vault changes. When the node has no metadata for it yet, the owner's own token
accounts are read before and after instead.

Amounts are signed per mint, seen from the pool: positive flowed in
(the owner paid it), negative flowed out (the owner received it).
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solders.pubkey import Pubkey
from solders.signature import Signature

from pool_resolver import fetch_token_balance

FROM_TRANSACTION = "txhash"
FROM_BALANCES = "balance"


@dataclass(frozen=True)
class Settlement:
    pool_inflow: dict[Pubkey, int]
    source: str  # FROM_TRANSACTION or FROM_BALANCES

    def paid(self, mint: Pubkey) -> Optional[int]:
        """Amount of mint the owner paid into the pool, None when unknown."""
        flow = self.pool_inflow.get(mint)
        return None if flow is None else max(flow, 0)

    def received(self, mint: Pubkey) -> Optional[int]:
        """Amount of mint the owner took out of the pool, None when unknown."""
        flow = self.pool_inflow.get(mint)
        return None if flow is None else max(-flow, 0)


# ── From transaction metadata ──

def _vault_total(balances, authority: Pubkey, mint: Pubkey) -> Optional[int]:
    amounts = [
        int(b.ui_token_amount.amount)
        for b in balances
        if b.mint == mint and b.owner == authority
    ]
    return sum(amounts) if amounts else None


def settlement_from_meta(meta, authority: Pubkey, mints) -> Optional[Settlement]:
    """Vault changes per mint from a transaction's token balances.

    A vault created in the same transaction has no pre balance and counts from
    zero. None when the metadata does not mention every mint's vault.
    """
    if meta is None or meta.pre_token_balances is None or meta.post_token_balances is None:
        return None

    inflow = {}
    for mint in mints:
        pre = _vault_total(meta.pre_token_balances, authority, mint)
        post = _vault_total(meta.post_token_balances, authority, mint)
        if post is None:
            return None
        inflow[mint] = post - (pre or 0)
    return Settlement(inflow, FROM_TRANSACTION)


async def fetch_settlement(
    rpc: AsyncClient,
    signature: str,
    authority: Pubkey,
    mints,
    commitment: Commitment = Confirmed,
) -> Optional[Settlement]:
    resp = await rpc.get_transaction(
        Signature.from_string(signature),
        commitment=commitment,
        max_supported_transaction_version=0,
    )
    if resp.value is None:
        return None
    return settlement_from_meta(resp.value.transaction.meta, authority, mints)


# ── From owner balances ──

async def read_owner_balances(rpc: AsyncClient, accounts: dict[Pubkey, Pubkey]) -> dict[Pubkey, int]:
    """Token balance per mint of the owner's accounts; missing accounts read 0."""
    balances = {}
    for mint, account in accounts.items():
        balances[mint] = await fetch_token_balance(rpc, account) or 0
    return balances


def settlement_from_balances(
    before: dict[Pubkey, int],
    after: dict[Pubkey, int],
    deposited: Optional[dict[Pubkey, int]] = None,
) -> Settlement:
    """Pool inflow from the owner's side.

    deposited holds amounts moved into an owner account by the same
    transaction before the trade (wrapped SOL), which never reached the pool.
    """
    deposited = deposited or {}
    inflow = {
        mint: before[mint] - after[mint] + deposited.get(mint, 0)
        for mint in before
        if mint in after
    }
    return Settlement(inflow, FROM_BALANCES)


async def settle(
    rpc: AsyncClient,
    signature: str,
    authority: Pubkey,
    accounts: dict[Pubkey, Pubkey],
    before: dict[Pubkey, int],
    deposited: Optional[dict[Pubkey, int]] = None,
    commitment: Commitment = Confirmed,
) -> Optional[Settlement]:
    """Best effort: transaction metadata first, owner balances second.

    The trade has already landed, so read failures are logged and give None.
    """
    try:
        settled = await fetch_settlement(rpc, signature, authority, list(accounts), commitment)
    except SolanaRpcException as e:
        logger.warning(f"get_transaction {signature} failed: {e}")
        settled = None
    if settled is not None:
        return settled

    logger.debug(f"No token balances for {signature}, reading owner accounts")
    try:
        after = await read_owner_balances(rpc, accounts)
    except SolanaRpcException as e:
        logger.warning(f"Could not read settled balances for {signature}: {e}")
        return None
    return settlement_from_balances(before, after, deposited)
