"""Pool resolution — derive the pool address, read it, and snapshot its reserves.

Every read produces a fresh PoolState. Nothing is cached between calls since
reserves move with every trade on-chain.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey

from bigmath import compare
from errors import Outcome, PoolNotFound, RpcUnavailable
from pool_decoder import (
    MintAccount,
    TokenAccount,
    decode_amm_config,
    decode_cpmm_pool,
    decode_mint,
    decode_token_account,
)

# PDA seeds
POOL_SEED = b"pool"
AUTH_SEED = b"vault_and_lp_mint_auth_seed"
POOL_VAULT_SEED = b"pool_vault"
POOL_LP_MINT_SEED = b"pool_lp_mint"
OBSERVATION_SEED = b"observation"


# ── Mint ordering ──

def order_mints(mint_x: Pubkey, mint_y: Pubkey) -> tuple[Pubkey, Pubkey]:
    """Return the two mints in canonical order (smaller 32-byte key first).

    This is the only place the ordering rule lives. Vaults, reserves and
    amount pairs are always labelled A/B by its result.
    """
    if mint_x == mint_y:
        raise ValueError(f"Pool mints must be distinct, got {mint_x} twice")
    if compare(int.from_bytes(bytes(mint_x), "big"), int.from_bytes(bytes(mint_y), "big")) < 0:
        return mint_x, mint_y
    return mint_y, mint_x


def in_caller_order(
    canonical_pair: tuple[int, int], mint_a: Pubkey, first_mint: Pubkey
) -> tuple[int, int]:
    """Re-map an (A, B) pair into the order the caller listed its mints."""
    a, b = canonical_pair
    return (a, b) if first_mint == mint_a else (b, a)


# ── PDA Derivation ──

def derive_pool_address(
    config_id: Pubkey, mint_x: Pubkey, mint_y: Pubkey, program_id: Pubkey
) -> Pubkey:
    """Pool PDA: ["pool", config, mint_0, mint_1] under the AMM program."""
    mint_0, mint_1 = order_mints(mint_x, mint_y)
    pda, _ = Pubkey.find_program_address(
        [POOL_SEED, bytes(config_id), bytes(mint_0), bytes(mint_1)],
        program_id,
    )
    return pda


def derive_authority(program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address([AUTH_SEED], program_id)
    return pda


def derive_observation(pool_address: Pubkey, program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [OBSERVATION_SEED, bytes(pool_address)], program_id
    )
    return pda


def derive_pool_vault(pool_address: Pubkey, mint: Pubkey, program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [POOL_VAULT_SEED, bytes(pool_address), bytes(mint)], program_id
    )
    return pda


def derive_lp_mint(pool_address: Pubkey, program_id: Pubkey) -> Pubkey:
    pda, _ = Pubkey.find_program_address(
        [POOL_LP_MINT_SEED, bytes(pool_address)], program_id
    )
    return pda


# ── Pool state ──

@dataclass(frozen=True)
class PoolState:
    """Snapshot of one pool, all pairs labelled in canonical A/B order."""
    pool_address: Pubkey
    program_id: Pubkey
    config_id: Pubkey
    authority: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    vault_a: Pubkey
    vault_b: Pubkey
    base_reserve: int  # reserve of mint_a
    quote_reserve: int  # reserve of mint_b
    lp_mint: Pubkey
    lp_amount: int  # total LP supply
    observation: Pubkey
    mint_program_a: Pubkey
    mint_program_b: Pubkey
    decimals_a: int = 0
    decimals_b: int = 0
    lp_decimals: int = 0
    status: int = 0
    open_time: int = 0
    trade_fee_rate: Optional[int] = None

    @property
    def k(self) -> int:
        return self.base_reserve * self.quote_reserve

    def has_mint(self, mint: Pubkey) -> bool:
        return mint == self.mint_a or mint == self.mint_b

    def is_mint_a(self, mint: Pubkey) -> bool:
        if not self.has_mint(mint):
            raise ValueError(f"Mint {mint} is not part of pool {self.pool_address}")
        return mint == self.mint_a

    def other_mint(self, mint: Pubkey) -> Pubkey:
        return self.mint_b if self.is_mint_a(mint) else self.mint_a

    def reserve_of(self, mint: Pubkey) -> int:
        return self.base_reserve if self.is_mint_a(mint) else self.quote_reserve

    def decimals_of(self, mint: Pubkey) -> int:
        return self.decimals_a if self.is_mint_a(mint) else self.decimals_b

    def mint_program(self, mint: Pubkey) -> Pubkey:
        return self.mint_program_a if self.is_mint_a(mint) else self.mint_program_b

    def reserves_for(self, input_mint: Pubkey) -> tuple[int, int]:
        """(reserve_in, reserve_out) for a trade paying input_mint."""
        if self.is_mint_a(input_mint):
            return self.base_reserve, self.quote_reserve
        return self.quote_reserve, self.base_reserve

    def vaults_for(self, input_mint: Pubkey) -> tuple[Pubkey, Pubkey]:
        """(input_vault, output_vault) for a trade paying input_mint."""
        if self.is_mint_a(input_mint):
            return self.vault_a, self.vault_b
        return self.vault_b, self.vault_a


async def resolve_pool(
    rpc: AsyncClient,
    mint_x: Pubkey,
    mint_y: Pubkey,
    program_id: Pubkey,
    config_id: Pubkey,
) -> Outcome[PoolState]:
    """Derive the pool for two mints (any order) and read a fresh snapshot.

    Reserves are the vault balances net of protocol and fund fees owed, which
    is what the pool prices against.
    """
    mint_a, mint_b = order_mints(mint_x, mint_y)
    pool_address = derive_pool_address(config_id, mint_a, mint_b, program_id)

    try:
        resp = await rpc.get_account_info(pool_address)
    except SolanaRpcException as e:
        return Outcome.failure(RpcUnavailable(f"getAccountInfo {pool_address}: {e}"))

    if resp.value is None:
        return Outcome.failure(PoolNotFound(str(pool_address)))

    raw = decode_cpmm_pool(bytes(resp.value.data))
    if raw is None:
        logger.warning(f"Account {pool_address} is too short for a pool layout")
        return Outcome.failure(PoolNotFound(str(pool_address)))

    if raw.token_0_mint != mint_a or raw.token_1_mint != mint_b:
        logger.warning(
            f"Pool {pool_address} mints {raw.token_0_mint}/{raw.token_1_mint} "
            f"do not match {mint_a}/{mint_b}"
        )
        return Outcome.failure(PoolNotFound(str(pool_address)))

    try:
        multi = await rpc.get_multiple_accounts(
            [raw.token_0_vault, raw.token_1_vault, raw.amm_config]
        )
    except SolanaRpcException as e:
        return Outcome.failure(RpcUnavailable(f"getMultipleAccounts vaults: {e}"))

    vault_a_info, vault_b_info, config_info = multi.value
    vault_a = decode_token_account(bytes(vault_a_info.data)) if vault_a_info else None
    vault_b = decode_token_account(bytes(vault_b_info.data)) if vault_b_info else None
    if vault_a is None or vault_b is None:
        logger.warning(f"Pool {pool_address} vault accounts missing or undecodable")
        return Outcome.failure(PoolNotFound(str(pool_address)))

    amm_config = decode_amm_config(bytes(config_info.data)) if config_info else None

    base_reserve = max(
        vault_a.amount - raw.protocol_fees_token_0 - raw.fund_fees_token_0, 0
    )
    quote_reserve = max(
        vault_b.amount - raw.protocol_fees_token_1 - raw.fund_fees_token_1, 0
    )

    state = PoolState(
        pool_address=pool_address,
        program_id=program_id,
        config_id=raw.amm_config,
        authority=derive_authority(program_id),
        mint_a=mint_a,
        mint_b=mint_b,
        vault_a=raw.token_0_vault,
        vault_b=raw.token_1_vault,
        base_reserve=base_reserve,
        quote_reserve=quote_reserve,
        lp_mint=raw.lp_mint,
        lp_amount=raw.lp_supply,
        observation=raw.observation_key,
        mint_program_a=raw.token_0_program,
        mint_program_b=raw.token_1_program,
        decimals_a=raw.mint_0_decimals,
        decimals_b=raw.mint_1_decimals,
        lp_decimals=raw.lp_mint_decimals,
        status=raw.status,
        open_time=raw.open_time,
        trade_fee_rate=amm_config.trade_fee_rate if amm_config else None,
    )

    logger.debug(
        f"Resolved pool {pool_address}: reserves {base_reserve}/{quote_reserve}, "
        f"lp_supply={raw.lp_supply}"
    )
    return Outcome.success(state)


# ── Account reads ──

async def fetch_token_account(
    rpc: AsyncClient, address: Pubkey
) -> Optional[TokenAccount]:
    """Read a token account; None when it does not exist."""
    resp = await rpc.get_account_info(address)
    if resp.value is None:
        return None
    return decode_token_account(bytes(resp.value.data))


async def fetch_token_balance(rpc: AsyncClient, address: Pubkey) -> Optional[int]:
    account = await fetch_token_account(rpc, address)
    return account.amount if account else None


async def fetch_mint(rpc: AsyncClient, mint: Pubkey) -> Optional[MintAccount]:
    resp = await rpc.get_account_info(mint)
    if resp.value is None:
        return None
    return decode_mint(bytes(resp.value.data))


async def fetch_mint_program(rpc: AsyncClient, mint: Pubkey) -> Optional[Pubkey]:
    """Owning token program of a mint (SPL Token or Token-2022)."""
    resp = await rpc.get_account_info(mint)
    if resp.value is None:
        return None
    return resp.value.owner
