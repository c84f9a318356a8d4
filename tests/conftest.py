import struct
from types import SimpleNamespace

import pytest
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import TOKEN_PROGRAM_ID

from pool_decoder import CPMM_POOL_LEN, MINT_LEN, TOKEN_ACCOUNT_LEN
from pool_resolver import (
    PoolState,
    derive_authority,
    derive_lp_mint,
    derive_observation,
    derive_pool_address,
    derive_pool_vault,
    order_mints,
)

PROGRAM_ID = Pubkey.from_string("CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C")
CONFIG_ID = Pubkey.from_string("D4FPEruKEHrG5TenZ2mpDGEfu1iUvTiqBxvpU8HLBvC2")
FEE_RECEIVER = Pubkey.from_string("DNXgeM9EiiaAbaWvwjHj9fQQLAX5ZsfHyvmYUNRAdNC8")


# ── Account packers ──

def pack_pool(
    *,
    amm_config,
    vault_0,
    vault_1,
    lp_mint,
    mint_0,
    mint_1,
    observation,
    lp_supply,
    program_0=TOKEN_PROGRAM_ID,
    program_1=TOKEN_PROGRAM_ID,
    decimals=(9, 9),
    lp_decimals=9,
    protocol_fees=(0, 0),
    fund_fees=(0, 0),
    open_time=0,
    status=0,
) -> bytes:
    buf = bytearray(CPMM_POOL_LEN)
    for offset, key in (
        (8, amm_config), (40, Pubkey.default()), (72, vault_0), (104, vault_1),
        (136, lp_mint), (168, mint_0), (200, mint_1), (232, program_0),
        (264, program_1), (296, observation),
    ):
        buf[offset:offset + 32] = bytes(key)
    struct.pack_into("<BBBBB", buf, 328, 255, status, lp_decimals, decimals[0], decimals[1])
    struct.pack_into(
        "<QQQQQQQ", buf, 333,
        lp_supply, protocol_fees[0], protocol_fees[1], fund_fees[0], fund_fees[1], open_time, 0,
    )
    return bytes(buf)


def pack_amm_config(trade_fee_rate=2500) -> bytes:
    buf = bytearray(236)
    struct.pack_into("<BBH", buf, 8, 254, 0, 0)
    struct.pack_into("<QQQQ", buf, 12, trade_fee_rate, 120_000, 40_000, 150_000_000)
    return bytes(buf)


def pack_token_account(mint, owner, amount, is_native=False) -> bytes:
    buf = bytearray(TOKEN_ACCOUNT_LEN)
    buf[0:32] = bytes(mint)
    buf[32:64] = bytes(owner)
    struct.pack_into("<Q", buf, 64, amount)
    buf[108] = 1  # initialized
    if is_native:
        struct.pack_into("<IQ", buf, 109, 1, 2_039_280)
    return bytes(buf)


def pack_mint(supply, decimals) -> bytes:
    buf = bytearray(MINT_LEN)
    struct.pack_into("<Q", buf, 36, supply)
    buf[44] = decimals
    buf[45] = 1
    return bytes(buf)


# ── Fake RPC ──

def transport_error(reason: str) -> SolanaRpcException:
    """What AsyncClient raises when the node cannot be reached."""
    # solana-py builds the message from args[1] (the request body), as its decorator passes (self, body).
    return SolanaRpcException(ConnectionError(reason), AsyncClient.get_account_info, None, None)


class FakeRpc:
    """Serves packed account bytes the way AsyncClient returns them."""

    def __init__(self):
        self.accounts = {}
        self.balances = {}
        self.sent = []
        self.simulated = []
        self.read_error = None
        self.send_error = None
        self.sim_err = None
        self.confirm_err = None
        self.tx_meta = None
        self.closed = False

    def set_account(self, address, data, owner=TOKEN_PROGRAM_ID):
        self.accounts[address] = SimpleNamespace(data=data, owner=owner, lamports=2_039_280)

    async def get_account_info(self, pubkey, *args, **kwargs):
        if self.read_error is not None:
            raise self.read_error
        return SimpleNamespace(value=self.accounts.get(pubkey))

    async def get_multiple_accounts(self, pubkeys, *args, **kwargs):
        if self.read_error is not None:
            raise self.read_error
        return SimpleNamespace(value=[self.accounts.get(p) for p in pubkeys])

    async def get_balance(self, pubkey, *args, **kwargs):
        if self.read_error is not None:
            raise self.read_error
        return SimpleNamespace(value=self.balances.get(pubkey, 0))

    async def get_latest_blockhash(self, *args, **kwargs):
        return SimpleNamespace(
            value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=1_000)
        )

    async def simulate_transaction(self, tx, *args, **kwargs):
        self.simulated.append(tx)
        return SimpleNamespace(
            value=SimpleNamespace(err=self.sim_err, logs=["Program log: ok"], units_consumed=42_000)
        )

    async def send_transaction(self, tx, *args, **kwargs):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(tx)
        return SimpleNamespace(value=Signature.default())

    async def confirm_transaction(self, sig, commitment=None, sleep_seconds=0.5, last_valid_block_height=None):
        return SimpleNamespace(value=[SimpleNamespace(err=self.confirm_err)])

    async def get_transaction(self, sig, *args, **kwargs):
        if self.tx_meta is None:
            return SimpleNamespace(value=None)
        return SimpleNamespace(value=SimpleNamespace(transaction=SimpleNamespace(meta=self.tx_meta)))

    async def close(self):
        self.closed = True


def token_balance(mint, owner, amount, index=0):
    """One entry of a transaction's pre/post token balances."""
    return SimpleNamespace(
        account_index=index,
        mint=mint,
        owner=owner,
        ui_token_amount=SimpleNamespace(amount=str(amount)),
    )


def seed_pool(
    rpc,
    mint_x,
    mint_y,
    reserve_x,
    reserve_y,
    lp_supply,
    decimals_x=9,
    decimals_y=9,
    fees_x=0,
    fees_y=0,
    trade_fee_rate=2500,
):
    """Write a pool, its vaults and its config into the fake ledger."""
    mint_0, mint_1 = order_mints(mint_x, mint_y)
    if mint_0 == mint_x:
        reserves, decimals, fees = (reserve_x, reserve_y), (decimals_x, decimals_y), (fees_x, fees_y)
    else:
        reserves, decimals, fees = (reserve_y, reserve_x), (decimals_y, decimals_x), (fees_y, fees_x)

    pool_address = derive_pool_address(CONFIG_ID, mint_0, mint_1, PROGRAM_ID)
    vault_0 = derive_pool_vault(pool_address, mint_0, PROGRAM_ID)
    vault_1 = derive_pool_vault(pool_address, mint_1, PROGRAM_ID)
    authority = derive_authority(PROGRAM_ID)

    rpc.set_account(pool_address, pack_pool(
        amm_config=CONFIG_ID,
        vault_0=vault_0,
        vault_1=vault_1,
        lp_mint=derive_lp_mint(pool_address, PROGRAM_ID),
        mint_0=mint_0,
        mint_1=mint_1,
        observation=derive_observation(pool_address, PROGRAM_ID),
        lp_supply=lp_supply,
        decimals=decimals,
        protocol_fees=fees,
    ), owner=PROGRAM_ID)
    rpc.set_account(vault_0, pack_token_account(mint_0, authority, reserves[0] + fees[0]))
    rpc.set_account(vault_1, pack_token_account(mint_1, authority, reserves[1] + fees[1]))
    rpc.set_account(CONFIG_ID, pack_amm_config(trade_fee_rate), owner=PROGRAM_ID)
    return pool_address


def make_pool_state(mint_x, mint_y, reserve_x, reserve_y, lp_supply=0) -> PoolState:
    """PoolState built in memory, reserves given in the caller's mint order."""
    mint_a, mint_b = order_mints(mint_x, mint_y)
    base, quote = (reserve_x, reserve_y) if mint_a == mint_x else (reserve_y, reserve_x)
    pool_address = derive_pool_address(CONFIG_ID, mint_a, mint_b, PROGRAM_ID)
    return PoolState(
        pool_address=pool_address,
        program_id=PROGRAM_ID,
        config_id=CONFIG_ID,
        authority=derive_authority(PROGRAM_ID),
        mint_a=mint_a,
        mint_b=mint_b,
        vault_a=derive_pool_vault(pool_address, mint_a, PROGRAM_ID),
        vault_b=derive_pool_vault(pool_address, mint_b, PROGRAM_ID),
        base_reserve=base,
        quote_reserve=quote,
        lp_mint=derive_lp_mint(pool_address, PROGRAM_ID),
        lp_amount=lp_supply,
        observation=derive_observation(pool_address, PROGRAM_ID),
        mint_program_a=TOKEN_PROGRAM_ID,
        mint_program_b=TOKEN_PROGRAM_ID,
        decimals_a=9,
        decimals_b=9,
        lp_decimals=9,
    )


# ── Fixtures ──

@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def wallet():
    return Keypair()


@pytest.fixture
def token_mint():
    return Pubkey.new_unique()


@pytest.fixture
def other_mint():
    return Pubkey.new_unique()
