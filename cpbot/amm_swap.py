"""Raw CPMM instruction builders.

Builds Solana instructions directly against the constant-product AMM program:
  - swap_base_input  (exact-input, "sell")
  - swap_base_output (exact-output, "buy")
  - deposit / withdraw (liquidity)
  - initialize (pool creation)

plus the SPL Token / Associated Token helpers every trade needs (ATA
create-idempotent, sync_native, close_account, burn).
"""

import hashlib
import struct

from solders.pubkey import Pubkey
from solders.instruction import Instruction, AccountMeta
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from pool_resolver import (
    PoolState,
    derive_authority,
    derive_lp_mint,
    derive_observation,
    derive_pool_address,
    derive_pool_vault,
    order_mints,
)

# ── Program IDs ──

TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
MEMO_PROGRAM_ID = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")
RENT_SYSVAR_ID = Pubkey.from_string("SysvarRent111111111111111111111111111111111")

# ── Anchor Discriminators ──

def _anchor_discriminator(name: str) -> bytes:
    """Compute Anchor instruction discriminator: SHA256("global:{name}")[:8]."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]

SWAP_BASE_INPUT_DISCRIMINATOR = _anchor_discriminator("swap_base_input")
SWAP_BASE_OUTPUT_DISCRIMINATOR = _anchor_discriminator("swap_base_output")
DEPOSIT_DISCRIMINATOR = _anchor_discriminator("deposit")
WITHDRAW_DISCRIMINATOR = _anchor_discriminator("withdraw")
INITIALIZE_DISCRIMINATOR = _anchor_discriminator("initialize")


# ── Associated token accounts ──

def get_associated_token_address(
    owner: Pubkey, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID
) -> Pubkey:
    """Derive ATA address for owner + mint."""
    ata, _ = Pubkey.find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return ata


def build_create_ata_idempotent_ix(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Build SPL Associated Token createIdempotent instruction (index 1).

    No-op if ATA already exists.
    """
    ata = get_associated_token_address(owner, mint, token_program)

    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(ata, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(token_program, is_signer=False, is_writable=False),
    ]

    # createIdempotent is instruction index 1 in ATA program
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([1]), accounts)


# ── SPL Token helpers ──

# SPL Token instruction indices
_TOKEN_IX_BURN = 8
_TOKEN_IX_CLOSE_ACCOUNT = 9
_TOKEN_IX_SYNC_NATIVE = 17


def build_sync_native_ix(account: Pubkey) -> Instruction:
    accounts = [AccountMeta(account, is_signer=False, is_writable=True)]
    return Instruction(TOKEN_PROGRAM_ID, bytes([_TOKEN_IX_SYNC_NATIVE]), accounts)


def build_close_account_ix(account: Pubkey, owner: Pubkey) -> Instruction:
    """Close a token account, returning its lamports (and any WSOL) to owner."""
    accounts = [
        AccountMeta(account, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=True),   # destination
        AccountMeta(owner, is_signer=True, is_writable=False),   # authority
    ]
    return Instruction(TOKEN_PROGRAM_ID, bytes([_TOKEN_IX_CLOSE_ACCOUNT]), accounts)


def build_burn_ix(
    account: Pubkey, mint: Pubkey, owner: Pubkey, amount: int
) -> Instruction:
    accounts = [
        AccountMeta(account, is_signer=False, is_writable=True),
        AccountMeta(mint, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=True, is_writable=False),
    ]
    data = struct.pack("<BQ", _TOKEN_IX_BURN, amount)
    return Instruction(TOKEN_PROGRAM_ID, data, accounts)


# ── Swaps ──

def _swap_accounts(
    pool: PoolState,
    payer: Pubkey,
    input_mint: Pubkey,
    input_token_account: Pubkey,
    output_token_account: Pubkey,
) -> list[AccountMeta]:
    """Shared account list for swap_base_input / swap_base_output.

    Accounts (13):
      0. payer (signer)
      1. authority
      2. amm_config
      3. pool_state (writable)
      4. input_token_account (writable)
      5. output_token_account (writable)
      6. input_vault (writable)
      7. output_vault (writable)
      8. input_token_program
      9. output_token_program
     10. input_token_mint
     11. output_token_mint
     12. observation_state (writable)
    """
    input_vault, output_vault = pool.vaults_for(input_mint)
    output_mint = pool.other_mint(input_mint)

    return [
        AccountMeta(payer, is_signer=True, is_writable=False),
        AccountMeta(pool.authority, is_signer=False, is_writable=False),
        AccountMeta(pool.config_id, is_signer=False, is_writable=False),
        AccountMeta(pool.pool_address, is_signer=False, is_writable=True),
        AccountMeta(input_token_account, is_signer=False, is_writable=True),
        AccountMeta(output_token_account, is_signer=False, is_writable=True),
        AccountMeta(input_vault, is_signer=False, is_writable=True),
        AccountMeta(output_vault, is_signer=False, is_writable=True),
        AccountMeta(pool.mint_program(input_mint), is_signer=False, is_writable=False),
        AccountMeta(pool.mint_program(output_mint), is_signer=False, is_writable=False),
        AccountMeta(input_mint, is_signer=False, is_writable=False),
        AccountMeta(output_mint, is_signer=False, is_writable=False),
        AccountMeta(pool.observation, is_signer=False, is_writable=True),
    ]


def build_swap_base_input_ix(
    pool: PoolState,
    payer: Pubkey,
    input_mint: Pubkey,
    input_token_account: Pubkey,
    output_token_account: Pubkey,
    amount_in: int,
    minimum_amount_out: int,
) -> Instruction:
    """Exact-input swap. Data: discriminator + amount_in (u64) + minimum_amount_out (u64)."""
    data = SWAP_BASE_INPUT_DISCRIMINATOR + struct.pack("<QQ", amount_in, minimum_amount_out)
    accounts = _swap_accounts(
        pool, payer, input_mint, input_token_account, output_token_account
    )
    return Instruction(pool.program_id, data, accounts)


def build_swap_base_output_ix(
    pool: PoolState,
    payer: Pubkey,
    input_mint: Pubkey,
    input_token_account: Pubkey,
    output_token_account: Pubkey,
    max_amount_in: int,
    amount_out: int,
) -> Instruction:
    """Exact-output swap. Data: discriminator + max_amount_in (u64) + amount_out (u64)."""
    data = SWAP_BASE_OUTPUT_DISCRIMINATOR + struct.pack("<QQ", max_amount_in, amount_out)
    accounts = _swap_accounts(
        pool, payer, input_mint, input_token_account, output_token_account
    )
    return Instruction(pool.program_id, data, accounts)


# ── Liquidity ──

def _liquidity_accounts(
    pool: PoolState,
    owner: Pubkey,
    owner_lp_account: Pubkey,
    token_account_a: Pubkey,
    token_account_b: Pubkey,
) -> list[AccountMeta]:
    """Accounts shared by deposit and withdraw, token accounts in canonical A/B order.

      0. owner (signer)
      1. authority
      2. pool_state (writable)
      3. owner_lp_token (writable)
      4. token_0_account (writable)
      5. token_1_account (writable)
      6. token_0_vault (writable)
      7. token_1_vault (writable)
      8. token_program
      9. token_program_2022
     10. vault_0_mint
     11. vault_1_mint
     12. lp_mint (writable)
    """
    return [
        AccountMeta(owner, is_signer=True, is_writable=False),
        AccountMeta(pool.authority, is_signer=False, is_writable=False),
        AccountMeta(pool.pool_address, is_signer=False, is_writable=True),
        AccountMeta(owner_lp_account, is_signer=False, is_writable=True),
        AccountMeta(token_account_a, is_signer=False, is_writable=True),
        AccountMeta(token_account_b, is_signer=False, is_writable=True),
        AccountMeta(pool.vault_a, is_signer=False, is_writable=True),
        AccountMeta(pool.vault_b, is_signer=False, is_writable=True),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(TOKEN_2022_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pool.mint_a, is_signer=False, is_writable=False),
        AccountMeta(pool.mint_b, is_signer=False, is_writable=False),
        AccountMeta(pool.lp_mint, is_signer=False, is_writable=True),
    ]


def build_deposit_ix(
    pool: PoolState,
    owner: Pubkey,
    owner_lp_account: Pubkey,
    token_account_a: Pubkey,
    token_account_b: Pubkey,
    lp_token_amount: int,
    maximum_amount_a: int,
    maximum_amount_b: int,
) -> Instruction:
    """Deposit. Data: lp_token_amount + maximum_token_0_amount + maximum_token_1_amount (u64 each)."""
    data = DEPOSIT_DISCRIMINATOR + struct.pack(
        "<QQQ", lp_token_amount, maximum_amount_a, maximum_amount_b
    )
    accounts = _liquidity_accounts(
        pool, owner, owner_lp_account, token_account_a, token_account_b
    )
    return Instruction(pool.program_id, data, accounts)


def build_withdraw_ix(
    pool: PoolState,
    owner: Pubkey,
    owner_lp_account: Pubkey,
    token_account_a: Pubkey,
    token_account_b: Pubkey,
    lp_token_amount: int,
    minimum_amount_a: int,
    minimum_amount_b: int,
) -> Instruction:
    """Withdraw. Same accounts as deposit plus the memo program."""
    data = WITHDRAW_DISCRIMINATOR + struct.pack(
        "<QQQ", lp_token_amount, minimum_amount_a, minimum_amount_b
    )
    accounts = _liquidity_accounts(
        pool, owner, owner_lp_account, token_account_a, token_account_b
    )
    accounts.append(AccountMeta(MEMO_PROGRAM_ID, is_signer=False, is_writable=False))
    return Instruction(pool.program_id, data, accounts)


# ── Pool creation ──

def build_initialize_ix(
    program_id: Pubkey,
    config_id: Pubkey,
    creator: Pubkey,
    mint_x: Pubkey,
    mint_y: Pubkey,
    amount_x: int,
    amount_y: int,
    open_time: int,
    create_pool_fee: Pubkey,
    token_program_x: Pubkey = TOKEN_PROGRAM_ID,
    token_program_y: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Build the pool initialize instruction.

    Mints may be given in any order; they and their amounts are re-sorted into
    canonical order before the accounts are laid out.

    Data: init_amount_0 (u64) + init_amount_1 (u64) + open_time (u64)
    """
    mint_0, mint_1 = order_mints(mint_x, mint_y)
    if mint_0 == mint_x:
        amount_0, amount_1 = amount_x, amount_y
        program_0, program_1 = token_program_x, token_program_y
    else:
        amount_0, amount_1 = amount_y, amount_x
        program_0, program_1 = token_program_y, token_program_x

    pool_address = derive_pool_address(config_id, mint_0, mint_1, program_id)
    authority = derive_authority(program_id)
    lp_mint = derive_lp_mint(pool_address, program_id)

    data = INITIALIZE_DISCRIMINATOR + struct.pack("<QQQ", amount_0, amount_1, open_time)

    accounts = [
        AccountMeta(creator, is_signer=True, is_writable=True),
        AccountMeta(config_id, is_signer=False, is_writable=False),
        AccountMeta(authority, is_signer=False, is_writable=False),
        AccountMeta(pool_address, is_signer=False, is_writable=True),
        AccountMeta(mint_0, is_signer=False, is_writable=False),
        AccountMeta(mint_1, is_signer=False, is_writable=False),
        AccountMeta(lp_mint, is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(creator, mint_0, program_0), is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(creator, mint_1, program_1), is_signer=False, is_writable=True),
        AccountMeta(get_associated_token_address(creator, lp_mint), is_signer=False, is_writable=True),
        AccountMeta(derive_pool_vault(pool_address, mint_0, program_id), is_signer=False, is_writable=True),
        AccountMeta(derive_pool_vault(pool_address, mint_1, program_id), is_signer=False, is_writable=True),
        AccountMeta(create_pool_fee, is_signer=False, is_writable=True),
        AccountMeta(derive_observation(pool_address, program_id), is_signer=False, is_writable=True),
        AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(program_0, is_signer=False, is_writable=False),
        AccountMeta(program_1, is_signer=False, is_writable=False),
        AccountMeta(ASSOCIATED_TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(RENT_SYSVAR_ID, is_signer=False, is_writable=False),
    ]

    return Instruction(program_id, data, accounts)
