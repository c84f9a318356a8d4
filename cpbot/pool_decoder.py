"""Raw account decoders for the constant-product AMM and SPL Token layouts.

Supports:
  - CPMM PoolState (Anchor account)
  - CPMM AmmConfig (Anchor account)
  - SPL Token account (165 bytes)
  - SPL Mint (82 bytes)

All integers are little-endian at fixed offsets. Decoders return None when the
buffer is too short to hold the layout.
"""

import struct
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class CpmmPoolAccount:
    """Decoded CPMM PoolState account, token_0/token_1 in on-chain order."""
    amm_config: Pubkey
    pool_creator: Pubkey
    token_0_vault: Pubkey
    token_1_vault: Pubkey
    lp_mint: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    token_0_program: Pubkey
    token_1_program: Pubkey
    observation_key: Pubkey
    auth_bump: int
    status: int
    lp_mint_decimals: int
    mint_0_decimals: int
    mint_1_decimals: int
    lp_supply: int
    protocol_fees_token_0: int
    protocol_fees_token_1: int
    fund_fees_token_0: int
    fund_fees_token_1: int
    open_time: int
    recent_epoch: int


@dataclass(frozen=True)
class AmmConfigAccount:
    bump: int
    disable_create_pool: bool
    index: int
    trade_fee_rate: int  # parts per million
    protocol_fee_rate: int
    fund_fee_rate: int
    create_pool_fee: int
    protocol_owner: Pubkey
    fund_owner: Pubkey


@dataclass(frozen=True)
class TokenAccount:
    mint: Pubkey
    owner: Pubkey
    amount: int
    state: int


@dataclass(frozen=True)
class MintAccount:
    supply: int
    decimals: int
    is_initialized: bool


def _read_pubkey(data: bytes, offset: int) -> Pubkey:
    return Pubkey.from_bytes(data[offset:offset + 32])


def _read_u8(data: bytes, offset: int) -> int:
    return data[offset]


def _read_u16(data: bytes, offset: int) -> int:
    return struct.unpack_from("<H", data, offset)[0]


def _read_u64(data: bytes, offset: int) -> int:
    return struct.unpack_from("<Q", data, offset)[0]


# ──────────────────────────────────────────
# CPMM PoolState
# ──────────────────────────────────────────

# PoolState layout (after 8-byte Anchor discriminator):
# offset   8: amm_config (Pubkey, 32)
# offset  40: pool_creator (Pubkey, 32)
# offset  72: token_0_vault (Pubkey, 32)
# offset 104: token_1_vault (Pubkey, 32)
# offset 136: lp_mint (Pubkey, 32)
# offset 168: token_0_mint (Pubkey, 32)
# offset 200: token_1_mint (Pubkey, 32)
# offset 232: token_0_program (Pubkey, 32)
# offset 264: token_1_program (Pubkey, 32)
# offset 296: observation_key (Pubkey, 32)
# offset 328: auth_bump (u8)
# offset 329: status (u8)
# offset 330: lp_mint_decimals (u8)
# offset 331: mint_0_decimals (u8)
# offset 332: mint_1_decimals (u8)
# offset 333: lp_supply (u64)
# offset 341: protocol_fees_token_0 (u64)
# offset 349: protocol_fees_token_1 (u64)
# offset 357: fund_fees_token_0 (u64)
# offset 365: fund_fees_token_1 (u64)
# offset 373: open_time (u64)
# offset 381: recent_epoch (u64)
# offset 389: padding ([u64; 31])

CPMM_POOL_MIN_LEN = 389
CPMM_POOL_LEN = 637


def decode_cpmm_pool(data: bytes) -> Optional[CpmmPoolAccount]:
    """Decode CPMM PoolState from raw account data."""
    if len(data) < CPMM_POOL_MIN_LEN:
        return None

    return CpmmPoolAccount(
        amm_config=_read_pubkey(data, 8),
        pool_creator=_read_pubkey(data, 40),
        token_0_vault=_read_pubkey(data, 72),
        token_1_vault=_read_pubkey(data, 104),
        lp_mint=_read_pubkey(data, 136),
        token_0_mint=_read_pubkey(data, 168),
        token_1_mint=_read_pubkey(data, 200),
        token_0_program=_read_pubkey(data, 232),
        token_1_program=_read_pubkey(data, 264),
        observation_key=_read_pubkey(data, 296),
        auth_bump=_read_u8(data, 328),
        status=_read_u8(data, 329),
        lp_mint_decimals=_read_u8(data, 330),
        mint_0_decimals=_read_u8(data, 331),
        mint_1_decimals=_read_u8(data, 332),
        lp_supply=_read_u64(data, 333),
        protocol_fees_token_0=_read_u64(data, 341),
        protocol_fees_token_1=_read_u64(data, 349),
        fund_fees_token_0=_read_u64(data, 357),
        fund_fees_token_1=_read_u64(data, 365),
        open_time=_read_u64(data, 373),
        recent_epoch=_read_u64(data, 381),
    )


# ──────────────────────────────────────────
# CPMM AmmConfig
# ──────────────────────────────────────────

# offset  8: bump (u8)
# offset  9: disable_create_pool (bool)
# offset 10: index (u16)
# offset 12: trade_fee_rate (u64)
# offset 20: protocol_fee_rate (u64)
# offset 28: fund_fee_rate (u64)
# offset 36: create_pool_fee (u64)
# offset 44: protocol_owner (Pubkey, 32)
# offset 76: fund_owner (Pubkey, 32)

AMM_CONFIG_MIN_LEN = 108


def decode_amm_config(data: bytes) -> Optional[AmmConfigAccount]:
    if len(data) < AMM_CONFIG_MIN_LEN:
        return None

    return AmmConfigAccount(
        bump=_read_u8(data, 8),
        disable_create_pool=bool(_read_u8(data, 9)),
        index=_read_u16(data, 10),
        trade_fee_rate=_read_u64(data, 12),
        protocol_fee_rate=_read_u64(data, 20),
        fund_fee_rate=_read_u64(data, 28),
        create_pool_fee=_read_u64(data, 36),
        protocol_owner=_read_pubkey(data, 44),
        fund_owner=_read_pubkey(data, 76),
    )


# ──────────────────────────────────────────
# SPL Token account / Mint
# ──────────────────────────────────────────

# Token account (165 bytes):
# offset   0: mint (Pubkey, 32)
# offset  32: owner (Pubkey, 32)
# offset  64: amount (u64)
# offset  72: delegate (COption<Pubkey>, 4 + 32)
# offset 108: state (u8)
# offset 109: is_native (COption<u64>, 4 + 8)
# offset 121: delegated_amount (u64)
# offset 129: close_authority (COption<Pubkey>, 4 + 32)

TOKEN_ACCOUNT_LEN = 165

# Mint (82 bytes):
# offset  0: mint_authority (COption<Pubkey>, 4 + 32)
# offset 36: supply (u64)
# offset 44: decimals (u8)
# offset 45: is_initialized (bool)
# offset 46: freeze_authority (COption<Pubkey>, 4 + 32)

MINT_LEN = 82


def decode_token_account(data: bytes) -> Optional[TokenAccount]:
    """Decode the base SPL Token account layout (Token-2022 extensions ignored)."""
    if len(data) < TOKEN_ACCOUNT_LEN:
        return None

    return TokenAccount(
        mint=_read_pubkey(data, 0),
        owner=_read_pubkey(data, 32),
        amount=_read_u64(data, 64),
        state=_read_u8(data, 108),
    )


def decode_mint(data: bytes) -> Optional[MintAccount]:
    if len(data) < MINT_LEN:
        return None

    return MintAccount(
        supply=_read_u64(data, 36),
        decimals=_read_u8(data, 44),
        is_initialized=bool(_read_u8(data, 45)),
    )
