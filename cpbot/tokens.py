"""Token mint addresses and raw/UI amount conversion."""

from decimal import Decimal, ROUND_DOWN
from typing import Union

WELL_KNOWN_MINTS: dict[str, str] = {
    "SOL": "So11111111111111111111111111111111111111112",
    "WSOL": "So11111111111111111111111111111111111111112",
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
}


def resolve_mint(symbol_or_mint: str) -> str:
    return WELL_KNOWN_MINTS.get(symbol_or_mint.upper(), symbol_or_mint)


def to_raw_amount(ui_amount: Union[str, Decimal], decimals: int) -> int:
    """'1.5' with 9 decimals -> 1_500_000_000. Extra precision is truncated."""
    scaled = (Decimal(ui_amount) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    if scaled < 0:
        raise ValueError(f"Amount must be non-negative, got {ui_amount}")
    return int(scaled)


def to_ui_amount(raw_amount: int, decimals: int) -> Decimal:
    """Display only. Never feed the result back into quote math."""
    return Decimal(raw_amount).scaleb(-decimals)


def percent_to_bps(percent: Union[str, Decimal]) -> int:
    """CLI slippage in percent ('0.5') to integer basis points (50)."""
    bps = (Decimal(percent) * 100).to_integral_value(rounding=ROUND_DOWN)
    return int(bps)
