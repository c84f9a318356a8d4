#!/usr/bin/env python3
"""cpbot — constant-product AMM client for Solana, command-line runner.

  python main.py pool SOL <mint>
  python main.py buy <mint> 1.5 --slippage 1
  python main.py sell <mint> 100 --slippage 0.5
  python main.py add-liquidity <mint> 10
  python main.py remove-liquidity <mint> --percentage 50
  python main.py burn-lp <mint> 1000
  python main.py lp <mint>
  python main.py slippage <mint> buy 1000
  python main.py volume <mint> buy 10
  python main.py create-pool <mint_x> <mint_y> 100 5

Amounts are in UI units and slippage in percent; both are converted to raw
integers before anything else runs. Add --dry-run to simulate instead of send.
"""

import argparse
import asyncio
import sys
from typing import Optional

from loguru import logger
from solders.pubkey import Pubkey

from config import load_config
from cpmm_client import CpmmClient
from errors import Outcome
from pool_resolver import fetch_mint
from slippage import TradeSide
from tokens import percent_to_bps, resolve_mint, to_raw_amount, to_ui_amount

# ── Logging setup ──

logger.remove()  # Remove default handler
logger.add(
    sys.stderr,
    format="<green>{time:HH:mm:ss}</green> | <level>{level:7s}</level> | {message}",
    level="DEBUG" if "--verbose" in sys.argv else "INFO",
    colorize=True,
)


def _mint(symbol_or_mint: str) -> Pubkey:
    return Pubkey.from_string(resolve_mint(symbol_or_mint))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cpbot", description="Constant-product AMM client")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--dry-run", action="store_true", help="simulate instead of sending")
    parser.add_argument("--pair", default="SOL", help="pair mint or symbol (default SOL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("pool", help="show pool reserves and price")
    p.add_argument("mint_x")
    p.add_argument("mint_y")

    for name in ("buy", "sell"):
        p = sub.add_parser(name)
        p.add_argument("mint")
        p.add_argument("amount", help="tokens to receive (buy) or spend (sell)")
        p.add_argument("--slippage", default=None, help="percent")

    p = sub.add_parser("add-liquidity")
    p.add_argument("mint")
    p.add_argument("amount")
    p.add_argument("--slippage", default=None)

    p = sub.add_parser("remove-liquidity")
    p.add_argument("mint")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--lp-amount")
    group.add_argument("--percentage", type=int)
    p.add_argument("--slippage", default=None)

    p = sub.add_parser("burn-lp")
    p.add_argument("mint")
    p.add_argument("lp_amount")

    p = sub.add_parser("lp", help="show LP position")
    p.add_argument("mint")
    p.add_argument("--owner", default=None)

    p = sub.add_parser("slippage", help="slippage of a given trade size")
    p.add_argument("mint")
    p.add_argument("side", choices=[s.value for s in TradeSide])
    p.add_argument("amount")

    p = sub.add_parser("volume", help="largest trade within a slippage bound")
    p.add_argument("mint")
    p.add_argument("side", choices=[s.value for s in TradeSide])
    p.add_argument("max_slippage", help="percent")

    p = sub.add_parser("create-pool")
    p.add_argument("mint_x")
    p.add_argument("mint_y")
    p.add_argument("amount_x")
    p.add_argument("amount_y")
    p.add_argument("--open-time", type=int, default=None)

    return parser


async def _decimals(client: CpmmClient, mint: Pubkey) -> int:
    info = await fetch_mint(client.rpc, mint)
    if info is None:
        raise ValueError(f"Mint account not found: {mint}")
    return info.decimals


def _report(outcome: Outcome) -> int:
    if not outcome.ok:
        logger.error(f"{type(outcome.error).__name__}: {outcome.error}")
        return 1
    value = outcome.value
    logger.info(f"Result: {value}")
    cleanup_error = getattr(value, "cleanup_error", None)
    if cleanup_error is not None:
        logger.warning(f"Trade succeeded but WSOL cleanup did not: {cleanup_error}")
    return 0


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    if args.dry_run:
        config.dry_run = True

    client = CpmmClient.from_config(config)
    pair = _mint(args.pair)
    slippage_bps: Optional[int] = None
    if getattr(args, "slippage", None) is not None:
        slippage_bps = percent_to_bps(args.slippage)

    try:
        cmd = args.command
        if cmd == "pool":
            return _report(await client.display_pool(_mint(args.mint_x), _mint(args.mint_y)))

        if cmd == "create-pool":
            mint_x, mint_y = _mint(args.mint_x), _mint(args.mint_y)
            amount_x = to_raw_amount(args.amount_x, await _decimals(client, mint_x))
            amount_y = to_raw_amount(args.amount_y, await _decimals(client, mint_y))
            return _report(await client.create_pool(mint_x, mint_y, amount_x, amount_y, args.open_time))

        mint = _mint(args.mint)

        if cmd == "lp":
            owner = Pubkey.from_string(args.owner) if args.owner else None
            return _report(await client.display_lp(mint, owner, pair))

        if cmd == "remove-liquidity":
            lp_amount = None
            if args.lp_amount is not None:
                pool = (await client.resolve_pool(mint, pair)).unwrap()
                lp_amount = to_raw_amount(args.lp_amount, pool.lp_decimals)
            return _report(await client.remove_liquidity(
                mint, slippage_bps, lp_amount=lp_amount, percentage=args.percentage, pair_mint=pair
            ))

        if cmd == "volume":
            outcome = await client.estimate_volume(
                mint, TradeSide(args.side), percent_to_bps(args.max_slippage), pair
            )
            if outcome.ok:
                decimals = await _decimals(client, mint)
                logger.info(
                    f"Max {args.side}: {to_ui_amount(outcome.value.token_amount, decimals)} "
                    f"(achieved {outcome.value.achieved_slippage_pct:.4f}%)"
                )
            return _report(outcome)

        if cmd == "burn-lp":
            pool = (await client.resolve_pool(mint, pair)).unwrap()
            lp_amount = to_raw_amount(args.lp_amount, pool.lp_decimals)
            return _report(await client.burn_liquidity(mint, lp_amount, pair))

        amount = to_raw_amount(args.amount, await _decimals(client, mint))
        if cmd == "buy":
            return _report(await client.buy_token(mint, amount, slippage_bps, pair))
        if cmd == "sell":
            return _report(await client.sell_token(mint, amount, slippage_bps, pair))
        if cmd == "add-liquidity":
            return _report(await client.add_liquidity(mint, amount, slippage_bps, pair))
        if cmd == "slippage":
            outcome = await client.estimate_slippage(mint, TradeSide(args.side), amount, pair)
            if outcome.ok:
                logger.info(f"Slippage: {outcome.value.slippage_pct:.4f}%")
            return _report(outcome)

        raise ValueError(f"Unknown command: {cmd}")
    finally:
        await client.close()


# ── Entry point ──

def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
