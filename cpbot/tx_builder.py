"""Transaction builder — orders instructions and submits them atomically.

Builds V0 VersionedTransaction with:
  [compute budget limit] -> [compute budget price] -> [account creation]
  -> [wrap/fund] -> [trade] -> [optional unwrap/close]
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from solders.keypair import Keypair
from solders.instruction import Instruction
from solders.hash import Hash
from solders.message import MessageV0
from solders.transaction import VersionedTransaction
from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from loguru import logger

from errors import Outcome, TransactionFailed

MAX_TX_BYTES = 1232


@dataclass
class AssembledInstructions:
    """Ordered instruction list plus the figures it was built from."""
    instructions: list[Instruction]
    trade_index: int
    figures: Any = None


@dataclass
class SubmitResult:
    signature: Optional[str]
    simulated: bool = False
    units_consumed: int = 0
    logs: list[str] = field(default_factory=list)


def assemble_instructions(
    trade_ix: Instruction,
    compute_unit_limit: int,
    compute_unit_price: int,
    account_creation: Sequence[Instruction] = (),
    funding: Sequence[Instruction] = (),
    cleanup: Sequence[Instruction] = (),
    figures: Any = None,
) -> AssembledInstructions:
    """Order a trade with everything it depends on.

    Compute budget always comes first, and every account creation and funding
    instruction precedes the trade.
    """
    if compute_unit_limit <= 0:
        raise ValueError(f"compute_unit_limit must be positive, got {compute_unit_limit}")

    instructions: list[Instruction] = [
        set_compute_unit_limit(compute_unit_limit),
        set_compute_unit_price(compute_unit_price),
    ]
    instructions.extend(account_creation)
    instructions.extend(funding)
    trade_index = len(instructions)
    instructions.append(trade_ix)
    instructions.extend(cleanup)

    logger.debug(
        f"Assembled {len(instructions)} instructions: "
        f"{len(account_creation)} create, {len(funding)} fund, trade@{trade_index}, "
        f"{len(cleanup)} cleanup"
    )
    return AssembledInstructions(instructions, trade_index, figures)


async def build_transaction(
    rpc: AsyncClient,
    payer: Keypair,
    instructions: Sequence[Instruction],
) -> tuple[VersionedTransaction, str, int]:
    """Compile and sign. Returns (tx, blockhash, last_valid_block_height)."""
    blockhash_resp = await rpc.get_latest_blockhash(Confirmed)
    blockhash = str(blockhash_resp.value.blockhash)
    last_valid = blockhash_resp.value.last_valid_block_height

    msg = MessageV0.try_compile(
        payer=payer.pubkey(),
        instructions=list(instructions),
        address_lookup_table_accounts=[],
        recent_blockhash=Hash.from_string(blockhash),
    )
    tx = VersionedTransaction(msg, [payer])

    tx_bytes = len(bytes(tx))
    logger.debug(f"Tx built: {tx_bytes} bytes ({tx_bytes/MAX_TX_BYTES*100:.1f}% of max)")
    return tx, blockhash, last_valid


async def simulate_transaction(
    rpc: AsyncClient,
    tx: VersionedTransaction,
) -> tuple[bool, list[str], int]:
    """Simulate tx. Returns (success, logs, units_consumed)."""
    result = await rpc.simulate_transaction(tx)
    val = result.value
    logs = val.logs or []
    units = val.units_consumed or 0

    if val.err:
        logger.warning(f"Simulation FAILED: {val.err} | CU={units} | logs[-3:]={logs[-3:]}")
        return False, logs, units

    logger.debug(f"Simulation OK: CU={units}")
    return True, logs, units


async def send_and_confirm(
    rpc: AsyncClient,
    tx: VersionedTransaction,
    commitment: Commitment = Confirmed,
    last_valid_block_height: Optional[int] = None,
) -> Outcome[str]:
    """Send once and wait for confirmation. Never resubmits."""
    try:
        resp = await rpc.send_transaction(
            tx, opts=TxOpts(skip_preflight=False, preflight_commitment=commitment)
        )
    except (RPCException, SolanaRpcException) as e:
        return Outcome.failure(TransactionFailed(f"send failed: {e}"))

    sig = resp.value
    logger.info(f"Tx sent: {sig}")

    try:
        status = await rpc.confirm_transaction(
            sig, commitment, last_valid_block_height=last_valid_block_height
        )
    except (
        UnconfirmedTxError,
        TransactionExpiredBlockheightExceededError,
        SolanaRpcException,
    ) as e:
        return Outcome.failure(TransactionFailed(f"confirmation failed: {e}", str(sig)))

    statuses = status.value or []
    err = statuses[0].err if statuses and statuses[0] is not None else None
    if err:
        return Outcome.failure(TransactionFailed(f"executed with error: {err}", str(sig)))

    logger.info(f"Tx confirmed ({commitment}): {sig}")
    return Outcome.success(str(sig))


async def submit_instructions(
    rpc: AsyncClient,
    payer: Keypair,
    instructions: Sequence[Instruction],
    commitment: Commitment = Confirmed,
    dry_run: bool = False,
) -> Outcome[SubmitResult]:
    """Build, then simulate (dry run) or send + confirm one atomic transaction."""
    tx, _, last_valid = await build_transaction(rpc, payer, instructions)

    tx_bytes = len(bytes(tx))
    if tx_bytes > MAX_TX_BYTES:
        return Outcome.failure(
            TransactionFailed(f"Tx too large: {tx_bytes} bytes (max {MAX_TX_BYTES})")
        )

    if dry_run:
        ok, logs, units = await simulate_transaction(rpc, tx)
        if not ok:
            return Outcome.failure(TransactionFailed(f"simulation failed: {logs[-3:]}"))
        return Outcome.success(SubmitResult(None, simulated=True, units_consumed=units, logs=logs))

    sent = await send_and_confirm(rpc, tx, commitment, last_valid)
    if not sent.ok:
        return Outcome.failure(sent.error)
    return Outcome.success(SubmitResult(sent.value))
