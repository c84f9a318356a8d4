"""Wrapped-SOL lifecycle around a single trade.

Per operation, never persisted:

  NoAccount -> Created -> Funded -> (trade) -> Residual -> Closed

Before the trade the owner's WSOL associated account is classified as Missing,
Underfunded or Ready, and only the instructions that state needs are emitted.
Topping up always transfers required - current. After the trade any residual
is closed back to native SOL in a follow-up transaction; a failure there is
reported, never raised, since the trade itself has already landed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from loguru import logger
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.constants import WRAPPED_SOL_MINT

from amm_swap import (
    build_close_account_ix,
    build_create_ata_idempotent_ix,
    build_sync_native_ix,
    get_associated_token_address,
)
from errors import CleanupFailed, InsufficientBalance, Outcome, RpcUnavailable
from pool_resolver import fetch_token_account
from tx_builder import submit_instructions

WSOL_MINT = WRAPPED_SOL_MINT

# rent-exempt minimum for a 165-byte token account
TOKEN_ACCOUNT_RENT_LAMPORTS = 2_039_280
DEFAULT_FEE_RESERVE_LAMPORTS = 5_000


class WsolStage(str, Enum):
    NO_ACCOUNT = "no_account"
    CREATED = "created"
    FUNDED = "funded"
    RESIDUAL = "residual"
    CLOSED = "closed"


@dataclass(frozen=True)
class WsolAccountState:
    account_exists: bool
    current_balance: int
    required_balance: int


# ── Classification ──

@dataclass(frozen=True)
class Missing:
    required: int


@dataclass(frozen=True)
class Underfunded:
    current: int
    required: int

    @property
    def shortfall(self) -> int:
        return self.required - self.current


@dataclass(frozen=True)
class Ready:
    current: int
    required: int


WsolCondition = Union[Missing, Underfunded, Ready]


def classify(state: WsolAccountState) -> WsolCondition:
    if state.required_balance < 0:
        raise ValueError(f"required_balance must be >= 0, got {state.required_balance}")
    if not state.account_exists:
        return Missing(state.required_balance)
    if state.current_balance < state.required_balance:
        return Underfunded(state.current_balance, state.required_balance)
    return Ready(state.current_balance, state.required_balance)


# ── Funding plan ──

@dataclass
class WsolPlan:
    """Instructions that bring the WSOL account to the required balance."""
    owner: Pubkey
    account: Pubkey
    condition: WsolCondition
    account_creation: list[Instruction] = field(default_factory=list)
    funding: list[Instruction] = field(default_factory=list)
    wrap_lamports: int = 0

    @property
    def creates_account(self) -> bool:
        return isinstance(self.condition, Missing)

    @property
    def initial_stage(self) -> WsolStage:
        if isinstance(self.condition, Missing):
            return WsolStage.NO_ACCOUNT
        if isinstance(self.condition, Ready) and self.condition.current > 0:
            return WsolStage.FUNDED
        return WsolStage.CREATED

    @property
    def final_stage(self) -> WsolStage:
        """Stage once setup and funding have executed."""
        if self.wrap_lamports > 0 or self.initial_stage is WsolStage.FUNDED:
            return WsolStage.FUNDED
        return WsolStage.CREATED

    def native_required(self, fee_reserve_lamports: int = DEFAULT_FEE_RESERVE_LAMPORTS) -> int:
        rent = TOKEN_ACCOUNT_RENT_LAMPORTS if self.creates_account else 0
        return self.wrap_lamports + rent + fee_reserve_lamports


def plan_wrap(payer: Pubkey, owner: Pubkey, state: WsolAccountState) -> WsolPlan:
    """Emit create / transfer / sync as the account's condition demands."""
    account = get_associated_token_address(owner, WSOL_MINT)
    condition = classify(state)
    plan = WsolPlan(owner=owner, account=account, condition=condition)

    if isinstance(condition, Missing):
        plan.account_creation.append(
            build_create_ata_idempotent_ix(payer, owner, WSOL_MINT)
        )
        plan.wrap_lamports = condition.required
    elif isinstance(condition, Underfunded):
        plan.wrap_lamports = condition.shortfall
    else:
        logger.debug(f"WSOL {account} already holds {condition.current} >= {condition.required}")
        return plan

    if plan.wrap_lamports > 0:
        plan.funding.append(
            transfer(TransferParams(from_pubkey=owner, to_pubkey=account, lamports=plan.wrap_lamports))
        )
        plan.funding.append(build_sync_native_ix(account))

    logger.debug(
        f"WSOL plan for {account}: {type(condition).__name__}, "
        f"wrap {plan.wrap_lamports} lamports, create={plan.creates_account}"
    )
    return plan


def check_native_balance(
    plan: WsolPlan,
    native_balance: int,
    fee_reserve_lamports: int = DEFAULT_FEE_RESERVE_LAMPORTS,
) -> Outcome[int]:
    """Lamports the plan needs, or InsufficientBalance when the wallet is short."""
    required = plan.native_required(fee_reserve_lamports)
    if native_balance < required:
        return Outcome.failure(InsufficientBalance("SOL", required, native_balance))
    return Outcome.success(required)


async def inspect(rpc: AsyncClient, owner: Pubkey, required: int) -> WsolAccountState:
    account = await fetch_token_account(rpc, get_associated_token_address(owner, WSOL_MINT))
    if account is None:
        return WsolAccountState(False, 0, required)
    return WsolAccountState(True, account.amount, required)


async def prepare_wrap(
    rpc: AsyncClient,
    payer: Pubkey,
    owner: Pubkey,
    required: int,
    fee_reserve_lamports: int = DEFAULT_FEE_RESERVE_LAMPORTS,
) -> Outcome[WsolPlan]:
    """Read the WSOL account and native balance, then plan the wrap.

    required == 0 still makes sure the account exists, so a trade can pay
    WSOL out into it.
    """
    try:
        state = await inspect(rpc, owner, required)
        native = (await rpc.get_balance(owner)).value
    except SolanaRpcException as e:
        return Outcome.failure(RpcUnavailable(f"WSOL inspect for {owner}: {e}"))

    plan = plan_wrap(payer, owner, state)
    checked = check_native_balance(plan, native, fee_reserve_lamports)
    if not checked.ok:
        return Outcome.failure(checked.error)
    return Outcome.success(plan)


# ── Cleanup ──

def close_instructions(owner: Pubkey) -> list[Instruction]:
    """Close the owner's WSOL account, used when unwrapping inside the trade tx."""
    account = get_associated_token_address(owner, WSOL_MINT)
    return [build_close_account_ix(account, owner)]


@dataclass(frozen=True)
class CleanupResult:
    stage: WsolStage
    residual: int = 0
    signature: str | None = None


async def cleanup(
    rpc: AsyncClient,
    owner: Keypair,
    commitment: Commitment = Confirmed,
    dry_run: bool = False,
) -> Outcome[CleanupResult]:
    """Close the WSOL account if it holds a residual. Best effort.

    Failures come back as CleanupFailed and are logged as warnings.
    """
    account = get_associated_token_address(owner.pubkey(), WSOL_MINT)
    try:
        token_account = await fetch_token_account(rpc, account)
    except SolanaRpcException as e:
        logger.warning(f"WSOL cleanup skipped, could not read {account}: {e}")
        return Outcome.failure(CleanupFailed(str(account), str(e)))

    if token_account is None:
        return Outcome.success(CleanupResult(WsolStage.NO_ACCOUNT))
    if token_account.amount == 0:
        logger.debug(f"WSOL {account} is empty, nothing to unwrap")
        return Outcome.success(CleanupResult(WsolStage.CREATED))

    residual = token_account.amount
    logger.info(f"Unwrapping {residual} lamports of residual WSOL from {account}")
    try:
        sent = await submit_instructions(
            rpc, owner, close_instructions(owner.pubkey()), commitment, dry_run
        )
    except SolanaRpcException as e:
        logger.warning(f"WSOL cleanup failed for {account}: {e}")
        return Outcome.failure(CleanupFailed(str(account), str(e)))

    if not sent.ok:
        logger.warning(f"WSOL cleanup failed for {account}: {sent.error}")
        return Outcome.failure(CleanupFailed(str(account), str(sent.error)))

    return Outcome.success(CleanupResult(WsolStage.CLOSED, residual, sent.value.signature))
