"""CpmmClient — every public pool operation, end to end.

Each mutating call runs the same sequential pipeline:

  fresh resolve -> pure quote -> balance checks -> WSOL plan
  -> assemble -> submit + confirm -> best-effort WSOL cleanup

Nothing is cached between calls. Quotes are bounded by the caller's slippage
tolerance, which is the only protection against concurrent trades.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from loguru import logger
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

import slippage
import wsol
from amm_swap import (
    build_burn_ix,
    build_create_ata_idempotent_ix,
    build_deposit_ix,
    build_initialize_ix,
    build_swap_base_input_ix,
    build_swap_base_output_ix,
    build_withdraw_ix,
    get_associated_token_address,
)
from bigmath import BPS_DENOMINATOR
from config import ClientConfig
from errors import AccountNotFound, InsufficientBalance, Outcome, RpcUnavailable
from liquidity import (
    DEFAULT_LP_SAFETY_MARGIN_BPS,
    LiquidityDelta,
    lp_amount_for_percentage,
    lp_position,
    quote_add_liquidity_for,
    quote_burn,
    quote_remove_liquidity,
)
from pool_resolver import (
    PoolState,
    derive_authority,
    derive_lp_mint,
    derive_pool_address,
    fetch_mint_program,
    fetch_token_balance,
    order_mints,
    resolve_pool,
)
from settlement import Settlement, read_owner_balances, settle
from slippage import SlippageEstimate, TradeSide, VolumeEstimate
from swap_quote import Quote, SwapMode, quote_swap
from tokens import to_ui_amount
from tx_builder import assemble_instructions, submit_instructions
from wallet import load_wallet
from wsol import WSOL_MINT, WsolPlan, WsolStage


# ── Results ──

@dataclass(frozen=True)
class PoolSummary:
    pool: PoolState
    price: Decimal  # mint_b per mint_a in UI units, display only
    trade_fee_rate: Optional[int]


@dataclass(frozen=True)
class LpPosition:
    owner: Pubkey
    pool_address: Pubkey
    lp_mint: Pubkey
    lp_account: Pubkey
    position: LiquidityDelta


@dataclass(frozen=True)
class PoolCreation:
    pool_address: Pubkey
    lp_mint: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    amount_a: int
    amount_b: int
    open_time: int


@dataclass(frozen=True)
class OperationReceipt:
    """What was submitted, and what happened to the WSOL account around it."""
    operation: str
    pool_address: Pubkey
    figures: Any  # Quote, LiquidityDelta or PoolCreation
    signature: Optional[str]
    simulated: bool = False
    units_consumed: int = 0
    wsol_stage: Optional[WsolStage] = None
    cleanup_error: Optional[Exception] = None
    settlement: Optional[Settlement] = None  # amounts that actually moved, once confirmed


# ── Client ──

class CpmmClient:
    def __init__(
        self,
        rpc: AsyncClient,
        wallet: Keypair,
        program_id: Pubkey,
        config_id: Pubkey,
        create_pool_fee_receiver: Optional[Pubkey] = None,
        compute_unit_limit: int = 400_000,
        compute_unit_price: int = 100_000,
        slippage_bps: int = 500,
        lp_safety_margin_bps: int = DEFAULT_LP_SAFETY_MARGIN_BPS,
        fee_reserve_lamports: int = wsol.DEFAULT_FEE_RESERVE_LAMPORTS,
        commitment: Commitment = Confirmed,
        unwrap_in_same_tx: bool = False,
        dry_run: bool = False,
    ):
        self.rpc = rpc
        self.wallet = wallet
        self.program_id = program_id
        self.config_id = config_id
        self.create_pool_fee_receiver = create_pool_fee_receiver
        self.compute_unit_limit = compute_unit_limit
        self.compute_unit_price = compute_unit_price
        self.slippage_bps = slippage_bps
        self.lp_safety_margin_bps = lp_safety_margin_bps
        self.fee_reserve_lamports = fee_reserve_lamports
        self.commitment = commitment
        self.unwrap_in_same_tx = unwrap_in_same_tx
        self.dry_run = dry_run

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        rpc: Optional[AsyncClient] = None,
        wallet: Optional[Keypair] = None,
    ) -> "CpmmClient":
        commitment = Commitment(config.commitment)
        return cls(
            rpc=rpc or AsyncClient(config.rpc_url, commitment=commitment),
            wallet=wallet or load_wallet(config),
            program_id=Pubkey.from_string(config.cpmm_program_id),
            config_id=Pubkey.from_string(config.cpmm_config_id),
            create_pool_fee_receiver=Pubkey.from_string(config.create_pool_fee_receiver),
            compute_unit_limit=config.compute_unit_limit,
            compute_unit_price=config.compute_unit_price,
            slippage_bps=config.slippage_bps,
            lp_safety_margin_bps=config.lp_safety_margin_bps,
            fee_reserve_lamports=config.fee_reserve_lamports,
            commitment=commitment,
            unwrap_in_same_tx=config.unwrap_in_same_tx,
            dry_run=config.dry_run,
        )

    @property
    def owner(self) -> Pubkey:
        return self.wallet.pubkey()

    async def close(self):
        await self.rpc.close()

    # ── Reads ──

    async def resolve_pool(self, mint_x: Pubkey, mint_y: Pubkey) -> Outcome[PoolState]:
        return await resolve_pool(self.rpc, mint_x, mint_y, self.program_id, self.config_id)

    async def display_pool(self, mint_x: Pubkey, mint_y: Pubkey) -> Outcome[PoolSummary]:
        resolved = await self.resolve_pool(mint_x, mint_y)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        base_ui = to_ui_amount(pool.base_reserve, pool.decimals_a)
        quote_ui = to_ui_amount(pool.quote_reserve, pool.decimals_b)
        price = quote_ui / base_ui if base_ui else Decimal(0)

        logger.info(
            f"Pool {pool.pool_address}: {base_ui} {pool.mint_a} / {quote_ui} {pool.mint_b}, "
            f"price={price}, lp_supply={pool.lp_amount}"
        )
        return Outcome.success(PoolSummary(pool, price, pool.trade_fee_rate))

    async def display_lp(
        self, mint: Pubkey, owner: Optional[Pubkey] = None, pair_mint: Pubkey = WSOL_MINT
    ) -> Outcome[LpPosition]:
        owner = owner or self.owner
        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        lp_account = get_associated_token_address(owner, pool.lp_mint)
        balance = await self._token_balance(lp_account)
        if not balance.ok:
            return Outcome.failure(balance.error)

        position = lp_position(pool, balance.value).oriented(mint)
        logger.info(
            f"LP {lp_account}: {position.lp_token_amount} of {pool.lp_amount} "
            f"({position.share_of_pool_bps} bps) -> {position.token_a_amount}/{position.token_b_amount}"
        )
        return Outcome.success(LpPosition(owner, pool.pool_address, pool.lp_mint, lp_account, position))

    async def estimate_slippage(
        self, mint: Pubkey, side: TradeSide, amount: int, pair_mint: Pubkey = WSOL_MINT
    ) -> Outcome[SlippageEstimate]:
        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        return slippage.estimate_slippage(resolved.value, mint, side, amount)

    async def estimate_volume(
        self,
        mint: Pubkey,
        side: TradeSide,
        max_slippage_bps: int,
        pair_mint: Pubkey = WSOL_MINT,
    ) -> Outcome[VolumeEstimate]:
        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        return slippage.estimate_volume(resolved.value, mint, side, max_slippage_bps)

    # ── Swaps ──

    async def swap(
        self,
        input_mint: Pubkey,
        output_mint: Pubkey,
        amount: int,
        mode: SwapMode,
        slippage_bps: Optional[int] = None,
    ) -> Outcome[OperationReceipt]:
        bps = self._slippage(slippage_bps)
        resolved = await self.resolve_pool(input_mint, output_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        quoted = quote_swap(pool, input_mint, amount, mode, bps)
        if not quoted.ok:
            return Outcome.failure(quoted.error)
        quote: Quote = quoted.value
        logger.info(
            f"Quote {mode.value}: in={quote.amount_in} (max {quote.max_amount_in}) "
            f"out={quote.amount_out} (min {quote.min_amount_out})"
        )

        creation: list[Instruction] = []
        funding: list[Instruction] = []
        plan: Optional[WsolPlan] = None

        # input side: wrap SOL or verify the token balance
        if input_mint == WSOL_MINT:
            planned = await self._plan_wsol(quote.max_amount_in)
            if not planned.ok:
                return Outcome.failure(planned.error)
            plan = planned.value
        else:
            checked = await self._check_token_balance(pool, input_mint, quote.max_amount_in)
            if not checked.ok:
                return Outcome.failure(checked.error)

        # output side: make sure the receiving account exists
        if output_mint == WSOL_MINT:
            planned = await self._plan_wsol(0)
            if not planned.ok:
                return Outcome.failure(planned.error)
            plan = planned.value
        else:
            creation.append(build_create_ata_idempotent_ix(
                self.owner, self.owner, output_mint, pool.mint_program(output_mint)
            ))
            if plan is None:
                fees = await self._check_fee_balance()
                if not fees.ok:
                    return Outcome.failure(fees.error)

        if plan is not None:
            creation = plan.account_creation + creation
            funding = plan.funding

        input_account = self._token_account(pool, input_mint)
        output_account = self._token_account(pool, output_mint)
        if mode is SwapMode.EXACT_OUTPUT:
            trade_ix = build_swap_base_output_ix(
                pool, self.owner, input_mint, input_account, output_account,
                quote.max_amount_in, quote.amount_out,
            )
        else:
            trade_ix = build_swap_base_input_ix(
                pool, self.owner, input_mint, input_account, output_account,
                quote.amount_in, quote.min_amount_out,
            )

        return await self._execute(
            "swap", pool.pool_address, quote, trade_ix, creation, funding, plan,
            pool.authority, {input_mint: input_account, output_mint: output_account},
        )

    async def buy_token(
        self,
        mint: Pubkey,
        amount_out: int,
        slippage_bps: Optional[int] = None,
        quote_mint: Pubkey = WSOL_MINT,
    ) -> Outcome[OperationReceipt]:
        """Exact-output purchase of mint, paying quote_mint."""
        return await self.swap(quote_mint, mint, amount_out, SwapMode.EXACT_OUTPUT, slippage_bps)

    async def sell_token(
        self,
        mint: Pubkey,
        amount_in: int,
        slippage_bps: Optional[int] = None,
        quote_mint: Pubkey = WSOL_MINT,
    ) -> Outcome[OperationReceipt]:
        """Exact-input sale of mint for quote_mint."""
        return await self.swap(mint, quote_mint, amount_in, SwapMode.EXACT_INPUT, slippage_bps)

    # ── Liquidity ──

    async def add_liquidity(
        self,
        mint: Pubkey,
        token_amount: int,
        slippage_bps: Optional[int] = None,
        pair_mint: Pubkey = WSOL_MINT,
    ) -> Outcome[OperationReceipt]:
        bps = self._slippage(slippage_bps)
        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        quoted = quote_add_liquidity_for(pool, mint, token_amount, bps, self.lp_safety_margin_bps)
        if not quoted.ok:
            return Outcome.failure(quoted.error)
        delta = quoted.value
        logger.info(
            f"Add liquidity: {delta.token_a_amount}/{delta.token_b_amount} "
            f"(max {delta.limit_a}/{delta.limit_b}) -> {delta.lp_token_amount} LP"
        )

        plan = None
        for side_mint, limit in ((pool.mint_a, delta.limit_a), (pool.mint_b, delta.limit_b)):
            if side_mint == WSOL_MINT:
                planned = await self._plan_wsol(limit)
                if not planned.ok:
                    return Outcome.failure(planned.error)
                plan = planned.value
            else:
                checked = await self._check_token_balance(pool, side_mint, limit)
                if not checked.ok:
                    return Outcome.failure(checked.error)
        if plan is None:
            fees = await self._check_fee_balance()
            if not fees.ok:
                return Outcome.failure(fees.error)

        lp_account = get_associated_token_address(self.owner, pool.lp_mint)
        creation = [build_create_ata_idempotent_ix(self.owner, self.owner, pool.lp_mint)]
        if plan is not None:
            creation = plan.account_creation + creation

        trade_ix = build_deposit_ix(
            pool, self.owner, lp_account,
            self._token_account(pool, pool.mint_a), self._token_account(pool, pool.mint_b),
            delta.lp_token_amount, delta.limit_a, delta.limit_b,
        )
        return await self._execute(
            "add_liquidity", pool.pool_address, delta.oriented(mint), trade_ix,
            creation, plan.funding if plan else [], plan,
            pool.authority, self._pool_accounts(pool),
        )

    async def remove_liquidity(
        self,
        mint: Pubkey,
        slippage_bps: Optional[int] = None,
        lp_amount: Optional[int] = None,
        percentage: Optional[int] = None,
        pair_mint: Pubkey = WSOL_MINT,
    ) -> Outcome[OperationReceipt]:
        """Redeem an explicit lp_amount, or a percentage (1-100) of the LP balance."""
        if (lp_amount is None) == (percentage is None):
            raise ValueError("Pass exactly one of lp_amount or percentage")
        bps = self._slippage(slippage_bps)

        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        lp_account = get_associated_token_address(self.owner, pool.lp_mint)
        balance = await self._token_balance(lp_account)
        if not balance.ok:
            return Outcome.failure(balance.error)

        if percentage is not None:
            lp_amount = lp_amount_for_percentage(balance.value, percentage)
            if lp_amount == 0:
                return Outcome.failure(InsufficientBalance("LP token", 1, balance.value))
        if lp_amount > balance.value:
            return Outcome.failure(InsufficientBalance("LP token", lp_amount, balance.value))

        quoted = quote_remove_liquidity(pool, lp_amount, bps)
        if not quoted.ok:
            return Outcome.failure(quoted.error)
        delta = quoted.value
        logger.info(
            f"Remove liquidity: {lp_amount} LP -> {delta.token_a_amount}/{delta.token_b_amount} "
            f"(min {delta.limit_a}/{delta.limit_b})"
        )

        plan = None
        creation: list[Instruction] = []
        for side_mint in (pool.mint_a, pool.mint_b):
            if side_mint == WSOL_MINT:
                planned = await self._plan_wsol(0)
                if not planned.ok:
                    return Outcome.failure(planned.error)
                plan = planned.value
                creation.extend(plan.account_creation)
            else:
                creation.append(build_create_ata_idempotent_ix(
                    self.owner, self.owner, side_mint, pool.mint_program(side_mint)
                ))
        if plan is None:
            fees = await self._check_fee_balance()
            if not fees.ok:
                return Outcome.failure(fees.error)

        trade_ix = build_withdraw_ix(
            pool, self.owner, lp_account,
            self._token_account(pool, pool.mint_a), self._token_account(pool, pool.mint_b),
            lp_amount, delta.limit_a, delta.limit_b,
        )
        return await self._execute(
            "remove_liquidity", pool.pool_address, delta.oriented(mint), trade_ix,
            creation, [], plan,
            pool.authority, self._pool_accounts(pool),
        )

    async def burn_liquidity(
        self, mint: Pubkey, lp_amount: int, pair_mint: Pubkey = WSOL_MINT
    ) -> Outcome[OperationReceipt]:
        """Burn LP tokens without withdrawing. The claim is left to other holders."""
        resolved = await self.resolve_pool(mint, pair_mint)
        if not resolved.ok:
            return Outcome.failure(resolved.error)
        pool = resolved.value

        lp_account = get_associated_token_address(self.owner, pool.lp_mint)
        balance = await self._token_balance(lp_account)
        if not balance.ok:
            return Outcome.failure(balance.error)

        quoted = quote_burn(pool, lp_amount, balance.value)
        if not quoted.ok:
            return Outcome.failure(quoted.error)
        delta = quoted.value
        logger.info(
            f"Burn {lp_amount} LP, forfeiting {delta.token_a_amount}/{delta.token_b_amount} "
            f"({delta.share_of_pool_bps} bps)"
        )

        fees = await self._check_fee_balance()
        if not fees.ok:
            return Outcome.failure(fees.error)

        trade_ix = build_burn_ix(lp_account, pool.lp_mint, self.owner, lp_amount)
        return await self._execute(
            "burn_liquidity", pool.pool_address, delta.oriented(mint), trade_ix, [], [], None
        )

    # ── Pool creation ──

    async def create_pool(
        self,
        mint_x: Pubkey,
        mint_y: Pubkey,
        amount_x: int,
        amount_y: int,
        open_time: Optional[int] = None,
    ) -> Outcome[OperationReceipt]:
        if amount_x <= 0 or amount_y <= 0:
            raise ValueError(f"Initial amounts must be positive, got {amount_x}/{amount_y}")
        if self.create_pool_fee_receiver is None:
            raise ValueError("create_pool_fee_receiver is not configured")

        mint_a, mint_b = order_mints(mint_x, mint_y)
        amount_a, amount_b = (amount_x, amount_y) if mint_a == mint_x else (amount_y, amount_x)
        open_time = open_time or 0

        try:
            program_a = await fetch_mint_program(self.rpc, mint_a)
            program_b = await fetch_mint_program(self.rpc, mint_b)
        except SolanaRpcException as e:
            return Outcome.failure(RpcUnavailable(f"mint lookup: {e}"))
        if program_a is None or program_b is None:
            missing = mint_a if program_a is None else mint_b
            return Outcome.failure(AccountNotFound(str(missing), "mint"))

        pool_address = derive_pool_address(self.config_id, mint_a, mint_b, self.program_id)
        lp_mint = derive_lp_mint(pool_address, self.program_id)
        creation_figures = PoolCreation(
            pool_address, lp_mint, mint_a, mint_b, amount_a, amount_b, open_time
        )

        plan = None
        for side_mint, amount, program in ((mint_a, amount_a, program_a), (mint_b, amount_b, program_b)):
            if side_mint == WSOL_MINT:
                planned = await self._plan_wsol(amount)
                if not planned.ok:
                    return Outcome.failure(planned.error)
                plan = planned.value
            else:
                account = get_associated_token_address(self.owner, side_mint, program)
                balance = await self._token_balance(account)
                if not balance.ok:
                    return Outcome.failure(balance.error)
                if balance.value < amount:
                    return Outcome.failure(InsufficientBalance(str(side_mint), amount, balance.value))
        if plan is None:
            fees = await self._check_fee_balance()
            if not fees.ok:
                return Outcome.failure(fees.error)

        logger.info(f"Creating pool {pool_address}: {amount_a} {mint_a} / {amount_b} {mint_b}")
        trade_ix = build_initialize_ix(
            self.program_id, self.config_id, self.owner, mint_a, mint_b,
            amount_a, amount_b, open_time, self.create_pool_fee_receiver,
            program_a, program_b,
        )
        return await self._execute(
            "create_pool", pool_address, creation_figures, trade_ix,
            plan.account_creation if plan else [], plan.funding if plan else [], plan,
            derive_authority(self.program_id),
            {
                mint_a: get_associated_token_address(self.owner, mint_a, program_a),
                mint_b: get_associated_token_address(self.owner, mint_b, program_b),
            },
        )

    # ── Internals ──

    def _slippage(self, slippage_bps: Optional[int]) -> int:
        bps = self.slippage_bps if slippage_bps is None else slippage_bps
        if not 0 <= bps < BPS_DENOMINATOR:
            raise ValueError(f"slippage_bps must be in [0, {BPS_DENOMINATOR}), got {bps}")
        return bps

    def _token_account(self, pool: PoolState, mint: Pubkey) -> Pubkey:
        if mint == WSOL_MINT:
            return get_associated_token_address(self.owner, WSOL_MINT)
        return get_associated_token_address(self.owner, mint, pool.mint_program(mint))

    def _pool_accounts(self, pool: PoolState) -> dict[Pubkey, Pubkey]:
        return {mint: self._token_account(pool, mint) for mint in (pool.mint_a, pool.mint_b)}

    async def _token_balance(self, account: Pubkey) -> Outcome[int]:
        """Balance of a token account; a missing account reads as zero."""
        try:
            balance = await fetch_token_balance(self.rpc, account)
        except SolanaRpcException as e:
            return Outcome.failure(RpcUnavailable(f"token balance {account}: {e}"))
        return Outcome.success(balance or 0)

    async def _check_token_balance(self, pool: PoolState, mint: Pubkey, required: int) -> Outcome[int]:
        balance = await self._token_balance(self._token_account(pool, mint))
        if not balance.ok:
            return balance
        if balance.value < required:
            return Outcome.failure(InsufficientBalance(str(mint), required, balance.value))
        return balance

    async def _check_fee_balance(self) -> Outcome[int]:
        try:
            native = (await self.rpc.get_balance(self.owner)).value
        except SolanaRpcException as e:
            return Outcome.failure(RpcUnavailable(f"balance {self.owner}: {e}"))
        if native < self.fee_reserve_lamports:
            return Outcome.failure(InsufficientBalance("SOL", self.fee_reserve_lamports, native))
        return Outcome.success(native)

    async def _plan_wsol(self, required: int) -> Outcome[WsolPlan]:
        return await wsol.prepare_wrap(
            self.rpc, self.owner, self.owner, required, self.fee_reserve_lamports
        )

    async def _execute(
        self,
        operation: str,
        pool_address: Pubkey,
        figures: Any,
        trade_ix: Instruction,
        account_creation: list[Instruction],
        funding: list[Instruction],
        plan: Optional[WsolPlan],
        pool_authority: Optional[Pubkey] = None,
        owner_accounts: Optional[dict[Pubkey, Pubkey]] = None,
    ) -> Outcome[OperationReceipt]:
        cleanup_ixs = []
        if plan is not None and self.unwrap_in_same_tx:
            cleanup_ixs = wsol.close_instructions(self.owner)

        assembled = assemble_instructions(
            trade_ix,
            self.compute_unit_limit,
            self.compute_unit_price,
            account_creation=account_creation,
            funding=funding,
            cleanup=cleanup_ixs,
            figures=figures,
        )

        settling = bool(owner_accounts) and pool_authority is not None and not self.dry_run
        before: dict[Pubkey, int] = {}
        if settling:
            try:
                before = await read_owner_balances(self.rpc, owner_accounts)
            except SolanaRpcException as e:
                return Outcome.failure(RpcUnavailable(f"pre-trade balances: {e}"))
            if cleanup_ixs:
                # the WSOL account is gone by the time it could be read back
                before.pop(WSOL_MINT, None)

        sent = await submit_instructions(
            self.rpc, self.wallet, assembled.instructions, self.commitment, self.dry_run
        )
        if not sent.ok:
            logger.error(f"{operation} failed: {sent.error}")
            return Outcome.failure(sent.error)
        result = sent.value

        settled = None
        if settling:
            deposited = {WSOL_MINT: plan.wrap_lamports} if plan is not None else {}
            settled = await settle(
                self.rpc, result.signature, pool_authority, owner_accounts,
                before, deposited, self.commitment,
            )
            if settled is not None:
                flows = ", ".join(f"{mint}: {flow:+d}" for mint, flow in settled.pool_inflow.items())
                logger.info(f"{operation} settled ({settled.source}): {flows}")

        stage = None
        cleanup_error = None
        if plan is not None:
            if self.dry_run:
                stage = plan.final_stage
            elif self.unwrap_in_same_tx:
                stage = WsolStage.CLOSED
            else:
                closed = await wsol.cleanup(self.rpc, self.wallet, self.commitment)
                if closed.ok:
                    stage = closed.value.stage
                else:
                    stage = WsolStage.RESIDUAL
                    cleanup_error = closed.error

        if result.simulated:
            logger.info(f"{operation} simulated OK: CU={result.units_consumed}")
        else:
            logger.info(f"{operation} confirmed: {result.signature}")

        return Outcome.success(OperationReceipt(
            operation=operation,
            pool_address=pool_address,
            figures=figures,
            signature=result.signature,
            simulated=result.simulated,
            units_consumed=result.units_consumed,
            wsol_stage=stage,
            cleanup_error=cleanup_error,
            settlement=settled,
        ))
