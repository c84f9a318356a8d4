import pytest
from solana.rpc.core import RPCException
from solders.compute_budget import ID as COMPUTE_BUDGET_ID
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from amm_swap import build_close_account_ix, build_sync_native_ix
from errors import TransactionFailed
from tx_builder import assemble_instructions, submit_instructions


def _noop(tag: int) -> Instruction:
    return Instruction(Pubkey.new_unique(), bytes([tag]), [])


def test_compute_budget_always_leads():
    trade = _noop(9)
    assembled = assemble_instructions(trade, 200_000, 1_000)

    assert [ix.program_id for ix in assembled.instructions[:2]] == [COMPUTE_BUDGET_ID] * 2
    assert assembled.instructions[assembled.trade_index] == trade
    assert len(assembled.instructions) == 3


def test_setup_precedes_trade_and_cleanup_follows():
    create, fund, trade, close = _noop(1), _noop(2), _noop(3), _noop(4)
    assembled = assemble_instructions(
        trade, 400_000, 100_000,
        account_creation=[create], funding=[fund], cleanup=[close], figures="q",
    )

    assert assembled.instructions[2:] == [create, fund, trade, close]
    assert assembled.trade_index == 4
    assert assembled.figures == "q"


def test_non_positive_compute_limit_rejected():
    with pytest.raises(ValueError):
        assemble_instructions(_noop(1), 0, 0)


@pytest.mark.asyncio
async def test_dry_run_simulates_only(rpc, wallet):
    account = Pubkey.new_unique()
    ixs = assemble_instructions(build_sync_native_ix(account), 200_000, 0).instructions

    result = (await submit_instructions(rpc, wallet, ixs, dry_run=True)).unwrap()

    assert result.simulated
    assert result.signature is None
    assert result.units_consumed == 42_000
    assert len(rpc.simulated) == 1 and rpc.sent == []


@pytest.mark.asyncio
async def test_send_and_confirm(rpc, wallet):
    ixs = [build_close_account_ix(Pubkey.new_unique(), wallet.pubkey())]
    result = (await submit_instructions(rpc, wallet, ixs)).unwrap()
    assert result.signature
    assert len(rpc.sent) == 1


@pytest.mark.asyncio
async def test_failures_become_transaction_failed(rpc, wallet):
    ixs = [build_sync_native_ix(Pubkey.new_unique())]

    rpc.sim_err = "custom program error: 0x1"
    assert isinstance((await submit_instructions(rpc, wallet, ixs, dry_run=True)).error, TransactionFailed)

    rpc.send_error = RPCException("blockhash not found")
    assert isinstance((await submit_instructions(rpc, wallet, ixs)).error, TransactionFailed)

    rpc.send_error = None
    rpc.confirm_err = "InstructionError"
    failed = (await submit_instructions(rpc, wallet, ixs)).error
    assert isinstance(failed, TransactionFailed)
    assert failed.signature is not None
