"""Typed failures and the success/failure result carried between stages.

Expected conditions (missing pool, shallow liquidity, short balances) are
returned inside an Outcome. Only transport-level surprises propagate as raised
exceptions. Every error class is still an Exception so callers may choose to
raise it via Outcome.unwrap().
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class CpmmError(Exception):
    """Base class for every failure this client reports."""


class PoolNotFound(CpmmError):
    def __init__(self, pool_address: str):
        self.pool_address = pool_address
        super().__init__(f"Pool account does not exist at address {pool_address}")


class AccountNotFound(CpmmError):
    def __init__(self, address: str, kind: str = "account"):
        self.address = address
        self.kind = kind
        super().__init__(f"{kind.capitalize()} account not found: {address}")


class RpcUnavailable(CpmmError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"RPC unavailable: {reason}")


class InsufficientLiquidity(CpmmError):
    def __init__(self, reserve: int, requested: int, detail: str = ""):
        self.reserve = reserve
        self.requested = requested
        msg = f"Insufficient liquidity: requested {requested}, reserve {reserve}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class EmptyPool(CpmmError):
    def __init__(self, pool_address: str = ""):
        self.pool_address = pool_address
        super().__init__(f"Pool {pool_address or '<unknown>'} has an empty reserve")


class InsufficientBalance(CpmmError):
    def __init__(self, asset: str, required: int, available: int):
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {asset} balance. Required: {required}, Available: {available}"
        )


class SlippageUnachievable(CpmmError):
    def __init__(self, max_slippage_bps: int):
        self.max_slippage_bps = max_slippage_bps
        super().__init__(
            f"Cannot achieve {max_slippage_bps} bps slippage with current liquidity"
        )


class CleanupFailed(CpmmError):
    def __init__(self, account: str, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"Failed to close WSOL account {account}: {reason}")


class TransactionFailed(CpmmError):
    def __init__(self, reason: str, signature: Optional[str] = None):
        self.reason = reason
        self.signature = signature
        suffix = f" (sig={signature})" if signature else ""
        super().__init__(f"Transaction failed: {reason}{suffix}")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a CpmmError, never both."""
    value: Optional[T] = None
    error: Optional[CpmmError] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CpmmError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
