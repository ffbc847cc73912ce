"""Exception types for the shardswap core.

Every error carries a stable ``code`` so routers, adapters and snapshots can
report failures without depending on message text. All of them subclass
``ValueError`` so callers that only care about "bad request" can catch one type.
"""

from __future__ import annotations

from typing import Tuple


class ShardSwapError(ValueError):
    """Base class for all core errors."""

    code = "SHARDSWAP_ERROR"


class ThresholdExceededError(ShardSwapError):
    """Requested output is too large relative to the shard's output reserve."""

    code = "THRESHOLD_EXCEEDED"


class ZeroReserveError(ShardSwapError):
    """A reserve is zero (or would become zero), so the curve is undefined."""

    code = "ZERO_RESERVE"


class AmountOverflowError(ShardSwapError):
    """An input or intermediate product exceeds MAX_AMOUNT."""

    code = "OVERFLOW"


class AmountTooSmallError(ShardSwapError):
    """A non-zero amount would floor to zero (precision loss)."""

    code = "AMOUNT_TOO_SMALL"


class InvalidAmountError(ShardSwapError):
    """An amount is not a positive int."""

    code = "INVALID_AMOUNT"


class NotInitializedError(ShardSwapError):
    code = "NOT_INITIALIZED"


class AlreadyInitializedError(ShardSwapError):
    code = "ALREADY_INITIALIZED"


class UnknownAssetError(ShardSwapError):
    code = "UNKNOWN_ASSET"


class SlippageExceededError(ShardSwapError):
    """Fresh amounts violate the caller's bound (max input / min output)."""

    code = "SLIPPAGE_EXCEEDED"


class RatioMismatchError(ShardSwapError):
    """Liquidity was offered at a ratio the shard cannot accept."""

    code = "RATIO_MISMATCH"


class UnauthorizedError(ShardSwapError):
    code = "UNAUTHORIZED"


class LedgerTransferError(ShardSwapError):
    """The ledger adapter refused a transfer; no reserve was changed."""

    code = "LEDGER_TRANSFER_FAILED"


class InvalidRouteError(ShardSwapError):
    code = "INVALID_ROUTE"


class NoRouteError(ShardSwapError):
    code = "NO_ROUTE"


class NoLiquidityError(ShardSwapError):
    """No shard of the pair can quote the requested output.

    ``rejections`` lists ``(shard_id, code)`` for every candidate that failed.
    """

    code = "NO_LIQUIDITY"

    def __init__(self, message: str, rejections: Tuple[Tuple[str, str], ...] = ()) -> None:
        super().__init__(message)
        self.rejections = tuple(rejections)
