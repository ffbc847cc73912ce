"""
Fixed-point precision helpers.

Amounts are non-negative ints in an asset's native unit (10**decimal_scale).
Scaling up is exact; scaling down truncates unless the caller explicitly asks
for ceil rounding (amounts owed *to* a shard). Truncation that would turn a
non-zero amount into zero is reported instead of silently succeeding.
"""

from __future__ import annotations

from .errors import AmountOverflowError, AmountTooSmallError, InvalidAmountError


WORKING_DECIMALS = 18
MAX_DECIMALS = 36
MAX_AMOUNT = 2**256 - 1


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_decimals(name: str, value: int) -> None:
    _require_int(name, value)
    if not (0 <= value <= MAX_DECIMALS):
        raise ValueError(f"{name} must be in [0, {MAX_DECIMALS}]: {value}")


def require_amount(name: str, value: int, *, allow_zero: bool = True) -> int:
    """Validate a non-negative amount bounded by MAX_AMOUNT."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmountError(f"{name} must be an int")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmountError(f"{name} must be {'non-negative' if allow_zero else 'positive'}: {value}")
    if value > MAX_AMOUNT:
        raise AmountOverflowError(f"{name} exceeds MAX_AMOUNT")
    return value


def check_bound(name: str, value: int) -> int:
    """Fail with AmountOverflowError if an intermediate exceeds MAX_AMOUNT."""
    if value > MAX_AMOUNT:
        raise AmountOverflowError(f"{name} exceeds MAX_AMOUNT")
    return value


def ceil_div(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        raise ValueError("numerator must be non-negative")
    return -(-numerator // denominator)


def normalize(amount: int, from_decimals: int, to_decimals: int) -> int:
    """
    Rescale `amount` between fixed-point bases.

    Scaling up is lossless. Scaling down truncates (never rounds up) and raises
    AmountTooSmallError if a non-zero amount would become zero.
    """
    require_amount("amount", amount)
    _require_decimals("from_decimals", from_decimals)
    _require_decimals("to_decimals", to_decimals)

    if to_decimals >= from_decimals:
        return check_bound("normalized amount", amount * 10 ** (to_decimals - from_decimals))

    out = amount // 10 ** (from_decimals - to_decimals)
    if amount > 0 and out == 0:
        raise AmountTooSmallError(
            f"amount {amount} truncates to zero when scaling {from_decimals} -> {to_decimals} decimals"
        )
    return out


def normalize_up(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Like `normalize`, but rounds up when scaling down (pool-favoring for amounts owed)."""
    require_amount("amount", amount)
    _require_decimals("from_decimals", from_decimals)
    _require_decimals("to_decimals", to_decimals)

    if to_decimals >= from_decimals:
        return check_bound("normalized amount", amount * 10 ** (to_decimals - from_decimals))
    return ceil_div(amount, 10 ** (from_decimals - to_decimals))


def working_decimals_for(*decimals: int) -> int:
    """The shared precision used for a cross-asset computation."""
    for i, d in enumerate(decimals):
        _require_decimals(f"decimals[{i}]", d)
    return max((WORKING_DECIMALS,) + tuple(decimals))
