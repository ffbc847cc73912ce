"""
Shard pricing curve (exact-output, integer-only).

Algorithm:
    ratio     = amount_out / reserve_out
    gate      : ratio > max_trade_ratio  -> ThresholdExceeded
                amount_out >= reserve_out -> ZeroReserve
    fee_rate  = max(fee_floor, fee_ceiling + beta_slope * ratio)
    base      = amount_out * reserve_in / reserve_out          (LINEAR)
              | ceil(R_in*R_out / (R_out - amount_out)) - R_in (CONSTANT_PRODUCT)
    trade_fee = base * fee_rate
    owner_fee = base * owner_fee_rate
    amount_in = base + trade_fee + owner_fee

Because beta_slope <= 0, a smaller reserve_out gives a larger ratio for the
same amount_out and therefore a lower fee rate (down to fee_floor).

Rounding: the ratio gate is an exact rational comparison; the fee rate is
kept as an exact rational; every amount owed by the trader rounds up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..state.shards import RATE_DENOM, BasePricing, CurveParams, require_rate
from .errors import ThresholdExceededError, ZeroReserveError
from .precision import (
    WORKING_DECIMALS,
    ceil_div,
    check_bound,
    normalize,
    normalize_up,
    require_amount,
    working_decimals_for,
)


@dataclass(frozen=True)
class SwapQuote:
    """
    Result of pricing one exact-output trade; all amounts in input-asset units.

    `fee_rate` is the effective adaptive rate scaled by RATE_DENOM (rounded up),
    reported for display only; fees are computed from the exact rational.
    """
    amount_in: int
    trade_fee: int
    owner_fee: int
    base_amount: int
    amount_out: int
    fee_rate: int

    def __post_init__(self) -> None:
        for name, v in (
            ("amount_in", self.amount_in),
            ("trade_fee", self.trade_fee),
            ("owner_fee", self.owner_fee),
            ("base_amount", self.base_amount),
            ("amount_out", self.amount_out),
            ("fee_rate", self.fee_rate),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if self.amount_in != self.base_amount + self.trade_fee + self.owner_fee:
            raise ValueError("amount_in must equal base_amount + trade_fee + owner_fee")


def exceeds_threshold(amount_out: int, reserve_out: int, curve: CurveParams) -> bool:
    """True iff amount_out / reserve_out > max_trade_ratio (exact comparison)."""
    return amount_out * RATE_DENOM > curve.max_trade_ratio * reserve_out


def fee_rate_fraction(amount_out: int, reserve_out: int, curve: CurveParams) -> Tuple[int, int]:
    """
    Adaptive fee rate as an exact fraction (numerator, denominator).

    Both amounts are in the output asset's units, so the ratio needs no rescaling.
    """
    if reserve_out <= 0:
        raise ZeroReserveError("reserve_out must be positive to compute a fee rate")
    floor_num = curve.fee_floor * reserve_out
    sloped_num = curve.fee_ceiling * reserve_out + curve.beta_slope * amount_out
    return max(floor_num, sloped_num), RATE_DENOM * reserve_out


def fee_rate_at_zero(curve: CurveParams, trade_fee_rate: int) -> int:
    """Fee rate (scaled) charged on an infinitesimal trade."""
    return 0 if trade_fee_rate == 0 else curve.fee_ceiling


def _base_amount(
    *,
    reserve_in: int,
    reserve_out: int,
    amount_out: int,
    decimals_in: int,
    decimals_out: int,
    base_pricing: BasePricing,
) -> int:
    # Cross-asset arithmetic happens at a shared working precision.
    w = working_decimals_for(decimals_in, decimals_out)
    r_in = normalize(reserve_in, decimals_in, w)
    r_out = normalize(reserve_out, decimals_out, w)
    a_out = normalize(amount_out, decimals_out, w)

    if base_pricing == BasePricing.LINEAR:
        base_w = ceil_div(check_bound("amount_out * reserve_in", a_out * r_in), r_out)
    elif base_pricing == BasePricing.CONSTANT_PRODUCT:
        if a_out >= r_out:
            raise ZeroReserveError("constant-product pricing cannot drain the output reserve")
        k = check_bound("reserve_in * reserve_out", r_in * r_out)
        base_w = ceil_div(k, r_out - a_out) - r_in
    else:
        raise ValueError(f"unsupported base pricing: {base_pricing!r}")

    return normalize_up(base_w, w, decimals_in)


def quote(
    reserve_in: int,
    reserve_out: int,
    amount_out: int,
    curve: CurveParams,
    trade_fee_rate: int,
    owner_fee_rate: int,
    *,
    decimals_in: int = WORKING_DECIMALS,
    decimals_out: int = WORKING_DECIMALS,
    base_pricing: BasePricing = BasePricing.LINEAR,
) -> SwapQuote:
    """
    Price an exact-output trade against one shard's reserves.

    Raises:
        InvalidAmountError: amount_out is not a positive int
        ZeroReserveError: either reserve is zero, or amount_out would empty reserve_out
        ThresholdExceededError: amount_out / reserve_out > curve.max_trade_ratio
        AmountOverflowError: an input or intermediate exceeds MAX_AMOUNT
    """
    require_amount("reserve_in", reserve_in)
    require_amount("reserve_out", reserve_out)
    require_amount("amount_out", amount_out, allow_zero=False)
    require_rate("trade_fee_rate", trade_fee_rate)
    require_rate("owner_fee_rate", owner_fee_rate)
    if not isinstance(curve, CurveParams):
        raise TypeError("curve must be a CurveParams")

    if reserve_in == 0 or reserve_out == 0:
        raise ZeroReserveError(f"reserves must be positive: ({reserve_in}, {reserve_out})")

    if exceeds_threshold(amount_out, reserve_out, curve):
        raise ThresholdExceededError(
            f"amount_out {amount_out} exceeds max_trade_ratio {curve.max_trade_ratio}/{RATE_DENOM} "
            f"of reserve_out {reserve_out}"
        )
    if amount_out >= reserve_out:
        raise ZeroReserveError(f"amount_out {amount_out} would drain reserve_out {reserve_out}")

    base = _base_amount(
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        amount_out=amount_out,
        decimals_in=decimals_in,
        decimals_out=decimals_out,
        base_pricing=base_pricing,
    )
    if trade_fee_rate == 0:
        trade_fee = 0
        fee_rate = 0
    else:
        rate_num, rate_den = fee_rate_fraction(amount_out, reserve_out, curve)
        trade_fee = ceil_div(check_bound("base * fee_rate", base * rate_num), rate_den)
        fee_rate = ceil_div(rate_num, reserve_out)

    owner_fee = ceil_div(base * owner_fee_rate, RATE_DENOM)
    amount_in = check_bound("amount_in", base + trade_fee + owner_fee)

    return SwapQuote(
        amount_in=amount_in,
        trade_fee=trade_fee,
        owner_fee=owner_fee,
        base_amount=base,
        amount_out=amount_out,
        fee_rate=fee_rate,
    )
