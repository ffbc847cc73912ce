"""
Liquidity math kernel.

Pure functions with explicit rounding: LP minted and assets returned always
round down, so liquidity operations never hand out more than was deposited.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ...core.errors import AmountTooSmallError, InvalidAmountError, RatioMismatchError, SlippageExceededError


MIN_LP_LOCK = 1000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class InitialMintResult:
    liquidity_minted: int
    total_supply: int


@dataclass(frozen=True)
class MintLiquidityResult:
    liquidity_minted: int
    amount_a_used: int
    amount_b_used: int
    new_total_supply: int


@dataclass(frozen=True)
class BurnLiquidityResult:
    amount_a_out: int
    amount_b_out: int


def mint_initial(*, amount_a: int, amount_b: int, min_lp_lock: int = MIN_LP_LOCK) -> InitialMintResult:
    """
    Initial liquidity mint: `isqrt(amount_a * amount_b)`, of which `min_lp_lock`
    is locked forever (counted in total supply, owned by nobody).
    """
    _require_int("amount_a", amount_a)
    _require_int("amount_b", amount_b)
    _require_int("min_lp_lock", min_lp_lock)
    if amount_a <= 0 or amount_b <= 0:
        raise InvalidAmountError(f"initial amounts must be positive: ({amount_a}, {amount_b})")
    if min_lp_lock < 0:
        raise ValueError("min_lp_lock must be non-negative")

    sqrt_product = math.isqrt(amount_a * amount_b)
    if sqrt_product <= min_lp_lock:
        raise AmountTooSmallError(
            f"insufficient initial liquidity: isqrt(amount_a*amount_b)={sqrt_product} <= lock {min_lp_lock}"
        )
    return InitialMintResult(liquidity_minted=sqrt_product - min_lp_lock, total_supply=sqrt_product)


def mint_proportional(
    *,
    reserve_a: int,
    reserve_b: int,
    total_supply: int,
    amount_a_desired: int,
    amount_b_desired: int,
    min_liquidity: int = 0,
) -> MintLiquidityResult:
    """
    Mint LP for a deposit at the current reserve ratio.

    The side offered in excess is trimmed (the caller keeps the excess) so the used amounts
    follow reserve_a : reserve_b.
    """
    for name, v in (
        ("reserve_a", reserve_a),
        ("reserve_b", reserve_b),
        ("total_supply", total_supply),
        ("amount_a_desired", amount_a_desired),
        ("amount_b_desired", amount_b_desired),
        ("min_liquidity", min_liquidity),
    ):
        _require_int(name, v)

    if reserve_a < 0 or reserve_b < 0 or total_supply < 0:
        raise ValueError("reserves and total_supply must be non-negative")
    if amount_a_desired <= 0 or amount_b_desired <= 0:
        raise InvalidAmountError(f"desired amounts must be positive: ({amount_a_desired}, {amount_b_desired})")
    if min_liquidity < 0:
        raise ValueError("min_liquidity must be non-negative")
    if total_supply == 0 or reserve_a == 0 or reserve_b == 0:
        raise RatioMismatchError("cannot mint proportionally: shard has no reserve ratio")

    amount_b_from_a = (amount_a_desired * reserve_b) // reserve_a
    if amount_b_from_a <= amount_b_desired:
        used_a = amount_a_desired
        used_b = amount_b_from_a
    else:
        used_a = (amount_b_desired * reserve_a) // reserve_b
        used_b = amount_b_desired

    if used_a <= 0 or used_b <= 0:
        raise RatioMismatchError(
            f"deposit ({amount_a_desired}, {amount_b_desired}) cannot match reserve ratio ({reserve_a}, {reserve_b})"
        )

    minted = min((used_a * total_supply) // reserve_a, (used_b * total_supply) // reserve_b)
    if minted <= 0:
        raise AmountTooSmallError("liquidity_minted is zero (deposit too small)")
    if minted < min_liquidity:
        raise SlippageExceededError(f"liquidity_minted {minted} below min_liquidity {min_liquidity}")

    return MintLiquidityResult(
        liquidity_minted=minted,
        amount_a_used=used_a,
        amount_b_used=used_b,
        new_total_supply=total_supply + minted,
    )


def burn(*, lp_amount: int, reserve_a: int, reserve_b: int, total_supply: int) -> BurnLiquidityResult:
    """
    Burn LP tokens for underlying assets (floor rounding).
    """
    for name, v in (
        ("lp_amount", lp_amount),
        ("reserve_a", reserve_a),
        ("reserve_b", reserve_b),
        ("total_supply", total_supply),
    ):
        _require_int(name, v)

    if lp_amount <= 0:
        raise InvalidAmountError(f"lp_amount must be positive: {lp_amount}")
    if reserve_a < 0 or reserve_b < 0:
        raise ValueError("reserves must be non-negative")
    if total_supply <= 0:
        raise ValueError("total_supply must be positive")
    if lp_amount > total_supply:
        raise ValueError(f"cannot burn more LP than supply: {lp_amount} > {total_supply}")

    return BurnLiquidityResult(
        amount_a_out=(lp_amount * reserve_a) // total_supply,
        amount_b_out=(lp_amount * reserve_b) // total_supply,
    )
