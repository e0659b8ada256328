"""
CPMM quote kernel.

Pure pricing formulas for a two-asset constant-product pool:
- Fee is proportional and applied to the input before pricing
  (`fee_bps = 30` is the standard 997/1000 model).
- The fee-adjusted input is never floored on its own; the whole quote is a
  single floor division.
- Exact-output quotes round the required input up by one unit.

All functions are side-effect free and usable as dry runs.
"""

from __future__ import annotations

from ...errors import (
    InsufficientAmountError,
    InsufficientLiquidityError,
    InvalidReservesError,
)
from .fixed_point import mul_div


BPS_DENOM = 10_000
DEFAULT_FEE_BPS = 30


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_fee_bps(fee_bps: int) -> None:
    _require_int("fee_bps", fee_bps)
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")


def _require_reserves(reserve_in: int, reserve_out: int) -> None:
    _require_int("reserve_in", reserve_in)
    _require_int("reserve_out", reserve_out)
    if reserve_in < 0 or reserve_out < 0:
        raise ValueError(f"Reserves must be non-negative: ({reserve_in}, {reserve_out})")
    if reserve_in == 0 or reserve_out == 0:
        raise InvalidReservesError(f"cannot quote against an empty reserve: ({reserve_in}, {reserve_out})")


def quote_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> int:
    """
    Output for an exact input:

        in_with_fee = amount_in * (10_000 - fee_bps)
        amount_out = floor(reserve_out * in_with_fee / (reserve_in * 10_000 + in_with_fee))

    Raises:
        InvalidReservesError: if either reserve is zero
        InsufficientAmountError: if amount_in is not positive
    """
    _require_int("amount_in", amount_in)
    _require_fee_bps(fee_bps)
    _require_reserves(reserve_in, reserve_out)
    if amount_in <= 0:
        raise InsufficientAmountError(f"amount_in must be positive: {amount_in}")

    amount_in_with_fee = amount_in * (BPS_DENOM - fee_bps)
    denominator = reserve_in * BPS_DENOM + amount_in_with_fee
    return mul_div(amount_in_with_fee, reserve_out, denominator)


def quote_amount_in(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> int:
    """
    Minimal input that yields at least `amount_out`:

        amount_in = floor(reserve_in * amount_out * 10_000 / ((reserve_out - amount_out) * (10_000 - fee_bps))) + 1

    Raises:
        InvalidReservesError: if either reserve is zero
        InsufficientAmountError: if amount_out is not positive
        InsufficientLiquidityError: if amount_out would drain reserve_out
    """
    _require_int("amount_out", amount_out)
    _require_fee_bps(fee_bps)
    _require_reserves(reserve_in, reserve_out)
    if amount_out <= 0:
        raise InsufficientAmountError(f"amount_out must be positive: {amount_out}")
    if amount_out >= reserve_out:
        raise InsufficientLiquidityError(
            f"Cannot drain full reserve: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
        )

    numerator = reserve_in * BPS_DENOM
    denominator = (reserve_out - amount_out) * (BPS_DENOM - fee_bps)
    return mul_div(numerator, amount_out, denominator) + 1


def quote_equivalent_amount(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of B matching `amount_a` at the current reserve ratio (floor)."""
    _require_int("amount_a", amount_a)
    _require_reserves(reserve_a, reserve_b)
    if amount_a <= 0:
        raise InsufficientAmountError(f"amount_a must be positive: {amount_a}")
    return mul_div(amount_a, reserve_b, reserve_a)
