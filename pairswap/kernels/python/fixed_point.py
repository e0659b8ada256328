"""
Fixed-point integer kernel.

Everything here is integer-only and floors unless the name says otherwise.
Operands are treated as unsigned 256-bit words; products are allowed to use a
512-bit intermediate, which is the widest value `mul_div` accepts.

Algorithm Design:
- Type: Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) for mul_div, O(log n) for integer_sqrt
"""

from __future__ import annotations

import math

from ...errors import ArithmeticOverflowError


WORD_BITS = 256
MAX_UINT256 = (1 << WORD_BITS) - 1
MAX_UINT512 = (1 << (2 * WORD_BITS)) - 1


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def _require_word(name: str, value: int) -> None:
    _require_int(name, value)
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    if value > MAX_UINT256:
        raise ArithmeticOverflowError(f"{name} does not fit in {WORD_BITS} bits")


def mul_div(x: int, y: int, denominator: int) -> int:
    """
    Compute `floor(x * y / denominator)` with overflow detection.

    Raises:
        ArithmeticOverflowError: if `denominator == 0`, the product exceeds the
            512-bit intermediate, or the quotient exceeds 256 bits.
    """
    _require_word("x", x)
    _require_word("y", y)
    _require_word("denominator", denominator)
    if denominator == 0:
        raise ArithmeticOverflowError("mul_div by zero denominator")

    product = x * y
    if product > MAX_UINT512:
        raise ArithmeticOverflowError("mul_div intermediate product exceeds 512 bits")

    result = product // denominator
    if result > MAX_UINT256:
        raise ArithmeticOverflowError(f"mul_div result does not fit in {WORD_BITS} bits")
    return result


def integer_sqrt(n: int) -> int:
    """Largest integer `r` such that `r * r <= n`."""
    _require_int("n", n)
    if n < 0:
        raise ValueError(f"integer_sqrt of negative value: {n}")
    return math.isqrt(n)
