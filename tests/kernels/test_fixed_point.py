from __future__ import annotations

import pytest

from pairswap.errors import ArithmeticOverflowError
from pairswap.kernels.python.fixed_point import MAX_UINT256, integer_sqrt, mul_div


def test_mul_div_floors() -> None:
    assert mul_div(7, 3, 2) == 10
    assert mul_div(10, 10, 3) == 33
    assert mul_div(0, 123, 7) == 0


def test_mul_div_keeps_full_width_intermediate() -> None:
    # x * y needs 512 bits, the quotient fits back into 256.
    assert mul_div(MAX_UINT256, MAX_UINT256, MAX_UINT256) == MAX_UINT256
    assert mul_div(MAX_UINT256, 2, 4) == MAX_UINT256 // 2


def test_mul_div_rejects_zero_denominator() -> None:
    with pytest.raises(ArithmeticOverflowError):
        mul_div(1, 1, 0)


def test_mul_div_rejects_result_wider_than_word() -> None:
    with pytest.raises(ArithmeticOverflowError):
        mul_div(MAX_UINT256, 2, 1)


def test_mul_div_rejects_operand_wider_than_word() -> None:
    with pytest.raises(ArithmeticOverflowError):
        mul_div(MAX_UINT256 + 1, 1, 1)


def test_mul_div_rejects_negative_and_non_int() -> None:
    with pytest.raises(ValueError):
        mul_div(-1, 1, 1)
    with pytest.raises(TypeError):
        mul_div(1.5, 1, 1)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        mul_div(True, 1, 1)


def test_integer_sqrt_floors() -> None:
    assert [integer_sqrt(n) for n in (0, 1, 2, 3, 4, 15, 16, 17)] == [0, 1, 1, 1, 2, 3, 4, 4]
    assert integer_sqrt(5 * 10**18 * 20 * 10**18) == 10 * 10**18


def test_integer_sqrt_is_exact_beyond_float_precision() -> None:
    n = (1 << 140) + 12345
    r = integer_sqrt(n)
    assert r * r <= n < (r + 1) * (r + 1)


def test_integer_sqrt_rejects_negative() -> None:
    with pytest.raises(ValueError):
        integer_sqrt(-1)

