from __future__ import annotations

import pytest

from pairswap.config import PoolConfig
from pairswap.core.pool import (
    MAX_RESERVE,
    Q112,
    Pool,
    apply_price_q112,
    average_price_q112,
    compute_pool_address,
    pair_key,
)
from pairswap.errors import (
    ArithmeticOverflowError,
    IdenticalAssetsError,
    InsufficientBalanceError,
    InsufficientInitialLiquidityError,
    InsufficientInputAmountError,
    InsufficientLiquidityBurnedError,
    InsufficientLiquidityError,
    InsufficientOutputAmountError,
    InsufficientSharesError,
    PoolLockedError,
    ZeroLiquidityMintedError,
)
from pairswap.kernels.python.fixed_point import integer_sqrt
from pairswap.state.ledger import InMemoryLedger
from pairswap.state.shares import LOCKED_HOLDER

E18 = 10**18


def _pool(config: PoolConfig | None = None, now: int = 0) -> tuple[InMemoryLedger, Pool]:
    ledger = InMemoryLedger(now=now)
    return ledger, Pool("A", "B", ledger, config=config)


def _fund(ledger: InMemoryLedger, owner: str, amount_a: int = 0, amount_b: int = 0) -> None:
    if amount_a:
        ledger.mint(owner, "A", amount_a)
    if amount_b:
        ledger.mint(owner, "B", amount_b)


def _seeded(amount_a: int, amount_b: int, **kwargs) -> tuple[InMemoryLedger, Pool]:
    ledger, pool = _pool(**kwargs)
    _fund(ledger, "seed", amount_a, amount_b)
    pool.add_liquidity("seed", amount_a, amount_b)
    return ledger, pool


def test_pool_rejects_identical_assets() -> None:
    with pytest.raises(IdenticalAssetsError):
        Pool("A", "A", InMemoryLedger())


def test_pair_key_and_address_ignore_asset_order() -> None:
    assert pair_key("B", "A") == pair_key("A", "B") == ("A", "B")
    assert compute_pool_address("B", "A") == compute_pool_address("A", "B")
    assert compute_pool_address("A", "B") != compute_pool_address("A", "C")


def test_first_deposit_locks_minimum_shares() -> None:
    ledger, pool = _pool()
    assert not pool.is_initialized
    _fund(ledger, "alice", 5 * E18, 20 * E18)

    minted = pool.add_liquidity("alice", 5 * E18, 20 * E18)

    assert minted == 10 * E18 - 1000
    assert pool.share_balance("alice") == minted
    assert pool.share_balance(LOCKED_HOLDER) == 1000
    assert pool.total_shares == 10 * E18
    assert pool.reserves == (5 * E18, 20 * E18)
    assert ledger.balance_of("A", pool.address) == 5 * E18
    assert ledger.balance_of("B", pool.address) == 20 * E18
    assert ledger.balance_of("A", "alice") == 0
    assert pool.is_initialized


def test_first_deposit_must_cover_the_lock() -> None:
    ledger, pool = _pool()
    _fund(ledger, "alice", 1000, 1000)
    with pytest.raises(InsufficientInitialLiquidityError):
        pool.add_liquidity("alice", 1000, 1000)
    assert pool.total_shares == 0
    assert ledger.balance_of("A", "alice") == 1000

    _fund(ledger, "alice", 1, 1)
    assert pool.add_liquidity("alice", 1001, 1001) == 1


def test_proportional_mint_uses_the_smaller_side() -> None:
    ledger, pool = _seeded(5 * E18, 20 * E18)
    _fund(ledger, "bob", 60 * E18, 210 * E18)

    assert pool.add_liquidity("bob", 50 * E18, 200 * E18) == 100 * E18

    # Unbalanced deposits are consumed in full; only the smaller ratio is credited.
    minted = pool.add_liquidity("bob", 10 * E18, 10 * E18)
    assert minted == min(10 * E18 * 110 * E18 // (55 * E18), 10 * E18 * 110 * E18 // (220 * E18))
    assert pool.reserves == (65 * E18, 230 * E18)
    assert pool.shares.verify_conservation()


def test_deposit_that_rounds_to_zero_shares_fails_cleanly() -> None:
    ledger, pool = _seeded(10**12, 10**6)
    _fund(ledger, "bob", 1, 1)
    with pytest.raises(ZeroLiquidityMintedError):
        pool.add_liquidity("bob", 1, 1)
    assert pool.reserves == (10**12, 10**6)
    assert ledger.balance_of("A", "bob") == 1


def test_deposit_checks_both_balances_before_moving_either() -> None:
    ledger, pool = _seeded(10**6, 10**6)
    _fund(ledger, "bob", 100, 99)
    with pytest.raises(InsufficientBalanceError):
        pool.add_liquidity("bob", 100, 100)
    assert ledger.balance_of("A", "bob") == 100
    assert pool.reserves == (10**6, 10**6)


def test_deposit_beyond_reserve_width_overflows() -> None:
    ledger, pool = _pool()
    _fund(ledger, "whale", MAX_RESERVE + 1, 10**6)
    with pytest.raises(ArithmeticOverflowError):
        pool.add_liquidity("whale", MAX_RESERVE + 1, 10**6)
    assert ledger.balance_of("A", "whale") == MAX_RESERVE + 1


def test_add_liquidity_can_mint_to_another_owner() -> None:
    ledger, pool = _pool()
    _fund(ledger, "alice", 10**6, 10**6)
    minted = pool.add_liquidity("alice", 10**6, 10**6, to="carol")
    assert pool.share_balance("carol") == minted
    assert pool.share_balance("alice") == 0


def test_remove_liquidity_pays_floor_pro_rata() -> None:
    ledger, pool = _seeded(10**6, 3 * 10**6 + 7)
    total = pool.total_shares
    burned = pool.share_balance("seed") // 3

    assert pool.preview_remove_liquidity(burned) == (burned * 10**6 // total, burned * (3 * 10**6 + 7) // total)
    amount_a, amount_b = pool.remove_liquidity("seed", burned, to="dave")

    assert (amount_a, amount_b) == (burned * 10**6 // total, burned * (3 * 10**6 + 7) // total)
    assert ledger.balance_of("A", "dave") == amount_a
    assert ledger.balance_of("B", "dave") == amount_b
    assert pool.reserves == (10**6 - amount_a, 3 * 10**6 + 7 - amount_b)
    assert pool.total_shares == total - burned


def test_remove_liquidity_requires_held_shares() -> None:
    _, pool = _seeded(10**6, 10**6)
    with pytest.raises(InsufficientSharesError):
        pool.remove_liquidity("seed", pool.share_balance("seed") + 1)
    with pytest.raises(InsufficientSharesError):
        pool.remove_liquidity("nobody", 1)
    with pytest.raises(InsufficientSharesError):
        pool.remove_liquidity(LOCKED_HOLDER, 1)
    with pytest.raises(ValueError):
        pool.remove_liquidity("seed", 0)


def test_remove_liquidity_rejects_zero_payout() -> None:
    _, pool = _seeded(10**12, 10**6)
    with pytest.raises(InsufficientLiquidityBurnedError):
        pool.remove_liquidity("seed", 1)
    assert pool.reserves == (10**12, 10**6)


def test_full_withdrawal_leaves_locked_dust() -> None:
    ledger, pool = _seeded(10**6, 4 * 10**6)
    pool.remove_liquidity("seed", pool.share_balance("seed"))
    assert pool.total_shares == 1000
    assert pool.reserves == (500, 2000)
    assert pool.is_initialized
    assert ledger.balance_of("A", pool.address) == 500


def test_swap_matches_reference_and_grows_product() -> None:
    ledger, pool = _seeded(55 * E18, 220 * E18)
    _fund(ledger, "tim", 10 * E18)
    k_before = pool.constant_product

    out = pool.swap(10 * E18, True, "tim", "tim")

    assert out == 33760197014006464522
    assert pool.reserves == (65 * E18, 186239802985993535478)
    assert pool.constant_product >= k_before
    assert ledger.balance_of("A", "tim") == 0
    assert ledger.balance_of("B", "tim") == out


def test_swap_from_asset_b() -> None:
    ledger, pool = _seeded(55 * E18, 220 * E18)
    _fund(ledger, "tim", 0, 40 * E18)
    expected = pool.quote_swap(40 * E18, False)
    assert pool.swap(40 * E18, False, "tim", "rita") == expected
    assert pool.reserves == (55 * E18 - expected, 260 * E18)
    assert ledger.balance_of("A", "rita") == expected


def test_swap_against_empty_pool_fails() -> None:
    ledger, pool = _pool()
    _fund(ledger, "tim", 100)
    with pytest.raises(InsufficientLiquidityError):
        pool.swap(100, True, "tim", "tim")


def test_swap_with_zero_output_fails_before_moving_value() -> None:
    ledger, pool = _seeded(10**12, 10**6)
    _fund(ledger, "tim", 1)
    with pytest.raises(InsufficientOutputAmountError):
        pool.swap(1, True, "tim", "tim")
    assert ledger.balance_of("A", "tim") == 1
    assert pool.reserves == (10**12, 10**6)


def test_swap_requested_output_is_bounded_by_the_invariant() -> None:
    ledger, pool = _seeded(10**9, 10**9)
    _fund(ledger, "tim", 3000)
    max_out = pool.quote_swap(1000, True)

    with pytest.raises(InsufficientInputAmountError):
        pool.swap(1000, True, "tim", "tim", amount_out=max_out + 1)
    with pytest.raises(InsufficientLiquidityError):
        pool.swap(1000, True, "tim", "tim", amount_out=10**9)

    assert pool.swap(1000, True, "tim", "tim", amount_out=max_out) == max_out
    assert pool.swap(1000, True, "tim", "tim", amount_out=1) == 1


def test_swap_without_funds_leaves_pool_untouched() -> None:
    _, pool = _seeded(10**9, 10**9)
    with pytest.raises(InsufficientBalanceError):
        pool.swap(1000, True, "broke", "broke")
    assert pool.reserves == (10**9, 10**9)


def test_reentrant_call_from_ledger_callback_is_refused() -> None:
    ledger, pool = _seeded(10**9, 10**9)
    _fund(ledger, "tim", 2000)
    _fund(ledger, "mallory", 2000)

    def reenter(direction: str, *_args) -> None:
        if direction == "out":
            pool.swap(1000, True, "mallory", "mallory")

    ledger.transfer_hook = reenter
    with pytest.raises(PoolLockedError):
        pool.swap(1000, True, "tim", "tim")

    ledger.transfer_hook = None
    assert pool.swap(1000, True, "mallory", "mallory") > 0


def test_share_transfer_from_ledger_callback_is_refused() -> None:
    ledger, pool = _seeded(10**9, 10**9)
    _fund(ledger, "tim", 2000)
    held = pool.share_balance("seed")

    def reenter(direction: str, *_args) -> None:
        if direction == "out":
            pool.transfer_shares("seed", "erin", 1)

    ledger.transfer_hook = reenter
    with pytest.raises(PoolLockedError):
        pool.swap(1000, True, "tim", "tim")
    assert pool.share_balance("seed") == held
    assert pool.share_balance("erin") == 0


def test_quotes_refuse_inputs_that_would_overflow_the_reserve() -> None:
    _, pool = _seeded(MAX_RESERVE - 10, 10**6)
    assert pool.quote_swap(10, True) == 0
    with pytest.raises(ArithmeticOverflowError):
        pool.quote_swap(11, True)
    with pytest.raises(ArithmeticOverflowError):
        pool.quote_swap_exact_out(1, True)
    assert pool.quote_swap_exact_out(1, False) == 1


def test_transfer_shares_moves_ownership_only() -> None:
    _, pool = _seeded(10**6, 10**6)
    total = pool.total_shares
    pool.transfer_shares("seed", "erin", 500)
    assert pool.share_balance("erin") == 500
    assert pool.total_shares == total
    with pytest.raises(ValueError):
        pool.transfer_shares("erin", LOCKED_HOLDER, 1)
    with pytest.raises(InsufficientSharesError):
        pool.transfer_shares("erin", "seed", 501)


def test_skim_and_sync_reconcile_with_custody() -> None:
    ledger, pool = _seeded(10**6, 10**6)
    _fund(ledger, "donor", 300, 0)

    ledger.transfer("A", "donor", pool.address, 100)
    assert pool.skim("carol") == (100, 0)
    assert ledger.balance_of("A", "carol") == 100
    assert pool.reserves == (10**6, 10**6)

    ledger.transfer("A", "donor", pool.address, 200)
    assert pool.sync() == (10**6 + 200, 10**6)
    assert pool.reserves == (10**6 + 200, 10**6)
    assert pool.skim("carol") == (0, 0)


def test_price_accumulators_give_time_weighted_average() -> None:
    ledger, pool = _pool(now=1000)
    _fund(ledger, "seed", E18, 4 * E18)
    pool.add_liquidity("seed", E18, 4 * E18)

    ledger.advance(10)
    start = pool.current_cumulative_prices()
    ledger.advance(100)
    end = pool.current_cumulative_prices()

    assert start.price_a_cumulative == 4 * Q112 * 10
    avg_a = average_price_q112(start, end)
    assert avg_a == 4 * Q112
    assert apply_price_q112(avg_a, 10) == 40
    assert average_price_q112(start, end, of_asset_a=False) == Q112 // 4
    with pytest.raises(ValueError):
        average_price_q112(end, start)


def test_accumulators_are_written_on_mutation() -> None:
    ledger, pool = _pool(now=0)
    _fund(ledger, "seed", 2 * 10**6, 2 * 10**6)
    pool.add_liquidity("seed", 10**6, 10**6)
    ledger.advance(5)
    pool.add_liquidity("seed", 10**6, 10**6)
    assert pool.price_a_cumulative_last == Q112 * 5
    assert pool.timestamp_last == 5


def test_protocol_fee_mints_one_sixth_of_fee_growth() -> None:
    ledger, pool = _seeded(1000 * E18, 1000 * E18, config=PoolConfig(protocol_fee_to="treasury"))
    assert pool.k_last == pool.constant_product

    _fund(ledger, "tim", 100 * E18)
    pool.swap(100 * E18, True, "tim", "tim")

    root_k = integer_sqrt(pool.constant_product)
    root_k_last = integer_sqrt(pool.k_last)
    expected = pool.total_shares * (root_k - root_k_last) // (root_k * 5 + root_k_last)
    assert expected > 0

    reserve_a, reserve_b = pool.reserves
    _fund(ledger, "bob", reserve_a // 10, reserve_b // 10)
    pool.add_liquidity("bob", reserve_a // 10, reserve_b // 10)

    assert pool.share_balance("treasury") == expected
    assert pool.k_last == pool.constant_product
    assert pool.shares.verify_conservation()


def test_protocol_fee_off_mints_nothing() -> None:
    ledger, pool = _seeded(1000 * E18, 1000 * E18)
    _fund(ledger, "tim", 100 * E18)
    pool.swap(100 * E18, True, "tim", "tim")
    pool.remove_liquidity("seed", 10**6)
    assert pool.k_last == 0
    assert set(pool.shares.get_all_balances()) == {"seed", LOCKED_HOLDER}
