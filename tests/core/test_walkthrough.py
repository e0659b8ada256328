from __future__ import annotations

import logging

from pairswap import InMemoryLedger, Pool, Router
from pairswap.state.shares import LOCKED_HOLDER

E18 = 10**18
FAR_DEADLINE = 2**63


def test_two_depositors_one_trader_two_withdrawals(caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="pairswap")
    ledger = InMemoryLedger(now=1)
    pool = Pool("tokenA", "tokenB", ledger)
    router = Router.from_pools(ledger, [pool])

    ledger.mint("lisa", "tokenA", 5 * E18)
    ledger.mint("lisa", "tokenB", 20 * E18)
    ledger.mint("lily", "tokenA", 50 * E18)
    ledger.mint("lily", "tokenB", 200 * E18)
    ledger.mint("tim", "tokenA", 10 * E18)

    _, _, lisa_shares = router.add_liquidity(pool, 5 * E18, 20 * E18, 0, 0, sender="lisa", deadline=FAR_DEADLINE)
    assert lisa_shares == 10 * E18 - 1000
    assert pool.share_balance(LOCKED_HOLDER) == 1000

    _, _, lily_shares = router.add_liquidity(pool, 50 * E18, 200 * E18, 0, 0, sender="lily", deadline=FAR_DEADLINE)
    assert lily_shares == 100 * E18
    assert pool.total_shares == 110 * E18
    assert pool.reserves == (55 * E18, 220 * E18)

    amounts = router.swap_exact_tokens_for_tokens(
        10 * E18, 0, ["tokenA", "tokenB"], sender="tim", to="tim", deadline=FAR_DEADLINE
    )
    assert amounts == [10 * E18, 33760197014006464522]
    assert pool.reserves == (65 * E18, 186239802985993535478)
    assert ledger.balance_of("tokenA", "tim") == 0
    assert ledger.balance_of("tokenB", "tim") == 33760197014006464522

    assert router.remove_liquidity(pool, lisa_shares, 0, 0, sender="lisa", deadline=FAR_DEADLINE) == (
        5909090909090908500,
        16930891180544865168,
    )
    assert router.remove_liquidity(pool, lily_shares, 0, 0, sender="lily", deadline=FAR_DEADLINE) == (
        59090909090909090909,
        169308911805448668616,
    )

    assert pool.reserves == (591, 1694)
    assert pool.total_shares == 1000
    assert pool.shares.get_all_balances() == {LOCKED_HOLDER: 1000}
    assert ledger.balance_of("tokenA", pool.address) == 591
    assert ledger.balance_of("tokenB", pool.address) == 1694
    assert ledger.balance_of("tokenA", "lisa") == 5909090909090908500
    assert ledger.balance_of("tokenB", "lily") == 169308911805448668616
    for asset in ("tokenA", "tokenB"):
        assert ledger.balance_of(asset, router.address) == 0

    assert any(record.getMessage().startswith("swap pool=") for record in caplog.records)
