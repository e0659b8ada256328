#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pairswap import InMemoryLedger, Pool, Router, load_pool_config
from pairswap.config import PoolConfig

E18 = 10**18
FAR_DEADLINE = 2**63


def main() -> int:
    parser = argparse.ArgumentParser(description="Two depositors, one trader, two withdrawals.")
    parser.add_argument("--config", type=Path, default=None, help="YAML pool config (defaults: 30 bps fee)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log pool and ledger events")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

    config = load_pool_config(args.config) if args.config else PoolConfig()
    ledger = InMemoryLedger(now=1)
    pool = Pool("tokenA", "tokenB", ledger, config=config)
    router = Router.from_pools(ledger, [pool])

    ledger.mint("lisa", "tokenA", 5 * E18)
    ledger.mint("lisa", "tokenB", 20 * E18)
    ledger.mint("lily", "tokenA", 50 * E18)
    ledger.mint("lily", "tokenB", 200 * E18)
    ledger.mint("tim", "tokenA", 10 * E18)

    _, _, lisa_shares = router.add_liquidity(pool, 5 * E18, 20 * E18, 0, 0, sender="lisa", deadline=FAR_DEADLINE)
    print(f"[walkthrough] lisa shares={lisa_shares}")
    _, _, lily_shares = router.add_liquidity(pool, 50 * E18, 200 * E18, 0, 0, sender="lily", deadline=FAR_DEADLINE)
    print(f"[walkthrough] lily shares={lily_shares}")
    print(f"[walkthrough] reserves={pool.reserves} total_shares={pool.total_shares}")

    quoted = router.get_amounts_out(10 * E18, ["tokenA", "tokenB"])[-1]
    amounts = router.swap_exact_tokens_for_tokens(
        10 * E18, quoted, ["tokenA", "tokenB"], sender="tim", to="tim", deadline=FAR_DEADLINE
    )
    print(f"[walkthrough] tim swapped {amounts[0]} tokenA for {amounts[-1]} tokenB")

    for name, shares in (("lisa", lisa_shares), ("lily", lily_shares)):
        out_a, out_b = router.remove_liquidity(pool, shares, 0, 0, sender=name, deadline=FAR_DEADLINE)
        print(f"[walkthrough] {name} withdrew tokenA={out_a} tokenB={out_b}")

    print(f"[walkthrough] residual reserves={pool.reserves} total_shares={pool.total_shares}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
