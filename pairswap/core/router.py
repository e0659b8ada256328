"""
Stateless router over injected pools.

The router turns user requests (desired amounts, minimums, paths, deadlines)
into pool operations. It never owns reserve or share state. Its own ledger
`address` is only a pass-through account for multi-hop intermediates and is
back at zero after every call.

Every top-level call:
- checks the deadline once at entry (`current_time() > deadline` fails),
- computes the full result as a dry run against current reserves,
- applies slippage limits to the dry run,
- and only then mutates pools, in path order.

Paths that visit the same pool twice are rejected: the dry run prices every
hop against the pre-trade reserves, which would be wrong for a revisited pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import (
    DeadlineExpiredError,
    ExcessiveInputAmountError,
    InsufficientAAmountError,
    InsufficientBAmountError,
    InsufficientOutputAmountError,
    InsufficientSharesError,
    InvalidPathError,
)
from ..kernels.python.cpmm_quote import (
    DEFAULT_FEE_BPS,
    quote_amount_in,
    quote_amount_out,
    quote_equivalent_amount,
)
from ..state.balances import Amount, AssetId, Owner
from ..state.ledger import Ledger
from ..state.shares import LOCKED_HOLDER
from .pool import Pool, pair_key

logger = logging.getLogger(__name__)

PairKey = Tuple[AssetId, AssetId]

DEFAULT_ROUTER_ADDRESS = "router"


@dataclass(frozen=True)
class RouteHop:
    pool: Pool
    asset_in: AssetId
    asset_out: AssetId

    @property
    def input_is_asset_a(self) -> bool:
        return self.pool.is_input_asset_a(self.asset_in)


def _require_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


class Router:
    """Slippage- and deadline-protected liquidity and swap entry points."""

    def __init__(
        self,
        ledger: Ledger,
        pools: Mapping[PairKey, Pool],
        *,
        address: Owner = DEFAULT_ROUTER_ADDRESS,
    ) -> None:
        self.ledger = ledger
        self.pools = pools
        self.address = address

    @classmethod
    def from_pools(cls, ledger: Ledger, pools: Iterable[Pool], *, address: Owner = DEFAULT_ROUTER_ADDRESS) -> "Router":
        """Build a router over `pools`, keyed by their order-independent pair key."""
        by_pair: Dict[PairKey, Pool] = {}
        for pool in pools:
            key = pair_key(pool.asset_a, pool.asset_b)
            if key in by_pair:
                raise ValueError(f"duplicate pool for pair {key}")
            by_pair[key] = pool
        return cls(ledger, by_pair, address=address)

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    @staticmethod
    def quote(amount_a: Amount, reserve_a: Amount, reserve_b: Amount) -> Amount:
        return quote_equivalent_amount(amount_a, reserve_a, reserve_b)

    @staticmethod
    def get_amount_out(amount_in: Amount, reserve_in: Amount, reserve_out: Amount, fee_bps: int = DEFAULT_FEE_BPS) -> Amount:
        return quote_amount_out(amount_in, reserve_in, reserve_out, fee_bps)

    @staticmethod
    def get_amount_in(amount_out: Amount, reserve_in: Amount, reserve_out: Amount, fee_bps: int = DEFAULT_FEE_BPS) -> Amount:
        return quote_amount_in(amount_out, reserve_in, reserve_out, fee_bps)

    def pool_for(self, asset_x: AssetId, asset_y: AssetId) -> Pool:
        pool = self.pools.get(pair_key(asset_x, asset_y))
        if pool is None:
            raise InvalidPathError(f"no pool for pair ({asset_x}, {asset_y})")
        return pool

    def resolve_path(self, path: Sequence[AssetId]) -> List[RouteHop]:
        """Map an asset path to its hops; each consecutive pair names one pool."""
        if len(path) < 2:
            raise InvalidPathError(f"path needs at least two assets, got {len(path)}")
        hops: List[RouteHop] = []
        seen = set()
        for asset_in, asset_out in zip(path, path[1:]):
            pool = self.pool_for(asset_in, asset_out)
            if id(pool) in seen:
                raise InvalidPathError(f"path visits pool ({asset_in}, {asset_out}) more than once")
            seen.add(id(pool))
            hops.append(RouteHop(pool=pool, asset_in=asset_in, asset_out=asset_out))
        return hops

    def get_amounts_out(self, amount_in: Amount, path: Sequence[AssetId]) -> List[Amount]:
        """Dry run of an exact-input swap along `path`; element 0 is `amount_in`."""
        return self._amounts_out(amount_in, self.resolve_path(path))

    def get_amounts_in(self, amount_out: Amount, path: Sequence[AssetId]) -> List[Amount]:
        """Dry run of an exact-output swap along `path`; the last element is `amount_out`."""
        return self._amounts_in(amount_out, self.resolve_path(path))

    # ------------------------------------------------------------------
    # Liquidity
    # ------------------------------------------------------------------

    def add_liquidity(
        self,
        pool: Pool,
        amount_a_desired: Amount,
        amount_b_desired: Amount,
        amount_a_min: Amount,
        amount_b_min: Amount,
        *,
        sender: Owner,
        deadline: int,
        to: Optional[Owner] = None,
    ) -> Tuple[Amount, Amount, Amount]:
        """
        Deposit the best ratio-preserving amounts within the desired maximums.

        Returns (amount_a, amount_b, shares).

        Raises:
            DeadlineExpiredError: the ledger clock is past `deadline`
            InsufficientAAmountError / InsufficientBAmountError: the matching
                amount of one side falls below its minimum
        """
        self._ensure(deadline)
        _require_non_negative("amount_a_min", amount_a_min)
        _require_non_negative("amount_b_min", amount_b_min)

        amount_a, amount_b = self._optimal_amounts(
            pool, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
        )
        shares = pool.add_liquidity(sender, amount_a, amount_b, to)
        return amount_a, amount_b, shares

    def remove_liquidity(
        self,
        pool: Pool,
        shares: Amount,
        amount_a_min: Amount,
        amount_b_min: Amount,
        *,
        sender: Owner,
        deadline: int,
        to: Optional[Owner] = None,
    ) -> Tuple[Amount, Amount]:
        """
        Burn `shares` for at least (`amount_a_min`, `amount_b_min`).

        The minimums are checked against a preview, so a failing call burns nothing.
        """
        self._ensure(deadline)
        _require_non_negative("amount_a_min", amount_a_min)
        _require_non_negative("amount_b_min", amount_b_min)

        held = pool.share_balance(sender)
        if sender == LOCKED_HOLDER or shares > held:
            raise InsufficientSharesError(f"Insufficient shares for {sender}: {shares} > {held}")
        preview_a, preview_b = pool.preview_remove_liquidity(shares)
        if preview_a < amount_a_min:
            raise InsufficientAAmountError(f"amount_a ({preview_a}) < amount_a_min ({amount_a_min})")
        if preview_b < amount_b_min:
            raise InsufficientBAmountError(f"amount_b ({preview_b}) < amount_b_min ({amount_b_min})")

        return pool.remove_liquidity(sender, shares, to)

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    def swap_exact_tokens_for_tokens(
        self,
        amount_in: Amount,
        amount_out_min: Amount,
        path: Sequence[AssetId],
        *,
        sender: Owner,
        to: Owner,
        deadline: int,
    ) -> List[Amount]:
        """
        Swap exactly `amount_in` of `path[0]` for at least `amount_out_min` of `path[-1]`.

        Returns the per-hop amounts (`amounts[0] == amount_in`).
        """
        self._ensure(deadline)
        _require_non_negative("amount_out_min", amount_out_min)

        hops = self.resolve_path(path)
        amounts = self._amounts_out(amount_in, hops)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmountError(
                f"amount_out ({amounts[-1]}) < amount_out_min ({amount_out_min})"
            )
        self._execute(hops, amounts, sender=sender, to=to)
        return amounts

    def swap_tokens_for_exact_tokens(
        self,
        amount_out: Amount,
        amount_in_max: Amount,
        path: Sequence[AssetId],
        *,
        sender: Owner,
        to: Owner,
        deadline: int,
    ) -> List[Amount]:
        """
        Receive exactly `amount_out` of `path[-1]` for at most `amount_in_max` of `path[0]`.

        Returns the per-hop amounts (`amounts[-1] == amount_out`).
        """
        self._ensure(deadline)
        _require_non_negative("amount_in_max", amount_in_max)

        hops = self.resolve_path(path)
        amounts = self._amounts_in(amount_out, hops)
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmountError(f"amount_in ({amounts[0]}) > amount_in_max ({amount_in_max})")
        self._execute(hops, amounts, sender=sender, to=to)
        return amounts

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure(self, deadline: int) -> None:
        now = self.ledger.current_time()
        if now > deadline:
            raise DeadlineExpiredError(f"deadline {deadline} expired at {now}")

    def _optimal_amounts(
        self,
        pool: Pool,
        amount_a_desired: Amount,
        amount_b_desired: Amount,
        amount_a_min: Amount,
        amount_b_min: Amount,
    ) -> Tuple[Amount, Amount]:
        if not pool.is_initialized:
            return amount_a_desired, amount_b_desired

        reserve_a, reserve_b = pool.reserves
        amount_b_optimal = quote_equivalent_amount(amount_a_desired, reserve_a, reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise InsufficientBAmountError(
                    f"amount_b ({amount_b_optimal}) < amount_b_min ({amount_b_min})"
                )
            return amount_a_desired, amount_b_optimal

        amount_a_optimal = quote_equivalent_amount(amount_b_desired, reserve_b, reserve_a)
        if amount_a_optimal > amount_a_desired:
            raise AssertionError("optimal amount_a exceeds amount_a_desired")
        if amount_a_optimal < amount_a_min:
            raise InsufficientAAmountError(
                f"amount_a ({amount_a_optimal}) < amount_a_min ({amount_a_min})"
            )
        return amount_a_optimal, amount_b_desired

    @staticmethod
    def _amounts_out(amount_in: Amount, hops: Sequence[RouteHop]) -> List[Amount]:
        amounts = [amount_in]
        for hop in hops:
            out = hop.pool.quote_swap(amounts[-1], hop.input_is_asset_a)
            if out <= 0:
                raise InsufficientOutputAmountError(
                    f"hop {hop.asset_in} -> {hop.asset_out} yields no output for {amounts[-1]}"
                )
            amounts.append(out)
        return amounts

    @staticmethod
    def _amounts_in(amount_out: Amount, hops: Sequence[RouteHop]) -> List[Amount]:
        amounts = [amount_out]
        for hop in reversed(hops):
            amounts.append(hop.pool.quote_swap_exact_out(amounts[-1], hop.input_is_asset_a))
        amounts.reverse()
        return amounts

    def _execute(self, hops: Sequence[RouteHop], amounts: Sequence[Amount], *, sender: Owner, to: Owner) -> None:
        last = len(hops) - 1
        for i, hop in enumerate(hops):
            payer = sender if i == 0 else self.address
            recipient = to if i == last else self.address
            hop.pool.swap(amounts[i], hop.input_is_asset_a, payer, recipient, amount_out=amounts[i + 1])
        logger.debug(
            "route sender=%s to=%s path=%s amounts=%s",
            sender, to, [hops[0].asset_in] + [h.asset_out for h in hops], list(amounts),
        )
