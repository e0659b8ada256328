"""
Two-asset constant-product pool.

The pool owns its reserves and its share table; value only moves through the
ledger collaborator. Every mutating operation follows the same shape:

1. validate inputs and compute the full post-state without touching anything,
2. pull value in from the caller (if any),
3. apply the post-state (shares, reserves, price accumulators),
4. push value out to the recipient (if any).

Invariants:
- a swap never decreases reserve_a * reserve_b.
- the sum of share balances == total shares.
- once shares exist, both reserves are positive.

The first deposit locks `minimum_shares` under `LOCKED_HOLDER` forever, so an
initialized pool never returns to the empty state.
"""

from __future__ import annotations

import hashlib
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from ..config import PoolConfig
from ..errors import (
    ArithmeticOverflowError,
    IdenticalAssetsError,
    InsufficientBalanceError,
    InsufficientInitialLiquidityError,
    InsufficientInputAmountError,
    InsufficientLiquidityBurnedError,
    InsufficientLiquidityError,
    InsufficientOutputAmountError,
    InsufficientSharesError,
    InvariantViolationError,
    PoolLockedError,
    ZeroLiquidityMintedError,
)
from ..kernels.python.cpmm_quote import quote_amount_in, quote_amount_out
from ..kernels.python.fixed_point import integer_sqrt, mul_div
from ..state.balances import Amount, AssetId, Owner
from ..state.ledger import Ledger
from ..state.shares import LOCKED_HOLDER, ShareTable

logger = logging.getLogger(__name__)

# Reserves are capped at 112 bits so price accumulators stay in UQ112.112.
MAX_RESERVE = (1 << 112) - 1
Q112 = 1 << 112


def pair_key(asset_x: AssetId, asset_y: AssetId) -> Tuple[AssetId, AssetId]:
    """Order-independent key for the pool trading `asset_x` against `asset_y`."""
    if asset_x == asset_y:
        raise IdenticalAssetsError(f"pool assets must differ: {asset_x}")
    return (asset_x, asset_y) if asset_x < asset_y else (asset_y, asset_x)


def compute_pool_address(asset_x: AssetId, asset_y: AssetId) -> str:
    """Deterministic custody address for a pair (same for either asset order)."""
    asset0, asset1 = pair_key(asset_x, asset_y)
    data = b"PairSwapPool" + asset0.encode("utf-8") + b"\x00" + asset1.encode("utf-8")
    return "0x" + hashlib.sha256(data).hexdigest()[:40]


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value <= 0:
        raise ValueError(f"{name} must be positive: {value}")


@dataclass(frozen=True)
class CumulativePrices:
    """Snapshot of the UQ112.112 price accumulators at `timestamp`."""

    price_a_cumulative: int
    price_b_cumulative: int
    timestamp: int


def average_price_q112(start: CumulativePrices, end: CumulativePrices, *, of_asset_a: bool = True) -> int:
    """
    Time-weighted average price between two snapshots, as UQ112.112.

    `of_asset_a=True` is the price of asset A in units of asset B.
    """
    elapsed = end.timestamp - start.timestamp
    if elapsed <= 0:
        raise ValueError(f"snapshots must be strictly ordered in time: {start.timestamp} >= {end.timestamp}")
    if of_asset_a:
        delta = end.price_a_cumulative - start.price_a_cumulative
    else:
        delta = end.price_b_cumulative - start.price_b_cumulative
    return delta // elapsed


def apply_price_q112(price_q112: int, amount: Amount) -> Amount:
    """Convert `amount` at a UQ112.112 price (floor)."""
    return (price_q112 * amount) >> 112


class Pool:
    """
    Reserve and share accounting for one asset pair.

    Attributes:
        asset_a: First asset of the pair
        asset_b: Second asset of the pair
        address: Ledger identity under which the pool's assets are held
        reserve_a: Tracked reserve of asset_a
        reserve_b: Tracked reserve of asset_b
        shares: Ownership share table
        config: Fee, locked-minimum and protocol-fee settings
    """

    def __init__(
        self,
        asset_a: AssetId,
        asset_b: AssetId,
        ledger: Ledger,
        *,
        address: Optional[Owner] = None,
        config: Optional[PoolConfig] = None,
    ) -> None:
        if asset_a == asset_b:
            raise IdenticalAssetsError(f"pool assets must differ: {asset_a}")
        self.asset_a = asset_a
        self.asset_b = asset_b
        self.ledger = ledger
        self.config = config if config is not None else PoolConfig()
        self.address = address if address is not None else compute_pool_address(asset_a, asset_b)

        self.reserve_a: Amount = 0
        self.reserve_b: Amount = 0
        self.shares = ShareTable()

        self.price_a_cumulative_last = 0
        self.price_b_cumulative_last = 0
        self.timestamp_last = 0
        self.k_last = 0

        self._locked = False

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def reserves(self) -> Tuple[Amount, Amount]:
        return self.reserve_a, self.reserve_b

    @property
    def total_shares(self) -> Amount:
        return self.shares.total

    @property
    def fee_bps(self) -> int:
        return self.config.fee_bps

    @property
    def minimum_shares(self) -> int:
        return self.config.minimum_shares

    @property
    def is_initialized(self) -> bool:
        return self.shares.total > 0

    @property
    def constant_product(self) -> int:
        return self.reserve_a * self.reserve_b

    def share_balance(self, owner: Owner) -> Amount:
        return self.shares.get(owner)

    def has_asset(self, asset: AssetId) -> bool:
        return asset == self.asset_a or asset == self.asset_b

    def is_input_asset_a(self, asset_in: AssetId) -> bool:
        """True if `asset_in` is asset_a, False if asset_b; ValueError otherwise."""
        if asset_in == self.asset_a:
            return True
        if asset_in == self.asset_b:
            return False
        raise ValueError(f"Asset {asset_in} not in pool {self.address}")

    def reserves_for(self, asset_in: AssetId) -> Tuple[Amount, Amount]:
        """(reserve_in, reserve_out) for a trade paying `asset_in`."""
        if self.is_input_asset_a(asset_in):
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    # ------------------------------------------------------------------
    # Pure quotes
    # ------------------------------------------------------------------

    def preview_remove_liquidity(self, shares: Amount) -> Tuple[Amount, Amount]:
        """Amounts a burn of `shares` would return right now (floor)."""
        _require_amount("shares", shares)
        total = self.shares.total + self._protocol_fee_shares()
        if shares > self.shares.total:
            raise InsufficientSharesError(f"Cannot burn more shares than supply: {shares} > {self.shares.total}")
        return mul_div(shares, self.reserve_a, total), mul_div(shares, self.reserve_b, total)

    def quote_swap(self, amount_in: Amount, input_is_asset_a: bool) -> Amount:
        """
        Output of `swap(amount_in, input_is_asset_a)` against the current reserves.

        Fails exactly where `swap` would fail before moving value, so a quote
        that succeeds here is executable as-is.
        """
        reserve_in, reserve_out = self._directed_reserves(input_is_asset_a)
        if reserve_in == 0 or reserve_out == 0:
            raise InsufficientLiquidityError(f"cannot swap against an empty reserve: {self.reserves}")
        self._check_input_bound(reserve_in, amount_in)
        return quote_amount_out(amount_in, reserve_in, reserve_out, self.fee_bps)

    def quote_swap_exact_out(self, amount_out: Amount, input_is_asset_a: bool) -> Amount:
        """Minimal input for `swap(..., amount_out=amount_out)` against the current reserves."""
        reserve_in, reserve_out = self._directed_reserves(input_is_asset_a)
        if reserve_in == 0 or reserve_out == 0:
            raise InsufficientLiquidityError(f"cannot swap against an empty reserve: {self.reserves}")
        amount_in = quote_amount_in(amount_out, reserve_in, reserve_out, self.fee_bps)
        self._check_input_bound(reserve_in, amount_in)
        return amount_in

    def current_cumulative_prices(self) -> CumulativePrices:
        """Accumulators as of `ledger.current_time()`, without writing them."""
        now = self.ledger.current_time()
        price_a, price_b = self._accumulated_prices(now)
        return CumulativePrices(price_a_cumulative=price_a, price_b_cumulative=price_b, timestamp=now)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_liquidity(
        self,
        provider: Owner,
        amount_a: Amount,
        amount_b: Amount,
        to: Optional[Owner] = None,
    ) -> Amount:
        """
        Deposit exactly `amount_a` / `amount_b` and mint shares to `to` (default provider).

        First deposit:
            shares = isqrt(amount_a * amount_b) - minimum_shares
        Subsequent deposits:
            shares = min(floor(amount_a * S / reserve_a), floor(amount_b * S / reserve_b))

        Raises:
            InsufficientInitialLiquidityError: first deposit cannot cover the lock
            ZeroLiquidityMintedError: deposit rounds to zero shares
            ArithmeticOverflowError: reserves would exceed MAX_RESERVE
        """
        _require_amount("amount_a", amount_a)
        _require_amount("amount_b", amount_b)
        recipient = provider if to is None else to
        if recipient == LOCKED_HOLDER:
            raise ValueError("cannot mint shares to the locked holder")

        with self._guard():
            fee_shares = self._protocol_fee_shares()
            total = self.shares.total + fee_shares
            first_deposit = total == 0
            if first_deposit:
                root = integer_sqrt(amount_a * amount_b)
                if root <= self.minimum_shares:
                    raise InsufficientInitialLiquidityError(
                        f"isqrt(amount_a * amount_b) = {root} <= minimum_shares ({self.minimum_shares})"
                    )
                minted = root - self.minimum_shares
            else:
                minted = min(
                    mul_div(amount_a, total, self.reserve_a),
                    mul_div(amount_b, total, self.reserve_b),
                )
                if minted <= 0:
                    raise ZeroLiquidityMintedError(
                        f"deposit ({amount_a}, {amount_b}) mints no shares against reserves {self.reserves}"
                    )

            new_reserve_a = self.reserve_a + amount_a
            new_reserve_b = self.reserve_b + amount_b
            self._check_reserve_bounds(new_reserve_a, new_reserve_b)
            self._require_balance(self.asset_a, provider, amount_a)
            self._require_balance(self.asset_b, provider, amount_b)

            self.ledger.transfer_in(self.asset_a, provider, self.address, amount_a)
            self.ledger.transfer_in(self.asset_b, provider, self.address, amount_b)

            if fee_shares:
                self.shares.mint(self.config.protocol_fee_to, fee_shares)
            if first_deposit:
                self.shares.mint(LOCKED_HOLDER, self.minimum_shares)
            self.shares.mint(recipient, minted)
            self._update(new_reserve_a, new_reserve_b)
            self._record_k_last()

        logger.debug(
            "mint pool=%s provider=%s to=%s amounts=(%d, %d) shares=%d",
            self.address, provider, recipient, amount_a, amount_b, minted,
        )
        return minted

    def remove_liquidity(
        self,
        owner: Owner,
        shares: Amount,
        to: Optional[Owner] = None,
    ) -> Tuple[Amount, Amount]:
        """
        Burn `shares` from `owner` and pay out the proportional reserves to `to`.

            amount_x = floor(shares * reserve_x / S)

        Raises:
            InsufficientSharesError: owner holds fewer than `shares`
            InsufficientLiquidityBurnedError: either payout rounds to zero
        """
        _require_amount("shares", shares)
        recipient = owner if to is None else to

        with self._guard():
            held = self.shares.get(owner)
            if owner == LOCKED_HOLDER or shares > held:
                raise InsufficientSharesError(f"Insufficient shares for {owner}: {shares} > {held}")

            fee_shares = self._protocol_fee_shares()
            total = self.shares.total + fee_shares
            amount_a = mul_div(shares, self.reserve_a, total)
            amount_b = mul_div(shares, self.reserve_b, total)
            if amount_a == 0 or amount_b == 0:
                raise InsufficientLiquidityBurnedError(
                    f"burning {shares} shares returns ({amount_a}, {amount_b})"
                )

            if fee_shares:
                self.shares.mint(self.config.protocol_fee_to, fee_shares)
            self.shares.burn(owner, shares)
            self._update(self.reserve_a - amount_a, self.reserve_b - amount_b)
            self._record_k_last()

            self.ledger.transfer_out(self.asset_a, self.address, recipient, amount_a)
            self.ledger.transfer_out(self.asset_b, self.address, recipient, amount_b)

        logger.debug(
            "burn pool=%s owner=%s to=%s shares=%d amounts=(%d, %d)",
            self.address, owner, recipient, shares, amount_a, amount_b,
        )
        return amount_a, amount_b

    def swap(
        self,
        amount_in: Amount,
        input_is_asset_a: bool,
        payer: Owner,
        recipient: Owner,
        amount_out: Optional[Amount] = None,
    ) -> Amount:
        """
        Swap an exact `amount_in` for the formula output (or a smaller requested `amount_out`).

            amount_out = floor(reserve_out * in_with_fee / (reserve_in * 10_000 + in_with_fee))

        The full `amount_in` (fee included) is added to the input reserve.

        Raises:
            InsufficientLiquidityError: empty reserve, or output would drain reserve_out
            InsufficientOutputAmountError: output is zero
            InsufficientInputAmountError: requested amount_out exceeds what amount_in pays for
            InvariantViolationError: post-swap product is below the pre-swap product
        """
        _require_amount("amount_in", amount_in)

        with self._guard():
            reserve_in, reserve_out = self._directed_reserves(input_is_asset_a)
            if reserve_in == 0 or reserve_out == 0:
                raise InsufficientLiquidityError(f"cannot swap against an empty reserve: {self.reserves}")

            max_out = quote_amount_out(amount_in, reserve_in, reserve_out, self.fee_bps)
            if amount_out is None:
                amount_out = max_out
            elif not isinstance(amount_out, int) or isinstance(amount_out, bool):
                raise TypeError("amount_out must be an int")

            if amount_out <= 0:
                raise InsufficientOutputAmountError(f"swap of {amount_in} yields no output")
            if amount_out >= reserve_out:
                raise InsufficientLiquidityError(
                    f"Cannot drain full reserve: amount_out ({amount_out}) >= reserve_out ({reserve_out})"
                )
            if amount_out > max_out:
                raise InsufficientInputAmountError(
                    f"amount_in ({amount_in}) pays for at most {max_out}, requested {amount_out}"
                )

            new_reserve_in = reserve_in + amount_in
            new_reserve_out = reserve_out - amount_out
            k_before = reserve_in * reserve_out
            k_after = new_reserve_in * new_reserve_out
            if k_after < k_before:
                raise InvariantViolationError(k_before, k_after)

            if input_is_asset_a:
                asset_in, asset_out = self.asset_a, self.asset_b
                new_reserve_a, new_reserve_b = new_reserve_in, new_reserve_out
            else:
                asset_in, asset_out = self.asset_b, self.asset_a
                new_reserve_a, new_reserve_b = new_reserve_out, new_reserve_in
            self._check_reserve_bounds(new_reserve_a, new_reserve_b)

            self.ledger.transfer_in(asset_in, payer, self.address, amount_in)
            self._update(new_reserve_a, new_reserve_b)
            self.ledger.transfer_out(asset_out, self.address, recipient, amount_out)

        logger.debug(
            "swap pool=%s payer=%s to=%s in=%d %s out=%d %s",
            self.address, payer, recipient, amount_in, asset_in, amount_out, asset_out,
        )
        return amount_out

    def transfer_shares(self, sender: Owner, recipient: Owner, shares: Amount) -> None:
        """Move ownership shares between holders."""
        if recipient == LOCKED_HOLDER:
            raise ValueError("cannot transfer shares to the locked holder")
        with self._guard():
            self.shares.transfer(sender, recipient, shares)
        logger.debug("share transfer pool=%s %s -> %s: %d", self.address, sender, recipient, shares)

    def sync(self) -> Tuple[Amount, Amount]:
        """Set the tracked reserves to the ledger's custody balances."""
        with self._guard():
            balance_a = self.ledger.balance_of(self.asset_a, self.address)
            balance_b = self.ledger.balance_of(self.asset_b, self.address)
            self._check_reserve_bounds(balance_a, balance_b)
            if self.shares.total > 0 and (balance_a == 0 or balance_b == 0):
                raise InsufficientLiquidityError(f"sync would empty an initialized pool: ({balance_a}, {balance_b})")
            self._update(balance_a, balance_b)
        logger.debug("sync pool=%s reserves=(%d, %d)", self.address, balance_a, balance_b)
        return balance_a, balance_b

    def skim(self, to: Owner) -> Tuple[Amount, Amount]:
        """Push custody balances in excess of the tracked reserves to `to`."""
        with self._guard():
            excess_a = max(0, self.ledger.balance_of(self.asset_a, self.address) - self.reserve_a)
            excess_b = max(0, self.ledger.balance_of(self.asset_b, self.address) - self.reserve_b)
            if excess_a:
                self.ledger.transfer_out(self.asset_a, self.address, to, excess_a)
            if excess_b:
                self.ledger.transfer_out(self.asset_b, self.address, to, excess_b)
        logger.debug("skim pool=%s to=%s excess=(%d, %d)", self.address, to, excess_a, excess_b)
        return excess_a, excess_b

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self) -> Iterator[None]:
        if self._locked:
            raise PoolLockedError(f"pool {self.address} is mid-operation")
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    def _directed_reserves(self, input_is_asset_a: bool) -> Tuple[Amount, Amount]:
        if input_is_asset_a:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def _require_balance(self, asset: AssetId, owner: Owner, amount: Amount) -> None:
        # Both legs of a deposit are checked before the first one moves.
        held = self.ledger.balance_of(asset, owner)
        if held < amount:
            raise InsufficientBalanceError(f"Insufficient {asset} balance for {owner}: {held} < {amount}")

    @staticmethod
    def _check_reserve_bounds(reserve_a: Amount, reserve_b: Amount) -> None:
        if reserve_a > MAX_RESERVE or reserve_b > MAX_RESERVE:
            raise ArithmeticOverflowError(f"reserves ({reserve_a}, {reserve_b}) exceed 112 bits")

    @staticmethod
    def _check_input_bound(reserve_in: Amount, amount_in: Amount) -> None:
        if reserve_in + amount_in > MAX_RESERVE:
            raise ArithmeticOverflowError(
                f"input reserve {reserve_in} + {amount_in} would exceed 112 bits"
            )

    def _accumulated_prices(self, now: int) -> Tuple[int, int]:
        price_a = self.price_a_cumulative_last
        price_b = self.price_b_cumulative_last
        elapsed = now - self.timestamp_last
        if elapsed > 0 and self.reserve_a > 0 and self.reserve_b > 0:
            price_a += (self.reserve_b * Q112 // self.reserve_a) * elapsed
            price_b += (self.reserve_a * Q112 // self.reserve_b) * elapsed
        return price_a, price_b

    def _update(self, reserve_a: Amount, reserve_b: Amount) -> None:
        now = self.ledger.current_time()
        self.price_a_cumulative_last, self.price_b_cumulative_last = self._accumulated_prices(now)
        self.timestamp_last = max(self.timestamp_last, now)
        self.reserve_a = reserve_a
        self.reserve_b = reserve_b

    def _protocol_fee_shares(self) -> Amount:
        # 1/6 of the growth in sqrt(k) since the last liquidity event.
        if not self.config.protocol_fee_on or self.k_last == 0:
            return 0
        root_k = integer_sqrt(self.reserve_a * self.reserve_b)
        root_k_last = integer_sqrt(self.k_last)
        if root_k <= root_k_last:
            return 0
        numerator = self.shares.total * (root_k - root_k_last)
        denominator = root_k * 5 + root_k_last
        return numerator // denominator

    def _record_k_last(self) -> None:
        self.k_last = self.reserve_a * self.reserve_b if self.config.protocol_fee_on else 0

    def __repr__(self) -> str:
        return (
            f"Pool(address={self.address[:12]}..., "
            f"assets=({self.asset_a}, {self.asset_b}), "
            f"reserves=({self.reserve_a}, {self.reserve_b}), "
            f"total_shares={self.shares.total}, fee_bps={self.fee_bps})"
        )
