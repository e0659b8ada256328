"""
Ledger collaborator interface and an in-memory reference implementation.

The pool and router never hold custody themselves: every movement of value
and every balance/time read goes through a `Ledger`. Authorization and
allowance checks belong to the ledger and are out of scope for the core.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .balances import AssetId, Amount, BalanceTable, Owner

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, AssetId, Owner, Owner, Amount], None]


class Ledger(ABC):
    """Custody and clock collaborator used by pools and routers."""

    @abstractmethod
    def transfer_in(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """Pull `amount` of `asset` from `sender` into `recipient`'s (pool) custody."""

    @abstractmethod
    def transfer_out(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """Push `amount` of `asset` from `sender`'s (pool) custody to `recipient`."""

    @abstractmethod
    def balance_of(self, asset: AssetId, owner: Owner) -> Amount:
        """Current balance of `owner` in `asset`."""

    @abstractmethod
    def current_time(self) -> int:
        """Current timestamp in seconds."""


class InMemoryLedger(Ledger):
    """
    Ledger over a `BalanceTable` with a manually driven clock.

    A transfer that would overdraw the sender raises `InsufficientBalanceError`
    and leaves every balance untouched. An optional `transfer_hook` is invoked
    after each completed transfer with `(direction, asset, sender, recipient,
    amount)`, which models a token that calls back into the caller.
    """

    def __init__(
        self,
        balances: Optional[BalanceTable] = None,
        *,
        now: int = 0,
        transfer_hook: Optional[TransferHook] = None,
    ) -> None:
        if now < 0:
            raise ValueError(f"now must be non-negative: {now}")
        self.balances = balances if balances is not None else BalanceTable()
        self._now = int(now)
        self.transfer_hook = transfer_hook

    def mint(self, owner: Owner, asset: AssetId, amount: Amount) -> None:
        """Credit new units of `asset` to `owner` (funding helper for demos and tests)."""
        if amount <= 0:
            raise ValueError(f"Mint amount must be positive: {amount}")
        self.balances.add(owner, asset, amount)

    def transfer_in(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        self._move("in", asset, sender, recipient, amount)

    def transfer_out(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        self._move("out", asset, sender, recipient, amount)

    def transfer(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """Plain account-to-account transfer (donations, funding)."""
        self._move("transfer", asset, sender, recipient, amount)

    def _move(self, direction: str, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        self.balances.move(asset, sender, recipient, amount)
        logger.debug("transfer_%s %s %s -> %s: %d", direction, asset, sender, recipient, amount)
        if self.transfer_hook is not None:
            self.transfer_hook(direction, asset, sender, recipient, amount)

    def balance_of(self, asset: AssetId, owner: Owner) -> Amount:
        return self.balances.get(owner, asset)

    def current_time(self) -> int:
        return self._now

    def set_time(self, now: int) -> None:
        if now < self._now:
            raise ValueError(f"clock cannot move backwards: {now} < {self._now}")
        self._now = int(now)

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"seconds must be non-negative: {seconds}")
        self._now += int(seconds)
        return self._now

    def __repr__(self) -> str:
        return f"InMemoryLedger(now={self._now}, {self.balances!r})"
