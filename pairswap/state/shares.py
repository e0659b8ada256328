"""
Ownership share tracking for a single pool.

Shares are scoped to the pool that owns the table and are tracked separately
from asset balances. The table keeps `total` in lockstep with the sum of all
holder balances, so share conservation holds at every observation point.
"""

from __future__ import annotations

from typing import Dict

from ..errors import InsufficientSharesError
from .balances import Amount, Owner

# Holder of the permanently locked minimum shares. Nobody can act as it.
LOCKED_HOLDER: Owner = "0x" + "00" * 20


class ShareTable:
    """
    Sparse share table mapping owner -> share count.

    Notes:
    - Balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    - Shares held by LOCKED_HOLDER can be minted but never burned or moved.
    """

    def __init__(self) -> None:
        self._balances: Dict[Owner, Amount] = {}
        self._total: Amount = 0

    @property
    def total(self) -> Amount:
        return self._total

    def get(self, owner: Owner) -> Amount:
        """Get share balance for owner. Returns 0 if not found."""
        return self._balances.get(owner, 0)

    def _set(self, owner: Owner, amount: Amount) -> None:
        if amount == 0:
            self._balances.pop(owner, None)
        else:
            self._balances[owner] = amount

    def mint(self, owner: Owner, amount: Amount) -> None:
        """Credit freshly created shares to `owner`."""
        if amount <= 0:
            raise ValueError(f"Mint amount must be positive: {amount}")
        self._set(owner, self.get(owner) + amount)
        self._total += amount

    def burn(self, owner: Owner, amount: Amount) -> None:
        """Destroy `amount` of `owner`'s shares."""
        self._require_spendable(owner, amount)
        self._set(owner, self.get(owner) - amount)
        self._total -= amount

    def transfer(self, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """Move shares between holders; total supply is unchanged."""
        self._require_spendable(sender, amount)
        self._set(sender, self.get(sender) - amount)
        self._set(recipient, self.get(recipient) + amount)

    def _require_spendable(self, owner: Owner, amount: Amount) -> None:
        if amount <= 0:
            raise ValueError(f"Share amount must be positive: {amount}")
        if owner == LOCKED_HOLDER:
            raise InsufficientSharesError("locked minimum shares can never be burned or moved")
        current = self.get(owner)
        if amount > current:
            raise InsufficientSharesError(f"Insufficient shares for {owner}: {amount} > {current}")

    def get_all_balances(self) -> Dict[Owner, Amount]:
        """Return a copy of all non-zero share balances."""
        return dict(self._balances)

    def verify_conservation(self) -> bool:
        """Verify sum(balances) == total and every balance is positive."""
        return all(v > 0 for v in self._balances.values()) and sum(self._balances.values()) == self._total

    def __repr__(self) -> str:
        return f"ShareTable({len(self._balances)} holders, total={self._total})"
