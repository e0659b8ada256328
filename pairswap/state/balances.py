"""
Multi-asset balance tracking for ledger custody.

Implements BalanceTable[Owner, AssetId] -> Amount
"""

from typing import Dict, Tuple

from ..errors import InsufficientBalanceError


# Type aliases
Owner = str  # account, pool or router identity
AssetId = str  # asset identifier (token address, ticker, ...)
Amount = int  # Non-negative integer in the asset's smallest unit


class BalanceTable:
    """
    Sparse balance table mapping (owner, asset) -> amount.

    Zero balances are omitted, so `get_all_balances()` only lists holders.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Owner, AssetId], Amount] = {}

    def get(self, owner: Owner, asset: AssetId) -> Amount:
        """Get balance for (owner, asset). Returns 0 if not found."""
        return self._balances.get((owner, asset), 0)

    def set(self, owner: Owner, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (owner, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((owner, asset), None)
        else:
            self._balances[(owner, asset)] = amount

    def add(self, owner: Owner, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            InsufficientBalanceError: If resulting balance would be negative
        """
        current = self.get(owner, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise InsufficientBalanceError(
                f"Insufficient {asset} balance for {owner}: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, asset, new_balance)

    def subtract(self, owner: Owner, asset: AssetId, delta: Amount) -> None:
        """Subtract a non-negative amount from a balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, asset, -delta)

    def move(self, asset: AssetId, sender: Owner, recipient: Owner, amount: Amount) -> None:
        """Move `amount` of `asset` between owners; no state changes if the sender is short."""
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        self.subtract(sender, asset, amount)
        self.add(recipient, asset, amount)

    def get_all_balances(self) -> Dict[Tuple[Owner, AssetId], Amount]:
        """Return a copy of all non-zero balances."""
        return dict(self._balances)

    def get_balances_for_asset(self, asset: AssetId) -> Dict[Owner, Amount]:
        """Get all balances for a specific asset."""
        result = {}
        for (owner, a), amount in self._balances.items():
            if a == asset:
                result[owner] = amount
        return result

    def total_supply(self, asset: AssetId) -> Amount:
        return sum(self.get_balances_for_asset(asset).values())

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
