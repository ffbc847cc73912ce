"""
Per-account asset balances: (account, asset) -> amount.

Backs the in-memory ledger adapter; the shard core never touches it directly.
"""

from __future__ import annotations

from typing import Dict, Tuple

from .assets import Amount, AssetId

# Type aliases
Account = str


class BalanceTable:
    """
    Balance table mapping (account, asset) -> amount.

    Zero balances are dropped to keep the table sparse. Callers sort keys
    explicitly at serialization boundaries.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Account, AssetId], Amount] = {}

    def get(self, account: Account, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: Account, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: Account, asset: AssetId, delta: Amount) -> None:
        """
        Add delta to a balance (delta may be negative).

        Raises:
            ValueError: If the resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(f"Insufficient balance: {current} + {delta} = {new_balance} < 0")
        self.set(account, asset, new_balance)

    def subtract(self, account: Account, asset: AssetId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def move(self, src: Account, dst: Account, asset: AssetId, amount: Amount) -> bool:
        """Move `amount` from `src` to `dst`; False (and no change) if `src` is short."""
        if amount < 0:
            raise ValueError(f"Amount must be non-negative: {amount}")
        if self.get(src, asset) < amount:
            return False
        self.subtract(src, asset, amount)
        self.add(dst, asset, amount)
        return True

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
