"""
Reference ledger adapter.

`InMemoryLedger` keeps account balances in a BalanceTable and holds every
shard's reserves under a single custody account. It is enough for tests,
simulations and the sweep tool; a real deployment plugs in its own `Ledger`.
"""

from __future__ import annotations

from ..core.ledger import Ledger
from ..state.assets import Amount, AssetId
from ..state.balances import BalanceTable

DEFAULT_CUSTODY_ACCOUNT = "shardswap:custody"

__all__ = ["DEFAULT_CUSTODY_ACCOUNT", "InMemoryLedger", "Ledger"]


class InMemoryLedger:
    def __init__(self, custody_account: str = DEFAULT_CUSTODY_ACCOUNT) -> None:
        self.custody_account = custody_account
        self.balances = BalanceTable()

    def credit(self, account: str, asset: AssetId, amount: Amount) -> None:
        """Mint `amount` into `account` (test and simulation seeding)."""
        self.balances.add(account, asset, amount)

    def balance_of(self, account: str, asset: AssetId) -> Amount:
        return self.balances.get(account, asset)

    def custody_balance(self, asset: AssetId) -> Amount:
        return self.balances.get(self.custody_account, asset)

    def transfer_in(self, asset: AssetId, amount: Amount, from_account: str) -> bool:
        return self.balances.move(from_account, self.custody_account, asset, amount)

    def transfer_out(self, asset: AssetId, amount: Amount, to_account: str) -> bool:
        return self.balances.move(self.custody_account, to_account, asset, amount)
