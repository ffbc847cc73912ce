"""
Ledger adapter interface consumed by the shard core.

The core only computes what should happen; the ledger moves balances. A
transfer returns False when it cannot be made (nothing moved in that case).
"""

from __future__ import annotations

from typing import Protocol

from ..state.assets import Amount, AssetId


class Ledger(Protocol):
    def transfer_in(self, asset: AssetId, amount: Amount, from_account: str) -> bool:
        """Move `amount` of `asset` from `from_account` into exchange custody."""
        ...

    def transfer_out(self, asset: AssetId, amount: Amount, to_account: str) -> bool:
        """Move `amount` of `asset` from exchange custody to `to_account`."""
        ...
