from __future__ import annotations

from shardswap.integration.ledger import DEFAULT_CUSTODY_ACCOUNT, InMemoryLedger


def test_transfers_move_through_custody() -> None:
    ledger = InMemoryLedger()
    ledger.credit("alice", "USDC", 100)

    assert ledger.transfer_in("USDC", 60, "alice")
    assert ledger.custody_balance("USDC") == 60
    assert ledger.balance_of(DEFAULT_CUSTODY_ACCOUNT, "USDC") == 60

    assert ledger.transfer_out("USDC", 10, "bob")
    assert ledger.balance_of("bob", "USDC") == 10
    assert ledger.custody_balance("USDC") == 50


def test_insufficient_funds_fail_without_side_effects() -> None:
    ledger = InMemoryLedger(custody_account="vault")
    ledger.credit("alice", "USDC", 5)

    assert not ledger.transfer_in("USDC", 6, "alice")
    assert not ledger.transfer_out("USDC", 1, "alice")
    assert ledger.balance_of("alice", "USDC") == 5
    assert ledger.custody_balance("USDC") == 0
