"""
Integration layer: ledger adapter, YAML configuration and state snapshots.
"""
