"""
State records for shardswap: assets, shards, LP balances, canonical encoding.
"""
