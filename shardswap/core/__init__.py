"""
Core shard algorithms: precision, pricing curve, shard lifecycle, registry, router.
"""
