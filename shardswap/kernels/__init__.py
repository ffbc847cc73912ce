"""
Kernel layer.

Small, deterministic integer kernels used by the shard core.
"""
