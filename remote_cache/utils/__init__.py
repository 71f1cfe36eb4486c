"""
Shared utilities for the cache.

Modules
-------
timestamps
    Wall-clock helpers expressed in epoch milliseconds
"""

__all__ = []
