"""
Typed cache access over the shared Redis connection.
"""

from .cache_client import CacheClient, CacheEntry, ttl_to_milliseconds
from .lifecycle import open_cache

__all__ = ["CacheClient", "CacheEntry", "ttl_to_milliseconds", "open_cache"]
