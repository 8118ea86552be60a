"""Cache storage for collected facts."""

from .cache_store import CacheEntry, CacheStore

__all__ = ["CacheEntry", "CacheStore"]
