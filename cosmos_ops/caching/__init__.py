"""
Caching Module

Freshness-bounded document count cache and its backing stores.
"""

from .count_cache import CountCache, CachedCountEntry
from .backing_store import CacheBackingStore, InMemoryCacheStore

__all__ = [
    'CountCache',
    'CachedCountEntry',
    'CacheBackingStore',
    'InMemoryCacheStore',
]
