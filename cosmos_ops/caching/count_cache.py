"""
Count Cache

Freshness-bounded cache for per-partition document counts. A count query
scans the whole partition, so callers that can tolerate a bounded amount
of staleness ask for the count "no older than N minutes".

Freshness is advisory: concurrent readers may see counts up to the
requested age out of date. Writes through this package invalidate the
affected partition.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from ..data_management_operations.data_ops_exceptions import DocumentValidationError
from ..data_management_operations.utils.metrics import StoreMetrics
from .backing_store import CacheBackingStore, InMemoryCacheStore

logger = logging.getLogger(__name__)


class CachedCountEntry(BaseModel):
    """A cached count and the instant it was fetched (UTC)."""
    count: int
    cached_at: datetime


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CountCache:
    """
    Count cache for one document type in one container.

    Keys are ``count:{database}/{container}:{type_name}:{partition_key}``,
    so two containers sharing a type name never collide.

    Args:
        container_identity: Qualified container name ("database/container")
        type_name: Name of the document type
        backing_store: Where entries live; defaults to a private in-memory store
        metrics: Shared metrics receiving hit/miss counts
        fallback_expiry: Absolute lifetime of an entry in the backing store
        clock: Zero-argument callable returning an aware UTC datetime
    """

    def __init__(
        self,
        container_identity: str,
        type_name: str,
        backing_store: Optional[CacheBackingStore] = None,
        metrics: Optional[StoreMetrics] = None,
        fallback_expiry: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now
    ):
        self._prefix = f"count:{container_identity}:{type_name}:"
        self._store = backing_store or InMemoryCacheStore()
        self._metrics = metrics or StoreMetrics()
        self._fallback_expiry = fallback_expiry
        self._clock = clock

    def cache_key(self, partition_key: str) -> str:
        return f"{self._prefix}{partition_key}"

    async def get_with_cache(
        self,
        partition_key: str,
        max_age_minutes: float,
        fetch_count: Callable[[], Awaitable[int]]
    ) -> int:
        """
        Return the count for ``partition_key``, fetching it when the cached
        value is missing or older than ``max_age_minutes``.

        A max age of 0 always fetches (and refreshes the cache).

        Raises:
            DocumentValidationError: If max_age_minutes is negative
        """
        if max_age_minutes < 0:
            raise DocumentValidationError(
                "Cache expiry minutes cannot be negative",
                {"max_age_minutes": [f"must be >= 0, got {max_age_minutes}"]}
            )

        key = self.cache_key(partition_key)
        if max_age_minutes > 0:
            entry = await self._store.get(key)
            if entry is not None:
                age = self._clock() - entry.cached_at
                if age <= timedelta(minutes=max_age_minutes):
                    self._metrics.record_cache_hit()
                    logger.debug(
                        f"[get_with_cache] Hit for {key}: {entry.count} "
                        f"(age {age.total_seconds():.1f}s)"
                    )
                    return entry.count

        self._metrics.record_cache_miss()
        count = await fetch_count()
        await self._store.set(
            key,
            CachedCountEntry(count=count, cached_at=self._clock()),
            self._fallback_expiry
        )
        logger.debug(f"[get_with_cache] Miss for {key}, fetched {count}")
        return count

    async def invalidate(self, partition_key: Optional[str]) -> None:
        """Drop the cached count for ``partition_key``. Empty keys are ignored."""
        if not partition_key:
            return
        key = self.cache_key(partition_key)
        await self._store.remove(key)
        logger.debug(f"[invalidate] Removed {key}")
