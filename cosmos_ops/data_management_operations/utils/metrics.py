"""
Store Metrics

In-process counters for request charge, retries and count-cache
effectiveness. One instance is shared by every component built for a
client, so the numbers describe the client as a whole.
"""

import threading
from collections import defaultdict
from typing import Dict

from pydantic import BaseModel, Field


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of StoreMetrics counters."""
    request_charge_by_operation: Dict[str, float] = Field(default_factory=dict)
    request_count_by_operation: Dict[str, int] = Field(default_factory=dict)
    retry_count: int = 0
    retries_by_operation: Dict[str, int] = Field(default_factory=dict)
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def total_request_charge(self) -> float:
        return sum(self.request_charge_by_operation.values())

    @property
    def cache_hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return (self.cache_hits / lookups) * 100.0


class StoreMetrics:
    """
    Thread-safe accumulator for store operation metrics.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._charge: Dict[str, float] = defaultdict(float)
        self._requests: Dict[str, int] = defaultdict(int)
        self._retries: Dict[str, int] = defaultdict(int)
        self._cache_hits = 0
        self._cache_misses = 0

    def record_request_charge(self, operation_name: str, request_charge: float) -> None:
        with self._lock:
            self._charge[operation_name] += request_charge
            self._requests[operation_name] += 1

    def record_retry(self, operation_name: str) -> None:
        with self._lock:
            self._retries[operation_name] += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    @property
    def retry_count(self) -> int:
        with self._lock:
            return sum(self._retries.values())

    @property
    def cache_hits(self) -> int:
        return self._cache_hits

    @property
    def cache_misses(self) -> int:
        return self._cache_misses

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                request_charge_by_operation=dict(self._charge),
                request_count_by_operation=dict(self._requests),
                retry_count=sum(self._retries.values()),
                retries_by_operation=dict(self._retries),
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
            )

    def reset(self) -> None:
        with self._lock:
            self._charge.clear()
            self._requests.clear()
            self._retries.clear()
            self._cache_hits = 0
            self._cache_misses = 0
