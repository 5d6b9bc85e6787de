"""Tests for CountCache and InMemoryCacheStore."""

from datetime import timedelta

import pytest

from cosmos_ops.caching.backing_store import InMemoryCacheStore
from cosmos_ops.caching.count_cache import CountCache
from cosmos_ops.data_management_operations.data_ops_exceptions import DocumentValidationError
from cosmos_ops.data_management_operations.utils.metrics import StoreMetrics

from .conftest import StepClock


class CountingFetcher:
    def __init__(self, *values):
        self._values = list(values)
        self.calls = 0

    async def __call__(self) -> int:
        self.calls += 1
        return self._values[min(self.calls, len(self._values)) - 1]


class FakeMonotonic:
    def __init__(self):
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def cache(clock, metrics):
    return CountCache("shop/products", "Product", InMemoryCacheStore(), metrics=metrics, clock=clock)


class TestCountCache:
    @pytest.mark.asyncio
    async def test_fresh_entry_is_served_without_fetch(self, cache, clock, metrics):
        fetch = CountingFetcher(7, 8)

        assert await cache.get_with_cache("lighting", 5, fetch) == 7
        clock.advance(minutes=5)
        assert await cache.get_with_cache("lighting", 5, fetch) == 7

        assert fetch.calls == 1
        assert metrics.cache_hits == 1
        assert metrics.cache_misses == 1

    @pytest.mark.asyncio
    async def test_stale_entry_is_refetched(self, cache, clock):
        fetch = CountingFetcher(7, 8)

        await cache.get_with_cache("lighting", 5, fetch)
        clock.advance(minutes=5, seconds=1)

        assert await cache.get_with_cache("lighting", 5, fetch) == 8
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_zero_age_always_fetches_and_refreshes(self, cache):
        fetch = CountingFetcher(1, 2)

        assert await cache.get_with_cache("lighting", 0, fetch) == 1
        assert await cache.get_with_cache("lighting", 0, fetch) == 2
        assert await cache.get_with_cache("lighting", 10, fetch) == 2
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_negative_age_is_rejected(self, cache):
        fetch = CountingFetcher(1)

        with pytest.raises(DocumentValidationError):
            await cache.get_with_cache("lighting", -1, fetch)
        assert fetch.calls == 0

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, cache):
        fetch = CountingFetcher(3, 4)

        await cache.get_with_cache("lighting", 60, fetch)
        await cache.invalidate("lighting")
        await cache.invalidate("lighting")

        assert await cache.get_with_cache("lighting", 60, fetch) == 4

    @pytest.mark.asyncio
    async def test_invalidate_empty_key_is_noop(self, cache):
        await cache.invalidate("")
        await cache.invalidate(None)

    @pytest.mark.asyncio
    async def test_keys_are_scoped_by_container_and_type(self, clock):
        store = InMemoryCacheStore()
        products = CountCache("shop/products", "Item", store, clock=clock)
        archive = CountCache("shop/archive", "Item", store, clock=clock)

        await products.get_with_cache("a", 60, CountingFetcher(1))

        assert await archive.get_with_cache("a", 60, CountingFetcher(2)) == 2
        assert products.cache_key("a") == "count:shop/products:Item:a"


class TestInMemoryCacheStore:
    @pytest.mark.asyncio
    async def test_entries_expire(self):
        monotonic = FakeMonotonic()
        store = InMemoryCacheStore(monotonic=monotonic)

        await store.set("k", 1, timedelta(seconds=10))
        monotonic.value = 9.0
        assert await store.get("k") == 1
        monotonic.value = 10.0
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_oldest_entry_is_evicted(self):
        store = InMemoryCacheStore(max_entries=2)

        await store.set("a", 1, timedelta(hours=1))
        await store.set("b", 2, timedelta(hours=1))
        await store.set("c", 3, timedelta(hours=1))

        assert await store.get("a") is None
        assert await store.get("c") == 3
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_remove_absent_key(self):
        await InMemoryCacheStore().remove("missing")

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryCacheStore(max_entries=0)
