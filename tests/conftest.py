"""Shared fixtures: a Product document type, a steppable clock and managers over InMemoryContainer."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from cosmos_ops.audit.audit_field_manager import AuditFieldManager
from cosmos_ops.audit.user_context import SystemUserContext
from cosmos_ops.caching.backing_store import InMemoryCacheStore
from cosmos_ops.caching.count_cache import CountCache
from cosmos_ops.data_management_operations.core.manager import DocumentManager
from cosmos_ops.data_management_operations.data_ops_config import DataOperationConfig
from cosmos_ops.data_management_operations.models.entities import CosmosDocument
from cosmos_ops.data_management_operations.utils.metrics import StoreMetrics

from .fakes import InMemoryContainer

START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class Product(CosmosDocument):
    category: str
    name: str
    price: float = 0.0
    tags: List[dict] = []
    sku: Optional[str] = None


class StepClock:
    """Clock returning a fixed instant until advanced."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_product(item_id: str, category: str = "lighting", **fields) -> Product:
    return Product(id=item_id, category=category, name=fields.pop("name", f"Product {item_id}"), **fields)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def container() -> InMemoryContainer:
    return InMemoryContainer()


@pytest.fixture
def metrics() -> StoreMetrics:
    return StoreMetrics()


@pytest.fixture
def fast_config() -> DataOperationConfig:
    return DataOperationConfig(transient_retry_delay=0.0, max_retry_delay=0.0)


@pytest.fixture
def audit(clock) -> AuditFieldManager:
    return AuditFieldManager(SystemUserContext("alice"), clock=clock)


@pytest.fixture
def count_cache(container, metrics, clock) -> CountCache:
    return CountCache(container.qualified_name, "Product", InMemoryCacheStore(), metrics=metrics, clock=clock)


@pytest.fixture
def manager(container, audit, count_cache, fast_config, metrics) -> DocumentManager:
    return DocumentManager(
        Product,
        lambda p: p.category,
        read_container=container,
        write_container=container,
        partition_key_field="category",
        audit_field_manager=audit,
        count_cache=count_cache,
        config=fast_config,
        metrics=metrics,
    )
