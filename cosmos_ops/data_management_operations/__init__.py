"""
Data Management Operations Module

Provides document operations against Cosmos DB containers:
- Single-item CRUD with audit stamping and optimistic concurrency
- Soft delete and restore
- Streamed, OFFSET/LIMIT and continuation-token paged queries
- Active and total counts with a freshness-bounded count cache
- Bulk create/upsert through transactional batches
- Transient retry with exponential backoff, timing and metrics

Typical usage from external projects:

    from cosmos_ops.data_management_operations import (
        DocumentManager,
        DataOperationConfig,
        CosmosDocument,
        BulkOperationError
    )

    class Product(CosmosDocument):
        category: str
        name: str

    config = DataOperationConfig(default_batch_size=50, default_operation_timeout=30.0)
    manager = DocumentManager(
        Product, lambda p: p.category, container, container, "category", config=config
    )

    try:
        result = await manager.bulk_insert(products, "lighting")
        print(f"Inserted {len(result.successful_items)} products")
    except BulkOperationError as e:
        print(f"Partial failure: {e.successful_count} succeeded, {e.failed_count} failed")
        for doc_id in e.failed_ids:
            print(f"Failed document: {doc_id}")
"""

# Exceptions
from .data_ops_exceptions import (
    DataOperationError,
    DocumentValidationError,
    ConflictError,
    DocumentNotFoundError,
    PreconditionFailedError,
    StoreOperationError,
    TransientOperationError,
    OperationTimeoutError,
    BulkOperationError
)

# Configuration
from .data_ops_config import DataOperationConfig

# Data models
from .models.entities import (
    CosmosDocument,
    DeleteMode,
    PageResult,
    DataValidationResult
)

# Utilities
from .utils.timing import PerformanceTimer, TimingResult
from .utils.metrics import StoreMetrics, MetricsSnapshot

# Core manager (primary interface)
from .core.manager import DocumentManager
from .core.validator import DocumentValidator

__all__ = [
    # Primary interface
    'DocumentManager',
    'DataOperationConfig',
    # Models
    'CosmosDocument',
    'DeleteMode',
    'PageResult',
    'DataValidationResult',
    # Utilities
    'DocumentValidator',
    'PerformanceTimer',
    'TimingResult',
    'StoreMetrics',
    'MetricsSnapshot',
    # Exceptions
    'DataOperationError',
    'DocumentValidationError',
    'ConflictError',
    'DocumentNotFoundError',
    'PreconditionFailedError',
    'StoreOperationError',
    'TransientOperationError',
    'OperationTimeoutError',
    'BulkOperationError'
]
