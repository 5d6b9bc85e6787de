"""
cosmos_ops - Azure Cosmos DB Document Operations Package

Client-side access layer for partitioned Cosmos DB containers: CRUD with
automatic audit fields and soft delete, streamed and paged queries, a
freshness-bounded count cache and high-throughput bulk writes.

Typical usage:

    from cosmos_ops import CosmosOpsClient, CosmosDocument, load_settings

    class Product(CosmosDocument):
        category: str
        name: str

    async with CosmosOpsClient(load_settings("cosmos_ops.yaml")) as client:
        products = client.register_document_type(Product, lambda p: p.category)
        await products.create(Product(id="p-1", category="lighting", name="Lamp"))
"""

from .cosmos_ops_exceptions import (
    CosmosOpsError,
    ConfigurationError,
    StoreConnectionError,
    QueryError
)
from .data_management_operations import (
    DocumentManager,
    DataOperationConfig,
    CosmosDocument,
    DeleteMode,
    PageResult,
    StoreMetrics,
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
from .bulk_operations import BulkExecuteResult, BulkItemFailure, BulkOperationType
from .query_operations import (
    SqlSpecification,
    PropertyFilter,
    PropertyComparison,
    PatchSpecification
)
from .audit import UserContext, SystemUserContext, DelegateUserContext
from .config import CosmosOpsSettings, load_settings, save_settings
from .client import CosmosOpsClient

__version__ = "0.1.0"
__author__ = "RhythmX"

__all__ = [
    'CosmosOpsClient',
    'DocumentManager',
    'DataOperationConfig',
    'CosmosDocument',
    'DeleteMode',
    'PageResult',
    'StoreMetrics',
    'BulkExecuteResult',
    'BulkItemFailure',
    'BulkOperationType',
    'SqlSpecification',
    'PropertyFilter',
    'PropertyComparison',
    'PatchSpecification',
    'UserContext',
    'SystemUserContext',
    'DelegateUserContext',
    'CosmosOpsSettings',
    'load_settings',
    'save_settings',
    'CosmosOpsError',
    'ConfigurationError',
    'StoreConnectionError',
    'QueryError',
    'DataOperationError',
    'DocumentValidationError',
    'ConflictError',
    'DocumentNotFoundError',
    'PreconditionFailedError',
    'StoreOperationError',
    'TransientOperationError',
    'OperationTimeoutError',
    'BulkOperationError',
]
