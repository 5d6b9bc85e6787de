"""
Connection Management Module

This module provides connection management for Azure Cosmos DB:

- Named asynchronous Cosmos clients shared per account
- A narrow RemoteContainer interface the document operations depend on
- An azure-cosmos adapter translating SDK errors at the boundary
"""

from .connection_manager import ConnectionManager
from .cosmos_container import CosmosContainer
from .remote_container import (
    RemoteContainer,
    StoreResponse,
    QueryPage,
    BatchResponse,
    BatchOperationKind,
    SqlQuery
)
from .connection_exceptions import (
    ConnectionInitializationError,
    ConnectionClosedError
)

__all__ = [
    'ConnectionManager',
    'CosmosContainer',
    'RemoteContainer',
    'StoreResponse',
    'QueryPage',
    'BatchResponse',
    'BatchOperationKind',
    'SqlQuery',
    'ConnectionInitializationError',
    'ConnectionClosedError',
]
