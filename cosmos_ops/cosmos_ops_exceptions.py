"""
Cosmos Operations Exceptions

This module defines the root exceptions for the cosmos_ops package
to provide clear error handling and reporting.
"""


class CosmosOpsError(Exception):
    """Base exception for all cosmos_ops errors"""
    pass


class ConfigurationError(CosmosOpsError):
    """Raised when configuration is invalid or a document type has no mapping"""
    pass


class StoreConnectionError(CosmosOpsError):
    """Raised when the remote document store cannot be reached"""
    pass


class QueryError(CosmosOpsError):
    """Raised when a query cannot be built or its result cannot be read"""
    pass
