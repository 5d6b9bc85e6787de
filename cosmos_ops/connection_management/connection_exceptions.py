"""
Connection Management Exceptions

This module defines specialized exceptions for Cosmos DB connection management,
providing detailed error reporting for connection-related issues.
"""

from ..cosmos_ops_exceptions import StoreConnectionError


class ConnectionInitializationError(StoreConnectionError):
    """
    Raised when a Cosmos client cannot be created from its settings.

    Usually a malformed endpoint or credential; indicates setup problems
    rather than a transient outage.
    """
    pass


class ConnectionClosedError(StoreConnectionError):
    """
    Raised when attempting to use a ConnectionManager that was closed.
    """
    pass
