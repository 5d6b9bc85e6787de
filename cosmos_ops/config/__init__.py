"""
Configuration package for cosmos_ops.
"""

from .settings import (
    ConsistencyLevel,
    CosmosClientSettings,
    DocumentTypeSettings,
    RetrySettings,
    OperationSettings,
    CacheSettings,
    MonitoringSettings,
    CosmosOpsSettings,
    load_settings,
    save_settings,
)

__all__ = [
    'ConsistencyLevel',
    'CosmosClientSettings',
    'DocumentTypeSettings',
    'RetrySettings',
    'OperationSettings',
    'CacheSettings',
    'MonitoringSettings',
    'CosmosOpsSettings',
    'load_settings',
    'save_settings',
]
