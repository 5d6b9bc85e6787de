"""
Utilities for Data Management Operations

Contains retry, timing and metrics helpers.
"""

from .retry import execute_with_retry, is_transient_store_error
from .timing import PerformanceTimer, TimingResult, OperationTimingStats
from .metrics import StoreMetrics, MetricsSnapshot

__all__ = [
    'execute_with_retry',
    'is_transient_store_error',
    'PerformanceTimer',
    'TimingResult',
    'OperationTimingStats',
    'StoreMetrics',
    'MetricsSnapshot',
]
