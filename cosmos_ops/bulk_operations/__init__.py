"""
Bulk Operations Module

High-throughput bulk create/upsert through transactional batches:
- Contiguous batching with order preserved inside each batch
- Bounded concurrency
- Per-item failure classification and aggregated results
"""

from .engine import BulkExecutor, create_batches
from .models import (
    BulkOperationType,
    BulkItemFailure,
    BatchExecuteResult,
    BulkExecuteResult
)

__all__ = [
    'BulkExecutor',
    'create_batches',
    'BulkOperationType',
    'BulkItemFailure',
    'BatchExecuteResult',
    'BulkExecuteResult',
]
