"""
Bulk Execution Engine

Writes many documents of one partition as transactional batches, with
bounded concurrency and per-item failure reporting.

Typical usage (through DocumentManager):

    try:
        result = await manager.bulk_insert(products, "lighting", batch_size=50)
    except BulkOperationError as e:
        retry = [f.item for f in e.result.failed_items if f.is_retryable]
"""

import asyncio
import logging
import math
from typing import Any, List, Optional, Sequence

from ..audit.audit_field_manager import AuditFieldManager
from ..caching.count_cache import CountCache
from ..connection_management.remote_container import (
    BatchOperationKind,
    BatchResponse,
    RemoteContainer,
)
from ..data_management_operations.data_ops_config import DataOperationConfig
from ..data_management_operations.data_ops_exceptions import (
    BulkOperationError,
    StoreOperationError,
)
from ..data_management_operations.utils.metrics import StoreMetrics
from ..data_management_operations.utils.retry import execute_with_retry, is_transient_status
from .models import BatchExecuteResult, BulkExecuteResult, BulkItemFailure, BulkOperationType

logger = logging.getLogger(__name__)

_BATCH_KIND = {
    BulkOperationType.CREATE: BatchOperationKind.CREATE,
    BulkOperationType.UPSERT: BatchOperationKind.UPSERT,
}


def create_batches(items: Sequence[Any], batch_size: int) -> List[List[Any]]:
    """Split ``items`` into contiguous batches of at most ``batch_size``, preserving order."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    num_batches = math.ceil(len(items) / batch_size)
    return [list(items[i * batch_size:(i + 1) * batch_size]) for i in range(num_batches)]


def _is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


class BulkExecutor:
    """
    Executes bulk create/upsert calls against one write container.

    Each batch is audit-stamped as a unit, submitted as one transactional
    batch through the transient retry policy, and classified per item when
    the store rejects it. At most ``max_concurrency`` batches are in flight.

    Args:
        container: Write container
        audit_field_manager: Stamps audit fields per batch
        count_cache: Invalidated once per call when anything was written
        config: Retry and timeout settings
        metrics: Shared metrics receiving request charge and retries
        type_name: Document type name used in log messages
    """

    def __init__(
        self,
        container: RemoteContainer,
        audit_field_manager: AuditFieldManager,
        count_cache: CountCache,
        config: Optional[DataOperationConfig] = None,
        metrics: Optional[StoreMetrics] = None,
        type_name: str = "document"
    ):
        self._container = container
        self._audit = audit_field_manager
        self._count_cache = count_cache
        self._config = config or DataOperationConfig()
        self._metrics = metrics or StoreMetrics()
        self._type_name = type_name

    async def execute(
        self,
        items: Sequence[Any],
        partition_key: str,
        batch_size: int,
        max_concurrency: int,
        operation_type: BulkOperationType
    ) -> BulkExecuteResult:
        """
        Write ``items`` to ``partition_key``.

        Args:
            items: Documents of one partition
            partition_key: Partition key value shared by every item
            batch_size: Items per transactional batch (>= 1)
            max_concurrency: Batches in flight at once (>= 1)
            operation_type: CREATE or UPSERT

        Returns:
            BulkExecuteResult when every item was written

        Raises:
            BulkOperationError: If any item failed; carries the full result
            ValueError: If batch_size or max_concurrency is below 1
        """
        items = list(items)
        if not items:
            logger.info(f"[bulk_{operation_type.value}] No items provided, nothing to write")
            return BulkExecuteResult()
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        batches = create_batches(items, batch_size)
        semaphore = asyncio.Semaphore(max_concurrency)

        logger.info(
            f"[bulk_{operation_type.value}] Writing {len(items)} {self._type_name} items to partition "
            f"'{partition_key}' in {len(batches)} batches (batch_size={batch_size}, "
            f"max_concurrency={max_concurrency})"
        )

        async def _run(batch_index: int, batch: List[Any]) -> BatchExecuteResult:
            async with semaphore:
                return await self._execute_batch(batch_index, batch, partition_key, operation_type)

        batch_results = await asyncio.gather(
            *(_run(index, batch) for index, batch in enumerate(batches))
        )

        result = BulkExecuteResult()
        for batch_result in batch_results:
            result.add_batch(batch_result)

        self._metrics.record_request_charge(f"bulk_{operation_type.value}", result.total_request_charge)

        if result.successful_items:
            await self._count_cache.invalidate(partition_key)

        logger.info(
            f"[bulk_{operation_type.value}] Completed: {len(result.successful_items)}/{len(items)} "
            f"succeeded, {result.total_request_charge:.2f} RU"
        )

        if result.failed_items:
            message = (
                f"Bulk {operation_type.value} operation completed with {len(result.failed_items)} "
                f"failures out of {len(items)} items"
            )
            error = BulkOperationError(message, result, operation_type, partition_key)
            logger.error(f"[bulk_{operation_type.value}] {message}: {error.error_details}")
            raise error

        return result

    async def _execute_batch(
        self,
        batch_index: int,
        batch: List[Any],
        partition_key: str,
        operation_type: BulkOperationType
    ) -> BatchExecuteResult:
        kind = _BATCH_KIND[operation_type]
        operations = []

        async def _submit() -> BatchResponse:
            response = await self._container.execute_batch(partition_key, operations)
            if not response.is_success and is_transient_status(response.status_code):
                # Throttled or unavailable as a whole: let the retry policy try again
                raise StoreOperationError(
                    f"Transactional batch rejected: {response.error_message}",
                    status_code=response.status_code
                )
            return response

        try:
            self._audit.set_bulk_audit_fields(batch, operation_type == BulkOperationType.CREATE)
            operations = [(kind, item.to_store_dict()) for item in batch]
            response = await execute_with_retry(
                _submit,
                self._config,
                f"bulk_{operation_type.value}_batch",
                self._metrics
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[bulk_{operation_type.value}] Batch {batch_index} ({len(batch)} items) failed "
                f"before any item status was available: {e}"
            )
            return BatchExecuteResult(
                batch_index=batch_index,
                failed_items=[
                    BulkItemFailure(
                        item=item,
                        status_code=getattr(e, "status_code", None),
                        error_message=str(e),
                        cause=e
                    )
                    for item in batch
                ]
            )

        return self._classify(batch_index, batch, response)

    @staticmethod
    def _classify(batch_index: int, batch: List[Any], response: BatchResponse) -> BatchExecuteResult:
        result = BatchExecuteResult(batch_index=batch_index, request_charge=response.request_charge)

        if response.is_success:
            result.successful_items.extend(batch)
            return result

        statuses = response.item_status_codes
        if len(statuses) != len(batch):
            # No usable per-item statuses: the whole batch shares the batch status
            statuses = [response.status_code] * len(batch)

        for item, status_code in zip(batch, statuses):
            if _is_success_status(status_code):
                result.successful_items.append(item)
            else:
                result.failed_items.append(BulkItemFailure(
                    item=item,
                    status_code=status_code,
                    error_message=(
                        f"Item '{getattr(item, 'id', None)}' failed with status {status_code}"
                        + (f": {response.error_message}" if response.error_message else "")
                    )
                ))

        logger.warning(
            f"Batch {batch_index} rejected with status {response.status_code}: "
            f"{len(result.failed_items)}/{len(batch)} items failed"
        )
        return result
