"""
Data Management Operations Exceptions

Granular exception hierarchy for document operations, providing clear
error reporting and enabling precise error handling in calling code.

Not-found on reads is never an exception: point reads return None.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..cosmos_ops_exceptions import CosmosOpsError

if TYPE_CHECKING:
    from ..bulk_operations.models import BulkExecuteResult, BulkOperationType


class DataOperationError(CosmosOpsError):
    """
    Base exception for all document operation errors.

    Allows calling code to catch every data operation error with a single
    except clause if desired.
    """
    pass


class DocumentValidationError(DataOperationError, ValueError):
    """
    Raised when caller input is malformed.

    Validation always happens before any remote call, so raising this
    exception guarantees that nothing was written.

    Attributes:
        message: Human-readable error message
        validation_errors: Mapping of document ids/indices (or parameter
                           names) to lists of error strings

    Example:
        ```python
        try:
            await manager.create(product)
        except DocumentValidationError as e:
            for key, errors in e.validation_errors.items():
                logger.error(f"{key}: {errors}")
        ```
    """

    def __init__(self, message: str, validation_errors: Optional[Dict[Any, List[str]]] = None):
        super().__init__(message)
        self.validation_errors = validation_errors or {}


class ConflictError(DataOperationError):
    """Raised when a create targets an id that already exists. Never retried."""
    pass


class DocumentNotFoundError(DataOperationError):
    """Raised when a write (replace, hard delete, patch) targets a missing document."""
    pass


class PreconditionFailedError(DataOperationError):
    """Raised when a replace loses an optimistic concurrency check (etag mismatch)."""
    pass


class StoreOperationError(DataOperationError):
    """
    Raised for store errors that are not covered by a more specific type.

    Attributes:
        status_code: HTTP status code reported by the store, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientOperationError(DataOperationError):
    """
    Raised when a transient store error persisted after the retry budget.

    Timeouts, throttling (429), service unavailability (503) and internal
    errors (500) are retried automatically underneath every single remote
    call. This exception is only seen once all attempts were used; the last
    underlying error is chained as ``__cause__``.

    Attributes:
        attempts: Number of attempts that were made
        status_code: Status code of the last failure, if any
    """

    def __init__(self, message: str, attempts: int = 0, status_code: Optional[int] = None):
        super().__init__(message)
        self.attempts = attempts
        self.status_code = status_code


class OperationTimeoutError(DataOperationError):
    """
    Raised when a single remote call exceeds the configured operation timeout.

    Treated as transient by the retry policy.
    """

    def __init__(self, message: str, timeout: Optional[float] = None):
        super().__init__(message)
        self.timeout = timeout


class BulkOperationError(DataOperationError):
    """
    Raised when at least one item of a bulk insert/upsert failed.

    The complete per-item outcome travels with the exception as a typed
    ``result`` attribute, including the items that were durably written.
    Callers inspect it to retry selectively.

    Attributes:
        result: The aggregated BulkExecuteResult
        operation_type: Bulk operation that was executed
        partition_key: Partition key value of the bulk call

    Example:
        ```python
        try:
            await manager.bulk_insert(products, "electronics")
        except BulkOperationError as e:
            logger.error(
                f"Partial failure: {e.successful_count} succeeded, "
                f"{e.failed_count} failed"
            )
            retry_items = [f.item for f in e.result.failed_items if f.is_retryable]
        ```
    """

    def __init__(
        self,
        message: str,
        result: "BulkExecuteResult",
        operation_type: "BulkOperationType",
        partition_key: str
    ):
        super().__init__(message)
        self.result = result
        self.operation_type = operation_type
        self.partition_key = partition_key

    @property
    def successful_count(self) -> int:
        """Number of items that were written."""
        return len(self.result.successful_items)

    @property
    def failed_count(self) -> int:
        """Number of items that failed."""
        return len(self.result.failed_items)

    @property
    def total_count(self) -> int:
        """Total number of items in the bulk call."""
        return self.successful_count + self.failed_count

    @property
    def failed_ids(self) -> List[str]:
        """Ids of the failed items, in aggregation order."""
        return self.result.failed_ids

    @property
    def error_details(self) -> Dict[str, str]:
        """Mapping of failed item ids to error messages."""
        return {
            failure.item.id: failure.error_message
            for failure in self.result.failed_items
        }
