"""
Bulk Operation Models

Per-item and aggregated outcomes of bulk writes.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..data_management_operations.utils.retry import is_transient_status


class BulkOperationType(str, Enum):
    """Write operation applied to every item of a bulk call."""
    CREATE = "create"
    UPSERT = "upsert"


class BulkItemFailure(BaseModel):
    """
    One failed item of a bulk call.

    Attributes:
        item: The document that was not written
        status_code: Store status code for the item, if the store reported one
        error_message: Human-readable reason
        cause: Exception raised by the submission, when no status was available
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    item: Any
    status_code: Optional[int] = None
    error_message: str
    cause: Optional[BaseException] = Field(None, exclude=True)

    @property
    def is_retryable(self) -> bool:
        """True for throttling, timeouts and temporary server errors (408, 429, 500, 503)."""
        return is_transient_status(self.status_code)


class BatchExecuteResult(BaseModel):
    """Outcome of one transactional batch of a bulk call."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    batch_index: int
    successful_items: List[Any] = Field(default_factory=list)
    failed_items: List[BulkItemFailure] = Field(default_factory=list)
    request_charge: float = 0.0


class BulkExecuteResult(BaseModel):
    """
    Aggregated outcome of a bulk call.

    Created empty per call and filled from the batch results; returned to
    the caller on full success or carried by BulkOperationError otherwise.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    successful_items: List[Any] = Field(default_factory=list)
    failed_items: List[BulkItemFailure] = Field(default_factory=list)
    total_request_charge: float = 0.0

    @property
    def is_success(self) -> bool:
        return not self.failed_items

    @property
    def total_count(self) -> int:
        return len(self.successful_items) + len(self.failed_items)

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage; an empty call counts as fully successful."""
        if self.total_count == 0:
            return 100.0
        return (len(self.successful_items) / self.total_count) * 100.0

    @property
    def failed_ids(self) -> List[str]:
        return [getattr(failure.item, "id", None) for failure in self.failed_items]

    def add_batch(self, batch_result: "BatchExecuteResult") -> None:
        self.successful_items.extend(batch_result.successful_items)
        self.failed_items.extend(batch_result.failed_items)
        self.total_request_charge += batch_result.request_charge
