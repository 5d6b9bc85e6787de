"""
Remote Container Abstraction

Defines the narrow asynchronous interface the document operations need
from a remote container, and the normalized results it returns. The
azure-cosmos adapter implements it for real accounts; tests implement it
in memory.

Implementations map store errors into the cosmos_ops taxonomy:
    - 404 on writes       -> DocumentNotFoundError
    - 409                 -> ConflictError
    - 412                 -> PreconditionFailedError
    - everything else     -> StoreOperationError(status_code)
    - unreachable store   -> StoreConnectionError
Point reads never raise on 404, they return None.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class StoreResponse:
    """
    Result of a single point operation.

    Attributes:
        resource: Stored document as returned by the store (None for deletes)
        status_code: HTTP status code, e.g. 201 for a created upsert
        request_charge: Request units consumed by the call
    """
    resource: Optional[Dict[str, Any]]
    status_code: int
    request_charge: float = 0.0


@dataclass
class QueryPage:
    """One page of query results with its continuation token."""
    items: List[Any]
    continuation_token: Optional[str] = None
    request_charge: float = 0.0


class BatchOperationKind(str, Enum):
    CREATE = "create"
    UPSERT = "upsert"


@dataclass
class BatchResponse:
    """
    Outcome of one transactional batch.

    A transactional batch is atomic: when it fails the per-item status
    codes tell which operation caused the abort (the others report 424).

    Attributes:
        is_success: Whether every operation of the batch was applied
        status_code: Overall status code of the batch
        item_status_codes: One status code per submitted operation, in order
        request_charge: Request units consumed by the batch
        error_message: Store error message when the batch failed
    """
    is_success: bool
    status_code: int
    item_status_codes: List[int] = field(default_factory=list)
    request_charge: float = 0.0
    error_message: Optional[str] = None


@dataclass
class SqlQuery:
    """Query text with named parameters (``@name`` placeholders)."""
    query_text: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def parameter_list(self) -> List[Dict[str, Any]]:
        """Parameters in the ``[{"name": ..., "value": ...}]`` wire form."""
        return [{"name": name, "value": value} for name, value in self.parameters.items()]


class RemoteContainer(ABC):
    """
    Asynchronous access to one container of a partitioned document store.
    """

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Name of the database holding the container."""

    @property
    @abstractmethod
    def container_name(self) -> str:
        """Name of the container."""

    @property
    def qualified_name(self) -> str:
        return f"{self.database_name}/{self.container_name}"

    @abstractmethod
    async def read_item(self, item_id: str, partition_key: str) -> Optional[StoreResponse]:
        """Point read. Returns None when the document does not exist."""

    @abstractmethod
    async def create_item(self, body: Dict[str, Any], partition_key: str) -> StoreResponse:
        """Insert a new document. Raises ConflictError when the id exists."""

    @abstractmethod
    async def replace_item(
        self,
        item_id: str,
        body: Dict[str, Any],
        partition_key: str,
        etag: Optional[str] = None
    ) -> StoreResponse:
        """Replace an existing document, optionally only if its etag still matches."""

    @abstractmethod
    async def upsert_item(self, body: Dict[str, Any], partition_key: str) -> StoreResponse:
        """Insert or replace. status_code is 201 when the document was created."""

    @abstractmethod
    async def delete_item(self, item_id: str, partition_key: str) -> StoreResponse:
        """Physically remove a document."""

    @abstractmethod
    async def patch_item(
        self,
        item_id: str,
        partition_key: str,
        operations: List[Dict[str, Any]]
    ) -> StoreResponse:
        """Apply JSON patch operations (``{"op", "path", "value"}``) to a document."""

    @abstractmethod
    async def query_page(
        self,
        query: SqlQuery,
        partition_key: Optional[str] = None,
        max_item_count: Optional[int] = None,
        continuation_token: Optional[str] = None
    ) -> QueryPage:
        """
        Fetch one page of query results.

        A None partition key runs the query across partitions.
        """

    @abstractmethod
    async def execute_batch(
        self,
        partition_key: str,
        operations: List[Tuple[BatchOperationKind, Dict[str, Any]]]
    ) -> BatchResponse:
        """
        Execute operations on one partition as a transactional batch.

        Store-side failures of the batch are reported through BatchResponse,
        not raised. Errors raised before any status exists (network, timeout)
        propagate.
        """

    async def close(self) -> None:
        """Release resources held by this container handle."""
        return None
