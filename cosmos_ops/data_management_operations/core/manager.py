"""
Core Document Manager

Provides the primary interface for document operations on one Cosmos DB
container: single-item CRUD with audit stamping and soft delete, streamed
and paged queries, cached counts and bulk writes.

Typical usage from external projects:

    from cosmos_ops import CosmosOpsClient, DeleteMode

    client = CosmosOpsClient(load_settings("cosmos_ops.yaml"))
    products = client.register_document_type(Product, lambda p: p.category)

    created = await products.create(Product(id="p-1", category="lighting", name="Lamp"))
    await products.delete("p-1", "lighting", mode=DeleteMode.SOFT)
    active = await products.get_count_with_cache("lighting", max_age_minutes=5)
"""

import logging
from typing import (
    Any, AsyncIterator, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Type, TypeVar
)

from ...audit.audit_field_manager import AuditFieldManager
from ...bulk_operations.engine import BulkExecutor
from ...bulk_operations.models import BulkExecuteResult, BulkOperationType
from ...caching.count_cache import CountCache
from ...connection_management.remote_container import QueryPage, RemoteContainer, SqlQuery
from ...cosmos_ops_exceptions import QueryError
from ...query_operations.filters import PropertyFilter
from ...query_operations.patch import PatchSpecification
from ...query_operations.query_builder import DocumentQueryBuilder
from ...query_operations.specification import SqlSpecification
from ..data_ops_config import DataOperationConfig
from ..data_ops_exceptions import BulkOperationError
from ..models.entities import CosmosDocument, DeleteMode, PageResult
from ..utils.metrics import StoreMetrics
from ..utils.retry import execute_with_retry
from ..utils.timing import PerformanceTimer
from .validator import DocumentValidator

logger = logging.getLogger(__name__)

# Type variable for document type, bound to the base document model
T = TypeVar('T', bound=CosmosDocument)


class DocumentManager(Generic[T]):
    """
    Provides a high-level, asynchronous interface for one document type.

    Reads go to the read container and writes to the write container, which
    may be routed through different clients. Every remote call is wrapped in
    the transient retry policy, every write is audit-stamped, and every write
    that can change a partition's count invalidates its cached count.

    All public methods are asynchronous; streaming queries are async
    generators that fetch pages lazily.
    """

    def __init__(
        self,
        document_type: Type[T],
        partition_key_extractor: Callable[[T], str],
        read_container: RemoteContainer,
        write_container: RemoteContainer,
        partition_key_field: str,
        audit_field_manager: Optional[AuditFieldManager] = None,
        count_cache: Optional[CountCache] = None,
        config: Optional[DataOperationConfig] = None,
        metrics: Optional[StoreMetrics] = None
    ):
        """
        Initialize DocumentManager with injected dependencies.

        Args:
            document_type: CosmosDocument subclass handled by this manager
            partition_key_extractor: Returns a document's partition key value
            read_container: Container used for reads and queries
            write_container: Container used for writes
            partition_key_field: Document field holding the partition key value,
                                 used when building queries
            audit_field_manager: Audit stamping; defaults to the "System" principal
            count_cache: Count cache; defaults to a private in-memory cache
            config: Configuration for document operations
            metrics: Shared metrics; defaults to a private instance

        Example:
            ```python
            manager = DocumentManager(
                Product,
                lambda p: p.category,
                read_container=container,
                write_container=container,
                partition_key_field="category"
            )
            ```
        """
        self._document_type = document_type
        self._type_name = document_type.__name__
        self._extract_partition_key = partition_key_extractor
        self._read = read_container
        self._write = write_container
        self._config = config or DataOperationConfig()
        self._metrics = metrics or StoreMetrics()
        self._audit = audit_field_manager or AuditFieldManager()
        self._count_cache = count_cache or CountCache(
            write_container.qualified_name, self._type_name, metrics=self._metrics
        )
        self._validator = DocumentValidator(partition_key_extractor)
        self._queries = DocumentQueryBuilder(partition_key_field)
        self._bulk = BulkExecutor(
            write_container,
            self._audit,
            self._count_cache,
            config=self._config,
            metrics=self._metrics,
            type_name=self._type_name
        )
        self._timer = PerformanceTimer(enabled=self._config.enable_timing)

        logger.debug(
            f"DocumentManager initialized for {self._type_name} "
            f"(read={read_container.qualified_name}, write={write_container.qualified_name})"
        )

    @property
    def document_type(self) -> Type[T]:
        return self._document_type

    @property
    def metrics(self) -> StoreMetrics:
        return self._metrics

    @property
    def timer(self) -> PerformanceTimer:
        return self._timer

    async def _call(self, operation_name: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Run one remote call under the retry policy and record its request charge."""
        response = await execute_with_retry(operation, self._config, operation_name, self._metrics)
        charge = getattr(response, "request_charge", 0.0) if response is not None else 0.0
        self._metrics.record_request_charge(operation_name, charge)
        return response

    def _to_document(self, resource: Dict[str, Any]) -> T:
        return self._document_type.from_store_dict(resource)

    # ------------------------------------------------------------------
    # Single-item operations
    # ------------------------------------------------------------------

    async def get_item(self, item_id: str, partition_key: str, include_deleted: bool = False) -> Optional[T]:
        """
        Point read a document.

        Args:
            item_id: Document id
            partition_key: Partition key value
            include_deleted: Whether a soft-deleted document is returned

        Returns:
            The document, or None when it does not exist or is soft-deleted
            and include_deleted is False
        """
        self._validator.validate_id_and_partition_key(item_id, partition_key, "get_item")

        async with self._timer.time_operation("get_item", {"id": item_id}) as timing:
            response = await self._call("get_item", lambda: self._read.read_item(item_id, partition_key))
            if response is None:
                logger.debug(f"[get_item] {self._type_name} '{item_id}' not found in '{partition_key}'")
                return None
            timing.request_charge = response.request_charge

            document = self._to_document(response.resource)
            if document.deleted and not include_deleted:
                logger.debug(f"[get_item] {self._type_name} '{item_id}' is soft-deleted")
                return None
            return document

    async def create(self, item: T) -> T:
        """
        Insert a new document.

        The item is create-stamped in place before it is written.

        Returns:
            The stored document, including its etag

        Raises:
            DocumentValidationError: If the item is invalid (nothing written)
            ConflictError: If a document with the same id exists in the partition
        """
        self._validator.validate_document(item, "create")
        partition_key = self._extract_partition_key(item)

        async with self._timer.time_operation("create", {"id": item.id}) as timing:
            self._audit.set_create_audit_fields(item)
            body = item.to_store_dict()
            response = await self._call("create", lambda: self._write.create_item(body, partition_key))
            timing.request_charge = response.request_charge

            await self._count_cache.invalidate(partition_key)
            logger.info(
                f"[create] Created {self._type_name} '{item.id}' in '{partition_key}' "
                f"({response.request_charge:.2f} RU)"
            )
            return self._to_document(response.resource)

    async def replace(self, item: T) -> T:
        """
        Replace an existing document.

        The item is update-stamped in place (created_* preserved). When the
        item carries an etag, the replace only succeeds if the stored
        document still has that etag.

        Raises:
            DocumentValidationError: If the item is invalid or lacks created_on_utc
            DocumentNotFoundError: If the document does not exist
            PreconditionFailedError: If the document was modified concurrently
        """
        self._validator.validate_document(item, "replace")
        partition_key = self._extract_partition_key(item)

        async with self._timer.time_operation("replace", {"id": item.id}) as timing:
            self._audit.set_update_audit_fields(item)
            body = item.to_store_dict()
            response = await self._call(
                "replace",
                lambda: self._write.replace_item(item.id, body, partition_key, etag=item.etag)
            )
            timing.request_charge = response.request_charge
            logger.info(
                f"[replace] Replaced {self._type_name} '{item.id}' in '{partition_key}' "
                f"({response.request_charge:.2f} RU)"
            )
            return self._to_document(response.resource)

    async def upsert(self, item: T) -> T:
        """
        Insert or replace a document.

        An item without created_on_utc is stamped as new. With
        ``probe_existence_on_upsert`` enabled, such an item is first looked
        up and the stored created_* values are carried forward.

        The count cache is invalidated only when the store reports that the
        document was created.
        """
        self._validator.validate_document(item, "upsert")
        partition_key = self._extract_partition_key(item)

        async with self._timer.time_operation("upsert", {"id": item.id}) as timing:
            revived = False
            if self._config.probe_existence_on_upsert and item.created_on_utc is None:
                existing = await self.get_item(item.id, partition_key, include_deleted=True)
                if existing is not None:
                    item.created_on_utc = existing.created_on_utc
                    item.created_by = existing.created_by
                    revived = existing.deleted and not item.deleted
                    logger.debug(f"[upsert] Carried created_* forward for existing '{item.id}'")

            self._audit.set_upsert_audit_fields(item)
            body = item.to_store_dict()
            response = await self._call("upsert", lambda: self._write.upsert_item(body, partition_key))
            timing.request_charge = response.request_charge

            created = response.status_code == 201
            if created or revived:
                await self._count_cache.invalidate(partition_key)
            logger.info(
                f"[upsert] {'Created' if created else 'Replaced'} {self._type_name} '{item.id}' "
                f"in '{partition_key}' ({response.request_charge:.2f} RU)"
            )
            return self._to_document(response.resource)

    async def delete(self, item_id: str, partition_key: str, mode: DeleteMode = DeleteMode.HARD) -> None:
        """
        Delete a document.

        Args:
            item_id: Document id
            partition_key: Partition key value
            mode: SOFT flags the document as deleted (a missing document is a
                  no-op); HARD removes it physically

        Raises:
            DocumentNotFoundError: On hard delete of a missing document
            PreconditionFailedError: If a soft delete raced another write
        """
        self._validator.validate_id_and_partition_key(item_id, partition_key, "delete")

        async with self._timer.time_operation("delete", {"id": item_id, "mode": mode.value}) as timing:
            if mode == DeleteMode.SOFT:
                existing = await self.get_item(item_id, partition_key, include_deleted=True)
                if existing is None:
                    logger.info(f"[delete] {self._type_name} '{item_id}' not found, nothing to soft delete")
                    return
                existing.deleted = True
                self._audit.set_update_audit_fields(existing)
                body = existing.to_store_dict()
                response = await self._call(
                    "soft_delete",
                    lambda: self._write.replace_item(item_id, body, partition_key, etag=existing.etag)
                )
            else:
                response = await self._call("delete", lambda: self._write.delete_item(item_id, partition_key))

            timing.request_charge = response.request_charge
            await self._count_cache.invalidate(partition_key)
            logger.info(
                f"[delete] {mode.value.capitalize()}-deleted {self._type_name} '{item_id}' "
                f"in '{partition_key}' ({response.request_charge:.2f} RU)"
            )

    async def restore(self, item_id: str, partition_key: str) -> Optional[T]:
        """
        Bring a soft-deleted document back.

        Returns:
            The active document, or None if it does not exist
        """
        self._validator.validate_id_and_partition_key(item_id, partition_key, "restore")

        existing = await self.get_item(item_id, partition_key, include_deleted=True)
        if existing is None:
            return None
        if not existing.deleted:
            return existing

        existing.deleted = False
        self._audit.set_update_audit_fields(existing)
        body = existing.to_store_dict()
        response = await self._call(
            "restore",
            lambda: self._write.replace_item(item_id, body, partition_key, etag=existing.etag)
        )
        await self._count_cache.invalidate(partition_key)
        logger.info(f"[restore] Restored {self._type_name} '{item_id}' in '{partition_key}'")
        return self._to_document(response.resource)

    async def patch(self, item_id: str, partition_key: str, patch_spec: PatchSpecification) -> T:
        """
        Partially update a document.

        updated_on_utc and updated_by are appended to the operations, so a
        patch is audit-stamped like any other update. Audit fields, the id
        and the soft-delete flag cannot be patched directly.

        Raises:
            DocumentValidationError: If the patch is empty or touches protected fields
            DocumentNotFoundError: If the document does not exist
        """
        self._validator.validate_id_and_partition_key(item_id, partition_key, "patch")
        self._validator.validate_patch(patch_spec)

        operations = patch_spec.to_store_operations() + self._audit.update_patch_operations()
        async with self._timer.time_operation("patch", {"id": item_id}) as timing:
            response = await self._call(
                "patch",
                lambda: self._write.patch_item(item_id, partition_key, operations)
            )
            timing.request_charge = response.request_charge
            logger.info(
                f"[patch] Applied {len(patch_spec.operations)} operations to {self._type_name} "
                f"'{item_id}' ({response.request_charge:.2f} RU)"
            )
            return self._to_document(response.resource)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _fetch_page(
        self,
        operation_name: str,
        query: SqlQuery,
        partition_key: Optional[str],
        page_size: Optional[int],
        continuation_token: Optional[str]
    ) -> QueryPage:
        page = await self._call(
            operation_name,
            lambda: self._read.query_page(
                query,
                partition_key=partition_key,
                max_item_count=page_size,
                continuation_token=continuation_token
            )
        )
        logger.info(
            f"[{operation_name}] Query page returned {len(page.items)} items "
            f"({page.request_charge:.2f} RU)"
        )
        return page

    async def _iterate_pages(
        self,
        operation_name: str,
        query: SqlQuery,
        partition_key: Optional[str] = None,
        page_size: Optional[int] = None
    ) -> AsyncIterator[QueryPage]:
        continuation_token = None
        while True:
            page = await self._fetch_page(operation_name, query, partition_key, page_size, continuation_token)
            yield page
            continuation_token = page.continuation_token
            if not continuation_token:
                return

    async def _stream(
        self,
        operation_name: str,
        query: SqlQuery,
        partition_key: Optional[str] = None,
        page_size: Optional[int] = None,
        take: Optional[int] = None
    ) -> AsyncIterator[T]:
        remaining = take
        if remaining is not None and remaining <= 0:
            return
        async for page in self._iterate_pages(operation_name, query, partition_key, page_size):
            for resource in page.items:
                yield self._to_document(resource)
                if remaining is not None:
                    remaining -= 1
                    if remaining == 0:
                        return

    def get_all(self, partition_key: Optional[str] = None) -> AsyncIterator[T]:
        """
        Stream every active document, optionally limited to one partition.

        Example:
            ```python
            async for product in manager.get_all("lighting"):
                ...
            ```
        """
        if partition_key is not None:
            self._validator.validate_partition_key(partition_key, "get_all")
        query = self._queries.select_all(partition_key)
        return self._stream("get_all", query, partition_key=partition_key)

    def get_all_paged(self, limit: int, offset: int, count: int) -> AsyncIterator[T]:
        """
        Stream active documents of one OFFSET/LIMIT window, stopping after ``count`` items.

        Args:
            limit: Window size (1..1000), also used as page size
            offset: Number of documents to skip
            count: Maximum number of documents to yield
        """
        self._validator.validate_offset_query(limit, offset, count)
        query = self._queries.select_offset_limit(offset, limit)
        return self._stream("get_all_paged", query, page_size=limit, take=count)

    def query(self, spec: SqlSpecification) -> AsyncIterator[T]:
        """
        Stream the results of a caller-supplied query across partitions.

        The query runs as written; add your own soft-delete condition if needed.
        """
        return self._stream("query", spec.to_query())

    async def bulk_read(
        self,
        spec: SqlSpecification,
        partition_key: str,
        batch_size: int = 100
    ) -> AsyncIterator[List[T]]:
        """
        Stream the results of a partition-scoped query one page at a time.

        Yields:
            Lists of at most ``batch_size`` documents
        """
        self._validator.validate_partition_key(partition_key, "bulk_read")
        self._validator.validate_page_size(batch_size, "bulk_read")
        async for page in self._iterate_pages("bulk_read", spec.to_query(), partition_key, batch_size):
            if page.items:
                yield [self._to_document(resource) for resource in page.items]

    async def get_page(
        self,
        spec: SqlSpecification,
        partition_key: str,
        page_size: int,
        continuation_token: Optional[str] = None,
        include_count: bool = False
    ) -> PageResult[T]:
        """
        Fetch one page of a partition-scoped query.

        Args:
            spec: Query to run
            partition_key: Partition key value
            page_size: Maximum items on the page (1..1000)
            continuation_token: Token from the previous page, None for the first
            include_count: Compute the total matching count; only honored on
                           the first page

        Returns:
            PageResult with items, the next continuation token and, on the
            first page when requested, the total count

        Raises:
            QueryError: If include_count is set for a query that cannot be counted
        """
        self._validator.validate_partition_key(partition_key, "get_page")
        self._validator.validate_page_size(page_size, "get_page")

        async with self._timer.time_operation("get_page", {"partition_key": partition_key}) as timing:
            page = await self._fetch_page(
                "get_page", spec.to_query(), partition_key, page_size, continuation_token
            )
            timing.request_charge = page.request_charge

            total_count = None
            if include_count and not continuation_token:
                total_count = await self._scalar("get_page_count", spec.to_count_query(), partition_key)

            return PageResult[self._document_type](
                items=[self._to_document(resource) for resource in page.items],
                continuation_token=page.continuation_token,
                total_count=total_count
            )

    async def _scalar(self, operation_name: str, query: SqlQuery, partition_key: Optional[str]) -> int:
        page = await self._fetch_page(operation_name, query, partition_key, None, None)
        if not page.items:
            return 0
        value = page.items[0]
        if not isinstance(value, int):
            raise QueryError(f"[{operation_name}] Expected an integer result, got {value!r}")
        return value

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    async def get_count(self, partition_key: str) -> int:
        """Number of active (not soft-deleted) documents in a partition."""
        self._validator.validate_partition_key(partition_key, "get_count")
        count = await self._scalar("get_count", self._queries.count_active(partition_key), partition_key)
        logger.info(f"[get_count] {self._type_name} count for '{partition_key}': {count}")
        return count

    async def get_total_count(self, partition_key: str) -> int:
        """Number of documents in a partition, soft-deleted ones included."""
        self._validator.validate_partition_key(partition_key, "get_total_count")
        count = await self._scalar("get_total_count", self._queries.count_total(partition_key), partition_key)
        logger.info(f"[get_total_count] {self._type_name} total count for '{partition_key}': {count}")
        return count

    async def get_count_with_cache(self, partition_key: str, max_age_minutes: float) -> int:
        """
        Number of active documents, served from cache when fresh enough.

        Args:
            partition_key: Partition key value
            max_age_minutes: Maximum acceptable age of a cached count; 0
                             always queries the store

        Raises:
            DocumentValidationError: If max_age_minutes is negative
        """
        self._validator.validate_partition_key(partition_key, "get_count_with_cache")
        self._validator.validate_cache_expiry(max_age_minutes)
        return await self._count_cache.get_with_cache(
            partition_key,
            max_age_minutes,
            lambda: self.get_count(partition_key)
        )

    async def invalidate_count_cache(self, partition_key: str) -> None:
        """Drop the cached count of a partition."""
        await self._count_cache.invalidate(partition_key)

    # ------------------------------------------------------------------
    # Filter queries
    # ------------------------------------------------------------------

    def get_all_by_array_property(
        self,
        array_name: str,
        element_property_name: str,
        value: Any,
        include_deleted: bool = False
    ) -> AsyncIterator[T]:
        """
        Stream documents whose array holds an element with a matching property.

        Example:
            ```python
            # documents with {"tags": [{"name": "sale"}, ...]}
            async for product in manager.get_all_by_array_property("tags", "name", "sale"):
                ...
            ```
        """
        self._validator.validate_array_property_query(array_name, element_property_name)
        query = self._queries.array_contains(array_name, element_property_name, value, include_deleted)
        return self._stream("get_all_by_array_property", query)

    def get_all_by_property_comparison(
        self,
        filters: Sequence[PropertyFilter],
        include_deleted: bool = False
    ) -> AsyncIterator[T]:
        """Stream documents matching every property filter."""
        self._validator.validate_property_filters(filters)
        query = self._queries.property_comparison(filters, include_deleted)
        return self._stream("get_all_by_property_comparison", query)

    # ------------------------------------------------------------------
    # Bulk writes
    # ------------------------------------------------------------------

    async def bulk_insert(
        self,
        items: Sequence[T],
        partition_key: str,
        batch_size: Optional[int] = None,
        max_concurrency: Optional[int] = None
    ) -> BulkExecuteResult:
        """
        Create many documents of one partition.

        Args:
            items: Documents whose partition key equals ``partition_key``
            partition_key: Partition key value
            batch_size: Items per transactional batch (1..100, default 100)
            max_concurrency: Batches in flight (1..50, default 10)

        Returns:
            BulkExecuteResult when every item was written

        Raises:
            DocumentValidationError: If any item or parameter is invalid (nothing written)
            BulkOperationError: If any item failed; successes stay written
        """
        return await self._bulk_write(items, partition_key, batch_size, max_concurrency, BulkOperationType.CREATE)

    async def bulk_upsert(
        self,
        items: Sequence[T],
        partition_key: str,
        batch_size: Optional[int] = None,
        max_concurrency: Optional[int] = None
    ) -> BulkExecuteResult:
        """Insert or replace many documents of one partition. See bulk_insert."""
        return await self._bulk_write(items, partition_key, batch_size, max_concurrency, BulkOperationType.UPSERT)

    async def _bulk_write(
        self,
        items: Sequence[T],
        partition_key: str,
        batch_size: Optional[int],
        max_concurrency: Optional[int],
        operation_type: BulkOperationType
    ) -> BulkExecuteResult:
        items = list(items)
        batch_size = self._config.resolve_batch_size(batch_size)
        max_concurrency = self._config.resolve_max_concurrency(max_concurrency)
        operation = f"bulk_{operation_type.value}"

        self._validator.validate_bulk_operation_parameters(batch_size, max_concurrency)
        if not items:
            logger.warning(f"[{operation}] No {self._type_name} items provided")
            return BulkExecuteResult()
        self._validator.validate_bulk_items(items, partition_key, operation)

        async with self._timer.time_operation(
            operation,
            {"partition_key": partition_key, "item_count": len(items), "batch_size": batch_size}
        ) as timing:
            try:
                result = await self._bulk.execute(
                    items, partition_key, batch_size, max_concurrency, operation_type
                )
            except BulkOperationError as e:
                timing.request_charge = e.result.total_request_charge
                raise
            timing.request_charge = result.total_request_charge
            return result
