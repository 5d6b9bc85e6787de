"""
Azure Cosmos DB Container Adapter

Implements RemoteContainer on top of the asynchronous azure-cosmos SDK
(``azure.cosmos.aio``). This is the only module that touches the SDK's
container API; SDK exceptions are translated into the cosmos_ops
taxonomy here, at the boundary.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from azure.core import MatchConditions
from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos import exceptions as cosmos_exceptions
from azure.cosmos.aio import ContainerProxy

from ..cosmos_ops_exceptions import StoreConnectionError
from ..data_management_operations.data_ops_exceptions import (
    ConflictError,
    DocumentNotFoundError,
    PreconditionFailedError,
    StoreOperationError,
)
from .remote_container import (
    BatchOperationKind,
    BatchResponse,
    QueryPage,
    RemoteContainer,
    SqlQuery,
    StoreResponse,
)

logger = logging.getLogger(__name__)

REQUEST_CHARGE_HEADER = "x-ms-request-charge"


class _ResponseCapture:
    """
    Pipeline hook recording status code and request charge of raw responses.

    Passed as ``raw_response_hook``; for multi-request operations such as
    paged queries the charges of every underlying request are summed.
    """

    def __init__(self):
        self.status_code: Optional[int] = None
        self.request_charge: float = 0.0

    def __call__(self, pipeline_response) -> None:
        http_response = pipeline_response.http_response
        self.status_code = http_response.status_code
        charge = http_response.headers.get(REQUEST_CHARGE_HEADER)
        if charge:
            try:
                self.request_charge += float(charge)
            except ValueError:
                logger.debug(f"Unparseable request charge header: {charge!r}")


@contextmanager
def _store_errors(description: str):
    """Translate SDK errors raised inside the block into cosmos_ops errors."""
    try:
        yield
    except cosmos_exceptions.CosmosResourceNotFoundError as e:
        raise DocumentNotFoundError(f"{description}: document not found") from e
    except cosmos_exceptions.CosmosResourceExistsError as e:
        raise ConflictError(f"{description}: document already exists") from e
    except cosmos_exceptions.CosmosAccessConditionFailedError as e:
        raise PreconditionFailedError(
            f"{description}: document was modified concurrently (etag mismatch)"
        ) from e
    except cosmos_exceptions.CosmosHttpResponseError as e:
        raise StoreOperationError(f"{description}: {e.message}", status_code=e.status_code) from e
    except (ServiceRequestError, ServiceResponseError) as e:
        raise StoreConnectionError(f"{description}: store unreachable: {e}") from e


class CosmosContainer(RemoteContainer):
    """
    RemoteContainer backed by an ``azure.cosmos.aio.ContainerProxy``.

    The proxy is owned by the CosmosClient it came from; closing is done
    by the ConnectionManager that owns the client.
    """

    def __init__(self, container: ContainerProxy, database_name: str, container_name: str):
        self._container = container
        self._database_name = database_name
        self._container_name = container_name

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def container_name(self) -> str:
        return self._container_name

    async def read_item(self, item_id: str, partition_key: str) -> Optional[StoreResponse]:
        capture = _ResponseCapture()
        try:
            with _store_errors(f"read_item {item_id}"):
                resource = await self._container.read_item(
                    item=item_id,
                    partition_key=partition_key,
                    raw_response_hook=capture,
                )
        except DocumentNotFoundError:
            return None
        return StoreResponse(dict(resource), capture.status_code or 200, capture.request_charge)

    async def create_item(self, body: Dict[str, Any], partition_key: str) -> StoreResponse:
        capture = _ResponseCapture()
        with _store_errors(f"create_item {body.get('id')}"):
            resource = await self._container.create_item(body=body, raw_response_hook=capture)
        return StoreResponse(dict(resource), capture.status_code or 201, capture.request_charge)

    async def replace_item(
        self,
        item_id: str,
        body: Dict[str, Any],
        partition_key: str,
        etag: Optional[str] = None
    ) -> StoreResponse:
        capture = _ResponseCapture()
        kwargs: Dict[str, Any] = {"raw_response_hook": capture}
        if etag:
            kwargs["etag"] = etag
            kwargs["match_condition"] = MatchConditions.IfNotModified
        with _store_errors(f"replace_item {item_id}"):
            resource = await self._container.replace_item(item=item_id, body=body, **kwargs)
        return StoreResponse(dict(resource), capture.status_code or 200, capture.request_charge)

    async def upsert_item(self, body: Dict[str, Any], partition_key: str) -> StoreResponse:
        capture = _ResponseCapture()
        with _store_errors(f"upsert_item {body.get('id')}"):
            resource = await self._container.upsert_item(body=body, raw_response_hook=capture)
        # Unknown status is reported as created so callers over-invalidate rather than under
        return StoreResponse(dict(resource), capture.status_code or 201, capture.request_charge)

    async def delete_item(self, item_id: str, partition_key: str) -> StoreResponse:
        capture = _ResponseCapture()
        with _store_errors(f"delete_item {item_id}"):
            await self._container.delete_item(
                item=item_id,
                partition_key=partition_key,
                raw_response_hook=capture,
            )
        return StoreResponse(None, capture.status_code or 204, capture.request_charge)

    async def patch_item(
        self,
        item_id: str,
        partition_key: str,
        operations: List[Dict[str, Any]]
    ) -> StoreResponse:
        capture = _ResponseCapture()
        with _store_errors(f"patch_item {item_id}"):
            resource = await self._container.patch_item(
                item=item_id,
                partition_key=partition_key,
                patch_operations=operations,
                raw_response_hook=capture,
            )
        return StoreResponse(dict(resource), capture.status_code or 200, capture.request_charge)

    async def query_page(
        self,
        query: SqlQuery,
        partition_key: Optional[str] = None,
        max_item_count: Optional[int] = None,
        continuation_token: Optional[str] = None
    ) -> QueryPage:
        capture = _ResponseCapture()
        kwargs: Dict[str, Any] = {"raw_response_hook": capture}
        if partition_key is not None:
            kwargs["partition_key"] = partition_key
        if max_item_count is not None:
            kwargs["max_item_count"] = max_item_count

        with _store_errors("query_items"):
            paged = self._container.query_items(
                query=query.query_text,
                parameters=query.parameter_list(),
                **kwargs
            )
            pager = paged.by_page(continuation_token)
            try:
                page = await pager.__anext__()
            except StopAsyncIteration:
                return QueryPage(items=[], continuation_token=None, request_charge=capture.request_charge)
            items = [item async for item in page]

        return QueryPage(
            items=items,
            continuation_token=pager.continuation_token or None,
            request_charge=capture.request_charge,
        )

    async def execute_batch(
        self,
        partition_key: str,
        operations: List[Tuple[BatchOperationKind, Dict[str, Any]]]
    ) -> BatchResponse:
        batch_operations = [(kind.value, (body,)) for kind, body in operations]
        try:
            with _store_errors(f"execute_item_batch ({len(operations)} operations)"):
                try:
                    results = await self._container.execute_item_batch(
                        batch_operations=batch_operations,
                        partition_key=partition_key,
                    )
                except cosmos_exceptions.CosmosBatchOperationError as e:
                    # Store-side abort: report per-item statuses instead of raising
                    responses = list(e.operation_responses or [])
                    return BatchResponse(
                        is_success=False,
                        status_code=e.status_code or 400,
                        item_status_codes=[int(r.get("statusCode", 424)) for r in responses],
                        request_charge=sum(float(r.get("requestCharge", 0.0)) for r in responses),
                        error_message=e.message,
                    )
        except StoreOperationError as e:
            # Batch rejected as a whole; transient codes are re-raised for the retry policy
            if e.status_code in (408, 429, 500, 503):
                raise
            return BatchResponse(
                is_success=False,
                status_code=e.status_code or 400,
                item_status_codes=[],
                error_message=str(e),
            )

        return BatchResponse(
            is_success=True,
            status_code=200,
            item_status_codes=[int(r.get("statusCode", 200)) for r in results],
            request_charge=sum(float(r.get("requestCharge", 0.0)) for r in results),
        )
