"""Tests for the azure-cosmos adapter against a stubbed ContainerProxy."""

from types import SimpleNamespace

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos import exceptions as cosmos_exceptions

from cosmos_ops.connection_management.cosmos_container import CosmosContainer
from cosmos_ops.connection_management.remote_container import BatchOperationKind, SqlQuery
from cosmos_ops.cosmos_ops_exceptions import StoreConnectionError
from cosmos_ops.data_management_operations.data_ops_exceptions import (
    ConflictError,
    DocumentNotFoundError,
    PreconditionFailedError,
    StoreOperationError,
)


def _respond(hook, status_code, charge="2.5"):
    if hook is not None:
        hook(SimpleNamespace(http_response=SimpleNamespace(
            status_code=status_code, headers={"x-ms-request-charge": charge}
        )))


class _AsyncList:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


class _Pager:
    def __init__(self, pages, hook):
        self._pages = list(pages)
        self._hook = hook
        self.continuation_token = None

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._pages:
            raise StopAsyncIteration
        items, token = self._pages.pop(0)
        _respond(self._hook, 200, "3")
        self.continuation_token = token
        return _AsyncList(items)


class StubProxy:
    """Mimics the subset of azure.cosmos.aio.ContainerProxy the adapter calls."""

    def __init__(self):
        self.error = None
        self.status_code = 200
        self.kwargs = {}
        self.pages = []
        self.batch_results = []

    async def _answer(self, name, resource, **kwargs):
        self.kwargs[name] = kwargs
        if self.error is not None:
            raise self.error
        _respond(kwargs.get("raw_response_hook"), self.status_code)
        return resource

    async def read_item(self, item, partition_key, **kwargs):
        return await self._answer("read_item", {"id": item, "_etag": '"1"'}, **kwargs)

    async def create_item(self, body, **kwargs):
        return await self._answer("create_item", dict(body), **kwargs)

    async def replace_item(self, item, body, **kwargs):
        return await self._answer("replace_item", dict(body), **kwargs)

    async def upsert_item(self, body, **kwargs):
        return await self._answer("upsert_item", dict(body), **kwargs)

    async def delete_item(self, item, partition_key, **kwargs):
        return await self._answer("delete_item", None, **kwargs)

    async def patch_item(self, item, partition_key, patch_operations, **kwargs):
        return await self._answer("patch_item", {"id": item}, patch_operations=patch_operations, **kwargs)

    def query_items(self, query, parameters, **kwargs):
        self.kwargs["query_items"] = dict(kwargs, query=query, parameters=parameters)
        hook = kwargs.get("raw_response_hook")
        pages = self.pages
        return SimpleNamespace(by_page=lambda token: _Pager(pages, hook))

    async def execute_item_batch(self, batch_operations, partition_key, **kwargs):
        self.kwargs["execute_item_batch"] = {"batch_operations": batch_operations, "partition_key": partition_key}
        if self.error is not None:
            raise self.error
        return self.batch_results


@pytest.fixture
def proxy():
    return StubProxy()


@pytest.fixture
def adapter(proxy):
    return CosmosContainer(proxy, "shop", "products")


class TestPointOperations:
    @pytest.mark.asyncio
    async def test_read_reports_status_and_charge(self, adapter):
        response = await adapter.read_item("p-1", "lighting")

        assert response.resource["id"] == "p-1"
        assert response.status_code == 200
        assert response.request_charge == 2.5

    @pytest.mark.asyncio
    async def test_read_missing_returns_none(self, adapter, proxy):
        proxy.error = cosmos_exceptions.CosmosResourceNotFoundError(status_code=404, message="missing")

        assert await adapter.read_item("p-1", "lighting") is None

    @pytest.mark.asyncio
    async def test_upsert_status_distinguishes_creation(self, adapter, proxy):
        proxy.status_code = 201
        assert (await adapter.upsert_item({"id": "p-1"}, "lighting")).status_code == 201

        proxy.status_code = 200
        assert (await adapter.upsert_item({"id": "p-1"}, "lighting")).status_code == 200

    @pytest.mark.asyncio
    async def test_replace_with_etag_uses_if_match(self, adapter, proxy):
        await adapter.replace_item("p-1", {"id": "p-1"}, "lighting", etag='"7"')

        assert proxy.kwargs["replace_item"]["etag"] == '"7"'
        assert "match_condition" in proxy.kwargs["replace_item"]

    @pytest.mark.asyncio
    async def test_replace_without_etag_is_unconditional(self, adapter, proxy):
        await adapter.replace_item("p-1", {"id": "p-1"}, "lighting")

        assert "etag" not in proxy.kwargs["replace_item"]

    @pytest.mark.asyncio
    async def test_patch_passes_operations(self, adapter, proxy):
        operations = [{"op": "set", "path": "/name", "value": "x"}]

        await adapter.patch_item("p-1", "lighting", operations)

        assert proxy.kwargs["patch_item"]["patch_operations"] == operations


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,expected", [
        (cosmos_exceptions.CosmosResourceExistsError(status_code=409, message="exists"), ConflictError),
        (cosmos_exceptions.CosmosResourceNotFoundError(status_code=404, message="gone"), DocumentNotFoundError),
        (cosmos_exceptions.CosmosAccessConditionFailedError(status_code=412, message="etag"),
         PreconditionFailedError),
        (cosmos_exceptions.CosmosHttpResponseError(status_code=429, message="throttled"), StoreOperationError),
        (ServiceRequestError("connection refused"), StoreConnectionError),
    ])
    async def test_sdk_errors_are_translated(self, adapter, proxy, error, expected):
        proxy.error = error

        with pytest.raises(expected):
            await adapter.replace_item("p-1", {"id": "p-1"}, "lighting")

    @pytest.mark.asyncio
    async def test_http_error_keeps_status_code(self, adapter, proxy):
        proxy.error = cosmos_exceptions.CosmosHttpResponseError(status_code=503, message="unavailable")

        with pytest.raises(StoreOperationError) as exc_info:
            await adapter.create_item({"id": "p-1"}, "lighting")
        assert exc_info.value.status_code == 503


class TestQueries:
    @pytest.mark.asyncio
    async def test_query_page_returns_items_and_token(self, adapter, proxy):
        proxy.pages = [([{"id": "a"}, {"id": "b"}], "token-2")]
        query = SqlQuery("SELECT * FROM c WHERE c.category = @pk", {"@pk": "lighting"})

        page = await adapter.query_page(query, partition_key="lighting", max_item_count=2)

        assert [item["id"] for item in page.items] == ["a", "b"]
        assert page.continuation_token == "token-2"
        assert page.request_charge == 3.0
        sent = proxy.kwargs["query_items"]
        assert sent["parameters"] == [{"name": "@pk", "value": "lighting"}]
        assert sent["partition_key"] == "lighting"
        assert sent["max_item_count"] == 2

    @pytest.mark.asyncio
    async def test_cross_partition_query_omits_partition_key(self, adapter, proxy):
        proxy.pages = [([], None)]

        page = await adapter.query_page(SqlQuery("SELECT * FROM c"))

        assert page.items == []
        assert page.continuation_token is None
        assert "partition_key" not in proxy.kwargs["query_items"]


class TestTransactionalBatch:
    @pytest.mark.asyncio
    async def test_successful_batch(self, adapter, proxy):
        proxy.batch_results = [{"statusCode": 201, "requestCharge": 5.0}, {"statusCode": 200, "requestCharge": 4.0}]

        response = await adapter.execute_batch(
            "lighting",
            [(BatchOperationKind.CREATE, {"id": "a"}), (BatchOperationKind.UPSERT, {"id": "b"})]
        )

        assert response.is_success
        assert response.item_status_codes == [201, 200]
        assert response.request_charge == 9.0
        assert proxy.kwargs["execute_item_batch"]["batch_operations"] == [
            ("create", ({"id": "a"},)), ("upsert", ({"id": "b"},))
        ]

    @pytest.mark.asyncio
    async def test_non_transient_whole_batch_rejection_is_reported(self, adapter, proxy):
        proxy.error = cosmos_exceptions.CosmosHttpResponseError(status_code=413, message="too large")

        response = await adapter.execute_batch("lighting", [(BatchOperationKind.CREATE, {"id": "a"})])

        assert not response.is_success
        assert response.status_code == 413
        assert response.item_status_codes == []

    @pytest.mark.asyncio
    async def test_transient_whole_batch_rejection_is_raised(self, adapter, proxy):
        proxy.error = cosmos_exceptions.CosmosHttpResponseError(status_code=429, message="throttled")

        with pytest.raises(StoreOperationError) as exc_info:
            await adapter.execute_batch("lighting", [(BatchOperationKind.CREATE, {"id": "a"})])
        assert exc_info.value.status_code == 429
