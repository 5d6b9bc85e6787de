"""Tests for the transient retry policy."""

import asyncio

import pytest

from cosmos_ops.cosmos_ops_exceptions import StoreConnectionError
from cosmos_ops.data_management_operations.data_ops_config import DataOperationConfig
from cosmos_ops.data_management_operations.data_ops_exceptions import (
    ConflictError,
    OperationTimeoutError,
    StoreOperationError,
    TransientOperationError,
)
from cosmos_ops.data_management_operations.utils.metrics import StoreMetrics
from cosmos_ops.data_management_operations.utils.retry import (
    execute_with_retry,
    is_transient_status,
    is_transient_store_error,
)


class Flaky:
    """Raises the queued errors, then returns ``result``."""

    def __init__(self, *errors, result="ok"):
        self._errors = list(errors)
        self._result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return self._result


@pytest.fixture
def config():
    return DataOperationConfig(transient_retry_delay=0.0, max_retry_delay=0.0, max_transient_retries=3)


class TestClassification:
    @pytest.mark.parametrize("status_code", [408, 429, 500, 503])
    def test_transient_statuses(self, status_code):
        assert is_transient_status(status_code)
        assert is_transient_store_error(StoreOperationError("x", status_code=status_code))

    @pytest.mark.parametrize("status_code", [None, 400, 404, 409, 412, 413])
    def test_permanent_statuses(self, status_code):
        assert not is_transient_store_error(StoreOperationError("x", status_code=status_code))

    def test_timeouts_and_connectivity_are_transient(self):
        assert is_transient_store_error(asyncio.TimeoutError())
        assert is_transient_store_error(OperationTimeoutError("slow", timeout=1.0))
        assert is_transient_store_error(StoreConnectionError("down"))

    def test_conflicts_are_not_transient(self):
        assert not is_transient_store_error(ConflictError("exists"))


class TestExecuteWithRetry:
    @pytest.mark.asyncio
    async def test_transient_failures_are_retried_and_counted(self, config):
        metrics = StoreMetrics()
        operation = Flaky(StoreOperationError("busy", status_code=429), StoreOperationError("busy", status_code=503))

        assert await execute_with_retry(operation, config, "read", metrics) == "ok"
        assert operation.calls == 3
        assert metrics.retry_count == 2
        assert metrics.snapshot().retries_by_operation == {"read": 2}

    @pytest.mark.asyncio
    async def test_conflict_is_not_retried(self, config):
        operation = Flaky(ConflictError("exists"))

        with pytest.raises(ConflictError):
            await execute_with_retry(operation, config, "create")
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_exhaustion_raises_transient_error_with_cause(self, config):
        errors = [StoreOperationError("busy", status_code=429) for _ in range(3)]
        operation = Flaky(*errors)

        with pytest.raises(TransientOperationError) as exc_info:
            await execute_with_retry(operation, config, "read")

        assert exc_info.value.attempts == 3
        assert exc_info.value.status_code == 429
        assert exc_info.value.__cause__ is errors[-1]

    @pytest.mark.asyncio
    async def test_retry_can_be_disabled(self):
        config = DataOperationConfig(retry_transient_errors=False)
        operation = Flaky(StoreOperationError("busy", status_code=429))

        with pytest.raises(TransientOperationError):
            await execute_with_retry(operation, config, "read")
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_timeout_is_applied_per_attempt(self, config):
        calls = []

        async def slow_then_fast():
            calls.append(1)
            if len(calls) == 1:
                await asyncio.sleep(1)
            return "done"

        assert await execute_with_retry(slow_then_fast, config, "read", timeout=0.05) == "done"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_persistent_timeout_surfaces_as_transient_error(self, config):
        async def hang():
            await asyncio.sleep(1)

        with pytest.raises(TransientOperationError) as exc_info:
            await execute_with_retry(hang, config, "read", timeout=0.01)
        assert isinstance(exc_info.value.__cause__, OperationTimeoutError)
