"""
Retry Utilities for Data Management Operations

Every single remote call made by DocumentManager and the bulk engine goes
through ``execute_with_retry``: it applies the optional per-call timeout
and retries transient store failures with exponential backoff (tenacity).

Transient means:
    - HTTP 408, 429, 500, 503 reported by the store
    - per-call timeouts (OperationTimeoutError, asyncio.TimeoutError)
    - an unreachable store (StoreConnectionError)

Conflicts, not-found, precondition failures and validation errors are
never retried.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ...cosmos_ops_exceptions import StoreConnectionError
from ..data_ops_config import DataOperationConfig
from ..data_ops_exceptions import (
    OperationTimeoutError,
    StoreOperationError,
    TransientOperationError,
)
from .metrics import StoreMetrics

logger = logging.getLogger(__name__)

T = TypeVar('T')

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 503})


def is_transient_status(status_code: Optional[int]) -> bool:
    return status_code in TRANSIENT_STATUS_CODES


def is_transient_store_error(exception: BaseException) -> bool:
    """
    Determine if an exception represents a transient store condition.

    Args:
        exception: Exception to check

    Returns:
        True if the failed call should be attempted again
    """
    if isinstance(exception, (OperationTimeoutError, asyncio.TimeoutError, StoreConnectionError)):
        return True
    if isinstance(exception, StoreOperationError):
        return is_transient_status(exception.status_code)
    return False


async def _call_with_timeout(
    operation: Callable[[], Awaitable[T]],
    timeout: Optional[float],
    operation_name: str
) -> T:
    if timeout is None:
        return await operation()
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(
            f"{operation_name} exceeded timeout of {timeout}s",
            timeout=timeout
        ) from e


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: DataOperationConfig,
    operation_name: str,
    metrics: Optional[StoreMetrics] = None,
    timeout: Optional[float] = None
) -> T:
    """
    Execute one remote call with timeout and transient-error retry.

    The operation is a zero-argument callable returning a fresh awaitable
    per attempt (typically a lambda around a RemoteContainer method).

    Args:
        operation: Callable producing the awaitable remote call
        config: Data operation configuration containing retry settings
        operation_name: Human-readable name for logging and metrics
        metrics: Shared metrics receiving one retry count per retry
        timeout: Per-attempt timeout in seconds; defaults to
                 config.default_operation_timeout

    Returns:
        Result of the operation if successful

    Raises:
        TransientOperationError: If every attempt failed transiently
        Any other exception: Propagated immediately without retry

    Example:
        ```python
        response = await execute_with_retry(
            lambda: container.read_item(item_id, partition_key),
            config,
            "get_item",
            metrics
        )
        ```
    """
    if timeout is None:
        timeout = config.default_operation_timeout
    attempts = config.max_transient_retries if config.retry_transient_errors else 1

    def _before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            f"[{operation_name}] Transient error (attempt {retry_state.attempt_number}/"
            f"{attempts}): {error}. Retrying in {retry_state.next_action.sleep:.2f}s..."
        )
        if metrics is not None:
            metrics.record_retry(operation_name)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(
            multiplier=config.transient_retry_delay,
            max=config.max_retry_delay,
            exp_base=config.retry_exponential_base
        ),
        retry=retry_if_exception(is_transient_store_error),
        before_sleep=_before_sleep,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await _call_with_timeout(operation, timeout, operation_name)
    except TransientOperationError:
        raise
    except Exception as e:
        if not is_transient_store_error(e):
            raise
        logger.error(f"[{operation_name}] Transient error persisted after {attempts} attempts: {e}")
        raise TransientOperationError(
            f"{operation_name} failed after {attempts} attempts: {e}",
            attempts=attempts,
            status_code=getattr(e, "status_code", None)
        ) from e
