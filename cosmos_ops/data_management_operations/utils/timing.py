"""
Performance Timing Utilities

Provides utilities for measuring the latency and request charge of
document operations.
"""

import time
import logging
from typing import Optional, Dict, List, Any
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pydantic import BaseModel, Field
import statistics

logger = logging.getLogger(__name__)


class TimingResult(BaseModel):
    """
    Result of a timed operation.

    Attributes:
        operation_name: Name of the operation that was timed
        execution_time: Time taken to execute the operation in seconds
        request_charge: Request units reported for the operation
        timestamp: When the operation started
        success: Whether the operation completed successfully
        metadata: Additional metadata about the operation
    """
    operation_name: str
    execution_time: float = Field(0.0, description="Execution time in seconds")
    request_charge: float = Field(0.0, description="Request units consumed")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


class OperationTimingStats(BaseModel):
    """
    Aggregated timing statistics for all recorded runs of one operation.
    """
    operation_name: str
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    total_request_charge: float = 0.0
    average_execution_time: float = 0.0
    median_execution_time: float = 0.0
    max_execution_time: float = 0.0
    p95_execution_time: float = 0.0

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if self.total_operations == 0:
            return 0.0
        return (self.successful_operations / self.total_operations) * 100.0


class PerformanceTimer:
    """
    Async context manager factory for timing operations.

    The history is bounded; the oldest results are dropped first.
    """

    def __init__(self, enabled: bool = True, max_history: int = 10000):
        self._enabled = enabled
        self._max_history = max_history
        self._timing_history: List[TimingResult] = []

    @asynccontextmanager
    async def time_operation(
        self,
        operation_name: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Time the enclosed block.

        Yields:
            TimingResult the block may enrich (request_charge, metadata)
        """
        result = TimingResult(operation_name=operation_name, metadata=metadata or {})
        start_time = time.perf_counter()

        try:
            yield result
            result.success = True
        except BaseException:
            result.success = False
            raise
        finally:
            result.execution_time = time.perf_counter() - start_time
            if self._enabled:
                self._timing_history.append(result)
                if len(self._timing_history) > self._max_history:
                    del self._timing_history[0]
                status = "succeeded" if result.success else "failed"
                logger.debug(
                    f"Operation '{operation_name}' {status} in {result.execution_time*1000:.2f}ms "
                    f"({result.request_charge:.2f} RU)"
                )

    def get_timing_history(self) -> List[TimingResult]:
        """Get the complete timing history."""
        return self._timing_history.copy()

    def get_operation_stats(self, operation_name: str) -> Optional[OperationTimingStats]:
        """
        Get aggregated statistics for a specific operation type.

        Returns:
            OperationTimingStats, or None if the operation was never timed
        """
        runs = [r for r in self._timing_history if r.operation_name == operation_name]
        if not runs:
            return None

        times = [r.execution_time for r in runs]
        successful = sum(1 for r in runs if r.success)
        return OperationTimingStats(
            operation_name=operation_name,
            total_operations=len(runs),
            successful_operations=successful,
            failed_operations=len(runs) - successful,
            total_request_charge=sum(r.request_charge for r in runs),
            average_execution_time=statistics.mean(times),
            median_execution_time=statistics.median(times),
            max_execution_time=max(times),
            p95_execution_time=statistics.quantiles(times, n=20)[18] if len(times) > 1 else times[0]
        )

    def get_summary(self) -> Dict[str, OperationTimingStats]:
        """Statistics for every operation that was timed."""
        names = {r.operation_name for r in self._timing_history}
        return {name: self.get_operation_stats(name) for name in names}

    def clear_history(self):
        """Clear the timing history."""
        self._timing_history.clear()
