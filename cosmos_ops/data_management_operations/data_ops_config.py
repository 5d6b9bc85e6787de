"""
Data Management Operations Configuration

Centralized configuration for document operations, providing a single
source of truth for tunable parameters related to bulk batching,
timeouts, retries and caching.
"""

from dataclasses import dataclass, fields, asdict
from typing import Dict, Any, Optional, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from ..config.settings import CosmosOpsSettings

logger = logging.getLogger(__name__)

# Hard limits imposed by the store's transactional batch and sane client fan-out
MAX_BATCH_SIZE = 100
MAX_CONCURRENCY = 50
MAX_PAGE_SIZE = 1000


@dataclass
class DataOperationConfig:
    """
    Configuration for document operations in Cosmos DB.

    Attributes:
        default_batch_size: Items per transactional batch when the caller does not say.
        max_batch_size: Largest accepted batch size (store limit is 100 operations).
        default_max_concurrency: Concurrent batches when the caller does not say.
        max_concurrency: Largest accepted concurrency.
        max_page_size: Largest accepted page size for paged queries.
        default_operation_timeout: Timeout in seconds per remote call. None means no timeout.
        retry_transient_errors: Whether to retry remote calls failing with transient errors.
        max_transient_retries: Total attempts per remote call, including the first.
        transient_retry_delay: Exponential backoff multiplier in seconds.
        max_retry_delay: Upper bound for one backoff wait in seconds.
        retry_exponential_base: Growth factor between waits.
        count_cache_fallback_expiry_hours: Absolute expiry of cached counts.
        probe_existence_on_upsert: Read the current document before a single
                                   upsert of an item lacking created_on_utc.
        enable_timing: Whether to record timings per operation.

    Example:
        ```python
        config = DataOperationConfig(
            default_batch_size=50,
            default_operation_timeout=10.0
        )
        manager = client.register_document_type(Product, lambda p: p.category, config=config)
        ```
    """

    # Bulk settings
    default_batch_size: int = 100
    max_batch_size: int = MAX_BATCH_SIZE
    default_max_concurrency: int = 10
    max_concurrency: int = MAX_CONCURRENCY

    # Query settings
    max_page_size: int = MAX_PAGE_SIZE

    # Timeout settings (seconds, None means no timeout)
    default_operation_timeout: Optional[float] = None

    # Retry settings for transient store failures
    retry_transient_errors: bool = True
    max_transient_retries: int = 3
    transient_retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    retry_exponential_base: float = 2.0

    # Count cache
    count_cache_fallback_expiry_hours: float = 24.0

    # Upsert audit behavior
    probe_existence_on_upsert: bool = False

    # Performance monitoring
    enable_timing: bool = True

    def __post_init__(self):
        """Validate configuration parameters after initialization."""
        if self.max_batch_size > MAX_BATCH_SIZE:
            logger.warning(
                f"max_batch_size ({self.max_batch_size}) exceeds the transactional batch "
                f"limit ({MAX_BATCH_SIZE}). Setting to {MAX_BATCH_SIZE}."
            )
            self.max_batch_size = MAX_BATCH_SIZE

        if self.default_batch_size > self.max_batch_size:
            logger.warning(
                f"default_batch_size ({self.default_batch_size}) exceeds "
                f"max_batch_size ({self.max_batch_size}). Setting to max_batch_size."
            )
            self.default_batch_size = self.max_batch_size

        if self.default_max_concurrency > self.max_concurrency:
            logger.warning(
                f"default_max_concurrency ({self.default_max_concurrency}) exceeds "
                f"max_concurrency ({self.max_concurrency}). Setting to max_concurrency."
            )
            self.default_max_concurrency = self.max_concurrency

        if self.default_batch_size < 1 or self.default_max_concurrency < 1:
            raise ValueError("default_batch_size and default_max_concurrency must be at least 1")

        if self.max_transient_retries < 1:
            raise ValueError("max_transient_retries must be at least 1")

        if self.transient_retry_delay < 0 or self.max_retry_delay < 0:
            raise ValueError("retry delays must be non-negative")

        if self.default_operation_timeout is not None and self.default_operation_timeout <= 0:
            raise ValueError("default_operation_timeout must be positive or None")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'DataOperationConfig':
        """
        Create configuration from a dictionary.

        Unknown keys are ignored.

        Example:
            ```python
            config = DataOperationConfig.from_dict({'default_batch_size': 50})
            ```
        """
        valid_fields = {f.name for f in fields(cls)}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered_dict)

    @classmethod
    def from_settings(cls, settings: "CosmosOpsSettings") -> 'DataOperationConfig':
        """Build the per-manager configuration from loaded settings."""
        return cls(
            default_batch_size=settings.operations.default_batch_size,
            default_max_concurrency=settings.operations.default_max_concurrency,
            default_operation_timeout=settings.operations.operation_timeout,
            retry_transient_errors=settings.retry.enabled,
            max_transient_retries=settings.retry.max_attempts,
            transient_retry_delay=settings.retry.initial_delay,
            max_retry_delay=settings.retry.max_delay,
            retry_exponential_base=settings.retry.exponential_base,
            count_cache_fallback_expiry_hours=settings.cache.fallback_expiry_hours,
            probe_existence_on_upsert=settings.operations.probe_existence_on_upsert,
            enable_timing=settings.operations.enable_timing,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def resolve_batch_size(self, batch_size: Optional[int]) -> int:
        """Return ``batch_size`` or the configured default when None. Bounds are checked by the validator."""
        return self.default_batch_size if batch_size is None else batch_size

    def resolve_max_concurrency(self, max_concurrency: Optional[int]) -> int:
        return self.default_max_concurrency if max_concurrency is None else max_concurrency
