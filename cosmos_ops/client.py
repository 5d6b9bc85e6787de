"""
Cosmos Ops Client

This module provides the main client interface for Cosmos DB document
operations. It wires the named connections, the shared count cache
backing store, audit stamping and metrics into one DocumentManager per
registered document type.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Type, Union

from .audit.audit_field_manager import AuditFieldManager
from .audit.user_context import UserContext
from .caching.backing_store import CacheBackingStore, InMemoryCacheStore
from .caching.count_cache import CountCache
from .config.settings import CosmosOpsSettings, load_settings
from .connection_management.connection_manager import ConnectionManager
from .cosmos_ops_exceptions import ConfigurationError
from .data_management_operations.core.manager import DocumentManager
from .data_management_operations.data_ops_config import DataOperationConfig
from .data_management_operations.models.entities import CosmosDocument
from .data_management_operations.utils.metrics import StoreMetrics

# Logger setup
logger = logging.getLogger(__name__)

PartitionKeyExtractor = Callable[[Any], str]


class CosmosOpsClient:
    """
    Main client interface for Cosmos DB document operations.

    Every document type is mapped in settings to a database, a container
    and the clients used for reads and writes. Registering the type with
    its partition key extractor returns the DocumentManager for it.

    Managers share one StoreMetrics instance, one count cache backing store
    and one AuditFieldManager, so metrics and cached counts describe the
    client as a whole.

    Example:
        ```python
        async with CosmosOpsClient("cosmos_ops.yaml") as client:
            products = client.register_document_type(Product, lambda p: p.category)
            await products.create(Product(id="p-1", category="lighting", name="Lamp"))
            print(client.metrics.snapshot().total_request_charge)
        ```
    """

    def __init__(
        self,
        config: Optional[Union[CosmosOpsSettings, str, Path]] = None,
        document_types: Optional[Mapping[Type[CosmosDocument], PartitionKeyExtractor]] = None,
        user_context: Optional[UserContext] = None,
        cache_store: Optional[CacheBackingStore] = None,
        connection_manager: Optional[ConnectionManager] = None
    ):
        """
        Initialize the client.

        Args:
            config: Either a CosmosOpsSettings object or a path to a config YAML file.
                    If None, settings are loaded from the environment.
            document_types: Document types to register right away, mapped to
                            their partition key extractors
            user_context: Principal used for audit fields; defaults to "System"
            cache_store: Backing store for cached counts; defaults to an
                         in-memory store bounded by ``cache.max_entries``
            connection_manager: Connection manager to use instead of one
                                built from the settings

        Raises:
            ConfigurationError: If the settings are invalid or a document type
                                has no container mapping
        """
        # Load configuration
        if config is None:
            self.config = load_settings()
        elif isinstance(config, (str, Path)):
            self.config = load_settings(str(config))
        elif isinstance(config, CosmosOpsSettings):
            self.config = config
        else:
            raise ConfigurationError("Invalid configuration type. Expected CosmosOpsSettings, str, Path, or None.")

        logging.getLogger("cosmos_ops").setLevel(self.config.monitoring.log_level)

        self._connections = connection_manager or ConnectionManager(self.config)
        self._metrics = StoreMetrics()
        self._cache_store = cache_store or InMemoryCacheStore(max_entries=self.config.cache.max_entries)
        self._audit = AuditFieldManager(user_context)
        self._default_operation_config = DataOperationConfig.from_settings(self.config)
        self._managers: Dict[Type[CosmosDocument], DocumentManager] = {}

        for document_type, extractor in (document_types or {}).items():
            self.register_document_type(document_type, extractor)

        logger.info(
            f"CosmosOpsClient initialized with {len(self.config.clients)} clients and "
            f"{len(self._managers)} registered document types"
        )

    @property
    def metrics(self) -> StoreMetrics:
        """Metrics shared by every manager of this client."""
        return self._metrics

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connections

    def register_document_type(
        self,
        document_type: Type[CosmosDocument],
        partition_key_extractor: PartitionKeyExtractor,
        model_name: Optional[str] = None,
        config: Optional[DataOperationConfig] = None
    ) -> DocumentManager:
        """
        Build (or return the existing) DocumentManager for a document type.

        Args:
            document_type: CosmosDocument subclass
            partition_key_extractor: Returns a document's partition key value
            model_name: Name the type is mapped under in settings;
                        defaults to the class name
            config: Per-type operation tunables; defaults to the settings

        Returns:
            DocumentManager for the type

        Raises:
            ConfigurationError: If the settings hold no mapping for the type
        """
        existing = self._managers.get(document_type)
        if existing is not None:
            return existing

        name = model_name or document_type.__name__
        mapping = self.config.get_document_type(name)
        if mapping is None:
            raise ConfigurationError(f"No container mapping configured for document type '{name}'")

        operation_config = config or self._default_operation_config
        read_container = self._connections.get_container(
            mapping.read_client_name, mapping.database_name, mapping.container_name
        )
        write_container = self._connections.get_container(
            mapping.write_client_name, mapping.database_name, mapping.container_name
        )
        count_cache = CountCache(
            write_container.qualified_name,
            document_type.__name__,
            backing_store=self._cache_store,
            metrics=self._metrics,
            fallback_expiry=timedelta(hours=operation_config.count_cache_fallback_expiry_hours)
        )

        manager = DocumentManager(
            document_type,
            partition_key_extractor,
            read_container=read_container,
            write_container=write_container,
            partition_key_field=mapping.partition_key_field,
            audit_field_manager=self._audit,
            count_cache=count_cache,
            config=operation_config,
            metrics=self._metrics
        )
        self._managers[document_type] = manager
        logger.info(
            f"[register_document_type] Registered {name} -> {write_container.qualified_name} "
            f"(read via '{mapping.read_client_name}', write via '{mapping.write_client_name}')"
        )
        return manager

    def get_manager(self, document_type: Type[CosmosDocument]) -> DocumentManager:
        """
        Return the manager of a registered document type.

        Raises:
            ConfigurationError: If the type was never registered
        """
        manager = self._managers.get(document_type)
        if manager is None:
            raise ConfigurationError(f"Document type '{document_type.__name__}' is not registered")
        return manager

    async def check_health(self) -> Dict[str, bool]:
        """Reachability of every configured client, keyed by client name."""
        return {
            client.name: await self._connections.check_server_status(client.name)
            for client in self.config.clients
        }

    async def close(self) -> None:
        """Close the client and release all connections."""
        await self._connections.close()
        logger.info("CosmosOpsClient closed")

    async def __aenter__(self) -> "CosmosOpsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
