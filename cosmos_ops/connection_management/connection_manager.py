"""
Cosmos Connection Manager

This module owns the named Cosmos DB clients declared in settings and
hands out RemoteContainer handles for (client, database, container)
triples.
"""

import asyncio
import logging
from typing import Dict, Optional, Tuple

from azure.core.exceptions import AzureError
from azure.cosmos.aio import CosmosClient

from ..config import CosmosOpsSettings, CosmosClientSettings, load_settings
from .connection_exceptions import ConnectionClosedError, ConnectionInitializationError
from .cosmos_container import CosmosContainer
from .remote_container import RemoteContainer

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    High-level manager for Cosmos DB connections.

    One asynchronous CosmosClient is created per configured client name, on
    first use, and shared by every container handle that refers to it. A
    CosmosClient keeps its own HTTP connection pool, so sharing one client
    per account is what keeps socket usage bounded.

    Example:
        ```python
        manager = ConnectionManager(settings)
        container = manager.get_container("primary", "shop", "products")
        ...
        await manager.close()
        ```
    """

    def __init__(self, config: Optional[CosmosOpsSettings] = None):
        """
        Args:
            config: Settings declaring the named clients. If None, settings
                    are loaded from the environment.
        """
        self.config = config if config is not None else load_settings()
        self._clients: Dict[str, CosmosClient] = {}
        self._containers: Dict[Tuple[str, str, str], RemoteContainer] = {}
        self._closed = False
        logger.info(
            f"ConnectionManager initialized with clients: "
            f"{[c.name for c in self.config.clients]}"
        )

    def _build_client(self, client_settings: CosmosClientSettings) -> CosmosClient:
        kwargs = {"connection_timeout": client_settings.connection_timeout}
        if client_settings.consistency_level is not None:
            kwargs["consistency_level"] = client_settings.consistency_level.value
        if client_settings.preferred_locations:
            kwargs["preferred_locations"] = client_settings.preferred_locations

        try:
            return CosmosClient(client_settings.endpoint, credential=client_settings.key, **kwargs)
        except (AzureError, ValueError) as e:
            raise ConnectionInitializationError(
                f"Failed to create Cosmos client '{client_settings.name}': {e}"
            ) from e

    def get_client(self, client_name: str) -> CosmosClient:
        """Return the shared CosmosClient for ``client_name``, creating it on first use."""
        if self._closed:
            raise ConnectionClosedError("ConnectionManager has been closed")

        client = self._clients.get(client_name)
        if client is None:
            client_settings = self.config.get_client(client_name)
            client = self._build_client(client_settings)
            self._clients[client_name] = client
            logger.info(f"[get_client] Created Cosmos client '{client_name}' for {client_settings.endpoint}")
        return client

    def get_container(self, client_name: str, database_name: str, container_name: str) -> RemoteContainer:
        """
        Return a container handle routed through the named client.

        Args:
            client_name: Name of a configured client
            database_name: Database holding the container
            container_name: Container name

        Raises:
            ConfigurationError: If no client with that name is configured
            ConnectionClosedError: If the manager was closed
        """
        key = (client_name, database_name, container_name)
        container = self._containers.get(key)
        if container is None:
            client = self.get_client(client_name)
            proxy = client.get_database_client(database_name).get_container_client(container_name)
            container = CosmosContainer(proxy, database_name, container_name)
            self._containers[key] = container
        return container

    async def check_server_status(self, client_name: str) -> bool:
        """
        Check if the account behind ``client_name`` is reachable.

        Returns:
            bool: True if a lightweight listing call succeeded, False otherwise
        """
        try:
            client = self.get_client(client_name)
            async for _ in client.list_databases(max_item_count=1):
                break
            return True
        except AzureError as e:
            logger.warning(f"[check_server_status] Client '{client_name}' unreachable: {e}")
            return False

    async def close(self) -> None:
        """
        Close every client and release its connections.

        Idempotent; container handles obtained earlier become unusable.
        """
        if self._closed:
            return
        self._closed = True
        clients = list(self._clients.items())
        self._clients.clear()
        self._containers.clear()
        results = await asyncio.gather(
            *(client.close() for _, client in clients),
            return_exceptions=True
        )
        for (name, _), result in zip(clients, results):
            if isinstance(result, Exception):
                logger.warning(f"[close] Error closing Cosmos client '{name}': {result}")
        logger.info(f"ConnectionManager closed ({len(clients)} clients)")

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
