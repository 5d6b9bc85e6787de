"""
Pydantic Settings for Cosmos Operations

This module provides strongly-typed configuration settings using Pydantic,
with support for environment variables and YAML configuration files.
"""

from typing import Optional, List, Union
from enum import Enum
from pathlib import Path
import os

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_yaml import parse_yaml_file_as, to_yaml_file

from ..cosmos_ops_exceptions import ConfigurationError


class ConsistencyLevel(str, Enum):
    """
    Cosmos DB consistency level options that determine the trade-off between consistency and latency.

    A client may only relax the account default, never strengthen it.
    """
    STRONG = "Strong"  # Linearizable reads; highest latency
    BOUNDED_STALENESS = "BoundedStaleness"  # Reads lag writes by at most K versions or T seconds
    SESSION = "Session"  # Read-your-writes within a single client session
    CONSISTENT_PREFIX = "ConsistentPrefix"  # Reads never see out-of-order writes
    EVENTUAL = "Eventual"  # Weakest guarantee, lowest latency


class CosmosClientSettings(BaseModel):
    """
    Settings for one named connection to a Cosmos DB account.

    Document types refer to clients by name, so reads and writes of a type
    can be routed through different accounts or regions.
    """
    name: str = Field(..., description="Unique name other settings use to refer to this client")
    endpoint: str = Field(..., description="Account endpoint, e.g. https://myaccount.documents.azure.com:443/")
    key: str = Field("", description="Account key used for authentication")
    consistency_level: Optional[ConsistencyLevel] = Field(
        None, description="Consistency level override, None keeps the account default")
    connection_timeout: int = Field(60, description="Connection timeout in seconds")
    preferred_locations: List[str] = Field(default_factory=list,
                                           description="Preferred regions for reads, in priority order")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("client name cannot be empty")
        return v

    @field_validator("connection_timeout")
    @classmethod
    def timeout_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("connection_timeout must be positive")
        return v


class DocumentTypeSettings(BaseModel):
    """
    Mapping of one document type onto its container.

    The model name is matched case-insensitively against the class name
    a type is registered with.
    """
    model_name: str = Field(..., description="Name of the document model class")
    database_name: str = Field(..., description="Database that holds the container")
    container_name: str = Field(..., description="Container that stores documents of this type")
    partition_key_field: str = Field(..., description="Document field holding the partition key value")
    read_client_name: str = Field(..., description="Name of the client used for reads")
    write_client_name: str = Field(..., description="Name of the client used for writes")

    @field_validator("partition_key_field")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        # Accept the container partition key path form ("/category") as well
        v = v.lstrip("/")
        if not v:
            raise ValueError("partition_key_field cannot be empty")
        return v


class RetrySettings(BaseSettings):
    """
    Retry settings for transient store failures.

    Applied underneath every single remote call: timeouts, throttling (429),
    service unavailability (503) and internal server errors (500) are
    retried with exponential backoff before an error reaches the caller.
    """
    enabled: bool = Field(True, description="Whether transient errors are retried at all")
    max_attempts: int = Field(3, description="Total number of attempts per remote call")
    initial_delay: float = Field(1.0, description="Backoff multiplier in seconds")
    max_delay: float = Field(30.0, description="Upper bound for a single backoff wait in seconds")
    exponential_base: float = Field(2.0, description="Growth factor between consecutive waits")

    model_config = SettingsConfigDict(env_prefix="COSMOS_OPS_RETRY_", case_sensitive=False)

    @model_validator(mode="after")
    def check_bounds(self) -> "RetrySettings":
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be non-negative")
        return self


class OperationSettings(BaseSettings):
    """
    Operation settings for controlling document operations.

    These settings determine bulk write behavior, per-call timeouts and
    whether single upserts probe the store for existing audit fields.
    """
    default_batch_size: int = Field(100, description="Items per transactional batch in bulk writes (max 100)")
    default_max_concurrency: int = Field(10, description="Concurrent batches in flight in bulk writes (max 50)")
    operation_timeout: Optional[float] = Field(None, description="Timeout in seconds per remote call, None disables")
    probe_existence_on_upsert: bool = Field(
        False, description="Read the current document before a single upsert to carry created_* forward")
    enable_timing: bool = Field(True, description="Whether to record per-operation timings")

    model_config = SettingsConfigDict(env_prefix="COSMOS_OPS_OPERATIONS_", case_sensitive=False)


class CacheSettings(BaseSettings):
    """
    Count cache settings.

    Freshness is decided per call by the caller's max age; the fallback
    expiry only bounds how long an untouched entry occupies memory.
    """
    fallback_expiry_hours: float = Field(24.0, description="Absolute expiry of cached counts in hours")
    max_entries: int = Field(10000, description="Maximum number of cached counts kept in memory")

    model_config = SettingsConfigDict(env_prefix="COSMOS_OPS_CACHE_", case_sensitive=False)


class MonitoringSettings(BaseSettings):
    """
    Monitoring settings for tracking store operations.
    """
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    model_config = SettingsConfigDict(env_prefix="COSMOS_OPS_MONITORING_", case_sensitive=False)

    @field_validator("log_level")
    @classmethod
    def known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return v


class CosmosOpsSettings(BaseSettings):
    """
    Main settings class for Cosmos operations that consolidates all configuration categories.

    This class serves as the central configuration hub for the package:
    - Declares the named clients and the document type to container mapping
    - Enables environment variable overrides for all nested settings
    - Validates cross references once, at construction

    Usage:
        # Load from YAML file
        settings = load_settings('cosmos_ops.yaml')

        # Override from the environment
        #   COSMOS_OPS_OPERATIONS__DEFAULT_BATCH_SIZE=50
        settings = CosmosOpsSettings(clients=[...], document_types=[...])
    """
    clients: List[CosmosClientSettings] = Field(default_factory=list,
                                                description="Named connections to Cosmos DB accounts")
    document_types: List[DocumentTypeSettings] = Field(default_factory=list,
                                                       description="Document type to container mappings")
    retry: RetrySettings = Field(default_factory=RetrySettings,
                                 description="Transient failure retry settings")
    operations: OperationSettings = Field(default_factory=OperationSettings,
                                          description="Document operation settings")
    cache: CacheSettings = Field(default_factory=CacheSettings,
                                 description="Count cache settings")
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings,
                                           description="Logging and metrics settings")

    model_config = SettingsConfigDict(
        env_prefix="COSMOS_OPS_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def check_client_references(self) -> "CosmosOpsSettings":
        if not self.clients:
            raise ValueError("at least one client must be configured")

        names = [c.name for c in self.clients]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate client names: {duplicates}")

        known = set(names)
        for doc_type in self.document_types:
            for ref in (doc_type.read_client_name, doc_type.write_client_name):
                if ref not in known:
                    raise ValueError(
                        f"document type '{doc_type.model_name}' refers to unknown client '{ref}'"
                    )
        return self

    def get_client(self, name: str) -> CosmosClientSettings:
        """Return the client settings registered under ``name``."""
        for client in self.clients:
            if client.name == name:
                return client
        raise ConfigurationError(f"No client named '{name}' is configured")

    def get_document_type(self, model_name: str) -> Optional[DocumentTypeSettings]:
        """Return the mapping for ``model_name`` (case-insensitive), or None."""
        wanted = model_name.lower()
        for doc_type in self.document_types:
            if doc_type.model_name.lower() == wanted:
                return doc_type
        return None


def load_settings(config_path: Optional[Union[str, Path]] = None) -> CosmosOpsSettings:
    """
    Load settings from file and/or environment variables.

    - If config_path is provided and exists, loads settings from the YAML file
    - Otherwise, creates a new settings instance from environment variables

    Args:
        config_path: Path to YAML configuration file

    Returns:
        CosmosOpsSettings object with loaded configuration

    Raises:
        ConfigurationError: If the configuration is invalid

    Example:
        settings = load_settings("/etc/myapp/cosmos_ops.yaml")
    """
    try:
        if config_path and os.path.exists(config_path):
            return parse_yaml_file_as(CosmosOpsSettings, config_path)
        return CosmosOpsSettings()
    except ValueError as e:
        # pydantic.ValidationError is a ValueError
        raise ConfigurationError(f"Invalid cosmos_ops configuration: {e}") from e


def save_settings(settings: CosmosOpsSettings, config_path: Union[str, Path]) -> None:
    """Write settings to a YAML file."""
    to_yaml_file(config_path, settings)
