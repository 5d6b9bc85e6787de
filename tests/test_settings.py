"""Tests for settings validation, YAML loading and DataOperationConfig."""

import pytest
from pydantic import ValidationError

from cosmos_ops.config.settings import (
    CosmosOpsSettings,
    DocumentTypeSettings,
    load_settings,
    save_settings,
)
from cosmos_ops.cosmos_ops_exceptions import ConfigurationError
from cosmos_ops.data_management_operations.data_ops_config import DataOperationConfig

YAML_CONFIG = """
clients:
  - name: primary
    endpoint: https://shop.documents.azure.com:443/
    key: c2VjcmV0
    consistency_level: Session
  - name: replica
    endpoint: https://shop-west.documents.azure.com:443/
    key: c2VjcmV0
    preferred_locations: [West Europe]
document_types:
  - model_name: Product
    database_name: shop
    container_name: products
    partition_key_field: /category
    read_client_name: replica
    write_client_name: primary
retry:
  max_attempts: 5
operations:
  default_batch_size: 50
cache:
  max_entries: 500
"""


def build_settings(**overrides):
    data = {
        "clients": [{"name": "primary", "endpoint": "https://shop.documents.azure.com:443/", "key": "k"}],
        "document_types": [{
            "model_name": "Product",
            "database_name": "shop",
            "container_name": "products",
            "partition_key_field": "category",
            "read_client_name": "primary",
            "write_client_name": "primary",
        }],
    }
    data.update(overrides)
    return CosmosOpsSettings(**data)


class TestCosmosOpsSettings:
    def test_defaults(self):
        settings = build_settings()

        assert settings.retry.max_attempts == 3
        assert settings.operations.default_batch_size == 100
        assert settings.operations.probe_existence_on_upsert is False
        assert settings.cache.fallback_expiry_hours == 24
        assert settings.monitoring.log_level == "INFO"

    def test_unknown_client_reference_is_rejected(self):
        document_type = {
            "model_name": "Product", "database_name": "shop", "container_name": "products",
            "partition_key_field": "category", "read_client_name": "nowhere", "write_client_name": "primary",
        }
        with pytest.raises(ValidationError, match="unknown client 'nowhere'"):
            build_settings(document_types=[document_type])

    def test_duplicate_client_names_are_rejected(self):
        client = {"name": "primary", "endpoint": "https://a/", "key": "k"}
        with pytest.raises(ValidationError):
            build_settings(clients=[client, client])

    def test_at_least_one_client(self):
        with pytest.raises(ValidationError):
            build_settings(clients=[], document_types=[])

    def test_lookups(self):
        settings = build_settings()

        assert settings.get_document_type("product").container_name == "products"
        assert settings.get_document_type("Order") is None
        assert settings.get_client("primary").endpoint.startswith("https://")
        with pytest.raises(ConfigurationError):
            settings.get_client("missing")

    def test_partition_key_path_form_is_accepted(self):
        mapping = DocumentTypeSettings(
            model_name="Product", database_name="shop", container_name="products",
            partition_key_field="/category", read_client_name="a", write_client_name="a",
        )
        assert mapping.partition_key_field == "category"

    def test_environment_overrides_section(self, monkeypatch):
        monkeypatch.setenv("COSMOS_OPS_RETRY_MAX_ATTEMPTS", "7")
        assert build_settings().retry.max_attempts == 7

    def test_log_level_is_validated(self):
        with pytest.raises(ValidationError):
            build_settings(monitoring={"log_level": "chatty"})


class TestYamlFiles:
    def test_load_settings_from_yaml(self, tmp_path):
        path = tmp_path / "cosmos_ops.yaml"
        path.write_text(YAML_CONFIG)

        settings = load_settings(path)

        assert [c.name for c in settings.clients] == ["primary", "replica"]
        assert settings.clients[0].consistency_level.value == "Session"
        assert settings.get_document_type("Product").partition_key_field == "category"
        assert settings.retry.max_attempts == 5
        assert settings.operations.default_batch_size == 50

    def test_invalid_yaml_raises_configuration_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("clients: []\n")

        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "saved.yaml"
        save_settings(build_settings(), path)

        reloaded = load_settings(path)

        assert reloaded.get_document_type("Product").database_name == "shop"


class TestDataOperationConfig:
    def test_from_settings(self):
        settings = build_settings(retry={"max_attempts": 4, "initial_delay": 0.5},
                                  operations={"operation_timeout": 12.0, "probe_existence_on_upsert": True})

        config = DataOperationConfig.from_settings(settings)

        assert config.max_transient_retries == 4
        assert config.transient_retry_delay == 0.5
        assert config.default_operation_timeout == 12.0
        assert config.probe_existence_on_upsert is True

    def test_defaults_are_clamped_to_limits(self):
        config = DataOperationConfig(default_batch_size=500, default_max_concurrency=80)

        assert config.default_batch_size == 100
        assert config.default_max_concurrency == 50

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            DataOperationConfig(max_transient_retries=0)
        with pytest.raises(ValueError):
            DataOperationConfig(default_operation_timeout=0)

    def test_from_dict_ignores_unknown_keys(self):
        config = DataOperationConfig.from_dict({"default_batch_size": 20, "bogus": True})
        assert config.to_dict()["default_batch_size"] == 20

    def test_resolve_defaults(self):
        config = DataOperationConfig(default_batch_size=25)
        assert config.resolve_batch_size(None) == 25
        assert config.resolve_batch_size(5) == 5
        assert config.resolve_max_concurrency(None) == 10
