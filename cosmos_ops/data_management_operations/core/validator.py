"""
Document Validator

Validates documents and operation parameters before any remote call, so a
DocumentValidationError always means nothing was written.

Typical usage:

    validator = DocumentValidator(partition_key_extractor=lambda p: p.category)
    validator.validate_document(product, "create")
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union

from ..data_ops_config import MAX_BATCH_SIZE, MAX_CONCURRENCY, MAX_PAGE_SIZE
from ..data_ops_exceptions import DocumentValidationError
from ..models.entities import CosmosDocument, DataValidationResult
from ...query_operations.filters import PropertyFilter, is_valid_field_path
from ...query_operations.patch import PatchSpecification

logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 255
INVALID_ID_CHARACTERS = ("/", "\\", "?", "#")

# Fields a patch may not touch; the manager maintains them
PROTECTED_PATCH_PATHS = (
    "/id", "/created_on_utc", "/created_by", "/updated_on_utc", "/updated_by", "/deleted"
)


class DocumentValidator:
    """
    Validates documents of one type and the parameters of operations on them.

    Args:
        partition_key_extractor: Function returning a document's partition key value
    """

    def __init__(self, partition_key_extractor: Callable[[Any], str]):
        self._extract_partition_key = partition_key_extractor

    @staticmethod
    def _raise_if_invalid(result: DataValidationResult, message: str) -> None:
        if not result.is_valid:
            logger.warning(f"{message}: {result.errors}")
            raise DocumentValidationError(message, validation_errors=result.errors)

    @staticmethod
    def _check_id(item_id: Optional[str], key: Union[int, str], result: DataValidationResult) -> None:
        if not item_id or not item_id.strip():
            result.add_error(key, "Id cannot be empty")
            return
        if len(item_id) > MAX_ID_LENGTH:
            result.add_error(key, f"Id cannot exceed {MAX_ID_LENGTH} characters")
        if any(ch in item_id for ch in INVALID_ID_CHARACTERS):
            result.add_error(key, f"Id cannot contain any of {' '.join(INVALID_ID_CHARACTERS)}")

    def _partition_key_of(self, item: Any) -> Optional[str]:
        try:
            return self._extract_partition_key(item)
        except (AttributeError, KeyError, TypeError) as e:
            logger.debug(f"Partition key extraction failed for {getattr(item, 'id', item)!r}: {e}")
            return None

    def check_document(self, item: Any, operation: str, key: Union[int, str, None] = None) -> DataValidationResult:
        """
        Collect every problem with one document without raising.

        Args:
            item: Document to check
            operation: "create", "replace", "upsert", ...; replace requires
                       an existing created_on_utc
            key: Key the errors are reported under (defaults to the id)

        Returns:
            DataValidationResult with all errors found
        """
        result = DataValidationResult()
        if item is None:
            result.add_error(key if key is not None else "item", "Item cannot be None")
            return result
        if not isinstance(item, CosmosDocument):
            result.add_error(key if key is not None else "item",
                             f"Item must be a CosmosDocument, got {type(item).__name__}")
            return result

        report_key = key if key is not None else (item.id or "item")
        self._check_id(item.id, report_key, result)

        partition_key = self._partition_key_of(item)
        if not partition_key or not str(partition_key).strip():
            result.add_error(report_key, "Partition key value cannot be empty")

        if operation == "replace" and item.created_on_utc is None:
            result.add_error(report_key, "created_on_utc must have a value")

        if (item.created_on_utc is not None and item.updated_on_utc is not None
                and item.created_on_utc > item.updated_on_utc):
            result.add_error(report_key, "created_on_utc cannot be after updated_on_utc")

        return result

    def validate_document(self, item: Any, operation: str) -> None:
        """Raise DocumentValidationError if ``item`` is not valid for ``operation``."""
        self._raise_if_invalid(
            self.check_document(item, operation),
            f"Document validation failed for {operation}"
        )

    def validate_id_and_partition_key(self, item_id: Optional[str], partition_key: Optional[str], operation: str) -> None:
        result = DataValidationResult()
        self._check_id(item_id, "id", result)
        if not partition_key or not partition_key.strip():
            result.add_error("partition_key", "Partition key value cannot be empty")
        self._raise_if_invalid(result, f"Invalid parameters for {operation}")

    def validate_partition_key(self, partition_key: Optional[str], operation: str) -> None:
        if not partition_key or not partition_key.strip():
            raise DocumentValidationError(
                f"Partition key value cannot be empty for {operation}",
                {"partition_key": ["Partition key value cannot be empty"]}
            )

    def validate_page_size(self, page_size: int, operation: str, maximum: int = MAX_PAGE_SIZE) -> None:
        if page_size < 1 or page_size > maximum:
            raise DocumentValidationError(
                f"Invalid page size for {operation}",
                {"page_size": [f"must be between 1 and {maximum}, got {page_size}"]}
            )

    def validate_offset_query(self, limit: int, offset: int, count: int) -> None:
        result = DataValidationResult()
        if limit < 1 or limit > MAX_PAGE_SIZE:
            result.add_error("limit", f"must be between 1 and {MAX_PAGE_SIZE}, got {limit}")
        if offset < 0:
            result.add_error("offset", f"cannot be negative, got {offset}")
        if count < 0:
            result.add_error("count", f"cannot be negative, got {count}")
        self._raise_if_invalid(result, "Invalid parameters for get_all_paged")

    def validate_cache_expiry(self, max_age_minutes: float) -> None:
        if max_age_minutes < 0:
            raise DocumentValidationError(
                "Cache expiry minutes cannot be negative",
                {"max_age_minutes": [f"must be >= 0, got {max_age_minutes}"]}
            )

    def validate_bulk_operation_parameters(self, batch_size: int, max_concurrency: int) -> None:
        result = DataValidationResult()
        if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
            result.add_error("batch_size", f"must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        if max_concurrency < 1 or max_concurrency > MAX_CONCURRENCY:
            result.add_error("max_concurrency",
                             f"must be between 1 and {MAX_CONCURRENCY}, got {max_concurrency}")
        self._raise_if_invalid(result, "Invalid bulk operation parameters")

    def validate_bulk_items(self, items: Sequence[Any], partition_key: Optional[str], operation: str) -> None:
        """
        Validate every item of a bulk call.

        Besides the per-document checks, each item's partition key must equal
        the partition key of the call, and ids must be unique within the call.
        Errors are keyed by input index.
        """
        self.validate_partition_key(partition_key, operation)

        result = DataValidationResult()
        seen_ids: Dict[str, int] = {}
        for index, item in enumerate(items):
            item_result = self.check_document(item, operation, key=index)
            for message in item_result.errors.get(index, []):
                result.add_error(index, message)
            if not isinstance(item, CosmosDocument):
                continue

            item_partition_key = self._partition_key_of(item)
            if item_partition_key and item_partition_key != partition_key:
                result.add_error(
                    index,
                    f"Partition key '{item_partition_key}' does not match bulk partition key '{partition_key}'"
                )
            if item.id:
                if item.id in seen_ids:
                    result.add_error(index, f"Duplicate id '{item.id}' (also at index {seen_ids[item.id]})")
                else:
                    seen_ids[item.id] = index

        self._raise_if_invalid(result, f"Bulk {operation} validation failed")

    def validate_array_property_query(self, array_name: str, element_property_name: str) -> None:
        result = DataValidationResult()
        if not is_valid_field_path(array_name):
            result.add_error("array_name", f"invalid property name '{array_name}'")
        if not is_valid_field_path(element_property_name) or "." in element_property_name:
            result.add_error("element_property_name", f"invalid property name '{element_property_name}'")
        self._raise_if_invalid(result, "Invalid array property query")

    def validate_property_filters(self, filters: Sequence[Any]) -> None:
        if not filters:
            raise DocumentValidationError(
                "At least one property filter is required",
                {"filters": ["cannot be empty"]}
            )
        result = DataValidationResult()
        for index, prop_filter in enumerate(filters):
            if not isinstance(prop_filter, PropertyFilter):
                result.add_error(index, f"expected PropertyFilter, got {type(prop_filter).__name__}")
        self._raise_if_invalid(result, "Invalid property filters")

    def validate_patch(self, patch_spec: Optional[PatchSpecification]) -> None:
        if patch_spec is None or not patch_spec.operations:
            raise DocumentValidationError(
                "Patch requires at least one operation",
                {"operations": ["cannot be empty"]}
            )
        result = DataValidationResult()
        for index, path in enumerate(patch_spec.touched_paths()):
            if path in PROTECTED_PATCH_PATHS or path.startswith("/_"):
                result.add_error(index, f"path '{path}' is maintained automatically and cannot be patched")
        self._raise_if_invalid(result, "Invalid patch specification")
