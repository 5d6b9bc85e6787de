"""
Query Builder

Builds the parameterized queries DocumentManager issues. All of them go
through the soft-delete filter; only count_total deliberately includes
soft-deleted documents.
"""

from typing import Any, Optional, Sequence

from ..connection_management.remote_container import SqlQuery
from ..cosmos_ops_exceptions import QueryError
from .filters import PropertyFilter, build_filter_conditions, is_valid_field_path
from .soft_delete import apply_soft_delete_filter, where_clause


class DocumentQueryBuilder:
    """
    Query factory bound to one container's partition key field.

    Args:
        partition_key_field: Document field holding the partition key value
        alias: Source alias used in generated SQL
    """

    def __init__(self, partition_key_field: str, alias: str = "c"):
        if not is_valid_field_path(partition_key_field):
            raise QueryError(f"Invalid partition key field '{partition_key_field}'")
        self._pk_field = partition_key_field
        self._alias = alias

    @property
    def partition_key_field(self) -> str:
        return self._pk_field

    def _select(self, conditions: Sequence[str], include_deleted: bool, projection: str = "*") -> str:
        conditions = apply_soft_delete_filter(conditions, include_deleted, self._alias)
        return f"SELECT {projection} FROM {self._alias}{where_clause(conditions)}"

    def select_all(self, partition_key: Optional[str] = None, include_deleted: bool = False) -> SqlQuery:
        """All documents, optionally limited to one partition."""
        conditions, parameters = [], {}
        if partition_key is not None:
            conditions.append(f"{self._alias}.{self._pk_field} = @pk")
            parameters["@pk"] = partition_key
        return SqlQuery(self._select(conditions, include_deleted), parameters)

    def select_offset_limit(self, offset: int, limit: int, include_deleted: bool = False) -> SqlQuery:
        """One OFFSET/LIMIT window over all documents."""
        text = self._select([], include_deleted)
        text += " OFFSET @offset LIMIT @limit"
        return SqlQuery(text, {"@offset": offset, "@limit": limit})

    def count_active(self, partition_key: str) -> SqlQuery:
        """Count of documents in a partition that are not soft-deleted."""
        text = self._select(
            [f"{self._alias}.{self._pk_field} = @pk"],
            include_deleted=False,
            projection="VALUE COUNT(1)"
        )
        return SqlQuery(text, {"@pk": partition_key})

    def count_total(self, partition_key: str) -> SqlQuery:
        """Count of every document in a partition, soft-deleted ones included."""
        text = self._select(
            [f"{self._alias}.{self._pk_field} = @pk"],
            include_deleted=True,
            projection="VALUE COUNT(1)"
        )
        return SqlQuery(text, {"@pk": partition_key})

    def array_contains(
        self,
        array_name: str,
        element_property_name: str,
        value: Any,
        include_deleted: bool = False
    ) -> SqlQuery:
        """Documents whose array ``array_name`` holds an element with ``element_property_name == value``."""
        if not is_valid_field_path(array_name):
            raise QueryError(f"Invalid array property name '{array_name}'")
        if not is_valid_field_path(element_property_name) or "." in element_property_name:
            raise QueryError(f"Invalid element property name '{element_property_name}'")
        condition = (
            f'ARRAY_CONTAINS({self._alias}.{array_name}, '
            f'{{"{element_property_name}": @value}}, true)'
        )
        return SqlQuery(self._select([condition], include_deleted), {"@value": value})

    def property_comparison(
        self,
        filters: Sequence[PropertyFilter],
        include_deleted: bool = False
    ) -> SqlQuery:
        """Documents matching every filter."""
        conditions, parameters = build_filter_conditions(filters, self._alias)
        return SqlQuery(self._select(conditions, include_deleted), parameters)
