"""
SQL Specifications

Caller-supplied parameterized queries. Raw specifications are run as
written: they are not rewritten to exclude soft-deleted documents.
"""

import re
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from ..connection_management.remote_container import SqlQuery
from ..cosmos_ops_exceptions import QueryError

_SELECT_STAR = re.compile(r"^\s*SELECT\s+\*\s+FROM\b", re.IGNORECASE)
_ORDER_BY = re.compile(r"\s+ORDER\s+BY\s+.*$", re.IGNORECASE | re.DOTALL)


class SqlSpecification(BaseModel):
    """
    A SQL query with named parameters.

    Example:
        ```python
        spec = SqlSpecification(
            query_text="SELECT * FROM c WHERE c.category = @category AND c.price > @min",
            parameters={"@category": "lighting", "@min": 10}
        )
        async for product in manager.query(spec):
            ...
        ```
    """
    query_text: str = Field(..., description="Query text using @name placeholders")
    parameters: Dict[str, Any] = Field(default_factory=dict,
                                       description="Parameter values keyed by @name")

    @field_validator("query_text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("query_text cannot be empty")
        return v

    @field_validator("parameters")
    @classmethod
    def parameter_names(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        bad = [name for name in v if not name.startswith("@")]
        if bad:
            raise ValueError(f"parameter names must start with '@': {bad}")
        return v

    def to_query(self) -> SqlQuery:
        return SqlQuery(self.query_text, dict(self.parameters))

    def to_count_query(self) -> SqlQuery:
        """
        Derive the matching count query.

        Only ``SELECT * FROM ...`` queries can be counted; a trailing ORDER BY
        is dropped because aggregates cannot be ordered.

        Raises:
            QueryError: If the query does not start with ``SELECT * FROM``
        """
        if not _SELECT_STAR.match(self.query_text):
            raise QueryError(
                f"Cannot derive a count query from '{self.query_text}': "
                "only 'SELECT * FROM ...' queries support include_count"
            )
        text = _SELECT_STAR.sub("SELECT VALUE COUNT(1) FROM", self.query_text, count=1)
        text = _ORDER_BY.sub("", text)
        return SqlQuery(text, dict(self.parameters))
