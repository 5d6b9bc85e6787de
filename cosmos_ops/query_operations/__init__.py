"""
Query Operations Module

Parameterized SQL for document queries:
- Caller-supplied SQL specifications
- Typed property filters and array membership queries
- The soft-delete predicate shared by every generated query
- Patch specifications for partial updates
"""

from .specification import SqlSpecification
from .filters import PropertyComparison, PropertyFilter, build_filter_conditions
from .soft_delete import apply_soft_delete_filter, soft_delete_predicate, SOFT_DELETE_FIELD
from .patch import PatchOperationType, PatchOperation, PatchSpecification
from .query_builder import DocumentQueryBuilder

__all__ = [
    'SqlSpecification',
    'PropertyComparison',
    'PropertyFilter',
    'build_filter_conditions',
    'apply_soft_delete_filter',
    'soft_delete_predicate',
    'SOFT_DELETE_FIELD',
    'PatchOperationType',
    'PatchOperation',
    'PatchSpecification',
    'DocumentQueryBuilder',
]
