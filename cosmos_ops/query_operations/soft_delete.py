"""
Soft-delete predicate.

Every query built by this package passes its conditions through
``apply_soft_delete_filter`` so soft-deleted documents stay invisible
unless a caller explicitly asks for them.
"""

from typing import List, Sequence

SOFT_DELETE_FIELD = "deleted"


def soft_delete_predicate(alias: str = "c") -> str:
    return f"{alias}.{SOFT_DELETE_FIELD} = false"


def apply_soft_delete_filter(
    conditions: Sequence[str],
    include_deleted: bool,
    alias: str = "c"
) -> List[str]:
    """Return ``conditions`` plus the active-only predicate unless ``include_deleted``."""
    result = list(conditions)
    if not include_deleted:
        result.append(soft_delete_predicate(alias))
    return result


def where_clause(conditions: Sequence[str]) -> str:
    """Join conditions into a WHERE clause ('' when there are none)."""
    if not conditions:
        return ""
    return " WHERE " + " AND ".join(conditions)
