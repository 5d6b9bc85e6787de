"""
Patch Specifications

Partial document updates expressed as store patch operations.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class PatchOperationType(str, Enum):
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"
    SET = "set"
    INCREMENT = "incr"


class PatchOperation(BaseModel):
    op: PatchOperationType
    path: str = Field(..., description="JSON pointer into the document, e.g. '/price'")
    value: Optional[Any] = None

    @field_validator("path")
    @classmethod
    def absolute_path(cls, v: str) -> str:
        if not v.startswith("/") or len(v) < 2:
            raise ValueError(f"patch path must be an absolute JSON pointer, got '{v}'")
        return v

    def to_store_operation(self) -> Dict[str, Any]:
        operation = {"op": self.op.value, "path": self.path}
        if self.op != PatchOperationType.REMOVE:
            operation["value"] = self.value
        return operation


class PatchSpecification(BaseModel):
    """
    Ordered list of patch operations, built fluently.

    Example:
        ```python
        spec = PatchSpecification().set("/price", 9.99).increment("/stock", -1)
        await manager.patch("p-1", "lighting", spec)
        ```
    """
    operations: List[PatchOperation] = Field(default_factory=list)

    def _append(self, op: PatchOperationType, path: str, value: Any = None) -> "PatchSpecification":
        self.operations.append(PatchOperation(op=op, path=path, value=value))
        return self

    def add(self, path: str, value: Any) -> "PatchSpecification":
        return self._append(PatchOperationType.ADD, path, value)

    def replace(self, path: str, value: Any) -> "PatchSpecification":
        return self._append(PatchOperationType.REPLACE, path, value)

    def remove(self, path: str) -> "PatchSpecification":
        return self._append(PatchOperationType.REMOVE, path)

    def set(self, path: str, value: Any) -> "PatchSpecification":
        return self._append(PatchOperationType.SET, path, value)

    def increment(self, path: str, value: float) -> "PatchSpecification":
        return self._append(PatchOperationType.INCREMENT, path, value)

    def touched_paths(self) -> List[str]:
        return [operation.path for operation in self.operations]

    def to_store_operations(self) -> List[Dict[str, Any]]:
        return [operation.to_store_operation() for operation in self.operations]
