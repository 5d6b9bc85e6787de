"""
Data Entities

Defines Pydantic models for documents and operation results in data management.
Provides structured representations of documents stored in Cosmos DB
containers, along with paged query results and validation outcomes.

Typical usage from external projects:

    from cosmos_ops.data_management_operations import CosmosDocument

    class Product(CosmosDocument):
        name: str
        category: str
        price: float

    product = Product(id="p-1", name="Lamp", category="lighting", price=12.5)
    await manager.create(product)
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar, Union
from enum import Enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeleteMode(str, Enum):
    """
    How a delete is carried out.

    SOFT flags the document as deleted and keeps it in the container.
    HARD removes it physically.
    """
    SOFT = "soft"
    HARD = "hard"


class CosmosDocument(BaseModel):
    """
    Base model for documents stored in Cosmos DB.

    Carries the identity, the audit fields maintained by AuditFieldManager
    and the soft-delete flag. Business fields are declared by subclasses or
    carried as extra fields.

    The partition key value is not part of this model: each registered
    type supplies an extractor function.

    Invariants:
        - created_on_utc is never changed once set
        - updated_on_utc never moves backwards as observed by this client
    """
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(..., description="Document id, unique within its partition")
    created_on_utc: Optional[datetime] = Field(None, description="Creation instant (UTC)")
    updated_on_utc: Optional[datetime] = Field(None, description="Last modification instant (UTC)")
    created_by: Optional[str] = Field(None, description="Principal that created the document")
    updated_by: Optional[str] = Field(None, description="Principal that last modified the document")
    deleted: bool = Field(False, description="Soft-delete flag")
    etag: Optional[str] = Field(
        None,
        alias="_etag",
        exclude=True,
        description="Store version tag, used as if-match condition on replace"
    )

    def to_store_dict(self) -> Dict[str, Any]:
        """Serialize for writing. The etag is a system field and never sent."""
        return self.model_dump(mode="json")

    @classmethod
    def from_store_dict(cls, data: Dict[str, Any]):
        """Build a document from a stored resource, dropping system fields except the etag."""
        cleaned = {
            key: value for key, value in data.items()
            if not key.startswith("_") or key == "_etag"
        }
        return cls.model_validate(cleaned)


T = TypeVar("T")


class PageResult(BaseModel, Generic[T]):
    """
    One page of a continuation-token paged query.

    Attributes:
        items: Documents on this page
        continuation_token: Opaque token for the next page, None on the last page
        total_count: Total matching documents, only computed for the first
                     page and only when requested
    """
    items: List[T] = Field(default_factory=list)
    continuation_token: Optional[str] = None
    total_count: Optional[int] = None

    @property
    def has_more_results(self) -> bool:
        return self.continuation_token is not None


class DataValidationResult(BaseModel):
    """
    Result of validating input before any remote call.

    Errors are keyed by document id, input index or parameter name.
    """
    is_valid: bool = True
    errors: Dict[Union[int, str], List[str]] = Field(default_factory=dict)

    def add_error(self, key: Union[int, str], message: str) -> None:
        self.errors.setdefault(key, []).append(message)
        self.is_valid = False
