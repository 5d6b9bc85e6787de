"""
Data Models

Contains Pydantic models for documents and operation results.
"""

from .entities import (
    CosmosDocument,
    DeleteMode,
    PageResult,
    DataValidationResult
)

__all__ = [
    'CosmosDocument',
    'DeleteMode',
    'PageResult',
    'DataValidationResult'
]
