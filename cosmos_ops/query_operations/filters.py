"""
Property Filters

Typed comparisons on top-level or nested document properties, compiled
into parameterized SQL conditions. Values are always bound as query
parameters, including every element of an IN list.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

# Dotted property path; guards the only part of a condition that is not parameterized
FIELD_PATH_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


def is_valid_field_path(name: str) -> bool:
    return bool(name) and FIELD_PATH_PATTERN.match(name) is not None


class PropertyComparison(str, Enum):
    """Supported comparison operators."""
    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN_OR_EQUAL = "<="
    IN = "IN"


class PropertyFilter(BaseModel):
    """
    One ``property <op> value`` condition.

    Example:
        ```python
        filters = [
            PropertyFilter(property_name="price", comparison=PropertyComparison.LESS_THAN, value=20),
            PropertyFilter(property_name="color", comparison=PropertyComparison.IN, value=["red", "blue"]),
        ]
        async for product in manager.get_all_by_property_comparison(filters):
            ...
        ```
    """
    property_name: str = Field(..., description="Dotted property path, e.g. 'price' or 'address.city'")
    value: Any = Field(..., description="Comparison value; a non-empty list for IN")
    comparison: PropertyComparison = Field(PropertyComparison.EQUAL)

    @field_validator("property_name")
    @classmethod
    def valid_path(cls, v: str) -> str:
        if not is_valid_field_path(v):
            raise ValueError(f"invalid property name '{v}'")
        return v

    @model_validator(mode="after")
    def in_needs_values(self) -> "PropertyFilter":
        if self.comparison == PropertyComparison.IN:
            if not isinstance(self.value, (list, tuple, set, frozenset)) or not self.value:
                raise ValueError("IN comparison requires a non-empty list of values")
        return self


def build_filter_conditions(
    filters: Sequence[PropertyFilter],
    alias: str = "c"
) -> Tuple[List[str], Dict[str, Any]]:
    """
    Compile filters into SQL conditions and their parameters.

    Returns:
        (conditions, parameters) where parameters are keyed by @name
    """
    conditions: List[str] = []
    parameters: Dict[str, Any] = {}

    for index, prop_filter in enumerate(filters):
        target = f"{alias}.{prop_filter.property_name}"
        if prop_filter.comparison == PropertyComparison.IN:
            names = []
            for position, element in enumerate(prop_filter.value):
                name = f"@p{index}_{position}"
                parameters[name] = element
                names.append(name)
            conditions.append(f"{target} IN ({', '.join(names)})")
        else:
            name = f"@p{index}"
            parameters[name] = prop_filter.value
            conditions.append(f"{target} {prop_filter.comparison.value} {name}")

    return conditions, parameters
