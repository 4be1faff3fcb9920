"""Pydantic models for structured attribute filters.

Hierarchy:
  FilterGroup       : logical node (And / Or) over filters and nested groups.
  └── AttributeFilter: leaf predicate on one attribute path.

Both are validated on parse and frozen afterwards. Evaluation lives in
shared.filters.evaluator.
"""

import math
from enum import Enum
from typing import Iterator

from pydantic import ConfigDict, JsonValue, model_validator

from shared.models.base import ApiModel, lookup_enum_member


class FilterOperator(str, Enum):
    EQUALS = "Equals"
    NOT_EQUALS = "NotEquals"
    CONTAINS = "Contains"
    NOT_CONTAINS = "NotContains"
    GREATER_THAN = "GreaterThan"
    LESS_THAN = "LessThan"
    GREATER_OR_EQUAL = "GreaterOrEqual"
    LESS_OR_EQUAL = "LessOrEqual"
    IN_RANGE = "InRange"
    IS_TRUE = "IsTrue"
    IS_FALSE = "IsFalse"
    EXISTS = "Exists"
    NOT_EXISTS = "NotExists"


# operators that compare against AttributeFilter.value
VALUE_OPERATORS = frozenset({
    FilterOperator.EQUALS,
    FilterOperator.NOT_EQUALS,
    FilterOperator.CONTAINS,
    FilterOperator.NOT_CONTAINS,
    FilterOperator.GREATER_THAN,
    FilterOperator.LESS_THAN,
    FilterOperator.GREATER_OR_EQUAL,
    FilterOperator.LESS_OR_EQUAL,
})


class LogicalOperator(str, Enum):
    AND = "And"
    OR = "Or"

    @classmethod
    def _missing_(cls, value: object) -> "LogicalOperator | None":
        return lookup_enum_member(cls, value)


def is_numeric(value: object) -> bool:
    """True for int and float values. bool is never numeric."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nan(value: object) -> bool:
    """True only for float NaN. Ints of any size are never NaN."""
    return isinstance(value, float) and math.isnan(value)


class AttributeFilter(ApiModel):
    """A single predicate on one attribute path.

    Examples:
        {"fieldPath": "hasPets", "operator": "IsTrue"}
        {"fieldPath": "petTypes", "operator": "Contains", "value": "Dog"}
        {"fieldPath": "age", "operator": "InRange", "value": [25, 35]}
        {"fieldPath": "age", "operator": "InRange", "minValue": 25, "maxValue": 35}
    """

    model_config = ConfigDict(frozen=True)

    field_path: str
    operator: FilterOperator
    value: JsonValue = None
    min_value: JsonValue = None
    max_value: JsonValue = None

    @model_validator(mode="after")
    def _validate_operands(self) -> "AttributeFilter":
        if not self.field_path or not self.field_path.strip():
            raise ValueError("fieldPath must not be empty")
        if self.operator in VALUE_OPERATORS and self.value is None:
            raise ValueError(f"operator '{self.operator.value}' on '{self.field_path}' requires a value")
        if self.operator is FilterOperator.IN_RANGE:
            # raises ValueError on malformed bounds
            self.range_bounds()
        return self

    def range_bounds(self) -> tuple[float, float]:
        """Return the closed [min, max] interval of an InRange filter.

        Bounds come from a two element list in value, or from min_value and max_value.

        Raises:
            ValueError: If the bounds are missing, not numeric, NaN or min > max.
        """
        if isinstance(self.value, list):
            if len(self.value) != 2:
                raise ValueError(f"InRange on '{self.field_path}' requires exactly two bounds [min, max]")
            low, high = self.value
        else:
            low, high = self.min_value, self.max_value
        if not is_numeric(low) or not is_numeric(high):
            raise ValueError(f"InRange on '{self.field_path}' requires numeric bounds [min, max]")
        if is_nan(low) or is_nan(high):
            raise ValueError(f"InRange on '{self.field_path}' bounds must not be NaN")
        if low > high:
            raise ValueError(f"InRange on '{self.field_path}' has min {low} greater than max {high}")
        return low, high


class FilterGroup(ApiModel):
    """Logical node combining filters and nested groups.

    Children are evaluated in order: the leaf filters first, then the nested groups.
    """

    model_config = ConfigDict(frozen=True)

    logical_operator: LogicalOperator = LogicalOperator.AND
    filters: tuple[AttributeFilter, ...] = ()
    nested_groups: tuple["FilterGroup", ...] = ()

    @property
    def has_filters(self) -> bool:
        """True if the group or any nested group holds at least one leaf filter."""
        return bool(self.filters) or any(group.has_filters for group in self.nested_groups)

    def iter_filters(self) -> Iterator[AttributeFilter]:
        """Yield every leaf filter of the tree, depth first."""
        yield from self.filters
        for group in self.nested_groups:
            yield from group.iter_filters()
