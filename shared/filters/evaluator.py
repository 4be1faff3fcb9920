"""Attribute filter evaluator.

Evaluates a validated FilterGroup (or a single AttributeFilter) against an
entity's attribute bag. Evaluation is pure and never raises: type mismatches,
missing paths and malformed values all resolve to "no match".

Filters always run on the full, unredacted attributes. Privacy only decides
what is echoed back to the requester (see matched_attributes).
"""

from typing import Any, Mapping

from shared.models.entity import AttributeValue, Entity
from shared.models.filters import AttributeFilter, FilterGroup, FilterOperator, LogicalOperator, is_nan, is_numeric
from shared.privacy.visibility import (
    ATTRIBUTES_PREFIX,
    RelationshipCheck,
    attribute_field_path,
    is_path_visible,
    no_relationships,
    redact_nested,
)


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


# marks an absent path; an explicit null is a present value
MISSING = _Missing()


##########################################
############ PATH RESOLUTION #############
##########################################

def resolve_field(attributes: Mapping[str, Any] | None, field_path: str) -> Any:
    """Resolve a dot-delimited path inside an attribute bag.

    The exact key wins over dot walking, so a flat key "salary.min" is found
    before attributes["salary"]["min"]. A leading "attributes." is stripped.

    Returns:
        Any: The value, or MISSING if the path does not resolve.
    """
    if not attributes or not field_path:
        return MISSING
    if field_path in attributes:
        return attributes[field_path]
    if field_path.startswith(ATTRIBUTES_PREFIX):
        return resolve_field(attributes, field_path[len(ATTRIBUTES_PREFIX):])

    current: Any = attributes
    for segment in field_path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return MISSING
        current = current[segment]
    return current


##########################################
############## COMPARISONS ###############
##########################################

def values_equal(left: Any, right: Any) -> bool:
    """Type-aware equality.

    Numbers compare by value (int 30 equals float 30.0), bool is never a number,
    strings compare case-sensitively, lists and maps compare structurally.
    Mismatched types are never equal.
    """
    if is_numeric(left) and is_numeric(right):
        return left == right
    if isinstance(left, bool) and isinstance(right, bool):
        return left is right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if left is None and right is None:
        return True
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(values_equal(left[k], right[k]) for k in left)
    return False


def _contains(actual: Any, expected: Any) -> bool | None:
    """Membership test. None means the attribute type does not support it."""
    if isinstance(actual, list):
        return any(values_equal(item, expected) for item in actual)
    if isinstance(actual, str):
        if not isinstance(expected, str):
            return None
        return expected in actual
    return None


def _compare_numbers(actual: Any, expected: Any, operator: FilterOperator) -> bool:
    if not is_numeric(actual) or not is_numeric(expected):
        return False
    if is_nan(actual) or is_nan(expected):
        return False
    if operator is FilterOperator.GREATER_THAN:
        return actual > expected
    if operator is FilterOperator.LESS_THAN:
        return actual < expected
    if operator is FilterOperator.GREATER_OR_EQUAL:
        return actual >= expected
    if operator is FilterOperator.LESS_OR_EQUAL:
        return actual <= expected
    return False


def _in_range(actual: Any, attribute_filter: AttributeFilter) -> bool:
    if not is_numeric(actual) or is_nan(actual):
        return False
    try:
        low, high = attribute_filter.range_bounds()
    except ValueError:
        return False
    return low <= actual <= high


##########################################
############### EVALUATION ###############
##########################################

def evaluate_filter(attribute_filter: AttributeFilter, attributes: Mapping[str, Any] | None) -> bool:
    """Evaluate one leaf predicate against an attribute bag."""
    operator = attribute_filter.operator
    actual = resolve_field(attributes, attribute_filter.field_path)

    if operator is FilterOperator.EXISTS:
        return actual is not MISSING
    if operator is FilterOperator.NOT_EXISTS:
        return actual is MISSING
    if actual is MISSING:
        return False

    expected = attribute_filter.value
    if operator is FilterOperator.EQUALS:
        return values_equal(actual, expected)
    if operator is FilterOperator.NOT_EQUALS:
        return not values_equal(actual, expected)
    if operator is FilterOperator.CONTAINS:
        return _contains(actual, expected) is True
    if operator is FilterOperator.NOT_CONTAINS:
        return _contains(actual, expected) is False
    if operator in (
        FilterOperator.GREATER_THAN,
        FilterOperator.LESS_THAN,
        FilterOperator.GREATER_OR_EQUAL,
        FilterOperator.LESS_OR_EQUAL,
    ):
        return _compare_numbers(actual, expected, operator)
    if operator is FilterOperator.IN_RANGE:
        return _in_range(actual, attribute_filter)
    if operator is FilterOperator.IS_TRUE:
        return actual is True
    if operator is FilterOperator.IS_FALSE:
        return actual is False
    return False


def evaluate_group(group: FilterGroup, attributes: Mapping[str, Any] | None) -> bool:
    """Evaluate a group: leaf filters first, then nested groups, short-circuiting.

    An empty And group is True, an empty Or group is False.
    """
    children = (
        *((evaluate_filter, f) for f in group.filters),
        *((evaluate_group, g) for g in group.nested_groups),
    )
    results = (fn(child, attributes) for fn, child in children)
    if group.logical_operator is LogicalOperator.OR:
        return any(results)
    return all(results)


def evaluate(expression: FilterGroup | AttributeFilter, attributes: Mapping[str, Any] | None) -> bool:
    """Evaluate a filter expression against an attribute bag.

    Args:
        expression (FilterGroup | AttributeFilter): A validated filter tree or a single leaf.
        attributes (Mapping[str, Any] | None): The entity's full attribute bag.

    Returns:
        bool: True if the attributes satisfy the expression.
    """
    if isinstance(expression, AttributeFilter):
        return evaluate_filter(expression, attributes)
    return evaluate_group(expression, attributes)


##########################################
############## RESULT HELPERS ############
##########################################

def matched_attributes(
    group: FilterGroup | None,
    entity: Entity,
    requesting_user_id: str | None,
    enforce_privacy: bool = True,
    relationship_check: RelationshipCheck = no_relationships,
) -> dict[str, AttributeValue]:
    """Collect the values of every filtered field, keyed by filter path.

    With enforce_privacy, fields hidden from the requester are left out even
    though they took part in matching. A field nested under a hidden map
    ("salary.min" below a private "attributes.salary") counts as hidden.
    """
    matched: dict[str, AttributeValue] = {}
    if group is None:
        return matched
    for attribute_filter in group.iter_filters():
        path = attribute_filter.field_path
        if path in matched:
            continue
        value = resolve_field(entity.attributes, path)
        if value is MISSING:
            continue
        if enforce_privacy:
            visibility_path = attribute_field_path(path)
            if not is_path_visible(entity, visibility_path, requesting_user_id, relationship_check):
                continue
            value = redact_nested(entity, visibility_path, value, requesting_user_id, relationship_check)
        matched[path] = value
    return matched


def matches_metadata_filters(
    metadata: Mapping[str, Any] | None,
    filters: Mapping[str, Any] | None,
) -> bool:
    """Check that every metadata filter key exists with an equal value.

    Nested maps in the filter match recursively, so {"location": {"city": "Berlin"}}
    matches metadata {"location": {"city": "Berlin", "zip": "10115"}}.
    """
    if not filters:
        return True
    if not metadata:
        return False
    for key, expected in filters.items():
        if key not in metadata:
            return False
        actual = metadata[key]
        if isinstance(expected, Mapping):
            if not isinstance(actual, Mapping) or not matches_metadata_filters(actual, expected):
                return False
        elif not values_equal(actual, expected):
            return False
    return True
