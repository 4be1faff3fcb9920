"""Unit tests for shared/models/filters.py: parse-time validation and immutability."""

import pytest
from pydantic import ValidationError

from shared.models.filters import AttributeFilter, FilterGroup, FilterOperator, LogicalOperator


class TestAttributeFilterValidation:

    def test_parses_camel_case_wire_format(self):
        f = AttributeFilter.model_validate({"fieldPath": "petTypes", "operator": "Contains", "value": "Dog"})
        assert f.field_path == "petTypes"
        assert f.operator is FilterOperator.CONTAINS
        assert f.value == "Dog"

    @pytest.mark.parametrize("path", ["", "   "])
    def test_empty_field_path_rejected(self, path):
        with pytest.raises(ValidationError, match="fieldPath"):
            AttributeFilter(field_path=path, operator=FilterOperator.EXISTS)

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            AttributeFilter.model_validate({"fieldPath": "age", "operator": "Approximately", "value": 3})

    @pytest.mark.parametrize("operator", [
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.CONTAINS,
        FilterOperator.NOT_CONTAINS,
        FilterOperator.GREATER_THAN,
        FilterOperator.LESS_THAN,
        FilterOperator.GREATER_OR_EQUAL,
        FilterOperator.LESS_OR_EQUAL,
    ])
    def test_value_operators_require_value(self, operator):
        with pytest.raises(ValidationError, match="requires a value"):
            AttributeFilter(field_path="age", operator=operator)

    @pytest.mark.parametrize("operator", [
        FilterOperator.IS_TRUE,
        FilterOperator.IS_FALSE,
        FilterOperator.EXISTS,
        FilterOperator.NOT_EXISTS,
    ])
    def test_unary_operators_need_no_value(self, operator):
        assert AttributeFilter(field_path="flag", operator=operator).value is None

    @pytest.mark.parametrize("raw", [
        {"value": [1]},
        {"value": [1, 2, 3]},
        {"value": ["a", "b"]},
        {"value": [True, False]},
        {"value": [10, 5]},
        {"minValue": 1},
        {"minValue": 9, "maxValue": 1},
        {},
    ])
    def test_malformed_in_range_rejected(self, raw):
        with pytest.raises(ValidationError, match="InRange"):
            AttributeFilter.model_validate({"fieldPath": "age", "operator": "InRange", **raw})

    def test_in_range_bounds_from_value_or_min_max(self):
        from_list = AttributeFilter.model_validate({"fieldPath": "age", "operator": "InRange", "value": [5, 10]})
        from_fields = AttributeFilter.model_validate(
            {"fieldPath": "age", "operator": "InRange", "minValue": 5, "maxValue": 10.5}
        )
        assert from_list.range_bounds() == (5, 10)
        assert from_fields.range_bounds() == (5, 10.5)

    def test_in_range_accepts_huge_integer_bounds(self):
        f = AttributeFilter.model_validate({"fieldPath": "n", "operator": "InRange", "value": [0, 10**400]})
        assert f.range_bounds() == (0, 10**400)
        with pytest.raises(ValidationError, match="greater than max"):
            AttributeFilter.model_validate({"fieldPath": "n", "operator": "InRange", "value": [10**400, 1]})

    def test_filter_is_frozen(self):
        f = AttributeFilter(field_path="age", operator=FilterOperator.EXISTS)
        with pytest.raises(ValidationError):
            f.field_path = "other"


class TestFilterGroup:

    def test_logical_operator_is_case_insensitive(self):
        assert FilterGroup.model_validate({"logicalOperator": "OR"}).logical_operator is LogicalOperator.OR
        assert FilterGroup.model_validate({"logicalOperator": "and"}).logical_operator is LogicalOperator.AND

    def test_defaults(self):
        group = FilterGroup()
        assert group.logical_operator is LogicalOperator.AND
        assert group.filters == ()
        assert group.nested_groups == ()
        assert group.has_filters is False

    def test_nested_parse_and_iteration(self):
        group = FilterGroup.model_validate({
            "logicalOperator": "And",
            "filters": [{"fieldPath": "a", "operator": "Exists"}],
            "nestedGroups": [{
                "logicalOperator": "Or",
                "filters": [{"fieldPath": "b", "operator": "IsTrue"}],
                "nestedGroups": [{"filters": [{"fieldPath": "c", "operator": "Equals", "value": 1}]}],
            }],
        })
        assert group.has_filters is True
        assert [f.field_path for f in group.iter_filters()] == ["a", "b", "c"]

    def test_has_filters_only_in_nested_group(self):
        group = FilterGroup(nested_groups=(FilterGroup(filters=(AttributeFilter(field_path="a", operator=FilterOperator.EXISTS),)),))
        assert group.has_filters is True
        assert FilterGroup(nested_groups=(FilterGroup(),)).has_filters is False

    def test_invalid_nested_filter_fails_whole_group(self):
        with pytest.raises(ValidationError):
            FilterGroup.model_validate({
                "nestedGroups": [{"filters": [{"fieldPath": "age", "operator": "GreaterThan"}]}],
            })

    def test_group_is_frozen(self):
        group = FilterGroup()
        with pytest.raises(ValidationError):
            group.logical_operator = LogicalOperator.OR
