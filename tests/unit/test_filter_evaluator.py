"""Unit tests for shared/filters/evaluator.py."""

import pytest

from shared.filters.evaluator import (
    MISSING,
    evaluate,
    matched_attributes,
    matches_metadata_filters,
    resolve_field,
    values_equal,
)
from shared.models.filters import AttributeFilter, FilterGroup, FilterOperator, LogicalOperator
from shared.models.privacy import FieldVisibility


def leaf(path: str, operator: str, value=None, **kwargs) -> AttributeFilter:
    return AttributeFilter.model_validate({"fieldPath": path, "operator": operator, "value": value, **kwargs})


def group(operator: str = "And", *filters: AttributeFilter, nested: tuple[FilterGroup, ...] = ()) -> FilterGroup:
    return FilterGroup(logical_operator=LogicalOperator(operator), filters=filters, nested_groups=nested)


ATTRS = {
    "petTypes": ["Dog", "Cat"],
    "riskTolerance": 8,
    "hasPets": True,
    "smoker": False,
    "bio": "Loves hiking in the Alps",
    "salary": {"min": 50000, "max": 70000},
    "salary.currency": "EUR",
    "nickname": None,
    "scores": [1, 2.5],
    "emptyList": [],
}


class TestPathResolution:

    def test_exact_key_wins_over_dot_walk(self):
        assert resolve_field(ATTRS, "salary.currency") == "EUR"

    def test_dot_walk_into_nested_map(self):
        assert resolve_field(ATTRS, "salary.min") == 50000

    def test_attributes_prefix_is_stripped(self):
        assert resolve_field(ATTRS, "attributes.riskTolerance") == 8

    @pytest.mark.parametrize("path", ["unknown", "salary.median", "petTypes.0", "riskTolerance.x"])
    def test_unresolved_paths_are_missing(self, path):
        assert resolve_field(ATTRS, path) is MISSING

    def test_empty_bag(self):
        assert resolve_field({}, "a") is MISSING
        assert resolve_field(None, "a") is MISSING


class TestExistence:

    def test_missing_field(self):
        assert evaluate(leaf("unknown", "Equals", "x"), ATTRS) is False
        assert evaluate(leaf("unknown", "NotEquals", "x"), ATTRS) is False
        assert evaluate(leaf("unknown", "Exists"), ATTRS) is False
        assert evaluate(leaf("unknown", "NotExists"), ATTRS) is True

    def test_explicit_null_counts_as_existing(self):
        assert evaluate(leaf("nickname", "Exists"), ATTRS) is True
        assert evaluate(leaf("nickname", "NotExists"), ATTRS) is False

    def test_no_attributes_at_all(self):
        assert evaluate(leaf("a", "NotExists"), None) is True
        assert evaluate(leaf("a", "IsTrue"), None) is False


class TestEquality:

    def test_numeric_equality_across_int_and_float(self):
        assert evaluate(leaf("riskTolerance", "Equals", 8.0), ATTRS) is True

    def test_string_equality_is_case_sensitive(self):
        assert evaluate(leaf("bio", "Equals", "Loves hiking in the Alps"), ATTRS) is True
        assert evaluate(leaf("bio", "Equals", "loves hiking in the alps"), ATTRS) is False

    def test_type_mismatch_is_not_equal(self):
        assert evaluate(leaf("riskTolerance", "Equals", "8"), ATTRS) is False
        assert evaluate(leaf("riskTolerance", "NotEquals", "8"), ATTRS) is True

    def test_bool_is_not_numeric(self):
        assert values_equal(True, 1) is False
        assert values_equal(False, 0) is False
        assert values_equal(True, True) is True

    def test_structural_equality(self):
        assert evaluate(leaf("petTypes", "Equals", ["Dog", "Cat"]), ATTRS) is True
        assert evaluate(leaf("petTypes", "Equals", ["Cat", "Dog"]), ATTRS) is False
        assert evaluate(leaf("salary", "Equals", {"max": 70000, "min": 50000}), ATTRS) is True


class TestContains:

    def test_list_membership(self):
        assert evaluate(leaf("petTypes", "Contains", "Dog"), ATTRS) is True
        assert evaluate(leaf("petTypes", "Contains", "dog"), ATTRS) is False
        assert evaluate(leaf("petTypes", "NotContains", "Bird"), ATTRS) is True
        assert evaluate(leaf("scores", "Contains", 2.5), ATTRS) is True

    def test_substring(self):
        assert evaluate(leaf("bio", "Contains", "hiking"), ATTRS) is True
        assert evaluate(leaf("bio", "Contains", "Hiking"), ATTRS) is False
        assert evaluate(leaf("bio", "NotContains", "diving"), ATTRS) is True

    def test_non_string_needle_on_string_matches_neither(self):
        assert evaluate(leaf("bio", "Contains", 5), ATTRS) is False
        assert evaluate(leaf("bio", "NotContains", 5), ATTRS) is False

    def test_unsupported_type_matches_neither(self):
        assert evaluate(leaf("riskTolerance", "Contains", 8), ATTRS) is False
        assert evaluate(leaf("riskTolerance", "NotContains", 8), ATTRS) is False

    def test_empty_list(self):
        assert evaluate(leaf("emptyList", "Contains", "x"), ATTRS) is False
        assert evaluate(leaf("emptyList", "NotContains", "x"), ATTRS) is True


class TestNumericComparisons:

    @pytest.mark.parametrize("operator,value,expected", [
        ("GreaterThan", 6, True),
        ("GreaterThan", 8, False),
        ("LessThan", 9, True),
        ("LessThan", 8, False),
        ("GreaterOrEqual", 8, True),
        ("LessOrEqual", 7.9, False),
    ])
    def test_comparisons(self, operator, value, expected):
        assert evaluate(leaf("riskTolerance", operator, value), ATTRS) is expected

    def test_non_numeric_operands_never_match(self):
        assert evaluate(leaf("bio", "GreaterThan", 1), ATTRS) is False
        assert evaluate(leaf("riskTolerance", "GreaterThan", "1"), ATTRS) is False
        assert evaluate(leaf("hasPets", "GreaterThan", 0), ATTRS) is False

    @pytest.mark.parametrize("actual,expected", [(3, False), (5, True), (7, True), (10, True), (10.01, False)])
    def test_in_range_is_closed_interval(self, actual, expected):
        assert evaluate(leaf("n", "InRange", [5, 10]), {"n": actual}) is expected

    def test_in_range_with_min_max_fields(self):
        f = leaf("salary.min", "InRange", minValue=40000, maxValue=60000)
        assert evaluate(f, ATTRS) is True

    def test_huge_integers_compare_without_raising(self):
        huge = {"n": 10**400}
        assert evaluate(leaf("n", "GreaterThan", 1), huge) is True
        assert evaluate(leaf("n", "LessThan", 1.5), huge) is False
        assert evaluate(leaf("n", "GreaterOrEqual", 10**400), huge) is True
        assert evaluate(leaf("n", "InRange", [0, 10]), huge) is False
        assert evaluate(leaf("n", "InRange", [0, 10**401]), huge) is True
        assert evaluate(leaf("m", "LessThan", 10**400), {"m": 3}) is True

    def test_in_range_rejects_non_numeric_attribute(self):
        assert evaluate(leaf("bio", "InRange", [0, 10]), ATTRS) is False
        assert evaluate(leaf("hasPets", "InRange", [0, 10]), ATTRS) is False


class TestBooleans:

    def test_is_true_and_is_false(self):
        assert evaluate(leaf("hasPets", "IsTrue"), ATTRS) is True
        assert evaluate(leaf("smoker", "IsFalse"), ATTRS) is True
        assert evaluate(leaf("smoker", "IsTrue"), ATTRS) is False

    def test_truthy_non_bool_values_do_not_count(self):
        assert evaluate(leaf("riskTolerance", "IsTrue"), ATTRS) is False
        assert evaluate(leaf("emptyList", "IsFalse"), ATTRS) is False
        assert evaluate(leaf("nickname", "IsFalse"), ATTRS) is False


class TestGroups:

    def test_empty_groups(self):
        assert evaluate(group("And"), ATTRS) is True
        assert evaluate(group("Or"), ATTRS) is False

    def test_and_or(self):
        yes = leaf("hasPets", "IsTrue")
        no = leaf("smoker", "IsTrue")
        assert evaluate(group("And", yes, yes), ATTRS) is True
        assert evaluate(group("And", yes, no), ATTRS) is False
        assert evaluate(group("Or", no, yes), ATTRS) is True
        assert evaluate(group("Or", no, no), ATTRS) is False

    def test_nested_groups(self):
        # hasPets AND (smoker OR riskTolerance > 6)
        inner = group("Or", leaf("smoker", "IsTrue"), leaf("riskTolerance", "GreaterThan", 6))
        expression = group("And", leaf("hasPets", "IsTrue"), nested=(inner,))
        assert evaluate(expression, ATTRS) is True
        assert evaluate(expression, {**ATTRS, "riskTolerance": 2}) is False

    def test_deep_nesting(self):
        deepest = group("And", leaf("salary.max", "GreaterOrEqual", 70000))
        middle = group("Or", nested=(deepest,))
        top = group("And", nested=(middle,))
        assert evaluate(top, ATTRS) is True
        assert evaluate(top, {"salary": {"max": 1}}) is False

    def test_or_group_with_only_empty_nested_group_is_false(self):
        assert evaluate(group("Or", nested=(group("Or"),)), ATTRS) is False
        assert evaluate(group("Or", nested=(group("And"),)), ATTRS) is True


class TestPetsAndRiskScenario:

    ENTITY_ATTRS = {"petTypes": ["Dog", "Cat"], "riskTolerance": 8}

    def test_single_filters_match(self):
        assert evaluate(leaf("petTypes", "Contains", "Dog"), self.ENTITY_ATTRS) is True
        assert evaluate(leaf("riskTolerance", "GreaterThan", 6), self.ENTITY_ATTRS) is True

    def test_combined_and(self):
        expression = group("And", leaf("petTypes", "Contains", "Dog"), leaf("riskTolerance", "GreaterThan", 6))
        assert evaluate(expression, self.ENTITY_ATTRS) is True
        assert evaluate(expression, {**self.ENTITY_ATTRS, "riskTolerance": 4}) is False


class TestMatchedAttributes:

    def test_only_visible_filter_fields_reported(self, make_entity):
        entity = make_entity(attributes={"skills": ["python"], "age": 31}, public=("attributes.skills",))
        expression = group("And", leaf("skills", "Contains", "python"), leaf("age", "GreaterThan", 30))
        assert evaluate(expression, entity.attributes) is True
        assert matched_attributes(expression, entity, None) == {"skills": ["python"]}
        assert matched_attributes(expression, entity, "user-owner") == {"skills": ["python"], "age": 31}
        assert matched_attributes(expression, entity, None, enforce_privacy=False) == {"skills": ["python"], "age": 31}

    def test_missing_fields_and_no_group(self, make_entity):
        entity = make_entity(attributes={"a": 1}, public=("attributes.a", "attributes.b"))
        assert matched_attributes(group("Or", leaf("b", "NotExists"), leaf("a", "Exists")), entity, None) == {"a": 1}
        assert matched_attributes(None, entity, None) == {}

    def test_private_parent_map_hides_nested_filter_field(self, make_entity):
        entity = make_entity(attributes={"salary": {"min": 90000}})
        entity.privacy_settings.default_visibility = FieldVisibility.PUBLIC
        entity.privacy_settings.set_field_visibility("attributes.salary", FieldVisibility.PRIVATE)
        expression = group("And", leaf("salary.min", "GreaterThan", 1))

        assert evaluate(expression, entity.attributes) is True
        assert matched_attributes(expression, entity, None) == {}
        assert matched_attributes(expression, entity, "user-owner") == {"salary.min": 90000}

    def test_matched_nested_map_drops_hidden_children(self, make_entity):
        entity = make_entity(
            attributes={"salary": {"min": 50000, "bonus": 9000}},
            public=("attributes.salary",),
        )
        entity.privacy_settings.set_field_visibility("attributes.salary.bonus", FieldVisibility.PRIVATE)
        expression = group("And", leaf("salary", "Exists"))
        assert matched_attributes(expression, entity, None) == {"salary": {"min": 50000}}


class TestMetadataFilters:

    META = {"source": "import", "trust": 9, "location": {"city": "Berlin", "zip": "10115"}}

    def test_no_filters_match_everything(self):
        assert matches_metadata_filters(self.META, None) is True
        assert matches_metadata_filters(None, {}) is True

    def test_no_metadata_never_matches_filters(self):
        assert matches_metadata_filters(None, {"source": "import"}) is False
        assert matches_metadata_filters({}, {"source": "import"}) is False

    def test_all_keys_must_match(self):
        assert matches_metadata_filters(self.META, {"source": "import", "trust": 9}) is True
        assert matches_metadata_filters(self.META, {"source": "import", "trust": 8}) is False
        assert matches_metadata_filters(self.META, {"missing": 1}) is False

    def test_nested_maps_match_recursively(self):
        assert matches_metadata_filters(self.META, {"location": {"city": "Berlin"}}) is True
        assert matches_metadata_filters(self.META, {"location": {"city": "Paris"}}) is False
        assert matches_metadata_filters({"location": "Berlin"}, {"location": {"city": "Berlin"}}) is False
