"""Unit tests for shared/privacy/visibility.py."""

import pytest

from shared.models.privacy import FieldVisibility
from shared.privacy.visibility import (
    any_field_visible,
    attribute_field_path,
    is_field_visible,
    is_path_visible,
    redact_nested,
    visible_attributes,
    visible_metadata,
)

OWNER_ID = "user-owner"
OTHER_ID = "user-other"

REQUESTERS = [OWNER_ID, OTHER_ID, "", None]


class TestSearchableSwitch:

    @pytest.mark.parametrize("requester", REQUESTERS)
    @pytest.mark.parametrize("path", ["name", "attributes.age", "unmapped", ""])
    def test_unsearchable_entity_hides_everything(self, make_entity, requester, path):
        entity = make_entity(public=("name", "attributes.age"), is_searchable=False)
        assert is_field_visible(entity, path, requester) is False

    def test_unsearchable_entity_hides_public_default(self, make_entity):
        entity = make_entity(is_searchable=False)
        entity.privacy_settings.default_visibility = FieldVisibility.PUBLIC
        assert is_field_visible(entity, "name", OWNER_ID) is False


class TestVisibilityLevels:

    @pytest.mark.parametrize("requester", REQUESTERS)
    def test_public_visible_to_everyone(self, make_entity, requester):
        entity = make_entity(public=("attributes.skills",))
        assert is_field_visible(entity, "attributes.skills", requester) is True

    def test_private_visible_to_owner_only(self, make_entity):
        entity = make_entity()
        entity.privacy_settings.set_field_visibility("attributes.birthday", FieldVisibility.PRIVATE)
        assert is_field_visible(entity, "attributes.birthday", OWNER_ID) is True
        assert is_field_visible(entity, "attributes.birthday", "") is False
        assert is_field_visible(entity, "attributes.birthday", None) is False
        assert is_field_visible(entity, "attributes.birthday", OTHER_ID) is False

    def test_owner_match_is_case_sensitive(self, make_entity):
        entity = make_entity()
        assert is_field_visible(entity, "name", OWNER_ID.upper()) is False

    def test_entity_without_owner_hides_private_fields(self, make_entity):
        entity = make_entity(owner=None)
        assert is_field_visible(entity, "name", "") is False
        assert is_field_visible(entity, "name", None) is False

    def test_unmapped_field_falls_back_to_default(self, make_entity):
        entity = make_entity()
        assert is_field_visible(entity, "attributes.unknown", OTHER_ID) is False
        entity.privacy_settings.default_visibility = FieldVisibility.PUBLIC
        assert is_field_visible(entity, "attributes.unknown", OTHER_ID) is True


class TestFriendsOnly:

    def test_behaves_like_private_without_relationships(self, make_entity):
        entity = make_entity(friends_only=("attributes.hobbies",))
        assert is_field_visible(entity, "attributes.hobbies", OWNER_ID) is True
        assert is_field_visible(entity, "attributes.hobbies", OTHER_ID) is False
        assert is_field_visible(entity, "attributes.hobbies", None) is False

    def test_relationship_check_grants_access(self, make_entity):
        entity = make_entity(friends_only=("attributes.hobbies",))
        friends = {(OWNER_ID, OTHER_ID)}

        def check(owner_id, requester_id):
            return (owner_id, requester_id) in friends

        assert is_field_visible(entity, "attributes.hobbies", OTHER_ID, check) is True
        assert is_field_visible(entity, "attributes.hobbies", "stranger", check) is False

    def test_relationship_check_not_consulted_for_private(self, make_entity):
        entity = make_entity()
        assert is_field_visible(entity, "name", OTHER_ID, lambda o, r: True) is False

    def test_failing_relationship_check_hides_field(self, make_entity):
        entity = make_entity(friends_only=("attributes.hobbies",))

        def broken(owner_id, requester_id):
            raise RuntimeError("friend service down")

        assert is_field_visible(entity, "attributes.hobbies", OTHER_ID, broken) is False


class TestAnyFieldVisible:

    @pytest.mark.parametrize("paths", [[], None, ()])
    def test_empty_path_list_is_false(self, make_entity, paths):
        entity = make_entity(public=("name",))
        assert any_field_visible(entity, paths, OWNER_ID) is False

    def test_true_if_one_path_visible(self, make_entity):
        entity = make_entity(public=("name",))
        assert any_field_visible(entity, ["attributes.birthday", "name"], OTHER_ID) is True
        assert any_field_visible(entity, ["attributes.birthday"], OTHER_ID) is False


class TestRedactionHelpers:

    def test_attribute_field_path(self):
        assert attribute_field_path("age") == "attributes.age"
        assert attribute_field_path("attributes.age") == "attributes.age"

    def test_visible_attributes_for_stranger(self, make_entity):
        entity = make_entity(
            attributes={"skills": ["python"], "birthday": "1990-01-01", "city": "Berlin"},
            public=("attributes.skills", "attributes.city"),
        )
        assert visible_attributes(entity, None) == {"skills": ["python"], "city": "Berlin"}
        assert visible_attributes(entity, OWNER_ID) == entity.attributes

    def test_visible_metadata(self, make_entity):
        entity = make_entity(metadata={"trustScore": 9, "internal": "x"}, public=("metadata.trustScore",))
        assert visible_metadata(entity, OTHER_ID) == {"trustScore": 9}
        assert visible_metadata(make_entity(), OTHER_ID) is None

    def test_attribute_field_path_keeps_nesting(self):
        assert attribute_field_path("salary.min") == "attributes.salary.min"


class TestNestedPaths:

    def test_hidden_ancestor_hides_descendant(self, make_entity):
        entity = make_entity(attributes={"salary": {"min": 1}})
        entity.privacy_settings.default_visibility = FieldVisibility.PUBLIC
        entity.privacy_settings.set_field_visibility("attributes.salary", FieldVisibility.PRIVATE)
        assert is_field_visible(entity, "attributes.salary.min", OTHER_ID) is True
        assert is_path_visible(entity, "attributes.salary.min", OTHER_ID) is False
        assert is_path_visible(entity, "attributes.salary.min", OWNER_ID) is True

    def test_unmapped_ancestors_do_not_widen(self, make_entity):
        entity = make_entity(public=("attributes.salary",))
        assert is_path_visible(entity, "attributes.salary.min", OTHER_ID) is False
        entity.privacy_settings.set_field_visibility("attributes.salary.min", FieldVisibility.PUBLIC)
        assert is_path_visible(entity, "attributes.salary.min", OTHER_ID) is True

    def test_blank_path_falls_back_to_default(self, make_entity):
        entity = make_entity()
        entity.privacy_settings.default_visibility = FieldVisibility.PUBLIC
        assert is_path_visible(entity, None, OTHER_ID) is True

    def test_redact_nested_drops_hidden_children(self, make_entity):
        entity = make_entity(public=("attributes.salary",))
        entity.privacy_settings.set_field_visibility("attributes.salary.range.max", FieldVisibility.PRIVATE)
        value = {"currency": "EUR", "range": {"min": 1, "max": 2}}
        assert redact_nested(entity, "attributes.salary", value, OTHER_ID) == {"currency": "EUR", "range": {"min": 1}}
        assert redact_nested(entity, "attributes.salary", value, OWNER_ID) == value
        assert redact_nested(entity, "attributes.salary", 5, OTHER_ID) == 5

    def test_visible_attributes_and_metadata_apply_nested_rules(self, make_entity):
        entity = make_entity(
            attributes={"salary": {"min": 1, "bonus": 2}, "city": "Berlin"},
            metadata={"location": {"city": "Berlin", "street": "Main"}},
            public=("attributes.salary", "attributes.city", "metadata.location"),
        )
        entity.privacy_settings.set_field_visibility("attributes.salary.bonus", FieldVisibility.PRIVATE)
        entity.privacy_settings.set_field_visibility("metadata.location.street", FieldVisibility.FRIENDS_ONLY)
        assert visible_attributes(entity, OTHER_ID) == {"salary": {"min": 1}, "city": "Berlin"}
        assert visible_metadata(entity, OTHER_ID) == {"location": {"city": "Berlin"}}
        assert visible_attributes(entity, OWNER_ID) == entity.attributes
