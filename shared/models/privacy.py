"""Pydantic models for field-level privacy settings.

Hierarchy:
  FieldVisibility         : visibility level of a single field.
  FieldVisibilitySettings : per-entity map of field path -> level plus a default.
"""

from enum import Enum

from pydantic import Field

from shared.models.base import ApiModel, lookup_enum_member


class FieldVisibility(str, Enum):
    """Visibility level of a single entity field.

    PRIVATE:      visible to the owner only (birthday, contact data, health data).
    PUBLIC:       visible to every requester, anonymous ones included.
    FRIENDS_ONLY: visible to the owner and to requesters related to the owner.
                  No relationship source exists yet, so it currently behaves like PRIVATE.
    """

    PRIVATE = "Private"
    PUBLIC = "Public"
    FRIENDS_ONLY = "FriendsOnly"

    @classmethod
    def _missing_(cls, value: object) -> "FieldVisibility | None":
        return lookup_enum_member(cls, value)


class FieldVisibilitySettings(ApiModel):
    """Maps entity field paths to their visibility level.

    Paths address the entity document with dot notation, for example
    "name", "description", "attributes.skills" or "metadata.trustScore".
    Paths that are not mapped fall back to default_visibility, which is
    PRIVATE unless the owner opts into something else (fail-closed).

    The map is only ever changed through the explicit setters below; nothing
    populates it automatically.
    """

    field_visibility_map: dict[str, FieldVisibility] = Field(default_factory=dict, alias="fieldVisibility")
    default_visibility: FieldVisibility = FieldVisibility.PRIVATE

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_field_visibility(self, field_path: str | None) -> FieldVisibility:
        """Return the visibility level for a field path.

        Args:
            field_path (str | None): Dot-delimited field path.

        Returns:
            FieldVisibility: The mapped level, or default_visibility for blank or unmapped paths.
        """
        if not field_path or not field_path.strip():
            return self.default_visibility
        return self.field_visibility_map.get(field_path, self.default_visibility)

    def has_explicit_visibility(self, field_path: str | None) -> bool:
        """Check whether a field path carries its own visibility entry."""
        return bool(field_path and field_path.strip()) and field_path in self.field_visibility_map

    def get_public_fields(self) -> list[str]:
        """Return every explicitly mapped field path set to PUBLIC."""
        return [path for path, level in self.field_visibility_map.items() if level is FieldVisibility.PUBLIC]

    def get_private_fields(self) -> list[str]:
        """Return every explicitly mapped field path set to PRIVATE."""
        return [path for path, level in self.field_visibility_map.items() if level is FieldVisibility.PRIVATE]

    ##########################################
    ################ SETTER ##################
    ##########################################

    def set_field_visibility(self, field_path: str | None, visibility: FieldVisibility) -> None:
        """Set the visibility of a single field path. Blank paths are ignored."""
        if not field_path or not field_path.strip():
            return
        self.field_visibility_map[field_path] = FieldVisibility(visibility)

    def set_bulk_visibility(self, visibility_map: dict[str, FieldVisibility] | None) -> None:
        """Set the visibility of several field paths at once. Blank keys are skipped."""
        if not visibility_map:
            return
        for field_path, visibility in visibility_map.items():
            self.set_field_visibility(field_path, visibility)

    def remove_field_visibility(self, field_path: str | None) -> bool:
        """Drop the explicit entry of a field path so it reverts to default_visibility.

        Returns:
            bool: True if an entry was removed.
        """
        if not field_path or not field_path.strip():
            return False
        return self.field_visibility_map.pop(field_path, None) is not None
