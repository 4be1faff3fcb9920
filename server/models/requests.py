from pydantic import Field

from shared.models.base import ApiModel
from shared.models.entity import AttributeValue, Entity
from shared.models.privacy import FieldVisibility


class InviteEntityRequest(ApiModel):
    """Create an entity on behalf of someone else, e.g. a family member."""

    entity: Entity
    invitee_email: str | None = None
    invitee_can_edit: bool = True
    relationship_label: str | None = None


class UpdateAttributesRequest(ApiModel):
    """Set and remove attributes in one call. Removals run after the sets."""

    set: dict[str, AttributeValue] = Field(default_factory=dict)
    remove: list[str] = Field(default_factory=list)


class FieldVisibilityRequest(ApiModel):
    visibility: FieldVisibility


class PrivacySettingsRequest(ApiModel):
    """Bulk update of an entity's privacy settings. Omitted parts stay unchanged."""

    field_visibility: dict[str, FieldVisibility] = Field(default_factory=dict)
    default_visibility: FieldVisibility | None = None
    is_searchable: bool | None = None
