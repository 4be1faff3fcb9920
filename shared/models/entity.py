"""Entity model: the generic record that is stored, embedded and searched."""

import secrets
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import Field, JsonValue

from shared.models.base import ApiModel, lookup_enum_member
from shared.models.privacy import FieldVisibilitySettings

# Open attribute value: string | number | bool | list | nested map | null
AttributeValue = JsonValue


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EntityType(str, Enum):
    """Kind of thing an entity represents. Ordinals follow the declaration order."""

    PERSON = "Person"
    JOB = "Job"
    PROPERTY = "Property"
    PRODUCT = "Product"
    SERVICE = "Service"
    EVENT = "Event"
    MAJOR = "Major"
    CAREER = "Career"

    @classmethod
    def _missing_(cls, value: object) -> "EntityType | None":
        return lookup_enum_member(cls, value)


class Entity(ApiModel):
    """A searchable record owned by a user.

    Attributes:
        id:                  Generated UUID string.
        entity_type:         Kind of entity.
        external_id:         Identifier in the caller's own system, if any.
        external_source:     Name of that system.
        name:                Display name.
        description:         Free text description.
        attributes:          Open attribute bag used by attribute filters.
        metadata:            Secondary bag used by metadata filters. None when never set.
        privacy_settings:    Field level visibility settings.
        is_searchable:       Master switch. False hides every field and excludes the
                             entity from search.
        owned_by_user_id:    Owner. Only the owner sees Private fields.
        created_via_invite:  True if the entity was created by inviting someone.
        edit_token:          Secret that lets the invitee edit the entity.
        invitee_email:       Contact address of the invitee.
        invitee_can_edit:    Whether the edit token grants write access.
        relationship_label:  Owner defined label (e.g. "Mom"), shown next to the name.
        created_at:          Creation timestamp (UTC).
        last_modified:       Last change timestamp (UTC).
        invite_created_at:   When the invite was issued.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_type: EntityType = EntityType.PERSON
    external_id: str | None = None
    external_source: str | None = None
    name: str = ""
    description: str = ""
    attributes: dict[str, AttributeValue] = Field(default_factory=dict)
    metadata: dict[str, AttributeValue] | None = None
    privacy_settings: FieldVisibilitySettings = Field(default_factory=FieldVisibilitySettings)
    is_searchable: bool = True
    owned_by_user_id: str | None = None

    # invite
    created_via_invite: bool = False
    edit_token: str | None = None
    invitee_email: str | None = None
    invitee_can_edit: bool = True
    relationship_label: str | None = None
    invite_created_at: datetime | None = None

    # timestamps
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)

    ##########################################
    ############## ATTRIBUTES ################
    ##########################################

    def get_attribute(self, key: str, default: Any = None) -> Any:
        """Return a top-level attribute value, or default if the key is absent."""
        return self.attributes.get(key, default)

    def set_attribute(self, key: str, value: AttributeValue) -> None:
        """Set a top-level attribute and bump last_modified."""
        self.attributes[key] = value
        self.touch()

    def remove_attribute(self, key: str) -> bool:
        """Remove a top-level attribute.

        Returns:
            bool: True if the key existed. last_modified is only bumped in that case.
        """
        if key not in self.attributes:
            return False
        del self.attributes[key]
        self.touch()
        return True

    def touch(self) -> None:
        self.last_modified = utc_now()

    ##########################################
    ################ INVITE ##################
    ##########################################

    @property
    def is_owned_entity(self) -> bool:
        """True for entities created on behalf of someone else (via invite)."""
        return self.created_via_invite

    @property
    def display_name_with_relationship(self) -> str:
        if self.relationship_label:
            return f"{self.name} ({self.relationship_label})"
        return self.name

    @staticmethod
    def generate_edit_token() -> str:
        """Generate a URL-safe invite edit token with 32 bytes of entropy."""
        return secrets.token_urlsafe(32)
