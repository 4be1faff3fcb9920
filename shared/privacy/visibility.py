"""Field visibility resolver.

Decides, per entity field and requester, whether the field may be shown.
Every function here is pure and never raises: anything unexpected resolves
to "hidden".

Visibility map keys address the entity document with dot notation:
"name", "description", "attributes.<key>", "metadata.<key>".
"""

import logging
from typing import Callable, Iterable

from shared.models.entity import AttributeValue, Entity
from shared.models.privacy import FieldVisibility

logger = logging.getLogger(__name__)

# (owner_id, requester_id) -> True if the two users are related
RelationshipCheck = Callable[[str, str], bool]

ATTRIBUTES_PREFIX = "attributes."
METADATA_PREFIX = "metadata."


def no_relationships(owner_id: str, requester_id: str) -> bool:
    """Default relationship source: nobody is related to anybody."""
    return False


def _is_owner(entity: Entity, requesting_user_id: str | None) -> bool:
    owner = entity.owned_by_user_id
    return bool(requesting_user_id) and bool(owner) and owner == requesting_user_id


def is_field_visible(
    entity: Entity,
    field_path: str | None,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> bool:
    """Check whether a single field of an entity is visible to a requester.

    Rules, in order:
      1. A non searchable entity exposes nothing.
      2. The level is looked up in the privacy map, falling back to the default level.
      3. Public is visible to everyone. Private is visible to the owner only.
         FriendsOnly is visible to the owner and to requesters the
         relationship check reports as related to the owner.

    Ownership is an exact, case-sensitive match of two non-empty user ids.

    Args:
        entity (Entity): The entity the field belongs to.
        field_path (str | None): Dot-delimited field path, e.g. "attributes.skills".
        requesting_user_id (str | None): The requester. None or "" means anonymous.
        relationship_check (RelationshipCheck): Pluggable friendship lookup.

    Returns:
        bool: True if the field may be shown to the requester.
    """
    if not entity.is_searchable:
        return False

    level = entity.privacy_settings.get_field_visibility(field_path)

    if level is FieldVisibility.PUBLIC:
        return True
    if level is FieldVisibility.PRIVATE:
        return _is_owner(entity, requesting_user_id)
    if level is FieldVisibility.FRIENDS_ONLY:
        if _is_owner(entity, requesting_user_id):
            return True
        if not requesting_user_id or not entity.owned_by_user_id:
            return False
        try:
            return bool(relationship_check(entity.owned_by_user_id, requesting_user_id))
        except Exception as exc:
            logger.warning(
                "Relationship check failed for entity %s, treating field '%s' as hidden: %s",
                entity.id, field_path, exc,
            )
            return False
    return False


def any_field_visible(
    entity: Entity,
    field_paths: Iterable[str] | None,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> bool:
    """True if at least one of the given field paths is visible. Empty or None gives False."""
    if not field_paths:
        return False
    return any(is_field_visible(entity, path, requesting_user_id, relationship_check) for path in field_paths)


def _ancestor_paths(field_path: str) -> list[str]:
    """"attributes.salary.min" -> ["attributes", "attributes.salary"]."""
    parts = field_path.split(".")
    return [".".join(parts[:i]) for i in range(1, len(parts))]


def is_path_visible(
    entity: Entity,
    field_path: str | None,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> bool:
    """Check a possibly nested field path, honouring settings made on its ancestors.

    The path itself must resolve to visible, and no ancestor with an explicit
    visibility entry may be hidden. Hiding "attributes.salary" therefore also
    hides "attributes.salary.min", while unmapped ancestors do not widen or
    narrow anything.
    """
    if not is_field_visible(entity, field_path, requesting_user_id, relationship_check):
        return False
    settings = entity.privacy_settings
    for ancestor in _ancestor_paths(field_path or ""):
        if settings.has_explicit_visibility(ancestor) and not is_field_visible(
            entity, ancestor, requesting_user_id, relationship_check
        ):
            return False
    return True


def redact_nested(
    entity: Entity,
    field_path: str,
    value: AttributeValue,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> AttributeValue:
    """Drop keys of a nested map whose own explicit visibility entry hides them."""
    if not isinstance(value, dict):
        return value
    settings = entity.privacy_settings
    redacted: dict[str, AttributeValue] = {}
    for key, child in value.items():
        child_path = f"{field_path}.{key}"
        if settings.has_explicit_visibility(child_path) and not is_field_visible(
            entity, child_path, requesting_user_id, relationship_check
        ):
            continue
        redacted[key] = redact_nested(entity, child_path, child, requesting_user_id, relationship_check)
    return redacted


def attribute_field_path(key: str) -> str:
    """Map an attribute filter path ("age", "attributes.age") to its visibility path.

    Filter paths can reach into nested maps ("salary.min" becomes
    "attributes.salary.min"), so callers check the result with
    is_path_visible, which also applies entries set on "attributes.salary".
    """
    return key if key.startswith(ATTRIBUTES_PREFIX) else f"{ATTRIBUTES_PREFIX}{key}"


def _visible_subset(
    entity: Entity,
    bag: dict[str, AttributeValue],
    prefix: str,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck,
) -> dict[str, AttributeValue]:
    visible: dict[str, AttributeValue] = {}
    for key, value in bag.items():
        path = f"{prefix}{key}"
        if is_path_visible(entity, path, requesting_user_id, relationship_check):
            visible[key] = redact_nested(entity, path, value, requesting_user_id, relationship_check)
    return visible


def visible_attributes(
    entity: Entity,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> dict[str, AttributeValue]:
    """Return the subset of entity.attributes the requester may see.

    Nested maps are returned without the keys an explicit entry hides.
    """
    return _visible_subset(entity, entity.attributes, ATTRIBUTES_PREFIX, requesting_user_id, relationship_check)


def visible_metadata(
    entity: Entity,
    requesting_user_id: str | None,
    relationship_check: RelationshipCheck = no_relationships,
) -> dict[str, AttributeValue] | None:
    """Return the subset of entity.metadata the requester may see, or None if the entity has no metadata."""
    if entity.metadata is None:
        return None
    return _visible_subset(entity, entity.metadata, METADATA_PREFIX, requesting_user_id, relationship_check)
