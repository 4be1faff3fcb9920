import secrets
from typing import Any

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import AccessDeniedError, EntityNotFoundError, InvalidRequestError
from shared.helper.HelperConfig import HelperConfig
from shared.models.entity import AttributeValue, Entity, utc_now
from shared.models.privacy import FieldVisibility, FieldVisibilitySettings
from shared.privacy.visibility import is_field_visible, visible_attributes, visible_metadata
from server.models.requests import InviteEntityRequest, PrivacySettingsRequest, UpdateAttributesRequest

# never echoed outside the invite response
OWNER_VIEW_EXCLUDE = {"edit_token"}


class EntityService:
    """Entity CRUD, metadata, attribute and privacy-settings operations.

    Mutations need proof of ownership: the owner's user id, or the invite edit
    token when the invitee is allowed to edit.
    """

    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client

    ##########################################
    ################ HELPERS #################
    ##########################################

    @staticmethod
    def is_owner(entity: Entity, user_id: str | None) -> bool:
        return bool(user_id) and bool(entity.owned_by_user_id) and entity.owned_by_user_id == user_id

    @staticmethod
    def _token_grants_access(entity: Entity, edit_token: str | None) -> bool:
        """True if edit_token is the entity's invite token and the invitee may edit."""
        if not (edit_token and entity.edit_token and entity.invitee_can_edit):
            return False
        return secrets.compare_digest(edit_token.encode("utf-8"), entity.edit_token.encode("utf-8"))

    def _authorize(self, entity: Entity, user_id: str | None, edit_token: str | None) -> None:
        """Raise AccessDeniedError unless the caller proves ownership of the entity."""
        if self.is_owner(entity, user_id) or self._token_grants_access(entity, edit_token):
            return
        self.logging.warning("Access denied on entity %s for user '%s'.", entity.id, user_id or "")
        raise AccessDeniedError(f"Not allowed to modify entity {entity.id}")

    async def _load(self, entity_id: str) -> Entity:
        entity = await self._store.get_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity

    async def get_editable_entity(self, entity_id: str, user_id: str | None, edit_token: str | None) -> Entity:
        """Load an entity and check that the caller may modify it.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            AccessDeniedError: If the caller cannot prove ownership.
        """
        entity = await self._load(entity_id)
        self._authorize(entity, user_id, edit_token)
        return entity

    async def _save(self, entity: Entity) -> Entity:
        entity.touch()
        return await self._store.upsert_entity(entity)

    ##########################################
    ################# VIEWS ##################
    ##########################################

    def owner_view(self, entity: Entity) -> dict[str, Any]:
        """Full entity document for its owner, without the edit token."""
        return entity.model_dump(mode="json", by_alias=True, exclude=OWNER_VIEW_EXCLUDE)

    def public_view(self, entity: Entity, requesting_user_id: str | None) -> dict[str, Any]:
        """Redacted entity document holding only the fields visible to the requester."""
        view: dict[str, Any] = {
            "id": entity.id,
            "entityType": entity.entity_type.value,
            "attributes": visible_attributes(entity, requesting_user_id),
            "lastModified": entity.last_modified.isoformat(),
        }
        for field_name in ("name", "description"):
            if is_field_visible(entity, field_name, requesting_user_id):
                view[field_name] = getattr(entity, field_name)
        metadata = visible_metadata(entity, requesting_user_id)
        if metadata:
            view["metadata"] = metadata
        return view

    ##########################################
    ################## CRUD ##################
    ##########################################

    async def list_entities(self, user_id: str | None) -> list[Entity]:
        if not user_id or not user_id.strip():
            raise InvalidRequestError("userId query parameter is required")
        entities = await self._store.list_entities(user_id)
        self.logging.info("Listed %d entit(ies) for user %s.", len(entities), user_id)
        return entities

    async def get_entity(self, entity_id: str, user_id: str | None = None) -> Entity:
        """Fetch an entity. With a user id, entities owned by someone else are reported as not found."""
        entity = await self._load(entity_id)
        if user_id and entity.owned_by_user_id != user_id:
            raise EntityNotFoundError(entity_id, f"Entity {entity_id} not found or access denied")
        return entity

    async def get_entity_view(
        self, entity_id: str, user_id: str | None = None, edit_token: str | None = None
    ) -> dict[str, Any]:
        """Owner view for the owner or a valid edit token holder, redacted view for everyone else.

        Raises:
            EntityNotFoundError: If the entity does not exist, belongs to another user, or is hidden from search.
        """
        entity = await self._load(entity_id)
        if self._token_grants_access(entity, edit_token):
            return self.owner_view(entity)
        if user_id and entity.owned_by_user_id != user_id:
            raise EntityNotFoundError(entity_id, f"Entity {entity_id} not found or access denied")
        if self.is_owner(entity, user_id):
            return self.owner_view(entity)
        if not entity.is_searchable:
            raise EntityNotFoundError(entity_id)
        return self.public_view(entity, user_id)

    def _prepare_new(self, entity: Entity, user_id: str | None) -> Entity:
        if user_id and entity.owned_by_user_id and entity.owned_by_user_id != user_id:
            raise InvalidRequestError("ownedByUserId does not match userId")
        entity.owned_by_user_id = entity.owned_by_user_id or user_id
        if not entity.owned_by_user_id:
            raise InvalidRequestError("ownedByUserId is required")
        if not entity.name or not entity.name.strip():
            raise InvalidRequestError("name is required")
        now = utc_now()
        entity.created_at = now
        entity.last_modified = now
        return entity

    async def create_entity(self, entity: Entity, user_id: str | None = None) -> Entity:
        entity = self._prepare_new(entity, user_id)
        if await self._store.get_entity(entity.id) is not None:
            raise InvalidRequestError(f"Entity {entity.id} already exists")
        entity.created_via_invite = False
        entity.edit_token = None
        entity.invite_created_at = None
        await self._store.upsert_entity(entity)
        self.logging.info("Created %s entity %s for user %s.", entity.entity_type.value, entity.id, entity.owned_by_user_id)
        return entity

    async def create_invited_entity(self, request: InviteEntityRequest, user_id: str | None = None) -> tuple[Entity, str]:
        """Create an entity on behalf of an invitee.

        Returns:
            tuple[Entity, str]: The stored entity and the edit token handed to the invitee.
        """
        entity = self._prepare_new(request.entity, user_id)
        if await self._store.get_entity(entity.id) is not None:
            raise InvalidRequestError(f"Entity {entity.id} already exists")
        edit_token = Entity.generate_edit_token()
        entity.created_via_invite = True
        entity.edit_token = edit_token
        entity.invitee_email = request.invitee_email
        entity.invitee_can_edit = request.invitee_can_edit
        entity.relationship_label = request.relationship_label
        entity.invite_created_at = entity.created_at
        await self._store.upsert_entity(entity)
        self.logging.info("Created invited entity %s for user %s.", entity.id, entity.owned_by_user_id)
        return entity, edit_token

    async def update_entity(self, entity_id: str, entity: Entity, user_id: str | None, edit_token: str | None = None) -> Entity:
        """Replace an entity document.

        createdAt, the owner and the invite credentials are carried over from
        the stored entity whatever the body says.
        """
        if "id" in entity.model_fields_set and entity.id != entity_id:
            raise InvalidRequestError(f"Entity id in body ({entity.id}) does not match route id ({entity_id})")
        existing = await self.get_editable_entity(entity_id, user_id, edit_token)
        if not entity.name or not entity.name.strip():
            raise InvalidRequestError("name is required")

        entity.id = entity_id
        entity.created_at = existing.created_at
        entity.owned_by_user_id = existing.owned_by_user_id
        entity.created_via_invite = existing.created_via_invite
        entity.edit_token = existing.edit_token
        entity.invitee_email = existing.invitee_email
        entity.invitee_can_edit = existing.invitee_can_edit
        entity.invite_created_at = existing.invite_created_at
        saved = await self._save(entity)
        self.logging.info("Updated entity %s.", entity_id)
        return saved

    async def delete_entity(self, entity_id: str, user_id: str | None, edit_token: str | None = None) -> None:
        await self.get_editable_entity(entity_id, user_id, edit_token)
        await self._store.delete_entity(entity_id)
        self.logging.info("Deleted entity %s and its embedding.", entity_id)

    ##########################################
    ######### METADATA & ATTRIBUTES ##########
    ##########################################

    async def get_metadata(
        self, entity_id: str, user_id: str | None = None, edit_token: str | None = None
    ) -> dict[str, AttributeValue]:
        """Full metadata for the owner or a valid edit token holder, the visible subset for everyone else."""
        entity = await self._load(entity_id)
        if self.is_owner(entity, user_id) or self._token_grants_access(entity, edit_token):
            return dict(entity.metadata or {})
        if not entity.is_searchable:
            raise EntityNotFoundError(entity_id)
        return visible_metadata(entity, user_id) or {}

    async def update_metadata(
        self, entity_id: str, patch: dict[str, AttributeValue], user_id: str | None, edit_token: str | None = None
    ) -> dict[str, AttributeValue]:
        """Merge patch into the entity metadata. Existing keys not in the patch are kept."""
        entity = await self.get_editable_entity(entity_id, user_id, edit_token)
        entity.metadata = {**(entity.metadata or {}), **patch}
        await self._save(entity)
        self.logging.debug("Merged %d metadata key(s) into entity %s.", len(patch), entity_id)
        return entity.metadata

    async def update_attributes(
        self, entity_id: str, request: UpdateAttributesRequest, user_id: str | None, edit_token: str | None = None
    ) -> Entity:
        entity = await self.get_editable_entity(entity_id, user_id, edit_token)
        for key, value in request.set.items():
            if not key or not key.strip():
                raise InvalidRequestError("attribute keys must not be empty")
            entity.set_attribute(key, value)
        for key in request.remove:
            entity.remove_attribute(key)
        await self._store.upsert_entity(entity)
        return entity

    ##########################################
    ################ PRIVACY #################
    ##########################################

    async def get_privacy_settings(self, entity_id: str, user_id: str | None, edit_token: str | None = None) -> Entity:
        return await self.get_editable_entity(entity_id, user_id, edit_token)

    async def set_field_visibility(
        self, entity_id: str, field_path: str, visibility: FieldVisibility, user_id: str | None, edit_token: str | None = None
    ) -> Entity:
        if not field_path or not field_path.strip():
            raise InvalidRequestError("field path must not be empty")
        entity = await self.get_editable_entity(entity_id, user_id, edit_token)
        entity.privacy_settings.set_field_visibility(field_path, visibility)
        await self._save(entity)
        self.logging.info("Set visibility of '%s' on entity %s to %s.", field_path, entity_id, visibility.value)
        return entity

    async def remove_field_visibility(self, entity_id: str, field_path: str, user_id: str | None, edit_token: str | None = None) -> Entity:
        """Drop an explicit visibility entry so the field falls back to the default level."""
        entity = await self.get_editable_entity(entity_id, user_id, edit_token)
        if not entity.privacy_settings.remove_field_visibility(field_path):
            raise EntityNotFoundError(entity_id, f"No visibility entry for '{field_path}' on entity {entity_id}")
        await self._save(entity)
        return entity

    async def set_privacy_settings(
        self, entity_id: str, request: PrivacySettingsRequest, user_id: str | None, edit_token: str | None = None
    ) -> Entity:
        entity = await self.get_editable_entity(entity_id, user_id, edit_token)
        settings: FieldVisibilitySettings = entity.privacy_settings
        settings.set_bulk_visibility(request.field_visibility)
        if request.default_visibility is not None:
            settings.default_visibility = request.default_visibility
        if request.is_searchable is not None:
            entity.is_searchable = request.is_searchable
        await self._save(entity)
        self.logging.info(
            "Updated privacy of entity %s: %d field(s), default=%s, searchable=%s.",
            entity_id, len(request.field_visibility), settings.default_visibility.value, entity.is_searchable,
        )
        return entity
