from shared.models.base import ApiModel
from shared.models.entity import Entity
from shared.models.privacy import FieldVisibilitySettings


class VersionResponse(ApiModel):
    name: str
    version: str


class HealthResponse(ApiModel):
    status: str
    store_engine: str
    store_healthy: bool


class InviteEntityResponse(ApiModel):
    """The only response that carries the edit token."""

    entity: Entity
    edit_token: str


class PrivacySettingsResponse(ApiModel):
    entity_id: str
    is_searchable: bool
    privacy_settings: FieldVisibilitySettings
