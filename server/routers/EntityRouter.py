from fastapi import APIRouter, Body, Depends, Header, Query, Request, Response
from fastapi.responses import JSONResponse

from server.core.EntityService import EntityService
from server.dependencies.auth import verify_api_key
from server.models.requests import (
    FieldVisibilityRequest,
    InviteEntityRequest,
    PrivacySettingsRequest,
    UpdateAttributesRequest,
)
from server.models.responses import InviteEntityResponse, PrivacySettingsResponse
from shared.models.entity import AttributeValue, Entity

router = APIRouter(prefix="/v1/entities", tags=["entities"], dependencies=[Depends(verify_api_key)])


def _service(request: Request) -> EntityService:
    return request.app.state.entity_service


def _privacy_response(entity: Entity) -> PrivacySettingsResponse:
    return PrivacySettingsResponse(
        entity_id=entity.id,
        is_searchable=entity.is_searchable,
        privacy_settings=entity.privacy_settings,
    )


##########################################
################## CRUD ##################
##########################################

@router.get("")
async def list_entities(request: Request, user_id: str | None = Query(default=None, alias="userId")) -> JSONResponse:
    """List every entity owned by userId."""
    service = _service(request)
    entities = await service.list_entities(user_id)
    return JSONResponse([service.owner_view(e) for e in entities])


@router.post("", status_code=201)
async def create_entity(
    request: Request,
    body: Entity,
    user_id: str | None = Query(default=None, alias="userId"),
) -> JSONResponse:
    """Create an entity. The owner comes from ownedByUserId or the userId query parameter."""
    service = _service(request)
    entity = await service.create_entity(body, user_id)
    return JSONResponse(service.owner_view(entity), status_code=201)


@router.post("/invite", status_code=201)
async def create_invited_entity(
    request: Request,
    body: InviteEntityRequest,
    user_id: str | None = Query(default=None, alias="userId"),
) -> JSONResponse:
    """Create an entity on behalf of an invitee. The response carries the edit token once."""
    service = _service(request)
    entity, edit_token = await service.create_invited_entity(body, user_id)
    payload = InviteEntityResponse(entity=entity, edit_token=edit_token).model_dump(mode="json", by_alias=True)
    payload["entity"] = service.owner_view(entity)
    return JSONResponse(payload, status_code=201)


@router.get("/{entity_id}")
async def get_entity(
    request: Request,
    entity_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> JSONResponse:
    """Full entity for its owner or an editing invitee, the publicly visible fields for everyone else."""
    return JSONResponse(await _service(request).get_entity_view(entity_id, user_id, x_edit_token))


@router.put("/{entity_id}")
async def update_entity(
    request: Request,
    entity_id: str,
    body: Entity,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> JSONResponse:
    service = _service(request)
    entity = await service.update_entity(entity_id, body, user_id, x_edit_token)
    return JSONResponse(service.owner_view(entity))


@router.delete("/{entity_id}", status_code=204)
async def delete_entity(
    request: Request,
    entity_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> Response:
    await _service(request).delete_entity(entity_id, user_id, x_edit_token)
    return Response(status_code=204)


##########################################
######### METADATA & ATTRIBUTES ##########
##########################################

@router.get("/{entity_id}/metadata")
async def get_metadata(
    request: Request,
    entity_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> dict[str, AttributeValue]:
    return await _service(request).get_metadata(entity_id, user_id, x_edit_token)


@router.patch("/{entity_id}/metadata")
async def update_metadata(
    request: Request,
    entity_id: str,
    body: dict[str, AttributeValue] = Body(...),
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> dict[str, AttributeValue]:
    """Merge the body into the entity metadata."""
    return await _service(request).update_metadata(entity_id, body, user_id, x_edit_token)


@router.patch("/{entity_id}/attributes")
async def update_attributes(
    request: Request,
    entity_id: str,
    body: UpdateAttributesRequest,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> JSONResponse:
    service = _service(request)
    entity = await service.update_attributes(entity_id, body, user_id, x_edit_token)
    return JSONResponse(service.owner_view(entity))


##########################################
################ PRIVACY #################
##########################################

@router.get("/{entity_id}/privacy")
async def get_privacy_settings(
    request: Request,
    entity_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> PrivacySettingsResponse:
    entity = await _service(request).get_privacy_settings(entity_id, user_id, x_edit_token)
    return _privacy_response(entity)


@router.put("/{entity_id}/privacy")
async def set_privacy_settings(
    request: Request,
    entity_id: str,
    body: PrivacySettingsRequest,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> PrivacySettingsResponse:
    """Bulk-set field visibility, and optionally the default level and the searchable flag."""
    entity = await _service(request).set_privacy_settings(entity_id, body, user_id, x_edit_token)
    return _privacy_response(entity)


@router.put("/{entity_id}/privacy/fields/{field_path}")
async def set_field_visibility(
    request: Request,
    entity_id: str,
    field_path: str,
    body: FieldVisibilityRequest,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> PrivacySettingsResponse:
    entity = await _service(request).set_field_visibility(entity_id, field_path, body.visibility, user_id, x_edit_token)
    return _privacy_response(entity)


@router.delete("/{entity_id}/privacy/fields/{field_path}")
async def remove_field_visibility(
    request: Request,
    entity_id: str,
    field_path: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> PrivacySettingsResponse:
    """Drop the explicit visibility of one field so it falls back to the default level."""
    entity = await _service(request).remove_field_visibility(entity_id, field_path, user_id, x_edit_token)
    return _privacy_response(entity)
