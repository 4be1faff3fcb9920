from fastapi import APIRouter, Depends, Header, Query, Request, Response

from server.dependencies.auth import verify_api_key
from shared.models.embedding import EmbeddingStatusResponse, UploadEmbeddingRequest

router = APIRouter(prefix="/v1/entities", tags=["embeddings"], dependencies=[Depends(verify_api_key)])


@router.post("/{entity_id}/embeddings/upload")
async def upload_embedding(
    request: Request,
    entity_id: str,
    body: UploadEmbeddingRequest,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> EmbeddingStatusResponse:
    """Store a client computed embedding for an entity.

    Args:
        request (Request): FastAPI request (provides app.state.embedding_service).
        entity_id (str): The embedded entity.
        body (UploadEmbeddingRequest): Vector, model name and optional client metadata.
        user_id (str | None): Owner proof.
        x_edit_token (str | None): Invite edit token, alternative owner proof.

    Returns:
        EmbeddingStatusResponse: The stored embedding state, without the vector.
    """
    embedding_service = request.app.state.embedding_service
    return await embedding_service.upload_embedding(entity_id, body, user_id, x_edit_token)


@router.get("/{entity_id}/embeddings")
async def get_embedding_status(request: Request, entity_id: str) -> EmbeddingStatusResponse:
    return await request.app.state.embedding_service.get_embedding_status(entity_id)


@router.delete("/{entity_id}/embeddings", status_code=204)
async def delete_embedding(
    request: Request,
    entity_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    x_edit_token: str | None = Header(default=None),
) -> Response:
    await request.app.state.embedding_service.delete_embedding(entity_id, user_id, x_edit_token)
    return Response(status_code=204)
