from fastapi import APIRouter, Depends, Query, Request

from server.dependencies.auth import verify_api_key
from shared.models.search import SearchRequest, SearchResult

router = APIRouter(prefix="/v1/entities", tags=["search"], dependencies=[Depends(verify_api_key)])


@router.post("/search")
async def search_entities(request: Request, body: SearchRequest) -> SearchResult:
    """Hybrid search: similarity to queryVector, narrowed by attribute and metadata filters.

    Args:
        request (Request): FastAPI request (provides app.state.search_service).
        body (SearchRequest): Query vector, filters, requester and paging options.

    Returns:
        SearchResult: Matches holding only fields visible to the requester.
    """
    search_service = request.app.state.search_service
    return await search_service.search(body)


@router.get("/{entity_id}/similar")
async def find_similar_entities(
    request: Request,
    entity_id: str,
    limit: int | None = Query(default=None, ge=1),
    min_similarity: float | None = Query(default=None, alias="minSimilarity", ge=-1.0, le=1.0),
    requesting_user_id: str | None = Query(default=None, alias="userId"),
    include_attributes: bool = Query(default=False, alias="includeAttributes"),
) -> SearchResult:
    """Entities similar to a stored entity, excluding the entity itself."""
    search_service = request.app.state.search_service
    return await search_service.find_similar(
        entity_id,
        limit=limit,
        min_similarity=min_similarity,
        requesting_user_id=requesting_user_id,
        include_attributes=include_attributes,
    )
