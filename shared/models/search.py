"""Pydantic models for hybrid search requests and responses."""

from datetime import datetime

from pydantic import Field, field_validator

from shared.models.base import ApiModel
from shared.models.entity import AttributeValue, EntityType, utc_now
from shared.models.filters import FilterGroup


class SearchRequest(ApiModel):
    """Hybrid search query.

    The query text is only echoed for logging. The server never embeds text;
    query_vector must be computed by the client with the same model used for
    the uploaded entity embeddings.
    """

    query: str
    query_vector: list[float]
    attribute_filters: FilterGroup | None = None
    metadata_filters: dict[str, AttributeValue] | None = None
    requesting_user_id: str | None = None
    enforce_privacy: bool = True
    limit: int | None = Field(default=None, ge=1)
    min_similarity: float | None = Field(default=None, ge=-1.0, le=1.0)
    include_attributes: bool = False

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be empty")
        return value

    @field_validator("query_vector")
    @classmethod
    def _vector_not_empty(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("queryVector must not be empty")
        return value


class EntityMatch(ApiModel):
    """One search hit. Holds only fields visible to the requester."""

    entity_id: str
    similarity_score: float
    entity_type: EntityType
    entity_name: str | None = None
    matched_attributes: dict[str, AttributeValue] = Field(default_factory=dict)
    attributes: dict[str, AttributeValue] | None = None
    entity_last_modified: datetime | None = None
    embedding_dimensions: int | None = None


class SearchMetadata(ApiModel):
    searched_at: datetime = Field(default_factory=utc_now)
    total_embeddings_searched: int = 0
    candidates_evaluated: int = 0
    min_similarity: float = 0.0
    requested_limit: int = 0
    search_duration_ms: float = 0.0


class SearchResult(ApiModel):
    matches: list[EntityMatch] = Field(default_factory=list)
    total_matches: int = 0
    metadata: SearchMetadata = Field(default_factory=SearchMetadata)
