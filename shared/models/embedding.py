"""Pydantic models for client computed entity embeddings."""

import base64
import hashlib
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from shared.models.base import ApiModel
from shared.models.entity import utc_now

CLIENT_UPLOADED_SUMMARY = "[CLIENT_UPLOADED]"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class EmbeddingStatus(str, Enum):
    PENDING = "Pending"
    GENERATED = "Generated"
    FAILED = "Failed"


def compute_summary_hash(text: str) -> str:
    """Return the base64 encoded SHA-256 digest of a summary text."""
    return base64.b64encode(hashlib.sha256(text.encode("utf-8")).digest()).decode("ascii")


def embedding_id_for(entity_id: str) -> str:
    return f"embedding_{entity_id}"


class EntityEmbedding(ApiModel):
    """Stored embedding of one entity.

    Clients upload vectors they computed themselves, so entity_summary only
    holds a placeholder and summary_hash is the hash of that placeholder.

    Attributes:
        id:                   "embedding_<entityId>".
        entity_id:            Id of the embedded entity.
        embedding:            The vector. None while pending or after a failure.
        embedding_model:      Model that produced the vector.
        dimensions:           Length of the vector.
        status:               Lifecycle status. Only Generated embeddings are searchable.
        generated_at:         When the vector was produced.
        entity_last_modified: Entity timestamp the vector was computed from.
        entity_summary:       Text the vector represents.
        summary_hash:         base64 SHA-256 of entity_summary.
        error_message:        Reason of the last failure.
        retry_count:          Number of failed attempts.
    """

    id: str = ""
    entity_id: str
    embedding: list[float] | None = None
    embedding_model: str | None = None
    dimensions: int | None = None
    status: EmbeddingStatus = EmbeddingStatus.PENDING
    generated_at: datetime = Field(default_factory=utc_now)
    entity_last_modified: datetime = Field(default_factory=utc_now)
    entity_summary: str = ""
    summary_hash: str = ""
    error_message: str | None = None
    retry_count: int = 0

    def model_post_init(self, context: Any) -> None:
        if not self.id:
            self.id = embedding_id_for(self.entity_id)

    def needs_regeneration(self, entity_last_modified: datetime) -> bool:
        """True if the entity changed after this embedding was computed."""
        return entity_last_modified > self.entity_last_modified

    def summary_changed(self, new_summary: str) -> bool:
        return compute_summary_hash(new_summary) != self.summary_hash


class ClientEmbeddingMetadata(ApiModel):
    generated_at: datetime | None = None
    client_version: str | None = None


class UploadEmbeddingRequest(ApiModel):
    """Body of POST /v1/entities/{id}/embeddings/upload."""

    embedding: list[float] = Field(default_factory=list)
    embedding_model: str | None = DEFAULT_EMBEDDING_MODEL
    metadata: ClientEmbeddingMetadata | None = None


class EmbeddingStatusResponse(ApiModel):
    """Embedding state of an entity without the vector itself."""

    entity_id: str
    status: EmbeddingStatus
    embedding_model: str | None = None
    dimensions: int | None = None
    generated_at: datetime
    entity_last_modified: datetime
    needs_regeneration: bool = False
    error_message: str | None = None
