import math

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import EntityNotFoundError, InvalidRequestError
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import (
    CLIENT_UPLOADED_SUMMARY,
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingStatus,
    EmbeddingStatusResponse,
    EntityEmbedding,
    UploadEmbeddingRequest,
    compute_summary_hash,
)
from shared.models.entity import utc_now
from server.core.EntityService import EntityService


class EmbeddingService:
    """Accepts client computed embeddings and reports their state.

    The server never embeds text itself. Uploaded vectors must match the
    configured dimension (EMBEDDING_DIMENSIONS) and one of the allowed models
    (EMBEDDING_ALLOWED_MODELS) so they stay comparable with query vectors.
    """

    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface, entity_service: EntityService) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._entity_service = entity_service
        self.dimensions = int(helper_config.get_number_val("EMBEDDING_DIMENSIONS", default=1536))
        self.allowed_models = helper_config.get_list_val(
            "EMBEDDING_ALLOWED_MODELS",
            default=["text-embedding-3-small", "text-embedding-3-large"],
        )

    ##########################################
    ############### VALIDATION ###############
    ##########################################

    def validate_vector(self, vector: list[float], label: str = "embedding") -> None:
        """Check that a vector is non-empty, finite and has the configured dimension.

        Raises:
            InvalidRequestError: If any check fails.
        """
        if not vector:
            raise InvalidRequestError(f"{label} is required")
        if len(vector) != self.dimensions:
            raise InvalidRequestError(f"{label} must have {self.dimensions} dimensions, got {len(vector)}")
        if not all(math.isfinite(v) for v in vector):
            raise InvalidRequestError(f"{label} contains NaN or infinite values")

    def _validate_model(self, model: str | None) -> str:
        model = model or DEFAULT_EMBEDDING_MODEL
        if self.allowed_models and model not in self.allowed_models:
            raise InvalidRequestError(
                f"Unsupported embedding model '{model}'. Allowed: {', '.join(self.allowed_models)}"
            )
        return model

    ##########################################
    ################## CORE ##################
    ##########################################

    async def upload_embedding(
        self,
        entity_id: str,
        request: UploadEmbeddingRequest,
        user_id: str | None,
        edit_token: str | None = None,
    ) -> EmbeddingStatusResponse:
        """Store a client computed embedding for an entity.

        Raises:
            InvalidRequestError: If the vector or model is rejected.
            EntityNotFoundError: If the entity does not exist.
            AccessDeniedError: If the caller cannot prove ownership.
        """
        self.validate_vector(request.embedding)
        model = self._validate_model(request.embedding_model)
        entity = await self._entity_service.get_editable_entity(entity_id, user_id, edit_token)

        generated_at = utc_now()
        if request.metadata and request.metadata.generated_at:
            generated_at = request.metadata.generated_at

        embedding = EntityEmbedding(
            entity_id=entity.id,
            embedding=list(request.embedding),
            embedding_model=model,
            dimensions=len(request.embedding),
            status=EmbeddingStatus.GENERATED,
            generated_at=generated_at,
            entity_last_modified=entity.last_modified,
            entity_summary=CLIENT_UPLOADED_SUMMARY,
            summary_hash=compute_summary_hash(CLIENT_UPLOADED_SUMMARY),
        )
        await self._store.upsert_embedding(embedding)
        self.logging.info(
            "Stored uploaded embedding for entity %s (%d dims, model=%s, client=%s).",
            entity_id, embedding.dimensions, model,
            request.metadata.client_version if request.metadata else "unknown",
        )
        return self._to_status(embedding, entity.last_modified)

    async def get_embedding_status(self, entity_id: str) -> EmbeddingStatusResponse:
        entity = await self._store.get_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        embedding = await self._store.get_embedding(entity_id)
        if embedding is None:
            raise EntityNotFoundError(entity_id, f"No embedding stored for entity {entity_id}")
        return self._to_status(embedding, entity.last_modified)

    async def delete_embedding(self, entity_id: str, user_id: str | None, edit_token: str | None = None) -> None:
        await self._entity_service.get_editable_entity(entity_id, user_id, edit_token)
        if not await self._store.delete_embedding(entity_id):
            raise EntityNotFoundError(entity_id, f"No embedding stored for entity {entity_id}")
        self.logging.info("Deleted embedding of entity %s.", entity_id)

    @staticmethod
    def _to_status(embedding: EntityEmbedding, entity_last_modified) -> EmbeddingStatusResponse:
        return EmbeddingStatusResponse(
            entity_id=embedding.entity_id,
            status=embedding.status,
            embedding_model=embedding.embedding_model,
            dimensions=embedding.dimensions,
            generated_at=embedding.generated_at,
            entity_last_modified=embedding.entity_last_modified,
            needs_regeneration=embedding.needs_regeneration(entity_last_modified),
            error_message=embedding.error_message,
        )
