import asyncio

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.SimilarityHit import SimilarityHit
from shared.helper.HelperConfig import HelperConfig
from shared.helper.vector_math import cosine_similarity
from shared.models.embedding import EmbeddingStatus, EntityEmbedding
from shared.models.entity import Entity


class StoreClientMemory(StoreClientInterface):
    """In-process entity store for local runs and tests.

    Data lives in two dicts keyed by entity id and is lost on restart.
    Similarity search is a brute force cosine scan. Records are deep copied on
    the way in and out so callers never share state with the store.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._entities: dict[str, Entity] = {}
        self._embeddings: dict[str, EntityEmbedding] = {}
        self._lock = asyncio.Lock()

    def _get_engine_name(self) -> str:
        return "Memory"

    async def is_healthy(self) -> bool:
        return True

    async def ensure_collection(self, vector_size: int) -> None:
        self.logging.debug("Memory store ready for %d dimensional embeddings.", vector_size)

    ##########################################
    ################ ENTITIES ################
    ##########################################

    async def upsert_entity(self, entity: Entity) -> Entity:
        async with self._lock:
            self._entities[entity.id] = entity.model_copy(deep=True)
        return entity

    async def get_entity(self, entity_id: str) -> Entity | None:
        async with self._lock:
            entity = self._entities.get(entity_id)
            return entity.model_copy(deep=True) if entity else None

    async def delete_entity(self, entity_id: str) -> bool:
        async with self._lock:
            self._embeddings.pop(entity_id, None)
            return self._entities.pop(entity_id, None) is not None

    async def list_entities(self, owner_id: str) -> list[Entity]:
        async with self._lock:
            return [e.model_copy(deep=True) for e in self._entities.values() if e.owned_by_user_id == owner_id]

    ##########################################
    ############### EMBEDDINGS ###############
    ##########################################

    async def upsert_embedding(self, embedding: EntityEmbedding) -> EntityEmbedding:
        async with self._lock:
            self._embeddings[embedding.entity_id] = embedding.model_copy(deep=True)
        return embedding

    async def get_embedding(self, entity_id: str) -> EntityEmbedding | None:
        async with self._lock:
            embedding = self._embeddings.get(entity_id)
            return embedding.model_copy(deep=True) if embedding else None

    async def delete_embedding(self, entity_id: str) -> bool:
        async with self._lock:
            return self._embeddings.pop(entity_id, None) is not None

    async def count_embeddings(self) -> int:
        async with self._lock:
            return sum(1 for e in self._embeddings.values() if e.status is EmbeddingStatus.GENERATED and e.embedding)

    async def search_similar(
        self,
        query_vector: list[float],
        limit: int,
        min_similarity: float,
        exclude_entity_id: str | None = None,
        searchable_only: bool = True,
    ) -> list[SimilarityHit]:
        hits: list[SimilarityHit] = []
        async with self._lock:
            for entity_id, embedding in self._embeddings.items():
                if entity_id == exclude_entity_id:
                    continue
                if embedding.status is not EmbeddingStatus.GENERATED or not embedding.embedding:
                    continue
                if len(embedding.embedding) != len(query_vector):
                    self.logging.warning(
                        "Skipping embedding of entity %s: %d dims, query has %d.",
                        entity_id, len(embedding.embedding), len(query_vector),
                    )
                    continue
                entity = self._entities.get(entity_id)
                if entity is None or (searchable_only and not entity.is_searchable):
                    continue
                score = cosine_similarity(query_vector, embedding.embedding)
                if score < min_similarity:
                    continue
                hits.append(SimilarityHit(entity=entity.model_copy(deep=True), score=score, dimensions=embedding.dimensions))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:limit]
