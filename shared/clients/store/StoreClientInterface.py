from abc import ABC, abstractmethod

from shared.clients.store.models.SimilarityHit import SimilarityHit
from shared.models.embedding import EntityEmbedding
from shared.models.entity import Entity


class StoreClientInterface(ABC):
    """Persistence contract for entities and their embeddings.

    One record per entity holds the entity document and, once uploaded, its
    embedding. Engines live in shared.clients.store.<engine>.StoreClient<Engine>
    and are picked by StoreClientManager.

    Every method returns full, unredacted entities. Privacy filtering is the
    caller's job.
    """

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """
        Returns the name of the engine used by the client in lowercase. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Acquire connections or other resources. No-op by default."""

    async def close(self) -> None:
        """Release everything acquired in boot(). No-op by default."""

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Return True if the backend is reachable and serving requests."""
        pass

    @abstractmethod
    async def ensure_collection(self, vector_size: int) -> None:
        """Create the backing collection if it does not exist yet.

        Args:
            vector_size (int): Dimension of the stored embeddings.
        """
        pass

    ##########################################
    ################ ENTITIES ################
    ##########################################

    @abstractmethod
    async def upsert_entity(self, entity: Entity) -> Entity:
        """Insert or replace an entity document. A stored embedding is kept.

        Returns:
            Entity: The stored entity.
        """
        pass

    @abstractmethod
    async def get_entity(self, entity_id: str) -> Entity | None:
        pass

    @abstractmethod
    async def delete_entity(self, entity_id: str) -> bool:
        """Delete an entity together with its embedding.

        Returns:
            bool: True if the entity existed.
        """
        pass

    @abstractmethod
    async def list_entities(self, owner_id: str) -> list[Entity]:
        """Return every entity owned by owner_id."""
        pass

    ##########################################
    ############### EMBEDDINGS ###############
    ##########################################

    @abstractmethod
    async def upsert_embedding(self, embedding: EntityEmbedding) -> EntityEmbedding:
        """Attach an embedding to its (existing) entity, replacing any previous one."""
        pass

    @abstractmethod
    async def get_embedding(self, entity_id: str) -> EntityEmbedding | None:
        pass

    @abstractmethod
    async def delete_embedding(self, entity_id: str) -> bool:
        """Drop the embedding of an entity, keeping the entity.

        Returns:
            bool: True if an embedding existed.
        """
        pass

    @abstractmethod
    async def count_embeddings(self) -> int:
        """Return the number of entities holding a Generated embedding."""
        pass

    @abstractmethod
    async def search_similar(
        self,
        query_vector: list[float],
        limit: int,
        min_similarity: float,
        exclude_entity_id: str | None = None,
        searchable_only: bool = True,
    ) -> list[SimilarityHit]:
        """Rank stored embeddings by cosine similarity to a query vector.

        Only Generated embeddings take part.

        Args:
            query_vector (list[float]): The query embedding.
            limit (int): Maximum number of hits.
            min_similarity (float): Score floor; hits below it are dropped.
            exclude_entity_id (str | None): Entity to leave out, e.g. the reference of a similar-search.
            searchable_only (bool): Leave out entities with is_searchable=False.

        Returns:
            list[SimilarityHit]: Hits in descending score order.
        """
        pass
