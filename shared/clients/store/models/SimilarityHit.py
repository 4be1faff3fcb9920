from pydantic import BaseModel

from shared.models.entity import Entity


class SimilarityHit(BaseModel):
    """A candidate returned by a store similarity search.

    Attributes:
        entity:     The full, unredacted entity.
        score:      Cosine similarity between the query vector and the entity embedding.
        dimensions: Length of the stored embedding.
    """

    entity: Entity
    score: float
    dimensions: int | None = None
