import uuid

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.Scroll import ScrollResult
from shared.clients.store.models.SimilarityHit import SimilarityHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.embedding import EmbeddingStatus, EntityEmbedding
from shared.models.entity import Entity

VECTOR_NAME = "embedding"
SCROLL_PAGE_SIZE = 256


def make_point_id(entity_id: str) -> str:
    """Build a deterministic UUID5 point ID for an entity.

    Entity ids are free-form strings while Qdrant only accepts UUIDs or
    unsigned integers, so the same entity always maps to the same point.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"entity:{entity_id}"))


class StoreClientQdrant(ClientInterface, StoreClientInterface):
    """Entity store on top of the Qdrant REST API.

    Layout: one point per entity.
        id:      make_point_id(entity.id)
        vector:  {"embedding": [...]}  (named vector, cosine distance; empty until uploaded)
        payload: {"entity": <entity document>, "embedding": <embedding metadata without the vector>}
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="entities", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="entities"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_set_payload(self) -> str:
        return f"/collections/{self._collection_name}/points/payload"

    def _get_endpoint_delete_payload(self) -> str:
        return f"/collections/{self._collection_name}/points/payload/delete"

    def _get_endpoint_vectors(self) -> str:
        return f"/collections/{self._collection_name}/points/vectors"

    def _get_endpoint_delete_vectors(self) -> str:
        return f"/collections/{self._collection_name}/points/vectors/delete"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_scroll(self) -> str:
        return f"/collections/{self._collection_name}/points/scroll"

    def _get_endpoint_count(self) -> str:
        return f"/collections/{self._collection_name}/points/count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @staticmethod
    def _entity_payload(entity: Entity) -> dict:
        return entity.model_dump(mode="json", by_alias=True)

    @staticmethod
    def _embedding_payload(embedding: EntityEmbedding) -> dict:
        return embedding.model_dump(mode="json", by_alias=True, exclude={"embedding"})

    def get_search_filter(self, exclude_entity_id: str | None, searchable_only: bool) -> dict:
        must = [{"key": "embedding.status", "match": {"value": EmbeddingStatus.GENERATED.value}}]
        if searchable_only:
            must.append({"key": "entity.isSearchable", "match": {"value": True}})
        search_filter: dict = {"must": must}
        if exclude_entity_id:
            search_filter["must_not"] = [{"has_id": [make_point_id(exclude_entity_id)]}]
        return search_filter

    def get_search_payload(self, query_vector: list[float], limit: int, min_similarity: float, search_filter: dict) -> dict:
        return {
            "vector": {"name": VECTOR_NAME, "vector": query_vector},
            "limit": limit,
            "score_threshold": min_similarity,
            "with_payload": True,
            "with_vector": False,
            "filter": search_filter,
        }

    def get_scroll_payload(self, search_filter: dict, limit: int, offset: str | int | None = None) -> dict:
        payload = {
            "filter": search_filter,
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }
        if offset is not None:
            payload["offset"] = offset
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @staticmethod
    def _parse_entity(point: dict) -> Entity | None:
        raw = (point.get("payload") or {}).get("entity")
        return Entity.model_validate(raw) if raw else None

    @staticmethod
    def _parse_embedding(point: dict) -> EntityEmbedding | None:
        meta = (point.get("payload") or {}).get("embedding")
        if not meta:
            return None
        vector = point.get("vector")
        if isinstance(vector, dict):
            vector = vector.get(VECTOR_NAME)
        return EntityEmbedding.model_validate({**meta, "embedding": vector or None})

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def is_healthy(self) -> bool:
        try:
            response = await self.do_healthcheck()
        except httpx.HTTPError as exc:
            self.logging.error("Qdrant healthcheck failed: %s", exc)
            return False
        return response.is_success

    async def ensure_collection(self, vector_size: int) -> None:
        resp = await self.do_json_request("GET", self._get_endpoint_check_collection_existence())
        if resp.get("result", {}).get("exists"):
            self.logging.debug("Qdrant collection '%s' already exists.", self._collection_name)
            return
        self.logging.info("Creating Qdrant collection '%s' (size=%d, distance=Cosine)", self._collection_name, vector_size)
        await self.do_json_request(
            "PUT",
            self._get_endpoint_collection(),
            json={"vectors": {VECTOR_NAME: {"size": vector_size, "distance": "Cosine"}}},
        )

    async def _retrieve_point(self, entity_id: str, with_vector: bool) -> dict | None:
        resp = await self.do_json_request(
            "POST",
            self._get_endpoint_points(),
            json={"ids": [make_point_id(entity_id)], "with_payload": True, "with_vector": with_vector},
        )
        points = resp.get("result") or []
        return points[0] if points else None

    async def _set_payload(self, entity_id: str, payload: dict) -> None:
        await self.do_json_request(
            "POST",
            self._get_endpoint_set_payload(),
            params={"wait": "true"},
            json={"payload": payload, "points": [make_point_id(entity_id)]},
        )

    ################ ENTITIES ##################
    async def upsert_entity(self, entity: Entity) -> Entity:
        existing = await self._retrieve_point(entity.id, with_vector=False)
        if existing is not None:
            # only replace the entity document, the vector and embedding metadata stay
            await self._set_payload(entity.id, {"entity": self._entity_payload(entity)})
        else:
            await self.do_json_request(
                "PUT",
                self._get_endpoint_points(),
                params={"wait": "true"},
                json={"points": [{
                    "id": make_point_id(entity.id),
                    "vector": {},
                    "payload": {"entity": self._entity_payload(entity)},
                }]},
            )
        self.logging.debug("Upserted entity %s in Qdrant.", entity.id)
        return entity

    async def get_entity(self, entity_id: str) -> Entity | None:
        point = await self._retrieve_point(entity_id, with_vector=False)
        return self._parse_entity(point) if point else None

    async def delete_entity(self, entity_id: str) -> bool:
        if await self._retrieve_point(entity_id, with_vector=False) is None:
            return False
        await self.do_json_request(
            "POST",
            self._get_endpoint_delete_points(),
            params={"wait": "true"},
            json={"points": [make_point_id(entity_id)]},
        )
        return True

    async def do_scroll(self, search_filter: dict, limit: int = SCROLL_PAGE_SIZE, offset: str | int | None = None) -> ScrollResult:
        resp = await self.do_json_request("POST", self._get_endpoint_scroll(), json=self.get_scroll_payload(search_filter, limit, offset))
        result = resp.get("result") or {}
        return ScrollResult(result=result.get("points", []), next_page_offset=result.get("next_page_offset"))

    async def list_entities(self, owner_id: str) -> list[Entity]:
        search_filter = {"must": [{"key": "entity.ownedByUserId", "match": {"value": owner_id}}]}
        entities: list[Entity] = []
        offset: str | int | None = None
        while True:
            page = await self.do_scroll(search_filter, offset=offset)
            entities.extend(e for e in (self._parse_entity(p) for p in page.result) if e is not None)
            offset = page.next_page_offset
            if offset is None:
                break
        return entities

    ################ EMBEDDINGS ##################
    async def upsert_embedding(self, embedding: EntityEmbedding) -> EntityEmbedding:
        if embedding.embedding:
            await self.do_json_request(
                "PUT",
                self._get_endpoint_vectors(),
                params={"wait": "true"},
                json={"points": [{"id": make_point_id(embedding.entity_id), "vector": {VECTOR_NAME: embedding.embedding}}]},
            )
        await self._set_payload(embedding.entity_id, {"embedding": self._embedding_payload(embedding)})
        self.logging.debug("Stored %s embedding for entity %s (%s dims).", embedding.status.value, embedding.entity_id, embedding.dimensions)
        return embedding

    async def get_embedding(self, entity_id: str) -> EntityEmbedding | None:
        point = await self._retrieve_point(entity_id, with_vector=True)
        return self._parse_embedding(point) if point else None

    async def delete_embedding(self, entity_id: str) -> bool:
        point = await self._retrieve_point(entity_id, with_vector=False)
        if point is None or not (point.get("payload") or {}).get("embedding"):
            return False
        point_id = make_point_id(entity_id)
        await self.do_json_request(
            "POST",
            self._get_endpoint_delete_vectors(),
            params={"wait": "true"},
            json={"points": [point_id], "vector": [VECTOR_NAME]},
        )
        await self.do_json_request(
            "POST",
            self._get_endpoint_delete_payload(),
            params={"wait": "true"},
            json={"keys": ["embedding"], "points": [point_id]},
        )
        return True

    async def count_embeddings(self) -> int:
        resp = await self.do_json_request(
            "POST",
            self._get_endpoint_count(),
            json={"filter": self.get_search_filter(None, searchable_only=False), "exact": True},
        )
        return resp.get("result", {}).get("count", 0)

    async def search_similar(
        self,
        query_vector: list[float],
        limit: int,
        min_similarity: float,
        exclude_entity_id: str | None = None,
        searchable_only: bool = True,
    ) -> list[SimilarityHit]:
        payload = self.get_search_payload(
            query_vector, limit, min_similarity, self.get_search_filter(exclude_entity_id, searchable_only)
        )
        resp = await self.do_json_request("POST", self._get_endpoint_search(), json=payload)
        hits: list[SimilarityHit] = []
        for point in resp.get("result") or []:
            entity = self._parse_entity(point)
            if entity is None:
                continue
            meta = (point.get("payload") or {}).get("embedding") or {}
            hits.append(SimilarityHit(entity=entity, score=float(point.get("score", 0.0)), dimensions=meta.get("dimensions")))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits
