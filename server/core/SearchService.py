import time

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.SimilarityHit import SimilarityHit
from shared.exceptions import EntityNotFoundError, InvalidRequestError
from shared.filters.evaluator import evaluate, matched_attributes, matches_metadata_filters
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingStatus
from shared.models.entity import AttributeValue
from shared.models.filters import FilterGroup
from shared.models.search import EntityMatch, SearchMetadata, SearchRequest, SearchResult
from shared.privacy.visibility import RelationshipCheck, is_field_visible, no_relationships, visible_attributes


class SearchService:
    """Hybrid search: vector similarity, then attribute and metadata filters, then privacy redaction.

    Pipeline per candidate, in descending score order:
      1. drop entities that are not searchable
      2. evaluate attribute filters and metadata filters on the full, unredacted entity
      3. build the result item from fields visible to the requester only
    The result is truncated to the requested limit. A candidate that fails to
    evaluate is logged and skipped; the rest of the search goes on.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        relationship_check: RelationshipCheck = no_relationships,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._relationship_check = relationship_check
        self.dimensions = int(helper_config.get_number_val("EMBEDDING_DIMENSIONS", default=1536))
        self.default_limit = int(helper_config.get_number_val("SEARCH_DEFAULT_LIMIT", default=10))
        self.max_limit = int(helper_config.get_number_val("SEARCH_MAX_LIMIT", default=100))
        self.default_min_similarity = float(helper_config.get_number_val("SEARCH_DEFAULT_MIN_SIMILARITY", default=0.5))
        self.overfetch_factor = int(helper_config.get_number_val("SEARCH_OVERFETCH_FACTOR", default=2))

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_limit
        return max(1, min(limit, self.max_limit))

    def _resolve_min_similarity(self, min_similarity: float | None) -> float:
        return self.default_min_similarity if min_similarity is None else min_similarity

    def _validate_query_vector(self, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise InvalidRequestError(f"queryVector must have {self.dimensions} dimensions, got {len(vector)}")

    @staticmethod
    def _active_filters(attribute_filters: FilterGroup | None) -> FilterGroup | None:
        # an empty group means "no filtering", not "match nothing"
        if attribute_filters is None or not attribute_filters.has_filters:
            return None
        return attribute_filters

    def _build_match(
        self,
        hit: SimilarityHit,
        attribute_filters: FilterGroup | None,
        requesting_user_id: str | None,
        enforce_privacy: bool,
        include_attributes: bool,
    ) -> EntityMatch:
        entity = hit.entity
        if enforce_privacy:
            name_visible = is_field_visible(entity, "name", requesting_user_id, self._relationship_check)
            attributes: dict[str, AttributeValue] | None = (
                visible_attributes(entity, requesting_user_id, self._relationship_check) if include_attributes else None
            )
        else:
            name_visible = True
            attributes = dict(entity.attributes) if include_attributes else None

        return EntityMatch(
            entity_id=entity.id,
            similarity_score=hit.score,
            entity_type=entity.entity_type,
            entity_name=entity.name if name_visible else None,
            matched_attributes=matched_attributes(
                attribute_filters, entity, requesting_user_id, enforce_privacy, self._relationship_check
            ),
            attributes=attributes,
            entity_last_modified=entity.last_modified,
            embedding_dimensions=hit.dimensions,
        )

    ##########################################
    ################## CORE ##################
    ##########################################

    async def _run(
        self,
        query_vector: list[float],
        limit: int | None,
        min_similarity: float | None,
        attribute_filters: FilterGroup | None,
        metadata_filters: dict[str, AttributeValue] | None,
        requesting_user_id: str | None,
        enforce_privacy: bool,
        include_attributes: bool,
        exclude_entity_id: str | None = None,
    ) -> SearchResult:
        started = time.perf_counter()
        limit = self._resolve_limit(limit)
        min_similarity = self._resolve_min_similarity(min_similarity)
        attribute_filters = self._active_filters(attribute_filters)
        has_filters = attribute_filters is not None or bool(metadata_filters)
        candidate_limit = limit * self.overfetch_factor if has_filters else limit

        total_embeddings = await self._store.count_embeddings()
        hits = await self._store.search_similar(
            query_vector=query_vector,
            limit=candidate_limit,
            min_similarity=min_similarity,
            exclude_entity_id=exclude_entity_id,
            searchable_only=True,
        )
        self.logging.debug(
            "Store returned %d candidate(s) of %d embedding(s) (candidate_limit=%d, has_filters=%s).",
            len(hits), total_embeddings, candidate_limit, has_filters,
        )

        matches: list[EntityMatch] = []
        evaluated = 0
        for hit in sorted(hits, key=lambda h: h.score, reverse=True):
            if len(matches) >= limit:
                break
            evaluated += 1
            entity = hit.entity
            try:
                if not entity.is_searchable:
                    continue
                if attribute_filters is not None and not evaluate(attribute_filters, entity.attributes):
                    continue
                if metadata_filters and not matches_metadata_filters(entity.metadata, metadata_filters):
                    continue
                matches.append(self._build_match(hit, attribute_filters, requesting_user_id, enforce_privacy, include_attributes))
            except Exception as exc:
                self.logging.error("Skipping candidate %s, evaluation failed: %s", entity.id, exc)

        duration_ms = (time.perf_counter() - started) * 1000
        self.logging.info(
            "Search returned %d match(es) from %d candidate(s) in %.1f ms.",
            len(matches), evaluated, duration_ms,
        )
        return SearchResult(
            matches=matches,
            total_matches=len(matches),
            metadata=SearchMetadata(
                total_embeddings_searched=total_embeddings,
                candidates_evaluated=evaluated,
                min_similarity=min_similarity,
                requested_limit=limit,
                search_duration_ms=duration_ms,
            ),
        )

    async def search(self, request: SearchRequest) -> SearchResult:
        """Run a hybrid search with a client computed query vector.

        Args:
            request (SearchRequest): Query vector, optional filters, requester and paging options.

        Returns:
            SearchResult: Matches in descending similarity order, at most request.limit of them.

        Raises:
            InvalidRequestError: If the query vector has the wrong dimension.
        """
        self._validate_query_vector(request.query_vector)
        self.logging.info(
            "Search: query='%s', requester=%s, limit=%s, min_similarity=%s, filters=%s, metadata_filters=%s",
            request.query, request.requesting_user_id or "anonymous", request.limit, request.min_similarity,
            request.attribute_filters is not None and request.attribute_filters.has_filters,
            bool(request.metadata_filters),
        )
        return await self._run(
            query_vector=request.query_vector,
            limit=request.limit,
            min_similarity=request.min_similarity,
            attribute_filters=request.attribute_filters,
            metadata_filters=request.metadata_filters,
            requesting_user_id=request.requesting_user_id,
            enforce_privacy=request.enforce_privacy,
            include_attributes=request.include_attributes,
        )

    async def find_similar(
        self,
        entity_id: str,
        limit: int | None = None,
        min_similarity: float | None = None,
        attribute_filters: FilterGroup | None = None,
        metadata_filters: dict[str, AttributeValue] | None = None,
        requesting_user_id: str | None = None,
        enforce_privacy: bool = True,
        include_attributes: bool = False,
    ) -> SearchResult:
        """Find entities similar to a stored entity, using its embedding as the query vector.

        Raises:
            EntityNotFoundError: If the reference entity does not exist or is hidden from the requester.
            InvalidRequestError: If the reference has no generated embedding.
        """
        entity = await self._store.get_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        is_owner = bool(requesting_user_id) and entity.owned_by_user_id == requesting_user_id
        if not entity.is_searchable and not is_owner:
            raise EntityNotFoundError(entity_id)

        reference = await self._store.get_embedding(entity_id)
        if reference is None:
            raise InvalidRequestError(f"No embedding found for entity {entity_id}")
        if reference.status is not EmbeddingStatus.GENERATED:
            raise InvalidRequestError(f"Embedding for entity {entity_id} is not generated (status: {reference.status.value})")
        if not reference.embedding:
            raise InvalidRequestError(f"Embedding vector for entity {entity_id} is empty")

        self.logging.info("Finding entities similar to %s for requester %s.", entity_id, requesting_user_id or "anonymous")
        return await self._run(
            query_vector=reference.embedding,
            limit=limit,
            min_similarity=min_similarity,
            attribute_filters=attribute_filters,
            metadata_filters=metadata_filters,
            requesting_user_id=requesting_user_id,
            enforce_privacy=enforce_privacy,
            include_attributes=include_attributes,
            exclude_entity_id=entity_id,
        )
