"""Shared fixtures for unit and API tests.

Tests run against the in-memory store with 3 dimensional embeddings.
No network, no Qdrant.
"""

import logging
import os
import tempfile
from typing import Callable

import pytest

# the API module configures file logging under $ROOT_DIR at import time
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="entity-matching-tests-"))

from shared.clients.store.memory.StoreClientMemory import StoreClientMemory  # noqa: E402
from shared.helper.HelperConfig import HelperConfig  # noqa: E402
from shared.models.entity import Entity, EntityType  # noqa: E402
from shared.models.privacy import FieldVisibility  # noqa: E402

API_KEY = "test-key"
OWNER_ID = "user-owner"


@pytest.fixture(autouse=True)
def app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_SERVER_API_KEY", API_KEY)
    monkeypatch.setenv("STORE_ENGINE", "memory")
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "3")
    monkeypatch.setenv("SEARCH_DEFAULT_MIN_SIMILARITY", "0.0")
    for key in (
        "EMBEDDING_ALLOWED_MODELS",
        "SEARCH_DEFAULT_LIMIT",
        "SEARCH_MAX_LIMIT",
        "SEARCH_OVERFETCH_FACTOR",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("entity_matching.tests"))


@pytest.fixture
def memory_store(helper_config: HelperConfig) -> StoreClientMemory:
    return StoreClientMemory(helper_config=helper_config)


@pytest.fixture
def make_entity() -> Callable[..., Entity]:
    """Factory for entities owned by OWNER_ID.

    public / friends_only list field paths mapped to that level; everything
    else stays at the Private default.
    """

    def _make(
        name: str = "Alice",
        attributes: dict | None = None,
        public: tuple[str, ...] = (),
        friends_only: tuple[str, ...] = (),
        owner: str | None = OWNER_ID,
        **kwargs,
    ) -> Entity:
        entity = Entity(
            name=name,
            entity_type=kwargs.pop("entity_type", EntityType.PERSON),
            attributes=attributes or {},
            owned_by_user_id=owner,
            **kwargs,
        )
        entity.privacy_settings.set_bulk_visibility({path: FieldVisibility.PUBLIC for path in public})
        entity.privacy_settings.set_bulk_visibility({path: FieldVisibility.FRIENDS_ONLY for path in friends_only})
        return entity

    return _make
