"""FastAPI application entry point for the entity matching API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.exceptions import AccessDeniedError, EntityNotFoundError, InvalidRequestError
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.StoreClientManager import StoreClientManager
from server.core.EntityService import EntityService
from server.core.EmbeddingService import EmbeddingService
from server.core.SearchService import SearchService
from server.routers.SystemRouter import router as system_router
from server.routers.EntityRouter import router as entity_router
from server.routers.EmbeddingRouter import router as embedding_router
from server.routers.SearchRouter import router as search_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_client = StoreClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting store client '%s'...", store_client.get_engine_name())
    await store_client.boot()
    await check_connections(store_client)
    await store_client.ensure_collection(
        int(app.state.helper_config.get_number_val("EMBEDDING_DIMENSIONS", default=1536))
    )
    logging.info("Store client booted successfully.", color="green")

    app.state.store_client = store_client
    app.state.entity_service = EntityService(
        helper_config=app.state.helper_config,
        store_client=store_client,
    )
    app.state.embedding_service = EmbeddingService(
        helper_config=app.state.helper_config,
        store_client=store_client,
        entity_service=app.state.entity_service,
    )
    app.state.search_service = SearchService(
        helper_config=app.state.helper_config,
        store_client=store_client,
    )

    # while the app is running...
    yield

    # when the app shuts down, close the store connection
    logging.info("Shutting down, closing store client...")
    await store_client.close()
    logging.info("Store client closed.")


app = FastAPI(
    title="entity_matching_api",
    description=(
        "Privacy-first entity matching. Stores generic entities (people, jobs, properties, ...), "
        "accepts client computed embeddings and serves hybrid search: vector similarity "
        "combined with structured attribute filters and field level privacy redaction."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system_router)
app.include_router(search_router)
app.include_router(embedding_router)
app.include_router(entity_router)


##########################################
############ ERROR HANDLING ##############
##########################################

@app.exception_handler(EntityNotFoundError)
async def handle_not_found(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AccessDeniedError)
async def handle_access_denied(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(InvalidRequestError)
async def handle_invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
    logging.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def check_connections(store_client: StoreClientInterface) -> None:
    """Check connectivity to the entity store on startup.

    Raises:
        Exception: If the store is not reachable. Nothing can be served without it.
    """
    if not await store_client.is_healthy():
        raise Exception(
            f"Store client '{store_client.__class__.__name__}' is not reachable. Cannot serve requests."
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting entity_matching_api v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
