from fastapi import APIRouter, Request

from server.models.responses import HealthResponse, VersionResponse

router = APIRouter(tags=["system"])


@router.get("/version")
async def get_version(request: Request) -> VersionResponse:
    """Return the application name and version. No API key required."""
    return VersionResponse(name=request.app.title, version=request.app.version)


@router.get("/health")
async def get_health(request: Request) -> HealthResponse:
    """Report whether the entity store is reachable. No API key required."""
    store_client = request.app.state.store_client
    healthy = await store_client.is_healthy()
    return HealthResponse(
        status="ok" if healthy else "degraded",
        store_engine=store_client.get_engine_name(),
        store_healthy=healthy,
    )
