"""Health check endpoints."""

from fastapi import APIRouter, Request

from ... import __version__
from ..schemas import HealthResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the API server is running and healthy.",
)
def health_check(request: Request) -> HealthResponse:
    """Return health status of the API server."""
    runtime = request.app.state.runtime
    return HealthResponse(
        status="healthy",
        version=__version__,
        model=getattr(runtime.engine, "model", "unknown"),
        model_family=runtime.profile.family.value,
        tools=len(runtime.registry),
    )
