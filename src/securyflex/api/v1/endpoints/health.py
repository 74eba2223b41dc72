"""
Health Check Endpoints

Provides system health and readiness endpoints for:
- Load balancer health checks
- Kubernetes probes
- Monitoring systems
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from securyflex import __version__
from securyflex.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness check response with component health."""

    ready: bool
    components: dict


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic health check endpoint for load balancers",
)
async def health_check() -> HealthResponse:
    """
    Basic health check.

    Returns 200 if application is running.
    """
    settings = get_settings()

    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.env,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness check including storage reachability",
)
async def readiness_check(request: Request) -> ReadinessResponse:
    """
    Detailed readiness check.

    Checks:
    - Location service initialized
    - Storage backend reachable
    """
    components = {}

    service = getattr(request.app.state, "location_service", None)
    components["location_service"] = service is not None

    try:
        components["storage"] = bool(service) and await service.health_check()
    except Exception:
        components["storage"] = False

    return ReadinessResponse(
        ready=all(components.values()),
        components=components,
    )


@router.get(
    "/live",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness_check() -> HealthResponse:
    """
    Kubernetes liveness probe.

    Returns 200 if application process is alive.
    """
    settings = get_settings()

    return HealthResponse(
        status="alive",
        version=__version__,
        environment=settings.env,
    )
