"""
API v1 Router

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter

from securyflex.api.v1.endpoints.consent import router as consent_router
from securyflex.api.v1.endpoints.devices import router as devices_router
from securyflex.api.v1.endpoints.health import router as health_router
from securyflex.api.v1.endpoints.privacy import router as privacy_router
from securyflex.api.v1.endpoints.tracking import router as tracking_router

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health_router,
    prefix="/health",
    tags=["Health"],
)

api_router.include_router(
    tracking_router,
    prefix="/tracking",
    tags=["Tracking"],
)

api_router.include_router(
    consent_router,
    prefix="/consent",
    tags=["Consent"],
)

api_router.include_router(
    privacy_router,
    prefix="/privacy",
    tags=["Privacy"],
)

api_router.include_router(
    devices_router,
    prefix="/devices",
    tags=["Devices"],
)
