"""
Device Endpoints

The guard's mobile app reports its location permission state and
positions here. Reports feed the device's position source; tracking
sessions decide what happens to them.

PRIVACY: Reported positions are handed to the position source only.
They are never stored, logged or returned.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from securyflex.api.dependencies import get_device_registry
from securyflex.domain.models.location import Position
from securyflex.infrastructure.geolocation.provider import LocationPermission
from securyflex.infrastructure.geolocation.reported import DeviceRegistry

router = APIRouter()


class PermissionReport(BaseModel):
    """Device location permission state."""

    permission: LocationPermission
    service_enabled: bool = True


class PermissionResponse(BaseModel):
    subject_id: str
    permission: str
    service_enabled: bool


class PositionReport(BaseModel):
    """Device position fix."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    accuracy_m: Optional[float] = Field(default=None, ge=0.0)
    timestamp: Optional[datetime] = None


@router.put(
    "/{subject_id}/permission",
    response_model=PermissionResponse,
    summary="Report device location permission",
)
async def report_permission(
    subject_id: str,
    report: PermissionReport,
    registry: DeviceRegistry = Depends(get_device_registry),
) -> PermissionResponse:
    registry(subject_id).set_permission(report.permission, service_enabled=report.service_enabled)
    return PermissionResponse(
        subject_id=subject_id,
        permission=report.permission.value,
        service_enabled=report.service_enabled,
    )


@router.post(
    "/{subject_id}/positions",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a device position",
)
async def report_position(
    subject_id: str,
    report: PositionReport,
    registry: DeviceRegistry = Depends(get_device_registry),
) -> dict:
    """
    Hand a position to the guard's device source.

    Accepted positions are only processed while a tracking session
    with valid consent is running.
    """
    registry(subject_id).report(
        Position(
            latitude=report.latitude,
            longitude=report.longitude,
            accuracy_m=report.accuracy_m,
            timestamp=report.timestamp,
        )
    )
    return {"accepted": True}
