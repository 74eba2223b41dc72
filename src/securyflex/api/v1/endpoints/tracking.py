"""
Tracking Endpoints

Start and stop guard location tracking, update availability and
read the proximity-only location state shown on the company
dashboard.

PRIVACY: Responses contain proximity classifications only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from securyflex.api.dependencies import get_location_service
from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import GuardAvailabilityStatus
from securyflex.services.location.guard_location_service import GuardLocationService

logger = get_logger(__name__)
router = APIRouter()


# Request/Response Models

class StartTrackingRequest(BaseModel):
    """Request to start tracking a guard."""

    organization_id: str = Field(..., min_length=1, description="Monitoring company ID")
    request_consent_if_needed: bool = Field(
        default=True,
        description="Report missing consent as requires_consent",
    )


class TrackingResultResponse(BaseModel):
    """Outcome of a tracking start attempt."""

    success: bool
    message: str
    requires_consent: bool
    consent_purpose: Optional[str] = None
    permission_denied: bool
    state: str

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "message": "Locatie toestemming vereist van beveiliger",
                "requires_consent": True,
                "consent_purpose": "company_monitoring",
                "permission_denied": False,
                "state": "consent_required",
            }
        }


class UpdateStatusRequest(BaseModel):
    """Availability update for a tracked guard."""

    status: GuardAvailabilityStatus
    current_assignment: Optional[str] = None
    current_assignment_title: Optional[str] = None


class ProximityResponse(BaseModel):
    status: str
    nearest_work_area_name: Optional[str] = None
    approximate_distance_m: Optional[int] = None


class GuardLocationResponse(BaseModel):
    """Guard location record (no coordinates)."""

    subject_id: str
    organization_id: str
    guard_name: str
    status: str
    last_update: str
    is_location_enabled: bool
    current_assignment: Optional[str] = None
    current_assignment_title: Optional[str] = None
    current_location: Optional[str] = None
    proximity: Optional[ProximityResponse] = None
    auto_delete_at: str
    privacy_compliant: bool
    coordinates_obfuscated: bool
    proximity_only: bool


class PrivacyStatsResponse(BaseModel):
    """Organization privacy overview."""

    total_guards: int
    active_consents: int
    privacy_compliant_updates: int
    data_minimization_active: bool
    coordinate_obfuscation_active: bool
    auto_delete_enabled: bool
    last_privacy_audit: str
    consent_rate: int


# Endpoints

@router.post(
    "/{subject_id}/start",
    response_model=TrackingResultResponse,
    summary="Start privacy-compliant location tracking",
)
async def start_tracking(
    subject_id: str,
    request: StartTrackingRequest,
    service: GuardLocationService = Depends(get_location_service),
) -> TrackingResultResponse:
    """
    Start tracking a guard for a company.

    Missing consent and missing device permission are reported in the
    response body (success=false), not as HTTP errors.
    """
    result = await service.initialize_tracking(
        subject_id,
        request.organization_id,
        request_consent_if_needed=request.request_consent_if_needed,
    )
    return TrackingResultResponse(**result.to_dict())


@router.post(
    "/{subject_id}/stop",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Stop location tracking",
)
async def stop_tracking(
    subject_id: str,
    service: GuardLocationService = Depends(get_location_service),
) -> Response:
    """Stop tracking a guard. Succeeds when no session is running."""
    await service.stop_tracking(subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{subject_id}/status",
    response_model=GuardLocationResponse,
    summary="Update guard availability",
)
async def update_status(
    subject_id: str,
    request: UpdateStatusRequest,
    service: GuardLocationService = Depends(get_location_service),
) -> GuardLocationResponse:
    record = await service.update_guard_status(
        subject_id,
        request.status,
        current_assignment=request.current_assignment,
        current_assignment_title=request.current_assignment_title,
    )
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No location record for guard {subject_id}",
        )
    return GuardLocationResponse(**record.to_dict())


@router.get(
    "/organizations/{organization_id}/guards",
    response_model=list[GuardLocationResponse],
    summary="List location-enabled guards of a company",
)
async def list_organization_guards(
    organization_id: str,
    service: GuardLocationService = Depends(get_location_service),
) -> list[GuardLocationResponse]:
    records = await service.list_organization_guard_locations(organization_id)
    return [GuardLocationResponse(**record.to_dict()) for record in records]


@router.get(
    "/organizations/{organization_id}/privacy-stats",
    response_model=PrivacyStatsResponse,
    summary="Location privacy statistics of a company",
)
async def privacy_stats(
    organization_id: str,
    service: GuardLocationService = Depends(get_location_service),
) -> PrivacyStatsResponse:
    stats = await service.get_location_privacy_stats(organization_id)
    return PrivacyStatsResponse(**stats.to_dict())


@router.get(
    "/{subject_id}",
    response_model=GuardLocationResponse,
    summary="Current location state of a guard",
)
async def get_guard_location(
    subject_id: str,
    service: GuardLocationService = Depends(get_location_service),
) -> GuardLocationResponse:
    record = await service.get_guard_location(subject_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No location record for guard {subject_id}",
        )
    return GuardLocationResponse(**record.to_dict())
