"""
Consent Endpoints

Create company monitoring consent requests for guards.
Granting or revoking consent happens in the guard's consent UI.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from securyflex.api.dependencies import get_location_service
from securyflex.services.location.guard_location_service import GuardLocationService

router = APIRouter()


class ConsentRequestBody(BaseModel):
    """Request to ask a guard for location consent."""

    organization_id: str = Field(..., min_length=1, description="Requesting company ID")


class ConsentRequestResponse(BaseModel):
    success: bool
    message: str
    consent_purpose: str
    request_id: Optional[str] = None
    purpose: Optional[str] = None
    data_usage: Optional[str] = None
    retention_period: Optional[str] = None


@router.post(
    "/{subject_id}/request",
    response_model=ConsentRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request location consent from a guard",
)
async def request_consent(
    subject_id: str,
    body: ConsentRequestBody,
    service: GuardLocationService = Depends(get_location_service),
) -> ConsentRequestResponse:
    """
    Create a pending company_monitoring consent request.

    A failed request is reported with success=false.
    """
    result = await service.request_consent(subject_id, body.organization_id)
    return ConsentRequestResponse(**result.to_dict())
