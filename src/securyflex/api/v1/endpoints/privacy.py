"""
Privacy Endpoints

GDPR data portability export of a guard's location data.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from securyflex.api.dependencies import get_location_service
from securyflex.services.location.guard_location_service import GuardLocationService

router = APIRouter()


@router.get(
    "/{subject_id}/export",
    summary="Export a guard's location data",
)
async def export_subject_data(
    subject_id: str,
    start: Optional[datetime] = Query(default=None, description="Window start (ISO 8601)"),
    end: Optional[datetime] = Query(default=None, description="Window end (ISO 8601)"),
    service: GuardLocationService = Depends(get_location_service),
) -> dict:
    """
    Export proximity data and audit trail of a guard.

    Defaults to the last 30 days.
    """
    try:
        return await service.export_subject_data(subject_id, start=start, end=end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
