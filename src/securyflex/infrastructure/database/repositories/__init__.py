"""
Repository pattern implementations package.
"""

from securyflex.infrastructure.database.repositories.base import BaseRepository
from securyflex.infrastructure.database.repositories.consent_repository import (
    ConsentRepository,
    ConsentRequestRepository,
)
from securyflex.infrastructure.database.repositories.location_repository import (
    GuardLocationRepository,
    GuardProfileRepository,
    WorkLocationRepository,
)
from securyflex.infrastructure.database.repositories.audit_repository import AuditRepository

__all__ = [
    "BaseRepository",
    "ConsentRepository",
    "ConsentRequestRepository",
    "WorkLocationRepository",
    "GuardProfileRepository",
    "GuardLocationRepository",
    "AuditRepository",
]
