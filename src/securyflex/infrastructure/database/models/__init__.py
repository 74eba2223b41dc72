"""
Database ORM models package.
"""

from securyflex.infrastructure.database.models.consent_model import ConsentModel, ConsentRequestModel
from securyflex.infrastructure.database.models.location_model import (
    GuardLocationModel,
    GuardProfileModel,
    WorkLocationModel,
)
from securyflex.infrastructure.database.models.audit_model import AuditEventModel

__all__ = [
    "ConsentModel",
    "ConsentRequestModel",
    "WorkLocationModel",
    "GuardProfileModel",
    "GuardLocationModel",
    "AuditEventModel",
]
