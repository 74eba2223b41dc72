"""
Database infrastructure components.
"""

from securyflex.infrastructure.database.connection import (
    Base,
    DatabaseManager,
)

__all__ = [
    "Base",
    "DatabaseManager",
]
