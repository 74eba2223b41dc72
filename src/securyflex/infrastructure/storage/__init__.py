"""
Storage interfaces and backends.
"""

from securyflex.infrastructure.storage.backend import (
    AuditSink,
    ConsentStore,
    GuardLocationStore,
    WorkLocationStore,
)
from securyflex.infrastructure.storage.memory import InMemoryLocationStore
from securyflex.infrastructure.storage.sql import SqlLocationStore

__all__ = [
    "AuditSink",
    "ConsentStore",
    "GuardLocationStore",
    "InMemoryLocationStore",
    "SqlLocationStore",
    "WorkLocationStore",
]
