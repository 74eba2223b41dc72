"""Column helpers shared by the ORM models."""

from datetime import datetime, timezone
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to datetimes read back without tzinfo.

    SQLite returns naive datetimes for DateTime(timezone=True)
    columns; all stored times are UTC.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
