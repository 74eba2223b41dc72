"""
Location Tracking Errors

Exception hierarchy for the tracking engine. Retryable errors
are transient and cost one update cycle; the rest need a user
or administrator to act.
"""

from typing import Optional


class LocationTrackingError(Exception):
    """Base exception for location tracking errors."""

    def __init__(
        self,
        message: str,
        subject_id: Optional[str] = None,
        is_retryable: bool = False,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.subject_id = subject_id
        self.is_retryable = is_retryable
        self.original_error = original_error


class ConsentMissingError(LocationTrackingError):
    """No active consent exists yet; the consent flow has to run."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(f"No active location consent for {subject_id}", subject_id=subject_id)


class ConsentRevokedError(LocationTrackingError):
    """Consent was withdrawn or expired during an active session."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(f"Location consent revoked for {subject_id}", subject_id=subject_id)


class DevicePermissionDeniedError(LocationTrackingError):
    """Device-level location permission is not available."""

    def __init__(self, subject_id: Optional[str], permission: str) -> None:
        super().__init__(
            f"Device location permission unavailable: {permission}",
            subject_id=subject_id,
        )
        self.permission = permission


class ConsentStoreUnavailableError(LocationTrackingError):
    """Consent store could not be read."""

    def __init__(
        self,
        subject_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            "Consent store unavailable",
            subject_id=subject_id,
            is_retryable=True,
            original_error=original_error,
        )


class PositionFetchFailedError(LocationTrackingError):
    """Device position could not be obtained in time."""

    def __init__(
        self,
        message: str = "Position fetch failed",
        subject_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, subject_id=subject_id, is_retryable=True, original_error=original_error)


class PersistenceFailedError(LocationTrackingError):
    """A state write to the storage backend failed."""

    def __init__(
        self,
        message: str = "Persistence write failed",
        subject_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, subject_id=subject_id, is_retryable=True, original_error=original_error)


class AuditWriteFailedError(LocationTrackingError):
    """An audit event could not be appended."""

    def __init__(
        self,
        subject_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            "Audit write failed",
            subject_id=subject_id,
            is_retryable=True,
            original_error=original_error,
        )
