"""
Location Consent Gate

Decides whether a guard's location may be processed for a purpose.
Checked before a tracking session starts and again on every update.

PRIVACY: Fails closed. A missing record, a non-granted status or a
past expiry all mean no consent. Store errors are retried and then
raised so the caller can skip the cycle; they never count as consent.
"""

from datetime import datetime
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import ConsentPurpose, ConsentStatus
from securyflex.domain.models.consent import ConsentRecord
from securyflex.infrastructure.storage.backend import ConsentStore
from securyflex.services.location.errors import ConsentStoreUnavailableError

logger = get_logger(__name__)


class ConsentGate:
    """
    Read-only consent check.

    Usage:
        gate = ConsentGate(store, clock=utc_now)
        if await gate.has_active_consent(guard_id, ConsentPurpose.COMPANY_MONITORING):
            ...
    """

    def __init__(
        self,
        store: ConsentStore,
        clock: Callable[[], datetime],
        retry_attempts: int = 3,
        retry_wait_max_seconds: float = 2.0,
    ) -> None:
        """
        Initialize consent gate.

        Args:
            store: Consent record store
            clock: Returns the current (timezone-aware) time
            retry_attempts: Read attempts before giving up
            retry_wait_max_seconds: Upper bound of the backoff between attempts
        """
        self._store = store
        self._clock = clock
        self._retry_attempts = retry_attempts
        self._retry_wait_max = retry_wait_max_seconds

    async def get_consent(
        self,
        subject_id: str,
        purpose: ConsentPurpose,
    ) -> Optional[ConsentRecord]:
        """
        Read the consent record, retrying transient store failures.

        Raises:
            ConsentStoreUnavailableError: All attempts failed
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential(multiplier=0.1, max=self._retry_wait_max),
                retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
                reraise=False,
            ):
                with attempt:
                    return await self._store.get_consent(subject_id, purpose)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.warning(
                "Consent store read failed",
                subject_id=subject_id,
                purpose=purpose.value,
                attempts=self._retry_attempts,
                error=str(last_error),
            )
            raise ConsentStoreUnavailableError(subject_id=subject_id, original_error=last_error)
        except Exception as e:
            logger.error("Consent store read error", subject_id=subject_id, error=str(e))
            raise ConsentStoreUnavailableError(subject_id=subject_id, original_error=e)
        return None

    async def consent_status(
        self,
        subject_id: str,
        purpose: ConsentPurpose,
    ) -> Optional[ConsentStatus]:
        """
        Effective status of (subject, purpose) right now.

        Returns:
            None if no record exists, otherwise the status with
            implicit expiry applied
        """
        record = await self.get_consent(subject_id, purpose)
        if record is None:
            return None
        return record.effective_status(self._clock())

    async def has_active_consent(
        self,
        subject_id: str,
        purpose: ConsentPurpose = ConsentPurpose.COMPANY_MONITORING,
    ) -> bool:
        """
        True iff a granted, unexpired record exists for (subject, purpose).

        Raises:
            ConsentStoreUnavailableError: Store could not be read
        """
        return await self.consent_status(subject_id, purpose) == ConsentStatus.GRANTED
