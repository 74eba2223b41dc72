"""
Unit Tests for Consent Gate

Tests fail-closed consent evaluation and store retry behavior.
"""

import pytest
from datetime import timedelta

from conftest import GUARD_ID, grant_consent, revoke_consent
from securyflex.domain.enums.tracking import ConsentPurpose, ConsentStatus
from securyflex.domain.models.consent import ConsentRecord
from securyflex.services.location.consent_gate import ConsentGate
from securyflex.services.location.errors import ConsentStoreUnavailableError


@pytest.fixture
def gate(store, clock):
    return ConsentGate(store, clock=clock, retry_attempts=3, retry_wait_max_seconds=0.01)


class TestConsentEvaluation:
    """Tests for consent status evaluation."""

    async def test_granted_consent_is_active(self, gate, store, clock):
        """A granted record without expiry is active."""
        grant_consent(store, clock)

        assert await gate.has_active_consent(GUARD_ID) is True

    async def test_missing_record_is_not_consent(self, gate):
        """No record means no consent."""
        assert await gate.has_active_consent(GUARD_ID) is False
        assert await gate.consent_status(GUARD_ID, ConsentPurpose.COMPANY_MONITORING) is None

    async def test_revoked_consent(self, gate, store):
        revoke_consent(store)

        assert await gate.has_active_consent(GUARD_ID) is False

    async def test_consent_expires_at_expiry_time(self, gate, store, clock):
        """Consent is expired from expires_at on, although stored as granted."""
        grant_consent(store, clock, expires_at=clock() + timedelta(hours=1))
        assert await gate.has_active_consent(GUARD_ID) is True

        clock.advance(hours=1)

        assert await gate.has_active_consent(GUARD_ID) is False
        status = await gate.consent_status(GUARD_ID, ConsentPurpose.COMPANY_MONITORING)
        assert status == ConsentStatus.EXPIRED

    async def test_consent_is_scoped_to_purpose(self, gate, store, clock):
        """A grant for another purpose does not allow company monitoring."""
        store.put_consent(
            ConsentRecord(
                subject_id=GUARD_ID,
                purpose=ConsentPurpose.WORK_VERIFICATION,
                status=ConsentStatus.GRANTED,
                granted_at=clock(),
            )
        )

        assert await gate.has_active_consent(GUARD_ID, ConsentPurpose.WORK_VERIFICATION) is True
        assert await gate.has_active_consent(GUARD_ID, ConsentPurpose.COMPANY_MONITORING) is False


class TestStoreFailures:
    """Store failures are retried, then raised, never treated as consent."""

    async def test_unreachable_store_raises_after_retries(self, gate, store, clock):
        grant_consent(store, clock)
        store.fail_consent_reads = True

        with pytest.raises(ConsentStoreUnavailableError) as exc_info:
            await gate.has_active_consent(GUARD_ID)

        assert exc_info.value.is_retryable
        assert isinstance(exc_info.value.original_error, ConnectionError)

    async def test_transient_failure_recovers(self, store, clock):
        """A read that fails once and then succeeds returns the record."""
        grant_consent(store, clock)
        calls = {"count": 0}
        original = store.get_consent

        async def flaky_get_consent(subject_id, purpose):
            calls["count"] += 1
            if calls["count"] == 1:
                raise ConnectionError("blip")
            return await original(subject_id, purpose)

        store.get_consent = flaky_get_consent
        gate = ConsentGate(store, clock=clock, retry_attempts=3, retry_wait_max_seconds=0.01)

        assert await gate.has_active_consent(GUARD_ID) is True
        assert calls["count"] == 2

    async def test_unexpected_error_is_not_retried(self, store, clock):
        calls = {"count": 0}

        async def broken_get_consent(subject_id, purpose):
            calls["count"] += 1
            raise ValueError("corrupt document")

        store.get_consent = broken_get_consent
        gate = ConsentGate(store, clock=clock, retry_attempts=3, retry_wait_max_seconds=0.01)

        with pytest.raises(ConsentStoreUnavailableError):
            await gate.get_consent(GUARD_ID, ConsentPurpose.COMPANY_MONITORING)
        assert calls["count"] == 1
