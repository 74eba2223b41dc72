"""
Prometheus Metrics

Metrics for guard location tracking observability.
Exposed at /metrics for Prometheus scraping.

ARCHITECTURE: Metrics are decoupled from business logic.
Only increment/observe; never block on metrics operations.

PRIVACY: Labels never carry guard or organization ids.
"""

import time
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from securyflex.config.logging_config import get_logger

logger = get_logger(__name__)

# =============================================================================
# TRACKING SESSION METRICS
# =============================================================================

TRACKING_SESSIONS_STARTED = Counter(
    "securyflex_tracking_sessions_started_total",
    "Tracking session start attempts by outcome",
    ["outcome"],  # started, consent_required, permission_denied, error
)

TRACKING_SESSIONS_STOPPED = Counter(
    "securyflex_tracking_sessions_stopped_total",
    "Tracking sessions stopped by reason",
    ["reason"],  # requested, consent_revoked, failures, replaced, shutdown
)

ACTIVE_TRACKING_SESSIONS = Gauge(
    "securyflex_active_tracking_sessions",
    "Number of currently running tracking sessions",
)

# =============================================================================
# PIPELINE METRICS
# =============================================================================

PIPELINE_CYCLES_TOTAL = Counter(
    "securyflex_location_pipeline_cycles_total",
    "Position update pipeline runs by outcome",
    ["outcome"],  # persisted, consent_revoked, consent_unavailable, fetch_failed, persist_failed, dropped
)

PIPELINE_DURATION = Histogram(
    "securyflex_location_pipeline_duration_seconds",
    "Duration of one position update pipeline run",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5],
)

PROXIMITY_CLASSIFICATIONS_TOTAL = Counter(
    "securyflex_proximity_classifications_total",
    "Proximity classifications by status",
    ["status"],
)

AUDIT_WRITE_FAILURES = Counter(
    "securyflex_audit_write_failures_total",
    "Audit events that could not be written",
    ["event_type"],
)

# =============================================================================
# SYSTEM INFO
# =============================================================================

SYSTEM_INFO = Info(
    "securyflex_location",
    "Location engine information",
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def track_session_start(outcome: str) -> None:
    """Record a tracking session start attempt."""
    TRACKING_SESSIONS_STARTED.labels(outcome=outcome).inc()
    if outcome == "started":
        ACTIVE_TRACKING_SESSIONS.inc()


def track_session_stop(reason: str) -> None:
    """Record a tracking session stop."""
    TRACKING_SESSIONS_STOPPED.labels(reason=reason).inc()
    ACTIVE_TRACKING_SESSIONS.dec()


def track_pipeline_outcome(outcome: str) -> None:
    """Record the outcome of one pipeline run."""
    PIPELINE_CYCLES_TOTAL.labels(outcome=outcome).inc()


def track_classification(status: str) -> None:
    PROXIMITY_CLASSIFICATIONS_TOTAL.labels(status=status).inc()


def track_audit_failure(event_type: str) -> None:
    AUDIT_WRITE_FAILURES.labels(event_type=event_type).inc()


@contextmanager
def time_pipeline() -> Iterator[None]:
    """Observe the duration of the wrapped pipeline run."""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        PIPELINE_DURATION.observe(time.perf_counter() - start_time)


# =============================================================================
# METRICS ENDPOINT
# =============================================================================

metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


def update_system_info(environment: str, storage_backend: str, version: str = "0.1.0") -> None:
    """Update system info metric with current environment."""
    SYSTEM_INFO.info({
        "version": version,
        "environment": environment,
        "storage_backend": storage_backend,
    })
    logger.debug("System info metric updated", environment=environment)
