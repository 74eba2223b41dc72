"""Metrics infrastructure package."""

from securyflex.infrastructure.metrics.prometheus_metrics import (
    # Session metrics
    TRACKING_SESSIONS_STARTED,
    TRACKING_SESSIONS_STOPPED,
    ACTIVE_TRACKING_SESSIONS,
    # Pipeline metrics
    PIPELINE_CYCLES_TOTAL,
    PIPELINE_DURATION,
    PROXIMITY_CLASSIFICATIONS_TOTAL,
    AUDIT_WRITE_FAILURES,
    # Helpers
    track_session_start,
    track_session_stop,
    track_pipeline_outcome,
    track_classification,
    track_audit_failure,
    time_pipeline,
    update_system_info,
    # Router
    metrics_router,
)

__all__ = [
    "TRACKING_SESSIONS_STARTED",
    "TRACKING_SESSIONS_STOPPED",
    "ACTIVE_TRACKING_SESSIONS",
    "PIPELINE_CYCLES_TOTAL",
    "PIPELINE_DURATION",
    "PROXIMITY_CLASSIFICATIONS_TOTAL",
    "AUDIT_WRITE_FAILURES",
    "track_session_start",
    "track_session_stop",
    "track_pipeline_outcome",
    "track_classification",
    "track_audit_failure",
    "time_pipeline",
    "update_system_info",
    "metrics_router",
]
