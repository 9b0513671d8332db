"""Prometheus metrics: HTTP instrumentation plus attempt outcome counters."""

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

ATTEMPT_OUTCOMES = Counter(
    "archetypeos_attempt_outcomes_total",
    "Attempts leaving in_progress or review, by resulting status and path.",
    ["status", "via"],
)
CERTIFICATES_ISSUED = Counter(
    "archetypeos_certificates_issued_total",
    "Course completion certificates written to the audit log.",
)

_instrumented = False


def record_attempt_outcome(status: str, via: str) -> None:
    ATTEMPT_OUTCOMES.labels(status=status, via=via).inc()


def setup_monitoring(app: FastAPI) -> None:
    """Instrument `app` and serve `/metrics`.

    The default registry is process-wide, so instrumentation is attached only
    once even when tests build several apps.
    """
    global _instrumented
    if _instrumented or getattr(app.state, "metrics_enabled", False):
        return

    Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/livez", "/readyz", "/docs", "/openapi.json"],
        env_var_name="ENABLE_METRICS",
    ).instrument(app).expose(app, include_in_schema=False)

    app.state.metrics_enabled = True
    _instrumented = True


__all__ = ["ATTEMPT_OUTCOMES", "CERTIFICATES_ISSUED", "record_attempt_outcome", "setup_monitoring"]
