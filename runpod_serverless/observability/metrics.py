"""Prometheus metrics for job submission, polling and HTTP traffic.

The exporter is never started implicitly; applications that want to expose
metrics call ``ensure_metrics_exporter`` once.
"""

from __future__ import annotations

import threading
from typing import Final

from prometheus_client import Counter, Histogram, start_http_server

from runpod_serverless.config.logging_config import get_logger

logger = get_logger(__name__)

JOBS_SUBMITTED_TOTAL: Final[Counter] = Counter(
    "runpod_jobs_submitted_total",
    "Total number of jobs submitted to serverless endpoints",
    labelnames=("endpoint",),
)

JOB_STATUS_POLLS_TOTAL: Final[Counter] = Counter(
    "runpod_job_status_polls_total",
    "Total number of status requests issued while awaiting jobs",
    labelnames=("endpoint",),
)

JOB_OUTCOMES_TOTAL: Final[Counter] = Counter(
    "runpod_job_outcomes_total",
    "Terminal outcomes of awaited jobs",
    labelnames=("endpoint", "outcome"),
)

HTTP_REQUEST_DURATION_SECONDS: Final[Histogram] = Histogram(
    "runpod_http_request_duration_seconds",
    "Duration of HTTP requests to the RunPod API in seconds",
    labelnames=("method",),
)

_EXPORTER_LOCK = threading.Lock()
_EXPORTER_STARTED = False
DEFAULT_METRICS_PORT: Final[int] = 9000


def ensure_metrics_exporter(port: int = DEFAULT_METRICS_PORT) -> None:
    """Start Prometheus HTTP exporter once per process."""

    global _EXPORTER_STARTED
    with _EXPORTER_LOCK:
        if _EXPORTER_STARTED:
            return

        try:
            start_http_server(port)
        except OSError as exc:
            logger.error(
                "metrics_exporter_start_failed",
                port=port,
                error=str(exc),
            )
            raise

        _EXPORTER_STARTED = True
        logger.info("metrics_exporter_started", port=port)


__all__ = [
    "DEFAULT_METRICS_PORT",
    "HTTP_REQUEST_DURATION_SECONDS",
    "JOBS_SUBMITTED_TOTAL",
    "JOB_OUTCOMES_TOTAL",
    "JOB_STATUS_POLLS_TOTAL",
    "ensure_metrics_exporter",
]
