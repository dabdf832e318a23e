"""Prometheus metrics for relay outcomes."""

from __future__ import annotations

import logging

from prometheus_client import Counter, start_http_server

logger = logging.getLogger(__name__)

RELAY_REQUESTS = Counter(
    "vision_relay_requests_total",
    "Total number of relay requests by operation and outcome",
    labelnames=("operation", "outcome"),
)
UPLOADS_REJECTED = Counter(
    "vision_relay_uploads_rejected_total",
    "Total number of uploads rejected before reaching the relay",
    labelnames=("code",),
)

_metrics_started = False


def ensure_metrics_server(port: int) -> None:
    global _metrics_started
    if _metrics_started:
        return
    start_http_server(port)
    _metrics_started = True
    logger.info("Prometheus metrics server started", extra={"port": port})


def record_relay_outcome(operation: str, outcome: str) -> None:
    RELAY_REQUESTS.labels(operation=operation, outcome=outcome).inc()


def record_upload_rejected(code: str) -> None:
    UPLOADS_REJECTED.labels(code=code).inc()
