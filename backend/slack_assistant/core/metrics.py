"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "slka_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "slka_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

EVENTS_RECEIVED = Counter(
    "slka_events_received_total",
    "Events delivered by the streaming transport",
    labelnames=("profile",),
    registry=REGISTRY,
)

ACK_FAILURES = Counter(
    "slka_ack_failures_total",
    "Event acknowledgements that raised",
    labelnames=("profile",),
    registry=REGISTRY,
)

EVENTS_DISCARDED = Counter(
    "slka_events_discarded_total",
    "Events dropped before storage",
    labelnames=("profile", "reason"),
    registry=REGISTRY,
)

MESSAGES_STORED = Counter(
    "slka_messages_stored_total",
    "Messages newly written to the store",
    labelnames=("profile",),
    registry=REGISTRY,
)

NEEDS_REPLY_FLAGGED = Counter(
    "slka_needs_reply_total",
    "New messages flagged as needing a reply",
    labelnames=("profile",),
    registry=REGISTRY,
)

WATCH_REFRESH_FAILURES = Counter(
    "slka_watch_refresh_failures_total",
    "Watch-set refreshes that failed and kept the previous snapshot",
    labelnames=("profile",),
    registry=REGISTRY,
)

PIPELINES_CONNECTED = Gauge(
    "slka_pipelines_connected",
    "Ingestion pipelines currently connected",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "EVENTS_RECEIVED",
    "ACK_FAILURES",
    "EVENTS_DISCARDED",
    "MESSAGES_STORED",
    "NEEDS_REPLY_FLAGGED",
    "WATCH_REFRESH_FAILURES",
    "PIPELINES_CONNECTED",
    "metrics_response",
]
