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

EMBED_REQUESTS = Counter(
    "cbrag_embedding_requests_total",
    "Embedding requests by backend and outcome",
    labelnames=("backend", "outcome"),
    registry=REGISTRY,
)

EMBED_FALLBACKS = Counter(
    "cbrag_embedding_fallbacks_total",
    "Remote embedding calls that degraded to the local backend",
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "cbrag_ingest_duration_seconds",
    "Document ingestion duration",
    labelnames=("status",),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "cbrag_search_latency_seconds",
    "Latency of tenant similarity searches",
    registry=REGISTRY,
)

CHUNKS_STORED = Gauge(
    "cbrag_chunks_stored",
    "Number of chunk rows stored across all tenants",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "EMBED_REQUESTS",
    "EMBED_FALLBACKS",
    "INGEST_DURATION",
    "SEARCH_LATENCY",
    "CHUNKS_STORED",
    "metrics_response",
]
