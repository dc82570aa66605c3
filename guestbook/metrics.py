"""
Prometheus metrics for the guestbook API.

This module provides:
- HTTP request counter (method, path, status)
- Ingestion outcome counter (kind, result)
- Request latency histogram (method, path)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# kind: message, edit, delete_message, image, delete_image
# result: terminal state (persisted, rejected, storage_error, recorded, write_failed, record_failed, ...)
ingestion_outcomes_total = Counter(
    "ingestion_outcomes_total",
    "Terminal states reached by submissions, uploads and admin mutations",
    labelnames=["kind", "result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Route template, e.g. /mensajes/{message_id}
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    http_requests_total.labels(
        method=method,
        path=path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=path
    ).observe(latency_seconds)


def record_ingestion_outcome(kind: str, result: str) -> None:
    ingestion_outcomes_total.labels(kind=kind, result=result).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
