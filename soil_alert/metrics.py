"""
Prometheus metrics for the soil moisture alert service.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Alert check counter (trigger, outcome)
- SMS delivery counter (result)

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

# Using default buckets: .005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0, 7.5, 10.0
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# trigger: startup, scheduled, manual, api
alert_checks_total = Counter(
    "alert_checks_total",
    "Total alert workflow runs by outcome",
    labelnames=["trigger", "outcome"]
)

# result: sent, failed
sms_messages_total = Counter(
    "sms_messages_total",
    "Total SMS send attempts",
    labelnames=["result"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    # Normalize path to avoid high-cardinality labels
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_check_outcome(trigger: str, outcome: str) -> None:
    """Record the outcome of one alert workflow run."""
    alert_checks_total.labels(trigger=trigger, outcome=outcome).inc()


def record_sms(delivered: bool) -> None:
    """Record an SMS send attempt."""
    sms_messages_total.labels(result="sent" if delivered else "failed").inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    """Content type string for Prometheus exposition format."""
    return CONTENT_TYPE_LATEST
