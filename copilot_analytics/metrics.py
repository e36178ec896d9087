"""
Prometheus metrics for the analytics service.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Report run counter (report, result) and latency histogram (report)
- Skipped-record counter (pipeline)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

# HTTP request counter with labels for method, path, and status code
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# Request latency histogram in seconds
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# Report outcomes
# result: ok, not_found
report_runs_total = Counter(
    "report_runs_total",
    "Total report computations by outcome",
    labelnames=["report", "result"]
)

# Pure computation time, excluding snapshot loading
report_latency_seconds = Histogram(
    "report_latency_seconds",
    "Report computation time in seconds",
    labelnames=["report"]
)

# Records skipped because a required field could not be parsed
malformed_records_total = Counter(
    "malformed_records_total",
    "Records excluded from an aggregation",
    labelnames=["pipeline"]
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


def record_report_run(report: str, result: str, latency_seconds: float = None) -> None:
    """
    Record one report computation.

    Args:
        report: Catalog name, or "unknown" for rejected names
        result: "ok" or "not_found"
        latency_seconds: Computation time, omitted for rejected names
    """
    report_runs_total.labels(report=report, result=result).inc()
    if latency_seconds is not None:
        report_latency_seconds.labels(report=report).observe(latency_seconds)


def record_malformed_record(pipeline: str) -> None:
    malformed_records_total.labels(pipeline=pipeline).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
