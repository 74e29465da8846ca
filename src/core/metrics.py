"""
Prometheus Metrics for Observability

Tracks HTTP traffic, third-party provider calls and garment detection.
Exposes /api/metrics endpoint for Prometheus scraping.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# storage (Supabase backend) / removebg / openai
provider_calls_total = Counter(
    "provider_calls_total",
    "Total calls to third-party providers",
    labelnames=["service", "operation", "status"]
)

provider_latency_seconds = Histogram(
    "provider_latency_seconds",
    "Latency of third-party provider calls",
    labelnames=["service", "operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

garments_detected = Histogram(
    "garments_detected_per_upload",
    "Number of garments the vision model detected per upload",
    buckets=[0, 1, 2, 3, 5, 8]
)

garment_rows_inserted_total = Counter(
    "garment_rows_inserted_total",
    "Garment rows inserted by the upload pipeline",
    labelnames=["path"]
)

app_info = Info(
    "wardrobe_app",
    "Application information"
)


def set_app_info(version: str, environment: str):
    """Set application info labels."""
    app_info.info({"version": version, "environment": environment})


def record_provider_call(service: str, operation: str, status: str, duration_seconds: float):
    """Record one provider call and its latency.

    Args:
        service: Provider name (storage for the Supabase backend, removebg, openai)
        operation: Operation name (upload, remove_background, vision, chat, ...)
        status: success or error
        duration_seconds: Wall-clock time of the call
    """
    provider_calls_total.labels(service=service, operation=operation, status=status).inc()
    provider_latency_seconds.labels(service=service, operation=operation).observe(duration_seconds)


def record_detection(count: int):
    garments_detected.observe(count)


def record_rows_inserted(path: str, count: int):
    garment_rows_inserted_total.labels(path=path).inc(count)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
