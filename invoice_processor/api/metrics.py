"""Prometheus metrics for the invoice extraction API.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Upload size
- Extraction outcomes and duration by method

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

document_upload_size_bytes = Histogram(
    "document_upload_size_bytes",
    "Document upload size in bytes",
    buckets=(1024, 10240, 102400, 1048576, 10485760),  # 1KB to 10MB
)

# Extraction metrics
extraction_requests_total = Counter(
    "invoice_extraction_requests_total",
    "Total invoice extraction requests",
    ["format", "method", "status"],  # method is "none" on failure
)

extraction_processing_duration_seconds = Histogram(
    "invoice_extraction_duration_seconds",
    "Invoice extraction duration in seconds",
    ["format"],
    buckets=(0.01, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
