"""
Prometheus metrics collection for the Tour Compare backend.

Provides RED metrics (Rate, Errors, Duration) for HTTP plus per-source
fan-out metrics and a few business counters.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    REGISTRY,
)

# Use the default registry
metrics_registry = REGISTRY

# HTTP Metrics (RED - Rate, Errors, Duration)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
    registry=metrics_registry,
)

# Package source metrics
source_fetch_duration_seconds = Histogram(
    "source_fetch_duration_seconds",
    "Package source fetch duration in seconds",
    ["source"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=metrics_registry,
)

source_fetch_errors_total = Counter(
    "source_fetch_errors_total",
    "Total package source failures",
    ["source", "error_type"],
    registry=metrics_registry,
)

source_results_count = Histogram(
    "source_results_count",
    "Number of packages returned by a source",
    ["source"],
    buckets=[0, 1, 5, 10, 20, 50, 100],
    registry=metrics_registry,
)

# Business Metrics
searches_total = Counter(
    "searches_total",
    "Completed package searches",
    ["outcome"],  # results, empty, all_failed, failed, stale
    registry=metrics_registry,
)

clickouts_total = Counter(
    "clickouts_total",
    "Book Now clickouts",
    ["source"],
    registry=metrics_registry,
)
