"""
Observability infrastructure for the Tour Compare backend.

Provides:
- Structured logging bound to request and search session
- Prometheus metrics
- Request instrumentation middleware
"""

from .logging import log_context, setup_logging
from .metrics import (
    metrics_registry,
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
    source_fetch_duration_seconds,
    source_fetch_errors_total,
    source_results_count,
    searches_total,
    clickouts_total,
)
from .middleware import ObservabilityMiddleware

__all__ = [
    "setup_logging",
    "log_context",
    "metrics_registry",
    "http_requests_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    "source_fetch_duration_seconds",
    "source_fetch_errors_total",
    "source_results_count",
    "searches_total",
    "clickouts_total",
    "ObservabilityMiddleware",
]
