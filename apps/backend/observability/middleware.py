"""
FastAPI middleware for observability.

Every request gets a request id (taken from ``X-Request-ID`` or
``X-Correlation-ID`` when the caller sends one), RED metrics labelled by
route template, and a completion log line. Session routes also bind their
session id into the log context for the lifetime of the request.
"""

import logging
import os
import re
import time
from typing import Callable, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import log_context, new_request_id
from .metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
)

logger = logging.getLogger(__name__)

_SESSION_PATH = re.compile(r"^/api/sessions/(?P<session_id>[0-9a-f]{32})(?=/|$)", re.IGNORECASE)
_QUIET_PREFIXES = ("/health", "/metrics")


def route_label(path: str) -> Tuple[str, Optional[str]]:
    """Metric label for ``path`` plus the session id it addresses, if any."""
    match = _SESSION_PATH.match(path)
    if match is None:
        return path, None
    return "/api/sessions/{session_id}" + path[match.end():], match.group("session_id")


class ObservabilityMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        enable_request_logging: bool = True,
        slow_request_seconds: Optional[float] = None,
    ):
        super().__init__(app)
        self.enable_request_logging = enable_request_logging
        # A fan-out search is as slow as its slowest source, so the default sits above the source deadline
        self.slow_request_seconds = (
            slow_request_seconds
            if slow_request_seconds is not None
            else float(os.getenv("SLOW_REQUEST_SECONDS", "10"))
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or new_request_id()
        )
        method = request.method
        endpoint, session_id = route_label(request.url.path)
        quiet = request.url.path.startswith(_QUIET_PREFIXES)

        with log_context(correlation_id=request_id, session_id=session_id):
            request.state.correlation_id = request_id
            http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
            started = time.perf_counter()
            status_code = 500
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers["X-Request-ID"] = request_id
                return response
            except Exception as exc:
                logger.error(
                    "Request failed",
                    extra={"method": method, "path": endpoint, "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise
            finally:
                duration = time.perf_counter() - started
                http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()
                http_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
                http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
                if not quiet:
                    self._log_completion(method, endpoint, status_code, duration)

    def _log_completion(self, method: str, endpoint: str, status_code: int, duration: float) -> None:
        fields = {
            "method": method,
            "path": endpoint,
            "status_code": status_code,
            "duration_seconds": round(duration, 3),
        }
        if duration > self.slow_request_seconds:
            logger.warning("Slow request", extra=fields)
        elif self.enable_request_logging:
            logger.info("Request completed", extra=fields)
