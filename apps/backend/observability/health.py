"""
Health check utilities for dependency monitoring.

Provides readiness checks for:
- The configured package sources (live or mock)
- The scrape API the live sources call
- The in-memory session store
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class HealthCheckResult:
    """Result of a health check."""

    def __init__(self, name: str, status: str, details: Optional[Dict[str, Any]] = None, error: Optional[str] = None):
        self.name = name
        self.status = status  # "ok", "degraded", "error"
        self.details = details or {}
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status,
            "details": self.details,
        }
        if self.error:
            result["error"] = self.error
        return result

    @property
    def is_healthy(self) -> bool:
        return self.status == "ok"


def check_sources(settings, source_ids) -> HealthCheckResult:
    """
    Report which sources are configured and whether they are live.

    Mock mode is reported as degraded: searches work but prices are synthetic.
    """
    source_ids = list(source_ids)
    if not source_ids:
        return HealthCheckResult(name="sources", status="error", error="No package sources configured")

    live = settings.use_live_sources
    details = {
        "mode": "live" if live else "mock",
        "sources": source_ids,
        "count": len(source_ids),
        "timeout_seconds": settings.source_timeout_seconds,
    }
    if live and not settings.amadeus_api_key:
        details["message"] = "AMADEUS_API_KEY not set"
        return HealthCheckResult(name="sources", status="degraded", details=details)
    if not live:
        details["message"] = "Using mock sources"
        return HealthCheckResult(name="sources", status="degraded", details=details)
    return HealthCheckResult(name="sources", status="ok", details=details)


async def check_scrape_api(
    base_url: Optional[str],
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> HealthCheckResult:
    """
    Check that the scrape API host answers at all.

    Any HTTP response counts as reachable; we don't call a scrape endpoint
    since that would trigger real upstream traffic.
    """
    if not base_url:
        return HealthCheckResult(
            name="scrape_api",
            status="degraded",
            details={"message": "Scrape API not configured (SCRAPE_API_BASE_URL not set)"},
        )

    start_time = time.monotonic()

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(base_url)
        latency = time.monotonic() - start_time

        if response.status_code < 500:
            return HealthCheckResult(
                name="scrape_api",
                status="ok",
                details={"latency_ms": round(latency * 1000, 2)},
            )
        return HealthCheckResult(
            name="scrape_api",
            status="degraded",
            error=f"API returned status {response.status_code}",
        )

    except (asyncio.TimeoutError, httpx.TimeoutException):
        return HealthCheckResult(
            name="scrape_api",
            status="error",
            error=f"Scrape API timeout after {timeout}s",
        )

    except httpx.HTTPError as e:
        logger.warning("Scrape API health check failed", extra={"error": str(e)})
        return HealthCheckResult(
            name="scrape_api",
            status="error",
            error=str(e)[:200],
        )


def check_session_store(store) -> HealthCheckResult:
    active = len(store)
    details = {"active_sessions": active, "max_sessions": store.max_sessions}
    if active >= store.max_sessions:
        details["message"] = "Session store full; oldest sessions are being evicted"
        return HealthCheckResult(name="session_store", status="degraded", details=details)
    return HealthCheckResult(name="session_store", status="ok", details=details)


async def run_health_checks(settings, coordinator, store, include_external: bool = True) -> Dict[str, Any]:
    """
    Run all readiness checks and return aggregated results.

    Args:
        settings: SourcingSettings in effect
        coordinator: The fan-out coordinator serving searches
        store: The session store
        include_external: Whether to probe the scrape API (slower)
    """
    checks = {
        "sources": check_sources(settings, coordinator.source_ids),
        "session_store": check_session_store(store),
    }

    if include_external and settings.use_live_sources:
        checks["scrape_api"] = await check_scrape_api(settings.scrape_base_url)

    statuses = [check.status for check in checks.values()]
    if any(status == "error" for status in statuses):
        overall_status = "unhealthy"
    elif any(status == "degraded" for status in statuses):
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {name: check.to_dict() for name, check in checks.items()},
    }
