"""Source executor: one source call under a deadline, with status instrumentation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Tuple

from exceptions import SourceError
from observability.metrics import (
    source_fetch_duration_seconds,
    source_fetch_errors_total,
    source_results_count,
)
from tour_sourcing.models import Package, SourceStatusSnapshot
from tour_sourcing.sources.base import PackageSource
from utils.security import redact_secrets_from_text

logger = logging.getLogger(__name__)

_KNOWN_ERROR_TYPES = {"timeout", "http", "transport", "parse", "upstream", "auth", "unknown"}


async def run_source_with_status(
    source: PackageSource,
    destination: str,
    *,
    timeout_seconds: float = 8.0,
) -> Tuple[List[Package], SourceStatusSnapshot]:
    """Fetch from one source and tag its packages.

    Never raises for source failures: a timeout, any exception from the
    source or a result that cannot be tagged becomes an ``error`` snapshot
    and an empty package list.
    """
    source_id = source.source_id
    started = time.monotonic()
    try:
        try:
            raw = await asyncio.wait_for(source.fetch(destination), timeout=timeout_seconds)
        except asyncio.TimeoutError as e:
            raise SourceError(
                "Source timed out",
                source=source_id,
                error_type="timeout",
            ) from e
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(
                f"Source failed: {type(e).__name__}: {e}",
                source=source_id,
                error_type="unknown",
            ) from e
        try:
            packages = [Package.from_raw(item, source_id) for item in raw]
        except Exception as e:
            raise SourceError(
                f"Malformed packages: {type(e).__name__}: {e}",
                source=source_id,
                error_type="parse",
            ) from e
    except SourceError as err:
        elapsed = time.monotonic() - started
        message = redact_secrets_from_text(err.message)[:200]
        logger.warning(
            f"[{source_id}] fetch failed",
            extra={
                "source": source_id,
                "error_type": err.error_type,
                "http_status": err.http_status,
                "error_message": message,
                "latency_ms": int(elapsed * 1000),
            },
        )
        source_fetch_duration_seconds.labels(source=source_id).observe(elapsed)
        source_fetch_errors_total.labels(source=source_id, error_type=err.error_type).inc()
        status = SourceStatusSnapshot(
            source=source_id,
            status="error",
            result_count=0,
            latency_ms=int(elapsed * 1000),
            error_type=err.error_type if err.error_type in _KNOWN_ERROR_TYPES else "unknown",
            message=message,
        )
        return [], status

    elapsed = time.monotonic() - started
    source_fetch_duration_seconds.labels(source=source_id).observe(elapsed)
    source_results_count.labels(source=source_id).observe(len(packages))
    logger.info(
        f"[{source_id}] returned {len(packages)} packages",
        extra={
            "source": source_id,
            "result_count": len(packages),
            "latency_ms": int(elapsed * 1000),
        },
    )
    status = SourceStatusSnapshot(
        source=source_id,
        status="success",
        result_count=len(packages),
        latency_ms=int(elapsed * 1000),
    )
    return packages, status
