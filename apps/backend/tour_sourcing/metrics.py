"""Per-search observability for the fan-out pipeline.

One SearchMetrics record is built per search and emitted as a single
structured log line when the search finishes:
- source outcomes (status, result count, latency)
- raw / unique result counts
- end-to-end latency
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from observability.metrics import searches_total

logger = logging.getLogger("tour_sourcing.metrics")


@dataclass
class SourceMetrics:
    """Metrics for a single source execution."""
    source: str
    status: str  # success, error
    result_count: int
    latency_ms: float
    error_type: Optional[str] = None


@dataclass
class SearchMetrics:
    """Aggregated metrics for a single search operation."""
    session_id: Optional[str] = None
    destination: str = ""
    generation: int = 0
    raw_results: int = 0
    unique_results: int = 0
    sources_called: int = 0
    sources_succeeded: int = 0
    sources_failed: int = 0
    total_latency_ms: float = 0.0
    source_metrics: List[SourceMetrics] = field(default_factory=list)
    stale: bool = False
    coordinator_error: Optional[str] = None

    def success_rate(self) -> float:
        if self.sources_called == 0:
            return 0.0
        return self.sources_succeeded / self.sources_called

    def has_results(self) -> bool:
        return self.unique_results > 0

    def outcome(self) -> str:
        if self.coordinator_error:
            return "failed"
        if self.stale:
            return "stale"
        if self.sources_called and self.sources_failed == self.sources_called:
            return "all_failed"
        if not self.has_results():
            return "empty"
        return "results"


class SearchMetricsCollector:
    """Collects metrics for one search; create one per search call."""

    def __init__(self):
        self.metrics: Optional[SearchMetrics] = None

    @contextmanager
    def track_search(
        self,
        session_id: Optional[str] = None,
        destination: str = "",
        generation: int = 0,
    ) -> Iterator[SearchMetrics]:
        self.metrics = SearchMetrics(session_id=session_id, destination=destination, generation=generation)
        start_time = time.monotonic()
        try:
            yield self.metrics
        finally:
            self.metrics.total_latency_ms = (time.monotonic() - start_time) * 1000
            self._log_metrics()

    def record_source(
        self,
        source: str,
        status: str,
        result_count: int,
        latency_ms: float,
        error_type: Optional[str] = None,
    ) -> None:
        if not self.metrics:
            return
        self.metrics.source_metrics.append(
            SourceMetrics(
                source=source,
                status=status,
                result_count=result_count,
                latency_ms=latency_ms,
                error_type=error_type,
            )
        )
        self.metrics.sources_called += 1
        if status == "success":
            self.metrics.sources_succeeded += 1
        else:
            self.metrics.sources_failed += 1

    def record_results(self, raw: int, unique: int) -> None:
        if not self.metrics:
            return
        self.metrics.raw_results = raw
        self.metrics.unique_results = unique

    def mark_stale(self) -> None:
        if self.metrics:
            self.metrics.stale = True

    def mark_failed(self, error: str) -> None:
        if self.metrics:
            self.metrics.coordinator_error = error

    def _log_metrics(self) -> None:
        m = self.metrics
        if not m:
            return

        outcome = m.outcome()
        searches_total.labels(outcome=outcome).inc()

        log_data = {
            "event": "search_complete",
            "session_id": m.session_id,
            "destination": m.destination,
            "generation": m.generation,
            "outcome": outcome,
            "results": {
                "raw": m.raw_results,
                "unique": m.unique_results,
            },
            "sources": {
                "called": m.sources_called,
                "succeeded": m.sources_succeeded,
                "failed": m.sources_failed,
                "success_rate": round(m.success_rate(), 2),
                "details": [
                    {
                        "source": sm.source,
                        "status": sm.status,
                        "results": sm.result_count,
                        "latency_ms": round(sm.latency_ms, 1),
                        "error_type": sm.error_type,
                    }
                    for sm in m.source_metrics
                ],
            },
            "latency_ms": round(m.total_latency_ms, 1),
        }

        if outcome in ("failed", "all_failed"):
            logger.error("Search failed", extra=log_data)
        elif outcome == "stale":
            logger.info("Search superseded by a newer one; results discarded", extra=log_data)
        elif m.sources_failed > 0:
            logger.warning("Search completed with source failures", extra=log_data)
        elif outcome == "empty":
            logger.warning("Search completed but no results", extra=log_data)
        else:
            logger.info("Search completed successfully", extra=log_data)


def log_search_start(session_id: Optional[str], destination: str, sources: List[str]) -> None:
    logger.info(
        "Search started",
        extra={
            "event": "search_start",
            "session_id": session_id,
            "destination": destination,
            "sources_requested": sources,
        },
    )
