"""Fan-out coordinator: query every package source concurrently for a session.

Each source runs as its own task through ``run_source_with_status``, which
turns failures and deadline expiry into an ``error`` status, so one bad
source never cancels or delays the others. Statuses are written to the
session as sources settle; packages are merged only once every source has
settled, in configured source order, then deduplicated and committed.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import aclosing
from typing import AsyncIterator, Dict, Iterable, List, Tuple

from exceptions import ValidationError
from observability.logging import log_context
from tour_sourcing.dedupe import dedupe_packages
from tour_sourcing.executors import run_source_with_status
from tour_sourcing.metrics import SearchMetricsCollector, log_search_start
from tour_sourcing.models import Package, SearchEvent, SourceStatusSnapshot
from tour_sourcing.session import FETCH_FAILED_MESSAGE, SearchSession, normalize_destination
from tour_sourcing.sources.base import PackageSource

logger = logging.getLogger(__name__)


class FanOutCoordinator:
    def __init__(self, sources: Iterable[PackageSource], *, timeout_seconds: float = 8.0):
        self.sources: "OrderedDict[str, PackageSource]" = OrderedDict()
        for source in sources:
            if source.source_id in self.sources:
                raise ValueError(f"Duplicate source id {source.source_id!r}")
            self.sources[source.source_id] = source
        self.timeout_seconds = timeout_seconds

    @property
    def source_ids(self) -> List[str]:
        return list(self.sources.keys())

    async def search(self, session: SearchSession, destination: str) -> SearchSession:
        """Run a full search for ``destination`` and return the updated session.

        Never raises: validation problems, an empty merge and unexpected
        failures all end up in ``session.error``.
        """
        async for _ in self.search_events(session, destination):
            pass
        return session

    async def refresh(self, session: SearchSession) -> SearchSession:
        """Re-run the session's last search; no-op when nothing was searched yet."""
        if not session.destination:
            return session
        return await self.search(session, session.destination)

    async def search_events(self, session: SearchSession, destination: str) -> AsyncIterator[SearchEvent]:
        """Same as ``search`` but yields progress as each source settles.

        Yields one ``source`` event per source whose status the session
        accepted, then a ``complete`` event with the session snapshot. A
        search superseded mid-flight stops yielding ``source`` events.
        """
        try:
            cleaned = normalize_destination(destination)
        except ValidationError as e:
            session.reject_destination(e.message)
            yield SearchEvent(event="complete", session=session.snapshot())
            return

        generation = session.begin_search(cleaned, self.source_ids)
        log_search_start(session.session_id, cleaned, self.source_ids)

        collector = SearchMetricsCollector()
        with collector.track_search(session.session_id, cleaned, generation):
            try:
                settled: Dict[str, List[Package]] = {}
                async with aclosing(self._dispatch(session.session_id, cleaned)) as outcomes:
                    async for packages, status, remaining in outcomes:
                        settled[status.source] = packages
                        collector.record_source(
                            status.source,
                            status.status,
                            status.result_count,
                            status.latency_ms or 0,
                            status.error_type,
                        )
                        if not session.record_source_status(generation, status):
                            # Superseded search: the session never stored this status.
                            continue
                        yield SearchEvent(
                            event="source",
                            source=status.source,
                            status=status,
                            sources_remaining=remaining,
                            more_incoming=remaining > 0,
                        )

                merged = [p for source_id in self.source_ids for p in settled.get(source_id, [])]
                unique = dedupe_packages(merged)
                collector.record_results(len(merged), len(unique))

                if not session.commit_results(generation, unique):
                    collector.mark_stale()
            except Exception as exc:
                logger.exception(f"Fan-out for {cleaned!r} failed")
                collector.mark_failed(f"{type(exc).__name__}: {exc}")
                session.fail(generation, FETCH_FAILED_MESSAGE)
            finally:
                # Abandoned stream or cancellation: leave the session retryable.
                if session.is_current(generation) and session.loading:
                    session.fail(generation, FETCH_FAILED_MESSAGE)

        yield SearchEvent(event="complete", session=session.snapshot())

    async def _dispatch(
        self, session_id: str, destination: str
    ) -> AsyncIterator[Tuple[List[Package], SourceStatusSnapshot, int]]:
        """Start every source at once and yield outcomes in completion order."""
        with log_context(session_id=session_id, destination=destination):
            # Tasks copy the context at creation, so source logs carry the search fields
            tasks = [
                asyncio.create_task(
                    run_source_with_status(source, destination, timeout_seconds=self.timeout_seconds),
                    name=f"source:{source_id}",
                )
                for source_id, source in self.sources.items()
            ]
        remaining = len(tasks)
        try:
            for next_done in asyncio.as_completed(tasks):
                packages, status = await next_done
                remaining -= 1
                yield packages, status, remaining
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
