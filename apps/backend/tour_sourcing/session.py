"""Search session state and the in-memory session store.

A session is created per user (no module-level state) and carries one
search at a time. Every search or refresh bumps ``generation``; writers
that belong to an older generation are ignored so a slow, superseded
search can never overwrite a newer one.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from exceptions import ResourceNotFoundError, ValidationError
from tour_sourcing.models import (
    SORT_KEYS,
    Package,
    SessionSnapshot,
    SourceStatusSnapshot,
    ViewMode,
)
from tour_sourcing.view import count_sources, project_packages

logger = logging.getLogger(__name__)

EMPTY_DESTINATION_MESSAGE = "Please enter a destination"
NO_PACKAGES_MESSAGE = "No packages found for this destination. Please try a different location."
FETCH_FAILED_MESSAGE = "Failed to fetch packages. Please try again."


def normalize_destination(destination: Optional[str]) -> str:
    """Trim a destination, raising ValidationError when nothing is left."""
    cleaned = (destination or "").strip()
    if not cleaned:
        raise ValidationError(EMPTY_DESTINATION_MESSAGE)
    return cleaned


class SearchSession:
    """State of one user's package search.

    Views: ``search`` (initial, awaiting input) and ``results``. Submitting
    or refreshing moves to ``results``; ``go_back`` returns to ``search``
    without touching the destination or the packages.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.destination: Optional[str] = None
        self.view_mode: ViewMode = "search"
        self.error: Optional[str] = None
        self.sort_key: str = "price"
        self.min_rating: float = 0
        self.packages: Tuple[Package, ...] = ()
        self.source_status: Dict[str, SourceStatusSnapshot] = {}
        self.loading = False
        self.generation = 0
        self.last_active = time.monotonic()

    def touch(self) -> None:
        self.last_active = time.monotonic()

    # -- search lifecycle -------------------------------------------------

    def begin_search(self, destination: str, source_ids: Iterable[str]) -> int:
        """Reset for a new search and return its generation.

        Statuses go to ``pending`` and then straight to ``loading`` since
        the coordinator dispatches every source immediately afterwards.
        """
        self.generation += 1
        self.destination = destination
        self.view_mode = "results"
        self.error = None
        self.packages = ()
        self.loading = True
        self.source_status = {
            source_id: SourceStatusSnapshot(source=source_id, status="pending")
            for source_id in source_ids
        }
        for source_id in self.source_status:
            self.source_status[source_id] = SourceStatusSnapshot(source=source_id, status="loading")
        self.touch()
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def record_source_status(self, generation: int, status: SourceStatusSnapshot) -> bool:
        if not self.is_current(generation):
            return False
        if status.source not in self.source_status:
            logger.warning(f"Ignoring status for unconfigured source {status.source!r}")
            return False
        current = self.source_status[status.source]
        if current.status in ("success", "error"):
            # Settled statuses never revert within a search.
            return False
        self.source_status[status.source] = status
        return True

    def commit_results(self, generation: int, packages: Sequence[Package]) -> bool:
        """Store the canonical set for ``generation``; sets the empty-result error."""
        if not self.is_current(generation):
            return False
        self.packages = tuple(packages)
        self.error = None if self.packages else NO_PACKAGES_MESSAGE
        self.loading = False
        self.touch()
        return True

    def fail(self, generation: int, message: str = FETCH_FAILED_MESSAGE) -> bool:
        """Record a coordinator-level failure; the current view is kept."""
        if not self.is_current(generation):
            return False
        self.error = message
        self.loading = False
        self.touch()
        return True

    def reject_destination(self, message: str = EMPTY_DESTINATION_MESSAGE) -> None:
        self.error = message
        self.touch()

    # -- user-driven view changes -------------------------------------------

    def go_back(self) -> None:
        self.view_mode = "search"
        self.touch()

    def set_sort_key(self, sort_key: str) -> None:
        if sort_key not in SORT_KEYS:
            raise ValidationError(
                f"Unknown sort key {sort_key!r}",
                detail={"sort_key": sort_key, "allowed": list(SORT_KEYS)},
            )
        self.sort_key = sort_key
        self.touch()

    def set_min_rating(self, min_rating: float) -> None:
        if not 0 <= min_rating <= 5:
            raise ValidationError(
                "Minimum rating must be between 0 and 5",
                detail={"min_rating": min_rating},
            )
        self.min_rating = min_rating
        self.touch()

    # -- reads -----------------------------------------------------------------

    def visible_packages(
        self,
        sort_key: Optional[str] = None,
        min_rating: Optional[float] = None,
    ) -> List[Package]:
        return project_packages(
            self.packages,
            sort_key=sort_key or self.sort_key,
            min_rating=self.min_rating if min_rating is None else min_rating,
        )

    def snapshot(
        self,
        sort_key: Optional[str] = None,
        min_rating: Optional[float] = None,
    ) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            destination=self.destination,
            view_mode=self.view_mode,
            loading=self.loading,
            error=self.error,
            sort_key=sort_key or self.sort_key,
            min_rating=self.min_rating if min_rating is None else min_rating,
            source_status=dict(self.source_status),
            packages=self.visible_packages(sort_key, min_rating),
            total_packages=len(self.packages),
            source_count=count_sources(self.packages),
            generation=self.generation,
        )


class SessionStore:
    """In-memory session registry with idle expiry and a size cap.

    Nothing is persisted; restarting the process drops every session.
    """

    def __init__(self, ttl_seconds: float = 3600, max_sessions: int = 1000):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, SearchSession]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> SearchSession:
        session = SearchSession()
        with self._lock:
            self._prune_expired()
            while len(self._sessions) >= self.max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                logger.info(f"Evicted session {evicted_id} (store full)")
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> SearchSession:
        with self._lock:
            self._prune_expired()
            session = self._sessions.get(session_id)
            if session is None:
                raise ResourceNotFoundError("Search session not found", detail={"session_id": session_id})
            self._sessions.move_to_end(session_id)
        session.touch()
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise ResourceNotFoundError("Search session not found", detail={"session_id": session_id})

    def _prune_expired(self) -> None:
        cutoff = time.monotonic() - self.ttl_seconds
        expired = [sid for sid, s in self._sessions.items() if s.last_active < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Expired {len(expired)} idle sessions")
