"""
Shared FastAPI dependencies: the process-wide session store and coordinator.

Both are built lazily on first use so environment variables loaded by
main.py (including .env) are seen. Tests replace them through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Request

from exceptions import RateLimitError
from routes.rate_limit import RATE_LIMIT_WINDOW, check_rate_limit
from tour_sourcing.coordinator import FanOutCoordinator
from tour_sourcing.registry import SourcingSettings, build_coordinator
from tour_sourcing.session import SearchSession, SessionStore

_settings: Optional[SourcingSettings] = None
_session_store: Optional[SessionStore] = None
_coordinator: Optional[FanOutCoordinator] = None


def get_settings() -> SourcingSettings:
    global _settings
    if _settings is None:
        _settings = SourcingSettings.from_env()
    return _settings


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        settings = get_settings()
        _session_store = SessionStore(
            ttl_seconds=settings.session_ttl_seconds,
            max_sessions=settings.session_max_count,
        )
    return _session_store


def get_coordinator() -> FanOutCoordinator:
    global _coordinator
    if _coordinator is None:
        _coordinator = build_coordinator(get_settings())
    return _coordinator


def get_search_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SearchSession:
    """Resolve the ``{session_id}`` path parameter; unknown ids raise a 404."""
    return store.get(session_id)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(limit_type: str):
    """Build a dependency that rejects the request with 429 once over the limit."""

    def _check(request: Request) -> None:
        if not check_rate_limit(f"{limit_type}:{client_key(request)}", limit_type):
            raise RateLimitError("Rate limit exceeded", retry_after=RATE_LIMIT_WINDOW)

    return _check


def reset_dependencies() -> None:
    """Forget the cached settings, store and coordinator."""
    global _settings, _session_store, _coordinator
    _settings = None
    _session_store = None
    _coordinator = None
