import asyncio
import os
import sys
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Add parent directory to path to allow importing tour_sourcing and main
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Fast, deterministic mock sources for anything that builds the default coordinator
os.environ.setdefault("PACKAGE_SOURCES_MODE", "mock")
os.environ.setdefault("MOCK_FAILURE_RATE", "0")
os.environ.setdefault("MOCK_MIN_LATENCY_SECONDS", "0")
os.environ.setdefault("MOCK_MAX_LATENCY_SECONDS", "0")

from dependencies import get_coordinator, get_session_store
from main import app
from routes.rate_limit import reset_rate_limits
from tour_sourcing.coordinator import FanOutCoordinator
from tour_sourcing.models import Package, RawPackage
from tour_sourcing.session import SessionStore
from tour_sourcing.sources.base import SOURCE_CATALOG, PackageSource

SOURCE_NAMES = [entry.name for entry in SOURCE_CATALOG]


class StubSource(PackageSource):
    """Scriptable source: returns ``packages`` or raises ``error`` after ``delay``."""

    def __init__(self, source_id: str, packages=None, error: Optional[Exception] = None, delay: float = 0.0):
        self.source_id = source_id
        self.packages = list(packages or [])
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def fetch(self, destination: str) -> List[RawPackage]:
        self.calls.append(destination)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [p if isinstance(p, RawPackage) else RawPackage.model_validate(p) for p in self.packages]


def raw(title: str, price: float, **kwargs) -> RawPackage:
    return RawPackage(title=title, price=price, **kwargs)


def package(title: str, price: float, source: str = "MakeMyTrip", **kwargs) -> Package:
    return Package(title=title, price=price, source=source, **kwargs)


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def goa_sources():
    """Six sources: the first five return one distinct package each, the last fails."""
    sources = [
        StubSource(name, packages=[raw(f"Goa Package {i + 1}", 10_000 + i * 5_000, rating=3.5 + i * 0.3)])
        for i, name in enumerate(SOURCE_NAMES[:5])
    ]
    sources.append(StubSource(SOURCE_NAMES[5], error=RuntimeError("boom")))
    return sources


@pytest.fixture
def coordinator(goa_sources):
    return FanOutCoordinator(goa_sources, timeout_seconds=1.0)


@pytest.fixture
def session_store():
    return SessionStore(ttl_seconds=60, max_sessions=10)


@pytest_asyncio.fixture
async def client(coordinator, session_store):
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_session_store] = lambda: session_store
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
