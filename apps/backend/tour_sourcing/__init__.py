"""Multi-source tour package search: fan-out, merge, dedupe and display projection."""

from .models import (
    RATING_FILTER_OPTIONS,
    SORT_KEYS,
    Package,
    RawPackage,
    SearchEvent,
    SessionSnapshot,
    SourceStatusSnapshot,
)
from .coordinator import FanOutCoordinator
from .dedupe import dedupe_key, dedupe_packages
from .view import count_sources, project_packages
from .session import SearchSession, SessionStore, normalize_destination
from .registry import SourcingSettings, build_coordinator, build_sources
from .sources import (
    SOURCE_CATALOG,
    AmadeusPackageSource,
    MockPackageSource,
    PackageSource,
    ScrapeEndpointSource,
)

__all__ = [
    "RATING_FILTER_OPTIONS",
    "SORT_KEYS",
    "Package",
    "RawPackage",
    "SearchEvent",
    "SessionSnapshot",
    "SourceStatusSnapshot",
    "FanOutCoordinator",
    "dedupe_key",
    "dedupe_packages",
    "count_sources",
    "project_packages",
    "SearchSession",
    "SessionStore",
    "normalize_destination",
    "SourcingSettings",
    "build_coordinator",
    "build_sources",
    "SOURCE_CATALOG",
    "AmadeusPackageSource",
    "MockPackageSource",
    "PackageSource",
    "ScrapeEndpointSource",
]
