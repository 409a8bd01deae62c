"""Source configuration: which six providers to build, live or mocked."""

from __future__ import annotations

import logging
import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from tour_sourcing.coordinator import FanOutCoordinator
from tour_sourcing.sources.base import SOURCE_CATALOG, PackageSource
from tour_sourcing.sources.mock import MockPackageSource
from tour_sourcing.sources.scrape import AmadeusPackageSource, ScrapeEndpointSource

logger = logging.getLogger(__name__)

SourcesMode = Literal["live", "mock", "auto"]


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid {name}={os.getenv(name)!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid {name}={os.getenv(name)!r}, using {default}")
        return default


class SourcingSettings(BaseModel):
    mode: SourcesMode = "auto"
    scrape_base_url: Optional[str] = None
    amadeus_api_key: Optional[str] = Field(None, repr=False)
    source_timeout_seconds: float = Field(8.0, gt=0)
    mock_failure_rate: float = Field(0.15, ge=0, le=1)
    mock_min_latency_seconds: float = Field(0.3, ge=0)
    mock_max_latency_seconds: float = Field(1.5, ge=0)
    mock_seed: Optional[int] = None
    session_ttl_seconds: float = Field(3600, gt=0)
    session_max_count: int = Field(1000, gt=0)

    @classmethod
    def from_env(cls) -> "SourcingSettings":
        mode = (os.getenv("PACKAGE_SOURCES_MODE", "auto") or "auto").strip().lower()
        if mode not in ("live", "mock", "auto"):
            logger.warning(f"Unknown PACKAGE_SOURCES_MODE={mode!r}, using auto")
            mode = "auto"

        seed = os.getenv("MOCK_SEED")
        return cls(
            mode=mode,
            scrape_base_url=os.getenv("SCRAPE_API_BASE_URL") or None,
            amadeus_api_key=os.getenv("AMADEUS_API_KEY") or None,
            source_timeout_seconds=max(_env_float("SOURCE_TIMEOUT_SECONDS", 8.0), 0.1),
            mock_failure_rate=min(max(_env_float("MOCK_FAILURE_RATE", 0.15), 0.0), 1.0),
            mock_min_latency_seconds=max(_env_float("MOCK_MIN_LATENCY_SECONDS", 0.3), 0.0),
            mock_max_latency_seconds=max(_env_float("MOCK_MAX_LATENCY_SECONDS", 1.5), 0.0),
            mock_seed=int(seed) if seed and seed.lstrip("-").isdigit() else None,
            session_ttl_seconds=max(_env_float("SESSION_TTL_SECONDS", 3600), 1.0),
            session_max_count=max(_env_int("SESSION_MAX_COUNT", 1000), 1),
        )

    @property
    def use_live_sources(self) -> bool:
        if self.mode == "live":
            return True
        if self.mode == "mock":
            return False
        return bool(self.scrape_base_url)


def build_sources(settings: SourcingSettings) -> List[PackageSource]:
    """Build the fixed provider set in catalog order."""
    sources: List[PackageSource] = []

    if settings.use_live_sources:
        base_url = settings.scrape_base_url or "http://localhost:3000"
        for entry in SOURCE_CATALOG:
            if entry.slug == "amadeus":
                sources.append(AmadeusPackageSource(base_url, settings.amadeus_api_key, source_id=entry.name))
            else:
                sources.append(ScrapeEndpointSource(entry.name, entry.slug, base_url))
        logger.info(f"[SourceRegistry] live sources via {base_url}: {[s.source_id for s in sources]}")
        if not settings.amadeus_api_key:
            logger.warning("[SourceRegistry] AMADEUS_API_KEY not set; Amadeus will report errors")
        return sources

    low = settings.mock_min_latency_seconds
    high = max(settings.mock_max_latency_seconds, low)
    for index, entry in enumerate(SOURCE_CATALOG):
        seed = settings.mock_seed + index if settings.mock_seed is not None else None
        sources.append(
            MockPackageSource(
                entry.name,
                entry.domain,
                failure_rate=settings.mock_failure_rate,
                min_latency=low,
                max_latency=high,
                seed=seed,
            )
        )
    logger.info(f"[SourceRegistry] mock sources: {[s.source_id for s in sources]}")
    return sources


def build_coordinator(settings: Optional[SourcingSettings] = None) -> FanOutCoordinator:
    settings = settings or SourcingSettings.from_env()
    return FanOutCoordinator(build_sources(settings), timeout_seconds=settings.source_timeout_seconds)
