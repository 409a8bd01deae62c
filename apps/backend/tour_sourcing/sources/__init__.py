"""Package sources: the contract plus live and mock implementations."""

from tour_sourcing.sources.base import SOURCE_CATALOG, PackageSource, SourceSpec, parse_packages
from tour_sourcing.sources.mock import MockPackageSource
from tour_sourcing.sources.scrape import AmadeusPackageSource, ScrapeEndpointSource

__all__ = [
    "SOURCE_CATALOG",
    "PackageSource",
    "SourceSpec",
    "parse_packages",
    "MockPackageSource",
    "AmadeusPackageSource",
    "ScrapeEndpointSource",
]
