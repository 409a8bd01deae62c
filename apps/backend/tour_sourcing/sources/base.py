"""Package source contract and shared payload parsing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from exceptions import SourceError
from tour_sourcing.models import RawPackage

_LIST_KEYS = ("packages", "results", "data")


@dataclass(frozen=True)
class SourceSpec:
    """Static description of one configured provider."""

    name: str
    slug: str
    domain: str


# Fixed provider set, in dispatch and merge order.
SOURCE_CATALOG: tuple[SourceSpec, ...] = (
    SourceSpec(name="MakeMyTrip", slug="makemytrip", domain="makemytrip.com"),
    SourceSpec(name="Yatra", slug="yatra", domain="yatra.com"),
    SourceSpec(name="Goibibo", slug="goibibo", domain="goibibo.com"),
    SourceSpec(name="Booking.com", slug="booking", domain="booking.com"),
    SourceSpec(name="TripAdvisor", slug="tripadvisor", domain="tripadvisor.in"),
    SourceSpec(name="Amadeus", slug="amadeus", domain="amadeus.com"),
)


class PackageSource(ABC):
    """One external package provider.

    ``fetch`` either returns a well-formed (possibly empty) list or raises
    SourceError. Sources never retry; a single attempt per search.
    """

    source_id: str

    @abstractmethod
    async def fetch(self, destination: str) -> List[RawPackage]:
        pass


def parse_packages(source_id: str, payload: Any) -> List[RawPackage]:
    """Validate a decoded JSON payload into RawPackage records.

    Accepts a bare list or an object wrapping the list under ``packages``,
    ``results`` or ``data``. One invalid record fails the whole payload.
    """
    items = payload
    if isinstance(payload, dict):
        items = None
        for key in _LIST_KEYS:
            if isinstance(payload.get(key), list):
                items = payload[key]
                break
        if items is None:
            raise SourceError(
                f"{source_id} payload has no package list",
                source=source_id,
                error_type="parse",
            )

    if not isinstance(items, list):
        raise SourceError(
            f"{source_id} payload is {type(payload).__name__}, expected a list",
            source=source_id,
            error_type="parse",
        )

    packages: List[RawPackage] = []
    for index, item in enumerate(items):
        try:
            packages.append(RawPackage.model_validate(item))
        except PydanticValidationError as exc:
            raise SourceError(
                f"{source_id} record {index} is malformed: {exc.error_count()} validation error(s)",
                source=source_id,
                error_type="parse",
            ) from exc
    return packages
