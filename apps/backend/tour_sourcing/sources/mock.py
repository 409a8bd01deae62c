"""Randomized fallback source simulating latency and upstream failures."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from typing import List, Optional

from exceptions import SourceError
from tour_sourcing.models import RawPackage
from tour_sourcing.sources.base import PackageSource

logger = logging.getLogger(__name__)

_THEMES = (
    "Beach Escape",
    "Heritage Trail",
    "Honeymoon Special",
    "Family Fun",
    "Adventure Trek",
    "Luxury Retreat",
    "Budget Explorer",
    "Weekend Getaway",
)

_HIGHLIGHTS = (
    "Airport transfers",
    "Breakfast included",
    "Sightseeing tour",
    "4-star hotel",
    "Private cab",
    "Candlelight dinner",
    "Houseboat stay",
    "River rafting",
    "Free cancellation",
    "Local guide",
)


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


class MockPackageSource(PackageSource):
    """Mock provider for demos and tests.

    Each call sleeps for a random latency, then fails with probability
    ``failure_rate`` or returns 2-5 packages for the destination. Pass a
    ``seed`` (or an ``rng``) for reproducible output.
    """

    def __init__(
        self,
        source_id: str,
        domain: str,
        *,
        failure_rate: float = 0.15,
        min_latency: float = 0.3,
        max_latency: float = 1.5,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        if min_latency < 0 or max_latency < min_latency:
            raise ValueError(f"invalid latency range [{min_latency}, {max_latency}]")
        self.source_id = source_id
        self.domain = domain
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self._rng = rng or random.Random(seed)

    async def fetch(self, destination: str) -> List[RawPackage]:
        latency = self._rng.uniform(self.min_latency, self.max_latency)
        if latency:
            await asyncio.sleep(latency)

        if self._rng.random() < self.failure_rate:
            logger.info(f"[{self.source_id}] simulated failure for {destination!r}")
            raise SourceError(
                f"Failed to fetch {self.source_id} packages",
                source=self.source_id,
                error_type="upstream",
                http_status=503,
            )

        return [self._make_package(destination, i) for i in range(self._rng.randint(2, 5))]

    def _make_package(self, destination: str, index: int) -> RawPackage:
        rng = self._rng
        nights = rng.randint(2, 7)
        price = round(rng.uniform(8_000, 60_000), -2)
        has_offer = rng.random() < 0.6
        original_price = round(price * rng.uniform(1.1, 1.4), -2) if has_offer else None
        discount = round((original_price - price) / original_price * 100) if original_price else None
        theme = _THEMES[(index + rng.randrange(len(_THEMES))) % len(_THEMES)]
        title = f"{destination} {theme}"

        return RawPackage(
            title=title,
            price=price,
            original_price=original_price,
            rating=round(rng.uniform(3.5, 5.0), 1),
            reviews=rng.randint(12, 4_800),
            duration=f"{nights + 1} Days / {nights} Nights",
            highlights=rng.sample(_HIGHLIGHTS, 3),
            discount=discount,
            booking_url=f"https://www.{self.domain}/holidays/{_slugify(title)}-{index + 1}",
            image=f"https://picsum.photos/seed/{_slugify(self.source_id + '-' + title)}/600/400",
        )
