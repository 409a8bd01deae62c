"""Fuzzy deduplication of packages merged from several sources.

The key is the lowercased title plus the price rounded to the nearest
thousand. Two sources listing the same title at a similar price collapse
into whichever came first, even when the later one is cheaper or better
rated. That loss is accepted: the heuristic is meant to be coarse.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Set

from tour_sourcing.models import Package

PRICE_BUCKET = 1000


def price_bucket(price: float) -> int:
    """Round half up to the nearest thousand-unit bucket (10.5k -> 11)."""
    return math.floor(price / PRICE_BUCKET + 0.5)


def dedupe_key(package: Package) -> str:
    return f"{package.title.lower()}-{price_bucket(package.price)}"


def dedupe_packages(packages: Iterable[Package]) -> List[Package]:
    """Keep the first package seen for each key, preserving input order."""
    seen: Set[str] = set()
    unique: List[Package] = []
    for package in packages:
        key = dedupe_key(package)
        if key in seen:
            continue
        seen.add(key)
        unique.append(package)
    return unique
