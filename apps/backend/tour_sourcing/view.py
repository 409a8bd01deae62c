"""Display projection: rating filter plus sort over the canonical package set."""

from __future__ import annotations

from typing import Sequence, List

from tour_sourcing.models import Package


def _passes_rating(package: Package, min_rating: float) -> bool:
    return (package.rating or 0) >= min_rating


def _duration_key(package: Package) -> tuple[bool, str]:
    # Packages without a duration label go last.
    label = package.duration or ""
    return (label == "", label.casefold())


def project_packages(
    packages: Sequence[Package],
    sort_key: str = "price",
    min_rating: float = 0,
) -> List[Package]:
    """Filter by minimum rating and sort for display.

    Pure: the input is never mutated and equal inputs give equal output.
    Sorting is stable, so ties keep canonical order. An unrecognised sort
    key leaves the filtered packages in canonical order.
    """
    visible = [p for p in packages if _passes_rating(p, min_rating)]

    if sort_key == "price":
        return sorted(visible, key=lambda p: p.price or 0)
    if sort_key == "rating":
        return sorted(visible, key=lambda p: p.rating or 0, reverse=True)
    if sort_key == "duration":
        return sorted(visible, key=_duration_key)
    return visible


def count_sources(packages: Sequence[Package]) -> int:
    """Number of distinct sources represented in a package set."""
    return len({p.source for p in packages})
