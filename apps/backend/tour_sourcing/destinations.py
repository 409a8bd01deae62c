"""Featured destinations and fuzzy destination suggestions."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel
from rapidfuzz import fuzz, process

MIN_SUGGESTION_SCORE = 60


class FeaturedDestination(BaseModel):
    title: str
    description: str
    destination: str


FEATURED_DESTINATIONS: List[FeaturedDestination] = [
    FeaturedDestination(title="Goa Beach Paradise", description="Live prices from 6+ booking sites", destination="Goa"),
    FeaturedDestination(title="Manali Adventure", description="Real-time availability & pricing", destination="Manali"),
    FeaturedDestination(title="Kerala Backwaters", description="Compare all major travel agencies", destination="Kerala"),
]

CITY_NAMES: List[str] = [
    "Agra", "Ahmedabad", "Alleppey", "Amritsar", "Andaman", "Bangalore",
    "Chennai", "Coorg", "Darjeeling", "Delhi", "Dharamshala", "Gangtok",
    "Goa", "Gulmarg", "Hampi", "Hyderabad", "Jaipur", "Jaisalmer",
    "Jodhpur", "Kasol", "Kerala", "Kochi", "Kolkata", "Ladakh", "Leh",
    "Lonavala", "Madurai", "Manali", "Mount Abu", "Mumbai", "Munnar",
    "Mussoorie", "Mysore", "Nainital", "Ooty", "Pondicherry", "Pune",
    "Rishikesh", "Shimla", "Srinagar", "Udaipur", "Varanasi", "Wayanad",
    "Bali", "Bangkok", "Dubai", "Maldives", "Phuket", "Singapore",
]


def suggest_destinations(query: str, limit: int = 5) -> List[str]:
    """Return up to ``limit`` known cities that approximately match ``query``."""
    cleaned = (query or "").strip()
    if not cleaned or limit <= 0:
        return []

    matches = process.extract(
        cleaned,
        CITY_NAMES,
        scorer=fuzz.WRatio,
        processor=str.lower,
        limit=limit,
        score_cutoff=MIN_SUGGESTION_SCORE,
    )
    return [name for name, _score, _index in matches]
