"""Destination routes - landing page cards and search-box suggestions."""
from fastapi import APIRouter, Query
from pydantic import BaseModel
from typing import List

from tour_sourcing.destinations import FEATURED_DESTINATIONS, FeaturedDestination, suggest_destinations

router = APIRouter(prefix="/api/destinations", tags=["destinations"])


class SuggestionResponse(BaseModel):
    query: str
    suggestions: List[str]


@router.get("/featured", response_model=List[FeaturedDestination])
async def featured_destinations():
    return FEATURED_DESTINATIONS


@router.get("/suggest", response_model=SuggestionResponse)
async def destination_suggestions(
    q: str = Query("", max_length=100),
    limit: int = Query(5, ge=1, le=20),
):
    return SuggestionResponse(query=q, suggestions=suggest_destinations(q, limit=limit))
