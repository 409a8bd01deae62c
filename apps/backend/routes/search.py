"""Search session routes - create a session, search, refresh, sort and filter."""
from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from typing import AsyncGenerator, Optional
import json
import logging

from dependencies import (
    enforce_rate_limit,
    get_coordinator,
    get_search_session,
    get_session_store,
)
from tour_sourcing.coordinator import FanOutCoordinator
from tour_sourcing.models import RATING_FILTER_OPTIONS, SORT_KEYS, SessionSnapshot, SortKey
from tour_sourcing.session import SearchSession, SessionStore, normalize_destination

router = APIRouter(prefix="/api/sessions", tags=["search"])
logger = logging.getLogger(__name__)


class SearchRequest(BaseModel):
    destination: Optional[str] = None


class ViewUpdate(BaseModel):
    sort_key: Optional[str] = None
    min_rating: Optional[float] = None


class ViewOptions(BaseModel):
    sort_keys: list[str] = Field(default_factory=lambda: list(SORT_KEYS))
    rating_options: list[float] = Field(default_factory=lambda: list(RATING_FILTER_OPTIONS))


@router.post("", response_model=SessionSnapshot, status_code=201)
async def create_session(
    store: SessionStore = Depends(get_session_store),
    _: None = Depends(enforce_rate_limit("session")),
):
    session = store.create()
    logger.info(f"[SESSION] created {session.session_id}")
    return session.snapshot()


@router.get("/options", response_model=ViewOptions)
async def view_options():
    """Sort keys and rating thresholds the results view offers."""
    return ViewOptions()


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session_snapshot(
    sort_key: Optional[SortKey] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    session: SearchSession = Depends(get_search_session),
):
    """
    Current session state.

    ``sort_key`` / ``min_rating`` override the stored display settings for
    this read only.
    """
    return session.snapshot(sort_key=sort_key, min_rating=min_rating)


@router.post("/{session_id}/search", response_model=SessionSnapshot)
async def search_packages(
    body: SearchRequest,
    session: SearchSession = Depends(get_search_session),
    coordinator: FanOutCoordinator = Depends(get_coordinator),
    _: None = Depends(enforce_rate_limit("search")),
):
    """Fan out to every source for ``destination`` and return the merged result."""
    destination = normalize_destination(body.destination)
    logger.info(f"[SEARCH] session={session.session_id} destination={destination!r}")
    await coordinator.search(session, destination)
    return session.snapshot()


@router.post("/{session_id}/search/stream")
async def search_packages_stream(
    body: SearchRequest,
    session: SearchSession = Depends(get_search_session),
    coordinator: FanOutCoordinator = Depends(get_coordinator),
    _: None = Depends(enforce_rate_limit("search")),
):
    """
    Streaming search: one SSE event per source as it settles, then a
    ``complete`` event carrying the final session snapshot.
    """
    destination = normalize_destination(body.destination)
    logger.info(f"[SEARCH STREAM] session={session.session_id} destination={destination!r}")

    async def generate_sse() -> AsyncGenerator[str, None]:
        async for event in coordinator.search_events(session, destination):
            yield f"data: {json.dumps(event.model_dump(mode='json', by_alias=True))}\n\n"

    return StreamingResponse(
        generate_sse(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )


@router.post("/{session_id}/refresh", response_model=SessionSnapshot)
async def refresh_packages(
    session: SearchSession = Depends(get_search_session),
    coordinator: FanOutCoordinator = Depends(get_coordinator),
    _: None = Depends(enforce_rate_limit("search")),
):
    """Re-run the last search; does nothing if the session never searched."""
    await coordinator.refresh(session)
    return session.snapshot()


@router.post("/{session_id}/back", response_model=SessionSnapshot)
async def back_to_search(session: SearchSession = Depends(get_search_session)):
    session.go_back()
    return session.snapshot()


@router.patch("/{session_id}/view", response_model=SessionSnapshot)
async def update_view(
    body: ViewUpdate,
    session: SearchSession = Depends(get_search_session),
):
    """Change sort order and/or rating filter; never triggers a fetch."""
    if body.sort_key is not None:
        session.set_sort_key(body.sort_key)
    if body.min_rating is not None:
        session.set_min_rating(body.min_rating)
    return session.snapshot()


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    store.delete(session_id)
    logger.info(f"[SESSION] deleted {session_id}")
    return Response(status_code=204)
