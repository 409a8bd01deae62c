"""Clickout routes - "Book Now" redirection and logging."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
import logging

from dependencies import enforce_rate_limit
from observability.metrics import clickouts_total
from tour_sourcing.sources.base import SOURCE_CATALOG
from utils.security import extract_domain, is_safe_redirect_url

router = APIRouter(tags=["clickout"])
logger = logging.getLogger(__name__)

_KNOWN_SOURCES = {entry.name for entry in SOURCE_CATALOG}


@router.get("/api/out")
async def clickout_redirect(
    url: str,
    source: str = "unknown",
    _: None = Depends(enforce_rate_limit("clickout")),
):
    """
    Log a clickout event and redirect to the provider's booking page.

    Query params:
        url: The package's booking URL
        source: The source that listed the package (e.g. MakeMyTrip)
    """
    if not is_safe_redirect_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL")

    booking_domain = extract_domain(url)
    clickouts_total.labels(source=source if source in _KNOWN_SOURCES else "other").inc()
    logger.info(
        "Clickout",
        extra={"event": "clickout", "source": source, "booking_domain": booking_domain},
    )

    return RedirectResponse(url=url.strip(), status_code=302)
