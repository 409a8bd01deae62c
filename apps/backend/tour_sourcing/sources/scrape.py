"""Live sources backed by the scraping proxy endpoints."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from exceptions import SourceError
from tour_sourcing.models import RawPackage
from tour_sourcing.sources.base import PackageSource, parse_packages
from utils.security import redact_secrets_from_text

logger = logging.getLogger(__name__)


class ScrapeEndpointSource(PackageSource):
    """Fetches packages from ``{base_url}/api/scrape/{slug}?destination=...``.

    The scraping itself happens behind the proxy; this class only performs
    the GET and validates the JSON list it returns.
    """

    path_template = "/api/scrape/{slug}"

    def __init__(
        self,
        source_id: str,
        slug: str,
        base_url: str,
        *,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.source_id = source_id
        self.slug = slug
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return self.base_url + self.path_template.format(slug=self.slug)

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def fetch(self, destination: str) -> List[RawPackage]:
        headers = self._headers()
        async with httpx.AsyncClient(timeout=self.request_timeout, transport=self._transport) as client:
            try:
                response = await client.get(self.url, params={"destination": destination}, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.warning(f"[{self.source_id}] HTTP error status={status}")
                raise SourceError(
                    f"Failed to fetch {self.source_id} packages: status {status}",
                    source=self.source_id,
                    error_type="http",
                    http_status=status,
                ) from e
            except httpx.RequestError as e:
                safe_msg = redact_secrets_from_text(str(e))
                logger.warning(f"[{self.source_id}] request error: {type(e).__name__}: {safe_msg}")
                raise SourceError(
                    f"Failed to fetch {self.source_id} packages: {type(e).__name__}",
                    source=self.source_id,
                    error_type="transport",
                ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError(
                f"{self.source_id} returned invalid JSON",
                source=self.source_id,
                error_type="parse",
                http_status=response.status_code,
            ) from e

        packages = parse_packages(self.source_id, payload)
        logger.debug(f"[{self.source_id}] parsed {len(packages)} packages for {destination!r}")
        return packages


class AmadeusPackageSource(ScrapeEndpointSource):
    """Travel-API source served at ``/api/amadeus/packages`` with a bearer token."""

    path_template = "/api/amadeus/packages"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        *,
        source_id: str = "Amadeus",
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            source_id,
            "amadeus",
            base_url,
            request_timeout=request_timeout,
            transport=transport,
        )
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        return {**super()._headers(), "Authorization": f"Bearer {self.api_key}"}

    async def fetch(self, destination: str) -> List[RawPackage]:
        if not self.api_key:
            raise SourceError(
                "AMADEUS_API_KEY is not configured",
                source=self.source_id,
                error_type="auth",
            )
        return await super().fetch(destination)
