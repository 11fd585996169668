from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from eventrec_core.config import DEFAULT_PAGE_SIZE, TICKETMASTER_BASE_URL
from eventrec_core.normalize import coerce_float

from .types import EventSourceError, EventSourceUnavailable

log = logging.getLogger(__name__)

_RETRYABLE = {429, 500, 502, 503, 504}


def to_raw_event(e: dict[str, Any]) -> dict[str, Any]:
    """Flatten one Discovery API event into the external raw shape."""
    venues = (e.get("_embedded") or {}).get("venues") or [{}]
    venue = venues[0] or {}
    price = (e.get("priceRanges") or [{}])[0] or {}
    start = (e.get("dates") or {}).get("start") or {}
    classification = (e.get("classifications") or [{}])[0] or {}
    location = venue.get("location") or {}
    images = e.get("images") or []
    return {
        "id": f"tm_{e.get('id')}",
        "source": "ticketmaster",
        "title": e.get("name") or "",
        "description": e.get("info") or e.get("description"),
        "url": e.get("url"),
        "date": start.get("localDate"),
        "time": start.get("localTime"),
        "venue": venue.get("name") or "",
        "city": (venue.get("city") or {}).get("name") or "",
        "country": (venue.get("country") or {}).get("name") or "",
        "countryCode": (venue.get("country") or {}).get("countryCode") or "",
        "image": images[0].get("url") if images else None,
        "category": (classification.get("segment") or {}).get("name") or "Event",
        "priceMin": coerce_float(price.get("min")),
        "priceMax": coerce_float(price.get("max")),
        "lat": coerce_float(location.get("latitude")),
        "lon": coerce_float(location.get("longitude")),
    }


class TicketmasterClient:
    name = "ticketmaster"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = TICKETMASTER_BASE_URL,
        max_connections: int = 15,
        timeout: float = 10.0,
        retries: int = 1,
        retry_delay: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.retries = retries
        self.retry_delay = retry_delay
        limits = httpx.Limits(
            max_connections=max_connections, max_keepalive_connections=max_connections
        )
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers={"Accept": "application/json"},
        )
        self.semaphore = asyncio.Semaphore(max_connections)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def get(self, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/events.json"
        async with self.semaphore:
            try:
                response = await self.client.get(url, params=params)
            except httpx.RequestError as e:
                raise EventSourceError(f"ticketmaster unreachable: {e}") from e
        if response.status_code in _RETRYABLE:
            raise EventSourceError(f"ticketmaster returned {response.status_code}")
        response.raise_for_status()
        return response.json()

    async def get_with_retry(
        self, params: dict[str, Any], retries: int = 1, delay: float = 0.5
    ) -> dict[str, Any]:
        for attempt in range(retries + 1):
            try:
                return await self.get(params)
            except EventSourceError:
                if attempt >= retries:
                    raise
                await asyncio.sleep(delay * (2**attempt))  # exponential backoff
        raise EventSourceError("ticketmaster retries exhausted")

    async def search(
        self,
        *,
        keyword: str | None = None,
        category: str | None = None,
        country_code: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        if not self.api_key:
            raise EventSourceUnavailable("ticketmaster api key is not configured")

        params: dict[str, Any] = {"apikey": self.api_key, "size": page_size}
        if keyword:
            params["keyword"] = keyword
        if category:
            params["classificationName"] = category
        if country_code:
            params["countryCode"] = country_code

        data = await self.get_with_retry(params, retries=self.retries, delay=self.retry_delay)
        events = (data.get("_embedded") or {}).get("events") or []
        log.debug(
            "ticketmaster: %d events (country=%s, category=%s)", len(events), country_code, category
        )
        return [to_raw_event(e) for e in events]
