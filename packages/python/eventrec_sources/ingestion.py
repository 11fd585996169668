from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from eventrec_core.config import DEFAULT_PAGE_SIZE
from eventrec_core.normalize import coerce_float, normalize_country_code, start_time_of
from eventrec_core.types import EventRecord
from eventrec_user.store import Repository

from .types import EventSource

log = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    fetched: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


def to_event_record(raw: dict[str, Any], provider: str) -> EventRecord | None:
    """External raw record -> internal row. None when it has no usable id."""
    raw_id = str(raw.get("id") or "").strip()
    if not raw_id:
        return None
    provider_id = raw_id.split("_", 1)[1] if raw_id.startswith("tm_") else raw_id
    return EventRecord(
        id=uuid.uuid4().hex,
        provider=provider,
        event_id=provider_id,
        title=str(raw.get("title") or ""),
        description=raw.get("description"),
        start_utc=start_time_of(raw),
        venue_name=raw.get("venue") or None,
        city=raw.get("city") or None,
        country=raw.get("country") or None,
        country_code=normalize_country_code(raw.get("countryCode")),
        lat=coerce_float(raw.get("lat")),
        lon=coerce_float(raw.get("lon")),
        category=raw.get("category") or None,
        price_min=coerce_float(raw.get("priceMin")),
        price_max=coerce_float(raw.get("priceMax")),
        url=raw.get("url"),
    )


class EventIngestionService:
    """Pulls events from a live source into the internal dataset."""

    def __init__(self, repo: Repository, source: EventSource, *, provider: str = "Ticketmaster"):
        self.repo = repo
        self.source = source
        self.provider = provider

    async def ingest(
        self,
        keyword: str | None = None,
        country_code: str | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> IngestionResult:
        raws = await self.source.search(
            keyword=keyword,
            country_code=normalize_country_code(country_code),
            page_size=page_size,
        )
        result = IngestionResult(fetched=len(raws))
        for raw in raws:
            record = to_event_record(raw, self.provider)
            if record is None:
                result.skipped += 1
                continue
            _, created = await self.repo.upsert_event_by_provider_id(record)
            if created:
                result.created += 1
            else:
                result.updated += 1
        log.info(
            "ingest %s: fetched=%d created=%d updated=%d skipped=%d",
            self.provider, result.fetched, result.created, result.updated, result.skipped,
        )
        return result
