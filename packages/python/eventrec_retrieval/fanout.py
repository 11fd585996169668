from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, List, Sequence

from eventrec_core.config import DEFAULT_PAGE_SIZE, DEFAULT_REGION_TIMEOUT_S, REGION_CATALOG
from eventrec_core.errors import EventSourceUnavailable
from eventrec_sources.types import EventSource

log = logging.getLogger(__name__)

RawList = List[dict[str, Any]]


async def _query_region(
    source: EventSource,
    *,
    region: str,
    category: str | None,
    page_size: int,
    timeout_s: float,
) -> RawList:
    # one region failing never aborts the others
    try:
        return await asyncio.wait_for(
            source.search(category=category, country_code=region, page_size=page_size),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError:
        log.warning("region %s timed out after %.1fs", region, timeout_s)
    except Exception as e:
        log.warning("region %s failed: %s", region, e)
    return []


def dedup_by_id(batches: Iterable[Sequence[dict[str, Any]]]) -> RawList:
    """Flatten in order; the first record seen for an id wins. Id-less records are dropped."""
    seen: set[str] = set()
    out: RawList = []
    for batch in batches:
        for raw in batch or []:
            rid = raw.get("id") if isinstance(raw, dict) else None
            if rid is None:
                continue
            key = str(rid)
            if key in seen:
                continue
            seen.add(key)
            out.append(raw)
    return out


async def fan_out_regions(
    source: EventSource,
    *,
    category: str | None = None,
    preferred_country: str | None = None,
    regions: Sequence[str] = REGION_CATALOG,
    page_size: int = DEFAULT_PAGE_SIZE,
    timeout_s: float = DEFAULT_REGION_TIMEOUT_S,
) -> RawList:
    """
    Scatter one query per region (plus one for the preferred country), gather
    all of them, merge in catalog order and dedup by id.

    When nothing comes back, a single unrestricted global query is tried. An
    ordinary failure of that query yields []; `EventSourceUnavailable` from it
    means the upstream is down as a whole and is re-raised.
    """
    targets = list(regions)
    if preferred_country:
        targets.append(preferred_country)

    batches = await asyncio.gather(
        *[
            _query_region(
                source, region=r, category=category, page_size=page_size, timeout_s=timeout_s
            )
            for r in targets
        ]
    )
    merged = dedup_by_id(batches)
    log.info(
        "fan-out: %d regions, %d raw, %d unique (category=%s, preferred=%s)",
        len(targets), sum(len(b) for b in batches), len(merged), category, preferred_country,
    )
    if merged:
        return merged

    try:
        fallback = await asyncio.wait_for(source.search(page_size=page_size), timeout=timeout_s)
    except EventSourceUnavailable:
        raise
    except asyncio.TimeoutError:
        log.warning("global fallback timed out after %.1fs", timeout_s)
        return []
    except Exception as e:
        log.warning("global fallback failed: %s", e)
        return []
    return dedup_by_id([fallback])
