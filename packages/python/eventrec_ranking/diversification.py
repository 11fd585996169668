from __future__ import annotations

import math
from typing import List

from eventrec_core.config import PREFERRED_QUOTA_CAP, PREFERRED_QUOTA_SHARE

from .types import ScoredEvent


def preferred_quota(limit: int) -> int:
    if limit <= 0:
        return 0
    return max(1, min(PREFERRED_QUOTA_CAP, math.floor(PREFERRED_QUOTA_SHARE * limit)))


def diversify_by_country(
    ranked: List[ScoredEvent],  # descending final score
    *,
    preferred_country: str | None,
    limit: int,
) -> List[ScoredEvent]:
    """
    Guarantee the preferred region some visibility at the top of the page.

    The best `preferred_quota(limit)` preferred-country items come first, the
    rest of the page is the best remaining items in rank order.
    """
    if limit <= 0:
        return []
    if not preferred_country:
        return ranked[:limit]

    quota = preferred_quota(limit)
    picked: List[ScoredEvent] = []
    picked_ids: set[int] = set()
    for pos, item in enumerate(ranked):
        if len(picked) >= quota:
            break
        if item.country_code == preferred_country:
            picked.append(item)
            picked_ids.add(pos)

    out = list(picked)
    for pos, item in enumerate(ranked):
        if len(out) >= limit:
            break
        if pos not in picked_ids:
            out.append(item)
    return out
