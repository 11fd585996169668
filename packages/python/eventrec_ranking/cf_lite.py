from __future__ import annotations

import logging
from typing import Mapping, Sequence

from eventrec_core.config import LIKED_RATING
from eventrec_core.types import EventId, UserId
from eventrec_user.store import Repository

from .hybrid import minmax

log = logging.getLogger(__name__)


def normalize_neighbor_counts(
    candidate_ids: Sequence[EventId], counts: Mapping[EventId, int]
) -> list[float]:
    """Min-max scaled neighbor counts aligned with `candidate_ids`."""
    raw = [float(counts.get(cid, 0)) for cid in candidate_ids]
    return minmax(raw).tolist()


async def cf_lite_scores(
    repo: Repository,
    user_id: UserId,
    candidate_ids: Sequence[EventId],
    *,
    min_rating: int = LIKED_RATING,
) -> list[float]:
    """
    Item co-occurrence among users with overlapping taste.

    Liked set = events this user rated >= min_rating; neighbors = other users
    who liked any of them; each candidate scores the number of neighbors who
    also liked it. No liked events or no neighbors gives all zeros.
    """
    if not candidate_ids:
        return []
    liked = await repo.find_rated_event_ids(user_id, min_rating)
    if not liked:
        return [0.0] * len(candidate_ids)
    counts = await repo.find_neighbor_ratings(liked, user_id, min_rating)
    log.debug("cf-lite: %d liked, %d co-liked events", len(liked), len(counts))
    return normalize_neighbor_counts(candidate_ids, counts)
