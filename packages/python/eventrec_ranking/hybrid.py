from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

import numpy as np

from .types import Candidate, ScoreBreakdown, ScoredEvent, contribution


@dataclass(frozen=True)
class HybridWeights:
    content: float = 0.40
    context: float = 0.25
    cf: float = 0.25
    popularity: float = 0.10


DEFAULT_HYBRID = HybridWeights()

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def minmax(values: Sequence[float]) -> np.ndarray:
    """Scale to [0, 1]; an all-equal (or empty) input maps to zeros."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr
    lo, hi = float(arr.min()), float(arr.max())
    if hi - lo <= 0.0:
        return np.zeros_like(arr)
    return (arr - lo) / (hi - lo)


def sort_ranked(items: List[ScoredEvent]) -> List[ScoredEvent]:
    """Descending score; ties by earliest start (unknown last), then input order."""
    return sorted(
        items,
        key=lambda s: (
            -s.final_score,
            s.candidate.start is None,
            s.candidate.start or _FAR_FUTURE,
        ),
    )


def rank_internal(
    candidates: Sequence[Candidate],
    *,
    content: Sequence[ScoreBreakdown],
    context: Sequence[float],
    cf: Sequence[float],
    popularity: Sequence[float],
    weights: HybridWeights = DEFAULT_HYBRID,
) -> List[ScoredEvent]:
    n = len(candidates)
    if not (len(content) == len(context) == len(cf) == len(popularity) == n):
        raise ValueError("signal arrays must align with candidates")
    if n == 0:
        return []

    content_n = minmax([b.total for b in content])
    context_n = minmax(context)
    cf_n = minmax(cf)
    pop_n = minmax(popularity)

    out: List[ScoredEvent] = []
    for i, c in enumerate(candidates):
        breakdown = ScoreBreakdown(
            features={
                "content": contribution("content", content_n[i], weights.content),
                "context": contribution("context", context_n[i], weights.context),
                "cf": contribution("cf", cf_n[i], weights.cf),
                "popularity": contribution("popularity", pop_n[i], weights.popularity),
            }
        )
        out.append(
            ScoredEvent(candidate=c, final_score=breakdown.total, breakdown=breakdown, content=content[i])
        )
    return sort_ranked(out)


def rank_live(
    candidates: Sequence[Candidate],
    *,
    content: Sequence[ScoreBreakdown],
    context: Sequence[float],
) -> List[ScoredEvent]:
    """Raw content score plus raw context score; no normalization."""
    if not (len(content) == len(context) == len(candidates)):
        raise ValueError("signal arrays must align with candidates")
    out: List[ScoredEvent] = []
    for c, b, ctx in zip(candidates, content, context):
        breakdown = ScoreBreakdown(
            features={
                "content": contribution("content", b.total, 1.0),
                "context": contribution("context", ctx, 1.0),
            }
        )
        out.append(ScoredEvent(candidate=c, final_score=breakdown.total, breakdown=breakdown, content=b))
    return sort_ranked(out)
