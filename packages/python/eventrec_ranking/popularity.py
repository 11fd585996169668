from __future__ import annotations

import math


def popularity_score(avg_rating: float, clicks: int, bookmarks: int) -> float:
    """Bounded in [0, 1]: rating quality plus saturating engagement counts."""
    avg = min(max(float(avg_rating or 0.0), 0.0), 5.0)
    return (
        0.6 * (avg / 5.0)
        + 0.2 * math.tanh(max(clicks or 0, 0) / 10.0)
        + 0.2 * math.tanh(max(bookmarks or 0, 0) / 5.0)
    )
