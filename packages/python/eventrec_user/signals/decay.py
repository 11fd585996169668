from __future__ import annotations


# multiplicative decay of every competitor key; the reinforced key is left alone
def decay_competitors(scores: dict[str, float], keep: str, factor: float) -> None:
    for key in scores:
        if key != keep:
            scores[key] *= factor


def smooth_update(current: float | None, incoming: float | None, alpha: float) -> float | None:
    """EMA update; an unset current value is replaced by the observation."""
    if incoming is None:
        return current
    if current is None:
        return incoming
    return current * (1 - alpha) + incoming * alpha
