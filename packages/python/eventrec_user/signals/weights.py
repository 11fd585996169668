from __future__ import annotations

from dataclasses import dataclass

from eventrec_core.config import PRICE_EMA_ALPHA


@dataclass(frozen=True)
class SignalWeights:
    # search: weak, exploratory intent
    search_keyword: float = 0.3
    search_category: float = 0.5
    search_country: float = 0.4
    search_country_decay: float = 0.97
    # click: stronger, committed intent
    click_category: float = 1.0
    click_country: float = 0.7
    click_country_decay: float = 0.98
    click_keyword: float = 0.5
    # rating
    rating_love: float = 1.5  # >= 4 stars
    rating_neutral: float = 0.5  # == 3 stars
    rating_dislike: float = -0.5  # <= 2 stars
    rating_keyword_factor: float = 0.3
    # budget smoothing
    price_alpha: float = PRICE_EMA_ALPHA


DEFAULT_WEIGHTS = SignalWeights()


def rating_to_weight(rating: float, params: SignalWeights = DEFAULT_WEIGHTS) -> float:
    """
    Map 1–5 star rating → signed reinforcement.
    """
    if rating >= 4:
        return params.rating_love
    if rating >= 3:
        return params.rating_neutral
    return params.rating_dislike
