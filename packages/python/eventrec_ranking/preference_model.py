from __future__ import annotations

from dataclasses import dataclass

from eventrec_core.types import CanonicalFeatures
from eventrec_user.types import PreferenceState

from .types import ScoreBreakdown, contribution


@dataclass(frozen=True)
class ScoringWeights:
    override_match: float = 3.0
    override_mismatch: float = -0.5
    category: float = 1.0
    country: float = 0.4
    keyword: float = 0.8
    keyword_saturation: float = 5.0  # keyword sum at which the term maxes out
    price_fit: float = 1.0


DEFAULT_SCORING = ScoringWeights()


def _override_value(prefs: PreferenceState, f: CanonicalFeatures, w: ScoringWeights) -> float:
    if not prefs.preferred_country or not f.country_code:
        return 0.0
    return w.override_match if prefs.preferred_country == f.country_code else w.override_mismatch


def _keyword_value(prefs: PreferenceState, f: CanonicalFeatures, w: ScoringWeights) -> float:
    s = sum(prefs.keyword_scores[k] for k in f.keywords if k in prefs.keyword_scores)
    # net-negative keyword affinity is ignored, not penalized
    if s <= 0:
        return 0.0
    return min(s / w.keyword_saturation, 1.0)


def price_fit(lo: float | None, hi: float | None, price: float | None) -> float:
    """
    1.0 at the middle of the user's budget, 0.0 at (or beyond) either edge.

    Zero when the budget is incomplete or inverted, or the price is unknown.
    """
    if lo is None or hi is None or price is None or hi <= lo:
        return 0.0
    p = min(max(price, lo), hi)
    mid = (lo + hi) / 2.0
    d = abs(p - mid) / (hi - lo)
    return 1.0 - 2.0 * d


def explain(
    prefs: PreferenceState,
    features: CanonicalFeatures,
    weights: ScoringWeights = DEFAULT_SCORING,
) -> ScoreBreakdown:
    """Per-term content score; `breakdown.total` is the score."""
    w = weights
    country = features.country_code
    feats = {
        "country_override": contribution(
            "country_override", _override_value(prefs, features, w), 1.0
        ),
        "category": contribution(
            "category", prefs.category_scores.get(features.category, 0.0), w.category
        ),
        "country": contribution(
            "country", prefs.country_scores.get(country, 0.0) if country else 0.0, w.country
        ),
        "keywords": contribution("keywords", _keyword_value(prefs, features, w), w.keyword),
        "price_fit": contribution(
            "price_fit", price_fit(prefs.price_min, prefs.price_max, features.price), w.price_fit
        ),
    }
    return ScoreBreakdown(features=feats)


def score(
    prefs: PreferenceState,
    features: CanonicalFeatures,
    weights: ScoringWeights = DEFAULT_SCORING,
) -> float:
    return explain(prefs, features, weights).total
