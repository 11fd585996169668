from __future__ import annotations

from eventrec_core.normalize import clamp_price, normalize_category, normalize_country_code
from eventrec_core.types import EventRecord, InteractionType
from eventrec_retrieval.tokenizer import tokenize
from eventrec_user.types import Interaction, PreferenceState

from .decay import decay_competitors, smooth_update
from .projection import project_mirrors
from .schemas import ClickSignal, SearchSignal
from .weights import DEFAULT_WEIGHTS, SignalWeights, rating_to_weight


def _bump(scores: dict[str, float], key: str | None, delta: float) -> None:
    if not key:
        return
    scores[key] = scores.get(key, 0.0) + delta


def _reinforce_country(
    prefs: PreferenceState, code: str, delta: float, decay: float
) -> None:
    _bump(prefs.country_scores, code, delta)
    decay_competitors(prefs.country_scores, keep=code, factor=decay)


def on_search(
    prefs: PreferenceState,
    signal: SearchSignal,
    params: SignalWeights = DEFAULT_WEIGHTS,
) -> Interaction:
    """
    Learn from a search: query tokens, category/country filters, budget.

    Mutates `prefs` in place and returns the interaction to append.
    """
    price_min = clamp_price(signal.price_min)
    price_max = clamp_price(signal.price_max)
    category = normalize_category(signal.category)
    code = normalize_country_code(signal.country)

    for token in tokenize(signal.query):
        _bump(prefs.keyword_scores, token, params.search_keyword)

    if category:
        _bump(prefs.category_scores, category, params.search_category)

    if code:
        _reinforce_country(prefs, code, params.search_country, params.search_country_decay)

    prefs.price_min = smooth_update(prefs.price_min, price_min, params.price_alpha)
    prefs.price_max = smooth_update(prefs.price_max, price_max, params.price_alpha)

    project_mirrors(prefs, category=category, country=code)

    return Interaction(
        type=InteractionType.SEARCH,
        metadata={
            "q": signal.query,
            "category": signal.category,
            "country": signal.country,
            "source": signal.source,
            "min_price": price_min,
            "max_price": price_max,
        },
    )


def on_click(
    prefs: PreferenceState,
    signal: ClickSignal,
    event: EventRecord | None = None,
    params: SignalWeights = DEFAULT_WEIGHTS,
) -> Interaction:
    """
    Learn from a click. Fields missing from the payload are taken from the
    referenced internal event when one was resolved.
    """
    category = normalize_category(signal.category or (event.category if event else None))
    code = normalize_country_code(signal.country or (event.country_code if event else None))
    title = signal.title or (event.title if event else None)

    if category:
        _bump(prefs.category_scores, category, params.click_category)

    if code:
        _reinforce_country(prefs, code, params.click_country, params.click_country_decay)

    for token in tokenize(title):
        _bump(prefs.keyword_scores, token, params.click_keyword)

    project_mirrors(prefs, category=category, country=code)

    return Interaction(
        type=InteractionType.CLICK,
        event_ref=event.id if event else None,
        metadata={
            "source": signal.source,
            "external_id": signal.external_id,
            "title": title,
            "url": signal.url,
            "category": category,
            "country": code,
            "provider": event.provider if event else None,
        },
    )


def on_rating(
    prefs: PreferenceState,
    event: EventRecord,
    rating: int,
    params: SignalWeights = DEFAULT_WEIGHTS,
) -> Interaction:
    """Positive ratings boost category & title keywords; low ratings push back."""
    weight = rating_to_weight(rating, params)
    category = normalize_category(event.category)

    if category:
        _bump(prefs.category_scores, category, weight)

    for token in tokenize(event.title):
        _bump(prefs.keyword_scores, token, weight * params.rating_keyword_factor)

    # only reinforcement mirrors into the explicit selection
    project_mirrors(prefs, category=category if weight > 0 else None)

    return Interaction(
        type=InteractionType.RATED,
        event_ref=event.id,
        metadata={"rating": rating, "weight": weight},
    )
