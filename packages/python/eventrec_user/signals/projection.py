from __future__ import annotations

from eventrec_user.types import PreferenceState


def project_mirrors(
    prefs: PreferenceState,
    *,
    category: str | None = None,
    country: str | None = None,
) -> None:
    """
    One-way projection of a learning update into the explicit-choice fields.

    The learner never assigns `categories` / `preferred_country` itself; it
    reports what it just reinforced and this function mirrors it. Passing None
    leaves the corresponding field untouched.
    """
    if category:
        prefs.categories = [category]
    if country:
        prefs.preferred_country = country


def top_category(prefs: PreferenceState) -> str | None:
    """Strongest positively weighted category, else the first explicit one."""
    best_key, best_val = None, 0.0
    for key, val in prefs.category_scores.items():
        if val > best_val:
            best_key, best_val = key, val
    if best_key is not None:
        return best_key
    return prefs.categories[0] if prefs.categories else None
