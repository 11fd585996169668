from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from eventrec_core.config import DEFAULT_MAX_DISTANCE_KM
from eventrec_core.normalize import ensure_ts, normalize_country_code
from eventrec_core.types import EventId, InteractionType, UserId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PreferenceState(BaseModel):
    """
    Per-user personalization state.

    Learned weight maps (category/country/keyword scores, EMA price bounds) are
    written by the signal learner only. `categories` and `preferred_country`
    are explicit choices; the learner refreshes them through the mirror
    projection, the preferences endpoint sets them directly.
    """

    category_scores: dict[str, float] = Field(default_factory=dict)
    country_scores: dict[str, float] = Field(default_factory=dict)
    keyword_scores: dict[str, float] = Field(default_factory=dict)
    price_min: float | None = None
    price_max: float | None = None
    preferred_country: str | None = None
    categories: list[str] = Field(default_factory=list)

    # manual-only preferences; the date window bounds internal ranking
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("country_scores", mode="before")
    @classmethod
    def _normalize_country_keys(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        out: dict[str, float] = {}
        for key, weight in v.items():
            code = normalize_country_code(key)
            if code is not None:
                out[code] = out.get(code, 0.0) + float(weight)
        return out

    @field_validator("keyword_scores", mode="before")
    @classmethod
    def _normalize_keyword_keys(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        out: dict[str, float] = {}
        for key, weight in v.items():
            token = str(key).strip().lower()
            if token:
                out[token] = out.get(token, 0.0) + float(weight)
        return out

    @field_validator("preferred_country", mode="before")
    @classmethod
    def _normalize_preferred_country(cls, v: Any) -> Any:
        return normalize_country_code(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_ts(v)


class Interaction(BaseModel):
    """Append-only behavioral log entry."""

    type: InteractionType
    event_ref: EventId | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class UserRecord(BaseModel):
    id: UserId
    name: str | None = None
    city: str | None = None
    lat: float | None = None
    lon: float | None = None
    preferences: PreferenceState = Field(default_factory=PreferenceState)
    interactions: list[Interaction] = Field(default_factory=list)
    version: int = 0  # optimistic-concurrency token, bumped by the store on save
