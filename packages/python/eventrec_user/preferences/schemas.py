from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from eventrec_core.normalize import ensure_ts
from eventrec_core.types import UserId


class PreferencesUpdate(BaseModel):
    """Manual preference edit. Omitted fields are left unchanged."""

    categories: list[str] | None = None
    preferred_country: str | None = None
    max_distance_km: float | None = Field(default=None, gt=0)
    price_min: float | None = Field(default=None, ge=0)
    price_max: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_ts(v)


class PreferencesResponse(BaseModel):
    user_id: UserId
    categories: list[str] = Field(default_factory=list)
    preferred_country: str | None = None
    max_distance_km: float
    price_min: float | None = None
    price_max: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    category_scores: dict[str, float] = Field(default_factory=dict)
    country_scores: dict[str, float] = Field(default_factory=dict)
    keyword_scores: dict[str, float] = Field(default_factory=dict)
