from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator

from .normalize import ensure_ts

EventId = str
UserId = str
RawEvent = Mapping[str, Any]


class SourceKind(str, Enum):
    INTERNAL = "internal"  # EventRecord rows from the store (snake_case)
    EXTERNAL = "external"  # records returned by an event source client (camelCase)


class InteractionType(str, Enum):
    SEARCH = "search"
    CLICK = "click"
    RATED = "rated"


@dataclass(frozen=True)
class CanonicalFeatures:
    category: str
    country_code: str | None = None
    country_name: str | None = None
    price: float | None = None
    keywords: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass
class RankingContext:
    """Per-request inputs shared by every candidate in one ranking pass."""

    now: datetime
    user_location: GeoPoint | None = None
    max_distance_km: float = 50.0


class EventRecord(BaseModel):
    """Internal dataset row. Counters are monotonic except rating_sum on re-rate."""

    id: EventId
    provider: str = "Other"
    event_id: str | None = None  # provider-specific id
    title: str = ""
    description: str | None = None
    start_utc: datetime | None = None
    end_utc: datetime | None = None
    venue_name: str | None = None
    city: str | None = None
    country: str | None = None  # full name if available
    country_code: str | None = None  # ISO2
    lat: float | None = None
    lon: float | None = None
    category: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    url: str | None = None
    click_count: int = 0
    rating_count: int = 0
    rating_sum: float = 0.0
    bookmark_count: int = 0
    ingested_at: datetime | None = None

    @field_validator("start_utc", "end_utc", "ingested_at")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        # stores may hand back naive UTC timestamps
        return ensure_ts(v)

    @property
    def avg_rating(self) -> float:
        return self.rating_sum / self.rating_count if self.rating_count > 0 else 0.0


class InternalFilter(BaseModel):
    """Simple predicate the store applies before ranking the internal dataset."""

    q: str | None = None
    categories: list[str] = Field(default_factory=list)
    country_code: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    start_after: datetime | None = None
    start_before: datetime | None = None

    @field_validator("start_after", "start_before")
    @classmethod
    def _as_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_ts(v)
