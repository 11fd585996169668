from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from eventrec_ranking.types import ScoreBreakdown, ScoredEvent


class FeedbackRequest(BaseModel):
    event_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None


class FeatureContributionOut(BaseModel):
    value: float
    weight: float
    contribution: float


def _breakdown_out(b: ScoreBreakdown | None) -> Dict[str, FeatureContributionOut]:
    if b is None:
        return {}
    return {
        name: FeatureContributionOut(value=fc.value, weight=fc.weight, contribution=fc.contribution)
        for name, fc in b.features.items()
    }


class RecommendationItem(BaseModel):
    id: str
    source: str
    title: str | None = None
    category: str
    country_code: str | None = None
    start: datetime | None = None
    url: str | None = None
    score: float
    breakdown: Dict[str, FeatureContributionOut] = Field(default_factory=dict)
    content_breakdown: Dict[str, FeatureContributionOut] = Field(default_factory=dict)
    event: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_scored(cls, s: ScoredEvent) -> "RecommendationItem":
        c = s.candidate
        return cls(
            id=c.id,
            source=c.source_kind.value,
            title=c.payload.get("title"),
            category=c.features.category,
            country_code=c.features.country_code,
            start=c.start,
            url=c.payload.get("url"),
            score=s.final_score,
            breakdown=_breakdown_out(s.breakdown),
            content_breakdown=_breakdown_out(s.content),
            event=c.payload,
        )


class RecommendationsResponse(BaseModel):
    mode: str  # "internal" | "live" | "search"
    items: List[RecommendationItem] = Field(default_factory=list)


class ImportRequest(BaseModel):
    keyword: str | None = None
    country_code: str | None = None
    page_size: int = Field(default=100, ge=1, le=200)


class ImportResponse(BaseModel):
    fetched: int
    created: int
    updated: int
    skipped: int


class OkResponse(BaseModel):
    ok: bool = True
