from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from eventrec_core.types import CanonicalFeatures, SourceKind


@dataclass
class Candidate:
    id: str
    payload: dict[str, Any]
    source_kind: SourceKind
    features: CanonicalFeatures
    start: datetime | None = None


@dataclass(frozen=True)
class FeatureContribution:
    feature: str  # "country_override", "category", "content", "context", ...
    value: float  # feature value (pre-weight, post-normalization)
    weight: float  # weight used in this run
    contribution: float  # weight * value


@dataclass(frozen=True)
class ScoreBreakdown:
    features: Dict[str, FeatureContribution]  # keyed by feature name

    @property
    def total(self) -> float:
        return sum(fc.contribution for fc in self.features.values())


def contribution(feature: str, value: float, weight: float) -> FeatureContribution:
    return FeatureContribution(
        feature=feature, value=float(value), weight=float(weight), contribution=float(weight) * float(value)
    )


@dataclass
class ScoredEvent:
    candidate: Candidate
    final_score: float
    breakdown: ScoreBreakdown  # hybrid-level terms
    content: ScoreBreakdown | None = None  # preference-model terms

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def country_code(self) -> str | None:
        return self.candidate.features.country_code
