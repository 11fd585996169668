from datetime import timedelta

import pytest

from conftest import NOW
from eventrec_core.types import CanonicalFeatures, SourceKind
from eventrec_ranking.diversification import diversify_by_country, preferred_quota
from eventrec_ranking.hybrid import minmax, rank_internal, rank_live
from eventrec_ranking.types import Candidate, ScoreBreakdown, contribution


def _cand(id: str, country: str | None = "US", start=None) -> Candidate:
    return Candidate(
        id=id,
        payload={"id": id},
        source_kind=SourceKind.EXTERNAL,
        features=CanonicalFeatures(category="Music", country_code=country),
        start=start,
    )


def _content(value: float) -> ScoreBreakdown:
    return ScoreBreakdown(features={"category": contribution("category", value, 1.0)})


def test_minmax():
    assert minmax([1.0, 3.0, 2.0]).tolist() == [0.0, 1.0, 0.5]
    assert minmax([2.0, 2.0]).tolist() == [0.0, 0.0]
    assert minmax([]).tolist() == []


def test_internal_weights_after_normalization():
    cands = [_cand("a"), _cand("b")]
    ranked = rank_internal(
        cands,
        content=[_content(10.0), _content(0.0)],
        context=[0.0, 0.7],
        cf=[0.0, 0.0],
        popularity=[0.2, 0.9],
    )
    by_id = {s.id: s for s in ranked}
    assert by_id["a"].final_score == pytest.approx(0.4)
    assert by_id["b"].final_score == pytest.approx(0.25 + 0.1)
    assert [s.id for s in ranked] == ["a", "b"]
    assert by_id["a"].breakdown.features["cf"].value == 0.0


def test_internal_requires_aligned_inputs():
    with pytest.raises(ValueError):
        rank_internal([_cand("a")], content=[], context=[0.0], cf=[0.0], popularity=[0.0])


def test_live_is_raw_sum():
    ranked = rank_live([_cand("a"), _cand("b")], content=[_content(3.0), _content(1.0)], context=[0.1, 0.6])
    assert [(s.id, round(s.final_score, 6)) for s in ranked] == [("a", 3.1), ("b", 1.6)]


def test_ties_break_by_start_then_input_order():
    later = NOW + timedelta(days=5)
    sooner = NOW + timedelta(days=1)
    cands = [_cand("unknown"), _cand("later", start=later), _cand("sooner", start=sooner), _cand("later2", start=later)]
    ranked = rank_live(cands, content=[_content(1.0)] * 4, context=[0.0] * 4)
    assert [s.id for s in ranked] == ["sooner", "later", "later2", "unknown"]


@pytest.mark.parametrize("limit, quota", [(0, 0), (1, 1), (2, 1), (5, 2), (10, 4), (20, 8), (50, 8)])
def test_preferred_quota(limit, quota):
    assert preferred_quota(limit) == quota


def test_diversification_quota_with_enough_candidates():
    # 30 higher-ranked US events, then 10 AU events
    cands = [_cand(f"us{i}", "US") for i in range(30)] + [_cand(f"au{i}", "AU") for i in range(10)]
    scores = [100.0 - i for i in range(40)]
    ranked = rank_live(cands, content=[_content(s) for s in scores], context=[0.0] * 40)

    out = diversify_by_country(ranked, preferred_country="AU", limit=20)
    assert len(out) == 20
    assert [s.id for s in out[:8]] == [f"au{i}" for i in range(8)]
    assert [s.id for s in out[8:]] == [f"us{i}" for i in range(12)]
    assert len({s.id for s in out}) == 20


def test_diversification_with_few_preferred_and_no_preference():
    cands = [_cand("us1", "US"), _cand("au1", "AU"), _cand("us2", "US"), _cand("us3", "US")]
    ranked = rank_live(cands, content=[_content(4 - i) for i in range(4)], context=[0.0] * 4)

    out = diversify_by_country(ranked, preferred_country="AU", limit=3)
    assert [s.id for s in out] == ["au1", "us1", "us2"]

    plain = diversify_by_country(ranked, preferred_country=None, limit=3)
    assert [s.id for s in plain] == ["us1", "au1", "us2"]
    assert diversify_by_country(ranked, preferred_country="AU", limit=0) == []
