import math
from datetime import timedelta

import pytest

from conftest import NOW
from eventrec_core.types import GeoPoint, RankingContext
from eventrec_ranking.context import context_score, geo_score, haversine_km, point_of, time_score
from eventrec_ranking.popularity import popularity_score

MELBOURNE = GeoPoint(lat=-37.8136, lon=144.9631)
GEELONG = GeoPoint(lat=-38.1499, lon=144.3617)


def test_haversine():
    assert haversine_km(MELBOURNE, MELBOURNE) == 0.0
    d = haversine_km(MELBOURNE, GEELONG)
    assert 60 < d < 70
    assert d == pytest.approx(haversine_km(GEELONG, MELBOURNE))


def test_geo_score_linear_falloff():
    assert geo_score(MELBOURNE, MELBOURNE, 50) == pytest.approx(0.4)
    assert geo_score(MELBOURNE, GEELONG, 50) == 0.0  # beyond the radius
    assert geo_score(MELBOURNE, GEELONG, 130) == pytest.approx(
        0.4 * (1 - haversine_km(MELBOURNE, GEELONG) / 130)
    )
    assert geo_score(None, GEELONG, 50) == 0.0
    assert geo_score(MELBOURNE, None, 50) == 0.0


def test_point_of_requires_both_coordinates():
    assert point_of("1.5", 2) == GeoPoint(lat=1.5, lon=2.0)
    assert point_of(None, 2) is None


def test_time_score_window():
    assert time_score(NOW - timedelta(hours=1), NOW) == 0.0
    assert time_score(NOW, NOW) == 0.0
    assert time_score(NOW + timedelta(hours=360), NOW) == pytest.approx(0.3)
    assert time_score(NOW + timedelta(hours=720), NOW) == pytest.approx(0.0)
    assert time_score(NOW + timedelta(hours=721), NOW) == 0.0
    assert time_score(None, NOW) == 0.0
    assert time_score(NOW + timedelta(hours=1), NOW) > time_score(NOW + timedelta(hours=100), NOW)


def test_context_score_sums_geo_and_time():
    ctx = RankingContext(now=NOW, user_location=MELBOURNE, max_distance_km=50)
    start = NOW + timedelta(hours=360)
    assert context_score(ctx, MELBOURNE, start) == pytest.approx(0.4 + 0.3)


def test_popularity_bounds_and_formula():
    assert popularity_score(0, 0, 0) == 0.0
    assert popularity_score(5, 10, 5) == pytest.approx(0.6 + 0.2 * math.tanh(1) + 0.2 * math.tanh(1))
    assert popularity_score(5, 10_000, 10_000) <= 1.0
    assert popularity_score(4, 3, 0) > popularity_score(3, 3, 0)
