from __future__ import annotations

import math
from datetime import datetime

from eventrec_core.config import TIME_WINDOW_HOURS
from eventrec_core.normalize import coerce_float, ensure_ts
from eventrec_core.types import GeoPoint, RankingContext

EARTH_RADIUS_KM = 6371.0
GEO_WEIGHT = 0.4
TIME_WEIGHT = 0.6


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def point_of(lat, lon) -> GeoPoint | None:
    lat, lon = coerce_float(lat), coerce_float(lon)
    if lat is None or lon is None:
        return None
    return GeoPoint(lat=lat, lon=lon)


def geo_score(
    user: GeoPoint | None, event: GeoPoint | None, max_distance_km: float
) -> float:
    if user is None or event is None or max_distance_km <= 0:
        return 0.0
    d = haversine_km(user, event)
    if d > max_distance_km:
        return 0.0
    return GEO_WEIGHT * (1.0 - d / max_distance_km)


def time_score(start: datetime | None, now: datetime, window_h: float = TIME_WINDOW_HOURS) -> float:
    # past events and events beyond the window get nothing; naive times are UTC
    start, now = ensure_ts(start), ensure_ts(now)
    if start is None or now is None:
        return 0.0
    h = (start - now).total_seconds() / 3600.0
    if h <= 0 or h > window_h:
        return 0.0
    return TIME_WEIGHT * (1.0 - h / window_h)


def context_score(ctx: RankingContext, event_point: GeoPoint | None, start: datetime | None) -> float:
    return geo_score(ctx.user_location, event_point, ctx.max_distance_km) + time_score(start, ctx.now)
