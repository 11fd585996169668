from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

from .config import (
    ALL_CATEGORY,
    COUNTRY_ALIASES,
    MAX_REASONABLE_PRICE,
    MIN_REASONABLE_PRICE,
    WORLD_ALIASES,
)

_ISO2 = re.compile(r"^[A-Z]{2}$")


def normalize_country_code(value: Any) -> str | None:
    """
    Normalize a user/source supplied country value to an ISO2 key.

    Returns None for anything that is not a concrete two-letter code, including
    the world-mode aliases ("World", "ALL", "global").
    """
    if not isinstance(value, str):
        return None
    code = value.strip().upper()
    if not code or code in WORLD_ALIASES:
        return None
    code = COUNTRY_ALIASES.get(code, code)
    return code if _ISO2.match(code) else None


def normalize_category(value: Any) -> str | None:
    """Trimmed category name, or None when absent or the "All" wildcard."""
    if not isinstance(value, str):
        return None
    name = value.strip()
    if not name or name.lower() == ALL_CATEGORY:
        return None
    return name


def coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def clamp_price(value: Any) -> float | None:
    # out-of-range budgets are dropped, not clamped
    num = coerce_float(value)
    if num is None or num < MIN_REASONABLE_PRICE or num > MAX_REASONABLE_PRICE:
        return None
    return num


def ensure_ts(value: Any) -> datetime | None:
    """Normalize datetimes / ISO strings into tz-aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        normalized = raw.replace("Z", "+00:00") if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def start_time_of(raw: Any) -> datetime | None:
    """
    Start time of a raw event in either shape.

    Internal rows carry `start_utc`; source records carry a local `date` and
    optional `time` (treated as UTC, matching how the source pages are ranked).
    """
    getter = raw.get if hasattr(raw, "get") else (lambda k, d=None: getattr(raw, k, d))
    ts = ensure_ts(getter("start_utc", None))
    if ts is not None:
        return ts
    date = getter("date", None)
    if not date or not isinstance(date, str):
        return None
    time = getter("time", None)
    return ensure_ts(f"{date}T{time}" if time else f"{date}T00:00:00")
