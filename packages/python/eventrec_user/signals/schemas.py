from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class SearchSignal(BaseModel):
    query: str | None = None
    category: str | None = None
    country: str | None = None
    source: str | None = None
    # raw budget values; parsed and range-checked by the learner
    price_min: Any = None
    price_max: Any = None


class ClickSignal(BaseModel):
    event_id: str | None = None  # internal event id
    external_id: str | None = None  # e.g. tm_xxx
    source: str | None = None
    title: str | None = None
    url: str | None = None
    category: str | None = None
    country: str | None = None
