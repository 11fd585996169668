from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel

from eventrec_core.config import DEFAULT_CATEGORY
from eventrec_core.normalize import coerce_float, normalize_country_code
from eventrec_core.types import CanonicalFeatures, RawEvent, SourceKind

from .tokenizer import tokenize

# field names per source shape: (country code, country name, price min, price max, title keys)
_FIELDS: dict[SourceKind, tuple[str, str, str, str, tuple[str, ...]]] = {
    SourceKind.INTERNAL: ("country_code", "country", "price_min", "price_max", ("title", "name")),
    SourceKind.EXTERNAL: ("countryCode", "country", "priceMin", "priceMax", ("title", "name")),
}


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def extract(raw: RawEvent | BaseModel | None, source_kind: SourceKind) -> CanonicalFeatures:
    """
    Map a raw event record (internal row or source record) to CanonicalFeatures.

    Never raises: absent or malformed fields degrade to None / empty. The
    country code is only taken from the explicit ISO2 field; a free-text
    country name is kept for display but never promoted to a code.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        raw = {}
    code_key, name_key, min_key, max_key, title_keys = _FIELDS[SourceKind(source_kind)]

    category = _text(raw.get("category")) or DEFAULT_CATEGORY
    country_code = normalize_country_code(raw.get(code_key))
    country_name = _text(raw.get(name_key)) or None

    price = coerce_float(raw.get(min_key))
    if price is None:
        price = coerce_float(raw.get(max_key))

    title = next((_text(raw.get(k)) for k in title_keys if _text(raw.get(k))), "")
    description = _text(raw.get("description"))
    keywords = frozenset(tokenize(title)) | frozenset(tokenize(description))

    return CanonicalFeatures(
        category=category,
        country_code=country_code,
        country_name=country_name,
        price=price,
        keywords=keywords,
    )
