from __future__ import annotations

from typing import Any, Protocol

from eventrec_core.errors import EventSourceError, EventSourceUnavailable

__all__ = ["EventSource", "EventSourceError", "EventSourceUnavailable"]


class EventSource(Protocol):
    """
    Live event catalog. Returns raw records in the external shape
    (`id`, `title`, `countryCode`, `priceMin`, `priceMax`, `date`, `time`, ...).

    Implementations may raise; callers isolate failures per query.
    A failed request raises `EventSourceError`. `EventSourceUnavailable` is
    reserved for a source that cannot be used at all (e.g. not configured).
    """

    name: str

    async def search(
        self,
        *,
        keyword: str | None = None,
        category: str | None = None,
        country_code: str | None = None,
        page_size: int = ...,
    ) -> list[dict[str, Any]]: ...
